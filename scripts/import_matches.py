"""
Import finished matches from Football-Data.co.uk into the match-history store.

Usage:
    python scripts/import_matches.py E0 SP1 --seasons 2425 2324
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Add project root to sys.path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("MatchImporter")


async def import_matches(league_codes: list[str], seasons: list[str]):
    from winmix.api.dependencies import get_database_service, get_match_repository
    from winmix.infrastructure.data_sources.football_data_uk import FootballDataUKSource

    get_database_service().create_tables()
    repository = get_match_repository()
    source = FootballDataUKSource()

    total = 0
    for code in league_codes:
        records = await source.get_historical_matches(code, seasons)
        if not records:
            logger.warning(f"No matches found for {code}")
            continue
        total += repository.save_matches(records)
        logger.info(f"{code}: imported {len(records)} matches")

    logger.info(f"Done. {total} matches written, {repository.count_matches()} in store.")


if __name__ == "__main__":
    load_dotenv()
    parser = argparse.ArgumentParser(description="Import Football-Data.co.uk results")
    parser.add_argument("leagues", nargs="+", help="League codes, e.g. E0 SP1")
    parser.add_argument("--seasons", nargs="+", default=["2425", "2324"], help="Season codes, e.g. 2425")
    args = parser.parse_args()
    asyncio.run(import_matches(args.leagues, args.seasons))
