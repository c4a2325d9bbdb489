"""
Domain Constants

This module contains constant definitions valid across the domain layer.
Model parameters here are tuned offline and are cheap to evaluate.
"""

# Outcome tags used across the match schema
HOME = "H"
DRAW = "D"
AWAY = "A"
OUTCOMES = (HOME, DRAW, AWAY)

# Outcome value from a team's perspective (loss / draw / win)
OUTCOME_VALUE = {"L": 0.0, "D": 0.5, "W": 1.0}

# Query windows
RECENT_MATCHES_LIMIT = 10
FORM_WINDOW = 5
HEAD_TO_HEAD_LIMIT = 10

# League-wide fallbacks when a team has no sample at a venue
DEFAULT_AVG_HOME_GOALS = 1.4
DEFAULT_AVG_AWAY_GOALS = 1.1

# Historical base rates for home / draw / away
BASE_RATES = (0.45, 0.27, 0.28)

# Half-time -> full-time prior (rows: HT home lead, HT draw, HT away lead)
DEFAULT_TRANSITION_ROWS = (
    (0.65, 0.25, 0.10),
    (0.35, 0.30, 0.35),
    (0.10, 0.25, 0.65),
)

# Pseudo-count given to the prior row when estimating a transition matrix
TRANSITION_PRIOR_STRENGTH = 2.0

# Poisson goal grid upper bound (inclusive)
POISSON_MAX_GOALS = 9

# Empirical model blend
EMPIRICAL_FORM_WEIGHT = 0.40
EMPIRICAL_H2H_WEIGHT = 0.30
EMPIRICAL_BASE_WEIGHT = 0.30

# Ensemble defaults (must sum to 1.0)
DEFAULT_ENSEMBLE_WEIGHTS = {
    "empirical": 0.30,
    "gradient_boosted": 0.35,
    "poisson": 0.20,
    "markov": 0.15,
}

DISAGREEMENT_THRESHOLD = 0.25
DISAGREEMENT_PENALTY = 0.8

# Confidence tiers
HIGH_CONFIDENCE_THRESHOLD = 0.8
MEDIUM_CONFIDENCE_THRESHOLD = 0.6
LIMITED_DATA_THRESHOLD = 0.7

# Feedback-driven weight updates
WEIGHT_LEARNING_RATE = 0.1
WEIGHT_FLOOR = 0.05
PERFORMANCE_WINDOW = 50

PROBABILITY_TOLERANCE = 1e-6
