import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker

from winmix.core.config import DEFAULT_DATABASE_URL

logger = logging.getLogger(__name__)

Base = declarative_base()


class DatabaseService:
    """
    Service for managing database connections and sessions.
    """

    def __init__(self, db_url: Optional[str] = None):
        self.db_url = db_url
        if not self.db_url:
            self.db_url = DEFAULT_DATABASE_URL
            logger.warning(f"No database URL configured. Falling back to SQLite: {self.db_url}")

        # SQLAlchemy needs postgresql://, hosting providers still hand out postgres://
        if self.db_url.startswith("postgres://"):
            self.db_url = self.db_url.replace("postgres://", "postgresql://", 1)

        # pool_pre_ping=True helps with dropped connections
        self.engine = create_engine(
            self.db_url,
            pool_pre_ping=True,
            # Queries run in worker threads
            connect_args={"check_same_thread": False} if self.db_url.startswith("sqlite") else {},
        )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

        logger.info(
            f"DatabaseService initialized with {self.db_url.split('@')[-1] if '@' in self.db_url else 'local DB'}"
        )

    def create_tables(self):
        """Create all tables defined in Base."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created successfully")

    def get_session(self):
        """Get a new database session."""
        return self.SessionLocal()

    def ping(self) -> None:
        """Run a trivial query; raises SQLAlchemyError when the database is unreachable."""
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
