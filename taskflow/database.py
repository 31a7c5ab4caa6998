import functools
import logging

from sqlmodel import SQLModel, create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from .config import DATABASE_URL
from .errors import StorageUnavailableError

# Import all models to ensure they are registered with SQLModel metadata
from .models import Category, Task, TaskLevel, TaskStatus, User, Workflow  # noqa: F401

logger = logging.getLogger(__name__)


def _create_engine():
    if DATABASE_URL.startswith("sqlite"):
        return create_engine(
            DATABASE_URL,
            echo=False,
            connect_args={"check_same_thread": False},
        )

    # Neon/Postgres: disable pooling for serverless and enable pre-ping
    return create_engine(
        DATABASE_URL,
        echo=False,
        pool_pre_ping=True,
        poolclass=NullPool,
    )

engine = _create_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def create_tables(bind=None):
    """Create all database tables."""
    SQLModel.metadata.create_all(bind=bind or engine)


def translate_storage_errors(func):
    """Turn connection-level failures of a store method into StorageUnavailableError.

    The decorated method's ``self`` must expose the session as ``self.db``.
    """

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except OperationalError as exc:
            self.db.rollback()
            logger.error("Storage error in %s: %s", func.__qualname__, exc)
            raise StorageUnavailableError("Storage is temporarily unavailable") from exc

    return wrapper
