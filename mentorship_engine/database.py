# mentorship_engine/database.py
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.engine import URL, make_url
from .config import get_settings

logger = logging.getLogger(__name__)

def get_database_url():
    settings = get_settings()
    if settings.DATABASE_URL:
        return make_url(settings.DATABASE_URL)
    return URL.create(
        "postgresql+psycopg2",
        username=settings.POSTGRES_USER,
        password=settings.POSTGRES_PASSWORD,
        host=settings.POSTGRES_HOST,
        port=settings.POSTGRES_PORT,
        database=settings.POSTGRES_DB,
    )

def get_engine(url=None):
    settings = get_settings()
    url = make_url(url) if url is not None else get_database_url()
    if url.get_backend_name() == "sqlite":
        # SQLite has no server-side pool; sessions may be used from worker threads
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )

# Create the SQLAlchemy engine globally after defining get_engine
engine = get_engine()

# Create a SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for declarative models
Base = declarative_base()

# Dependency to get a DB session
def get_db():
    """Provides a database session for a request and closes it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Helper function to create all tables
def create_db_and_tables(bind=None):
    """Creates all defined database tables."""
    # Import models so they register on Base.metadata
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables created or already exist.")

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_db_and_tables()
