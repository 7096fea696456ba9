"""
Database connection and session management.
Uses SQLAlchemy; Postgres in production, any SQLAlchemy URL works.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
import logging

from storefront.config import get_config

logger = logging.getLogger(__name__)

DATABASE_URL = get_config().database_url

# Base class for all our database models (must be defined before engine)
Base = declarative_base()

if DATABASE_URL:
    try:
        # pool_pre_ping ensures connections are alive before using them
        engine = create_engine(DATABASE_URL, pool_pre_ping=True)
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    except Exception as e:
        logger.warning(f"Failed to create DB engine: {e}; storage disabled")
        engine = None
        SessionLocal = None
else:
    logger.info("DATABASE_URL not set, running without a database")
    engine = None
    SessionLocal = None


def get_db():
    """
    Dependency function that provides a database session.
    Yields None when DATABASE_URL is not configured; routes answer 503.

    Usage in FastAPI:
        @app.get("/endpoint")
        def my_endpoint(db: Session = Depends(get_db)):
            ...
    """
    if SessionLocal is None:
        yield None
        return
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
