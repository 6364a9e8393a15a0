"""Database engine, session factory and the request-scoped session dependency."""
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from memri.config import settings

engine = create_engine(settings.database_url, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Yield a database session for the current request.

    The factory comes from the application state so an app built with a
    different engine (tests, the CLI) never touches the default one.
    """
    factory = getattr(request.app.state, "session_factory", SessionLocal)
    db = factory()
    try:
        yield db
    finally:
        db.close()
