"""Database engine construction and per-request sessions"""

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlmodel import Session

from school_intake.config import database_url


def create_db_engine(config: dict) -> Engine:
    """
    Create the SQLAlchemy engine for this process.

    Called once from create_app(); the engine is kept on app.state and
    shared by every request.
    """
    url = database_url(config)
    if not url:
        raise ValueError(
            "Database is not configured. Set DATABASE_URL or the DB_* variables."
        )
    return create_engine(url, echo=config.get("debug", False), pool_pre_ping=True)


def get_db(request: Request):
    """Get database session"""
    with Session(request.app.state.engine) as session:
        yield session
