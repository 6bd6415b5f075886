# (c) Copyright Datacraft, 2026
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import sessionmaker, Session as SQLAlchemySession

from .base import Base


def create_db_engine(db_url: str) -> Engine:
    connect_args = {}
    if db_url.startswith("sqlite"):
        # Request handlers and the cleanup scheduler use separate threads
        connect_args["check_same_thread"] = False
    return create_engine(db_url, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def create_session_factory(engine: Engine) -> sessionmaker[SQLAlchemySession]:
    return sessionmaker(engine, expire_on_commit=False)


def get_db(request: Request) -> Generator[SQLAlchemySession, None, None]:
    """FastAPI dependency for database sessions."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
