from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator

# Create base class for models
Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """
    Create an engine, with the SQLite specific options when needed
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={
                "check_same_thread": False,
                "timeout": 20
            },
            poolclass=StaticPool,
            echo=False  # Set to True for SQL debugging
        )
    return create_engine(database_url, echo=False, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency to get a session from the application's session factory
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine) -> None:
    """
    Create all tables that do not exist yet
    """
    # Import all models so they are registered on Base.metadata
    from syncscript import models  # noqa: F401

    Base.metadata.create_all(bind=bind)


def drop_tables(bind: Engine) -> None:
    """
    Drop all tables (useful for testing)
    """
    from syncscript import models  # noqa: F401

    Base.metadata.drop_all(bind=bind)
