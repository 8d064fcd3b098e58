"""
Database session management - SQLAlchemy engine and session factory.

The engine and session factory are built once at application startup (see
``practice_connect.deps.Services``) and shared read-only by every component
that needs the database. Components open one short-lived session per
operation; there is no per-process session state.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


def build_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine.

    - pool_pre_ping=True: Before using a pooled connection, check it is still
      alive. Prevents errors from stale connections (e.g., after DB restart).
    - SQLite URLs (local development) get check_same_thread=False so the
      engine can be shared across the threadpool FastAPI runs sync code in.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    return create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    """
    Create the session factory bound to the engine.

    - autoflush=False: Don't sync Python objects to the DB before queries;
      components control when flushes happen.
    - expire_on_commit=False: Objects stay readable after commit, so values
      can be copied out after the session is closed.
    """
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)
