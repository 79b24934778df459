from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# Base class for all models
Base = declarative_base()


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the engine for the configured database.

    check_same_thread=False is needed for SQLite because request handlers
    and the sweeper run on worker threads. An in-memory SQLite database
    only exists per connection, so it is pinned to a single one.
    """
    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    return create_engine(database_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """
    Initialize database schema.
    Creates all tables defined in models.
    Call this on application startup.
    """
    # Register the model classes on Base.metadata
    from webauth import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
