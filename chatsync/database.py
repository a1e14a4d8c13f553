"""
Database configuration and session management
"""
import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, declarative_base

from chatsync.config import get_settings, Settings

Base = declarative_base()


def casefold(value):
    """Unicode case folding exposed to SQLite as ``casefold()``"""
    return value.casefold() if value is not None else None


def register_sqlite_functions(dbapi_connection, connection_record):
    dbapi_connection.create_function("casefold", 1, casefold, deterministic=True)


def build_engine(database_url: str, settings: Settings = None) -> Engine:
    """
    Create an engine for the given URL

    SQLite connections are shared across worker threads and wait on the
    write lock for up to ``sqlite_busy_timeout`` seconds. Each one also gets
    a Unicode-aware ``casefold()`` SQL function for search.
    """
    settings = settings or get_settings()
    url = make_url(database_url)
    connect_args = {}

    if url.get_backend_name() == "sqlite":
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.sqlite_busy_timeout,
        }
        if url.database and url.database != ":memory:":
            directory = os.path.dirname(os.path.abspath(url.database))
            os.makedirs(directory, exist_ok=True)

    engine = create_engine(
        database_url,
        echo=settings.sql_echo,
        connect_args=connect_args,
    )
    if url.get_backend_name() == "sqlite":
        event.listen(engine, "connect", register_sqlite_functions)
    return engine


def build_session_factory(bind: Engine) -> sessionmaker:
    """Session factory; records stay readable after commit"""
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


settings = get_settings()

engine = build_engine(settings.database_url, settings)

SessionLocal = build_session_factory(engine)


def init_db(bind: Engine = None) -> None:
    """Create all tables"""
    # Register models on the metadata
    import chatsync.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
