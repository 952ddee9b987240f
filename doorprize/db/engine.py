from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from ..config import load_settings
from .utils import is_sqlite_url


def make_engine(database_url: Optional[str] = None, echo: bool = False):
    url = database_url or load_settings().database_url
    connect_args = {}
    if is_sqlite_url(url):
        # Draw workflows open independent sessions per step; SQLite needs to
        # wait on the write lock instead of failing immediately.
        connect_args = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(
        url,
        echo=echo,
        future=True,
        connect_args=connect_args,
    )
    if is_sqlite_url(url):
        # ensure FK constraints are enforced on SQLite
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def get_sessionmaker(engine):
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,  # Keep objects accessible after commit
        future=True,
    )
