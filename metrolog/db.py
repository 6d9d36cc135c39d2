"""
ストレージハンドル
Explicitly owned SQLite storage handle.

The hosting process constructs a Store, opens it, passes it to the services
that need it and closes it on shutdown. Nothing here is process-global, so
every test can work against its own in-memory database.
"""
import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import config
from metrolog.models import Base

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Storage unavailable or a write failed; nothing was committed."""


def _is_memory_uri(uri: str) -> bool:
    url = make_url(uri)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


class Store:
    def __init__(self, uri: Optional[str] = None, echo: Optional[bool] = None):
        self.uri = uri or config.SQLALCHEMY_DATABASE_URI
        self.echo = config.SQLALCHEMY_ECHO if echo is None else echo
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> "Store":
        """Create the engine and the schema. Safe to call twice."""
        if self._engine is not None:
            return self

        kwargs = {"echo": self.echo}
        memory = _is_memory_uri(self.uri)
        if memory:
            # One shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            url = make_url(self.uri)
            if url.get_backend_name() == "sqlite" and url.database:
                os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)

        try:
            engine = create_engine(self.uri, **kwargs)
            if engine.dialect.name == "sqlite":
                event.listen(engine, "connect", _sqlite_pragmas(memory))
            Base.metadata.create_all(engine)
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        self._engine = engine
        self._sessionmaker = sessionmaker(bind=engine, expire_on_commit=False)
        logger.info("Opened store %s", engine.url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Closed store %s", self.uri)
        self._engine = None
        self._sessionmaker = None

    def __enter__(self) -> "Store":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Read session. Nothing is committed."""
        if self._sessionmaker is None:
            raise StorageError("Store is not open")
        session = self._sessionmaker()
        try:
            yield session
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e
        finally:
            session.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Commit everything on success, roll everything back on failure."""
        if self._sessionmaker is None:
            raise StorageError("Store is not open")
        session = self._sessionmaker()
        try:
            with session.begin():
                yield session
        except SQLAlchemyError as e:
            logger.error("Transaction rolled back: %s", e)
            raise StorageError(str(e)) from e
        finally:
            session.close()


def _sqlite_pragmas(memory: bool):
    def on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        if not memory:
            cursor.execute(f"PRAGMA journal_mode = {config.SQLITE_JOURNAL_MODE}")
        cursor.close()
    return on_connect


def open_store(uri: Optional[str] = None) -> Store:
    """Open a store; file databases live in config.DATA_DIR by default."""
    return Store(uri).open()
