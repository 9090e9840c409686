import logging
from contextlib import contextmanager
from typing import Iterator, Optional
from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import settings
from .errors import StorageError
from .models import Base

logger = logging.getLogger(__name__)


def _casefold(value):
    return value.casefold() if value is not None else None


def _on_connect(dbapi_connection, connection_record):
    # Let SQLAlchemy emit BEGIN itself so reads and writes share one transaction
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()
    # sqlite's lower()/LIKE only fold ASCII
    dbapi_connection.create_function("casefold", 1, _casefold, deterministic=True)


def _on_begin(conn):
    conn.exec_driver_sql("BEGIN")


class Store:
    """
    Handle on the local SQLite database.
    Built once at application startup and passed to each repository;
    close() it on shutdown.
    """

    def __init__(self, path: Optional[str] = None, echo: Optional[bool] = None):
        self.path = path or settings.DB_PATH
        kwargs = {}
        if self.path == ":memory:":
            # one shared connection, otherwise every checkout sees a new empty db
            kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
        self.engine = create_engine(
            f"sqlite:///{self.path}",
            echo=settings.DB_ECHO if echo is None else echo,
            **kwargs,
        )
        event.listen(self.engine, "connect", _on_connect)
        event.listen(self.engine, "begin", _on_begin)
        self.SessionLocal = sessionmaker(
            bind=self.engine, autoflush=False, autocommit=False, expire_on_commit=False
        )

    def init_db(self) -> None:
        """
        Create tables if they are absent (idempotent).
        Called once at application startup.
        """
        Base.metadata.create_all(bind=self.engine)
        logger.info("schema ready at %s", self.path)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Yields a Session; commits on success, rolls back on error.
        Everything executed inside one `with` block is a single transaction.
        """
        s: Session = self.SessionLocal()
        try:
            yield s
            s.commit()
        except SQLAlchemyError as exc:
            s.rollback()
            raise StorageError(str(getattr(exc, "orig", None) or exc)) from exc
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    def close(self) -> None:
        self.engine.dispose()

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
