"""Database handle with an explicit connect/disconnect lifecycle."""

from __future__ import annotations

from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from workflow_notifier.logger import get_logger

logger = get_logger(__name__)

Base = declarative_base()


class Database:
    """
    Owns the SQLAlchemy engine and session factory.

    Created by whoever owns the process (the app factory, a test) and handed to
    the stores; nothing in the package reaches for a global engine.
    """

    def __init__(self, url: str, *, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    def connect(self, *, create_schema: bool = True) -> None:
        if self._engine is not None:
            return
        kwargs: dict = {"echo": self.echo}
        if self.url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            # in-memory databases live as long as their single connection
            if ":memory:" in self.url or self.url in ("sqlite://", "sqlite+pysqlite://"):
                kwargs["poolclass"] = StaticPool
        self._engine = create_engine(self.url, **kwargs)
        self._sessionmaker = sessionmaker(
            bind=self._engine, autoflush=False, autocommit=False, expire_on_commit=False
        )
        if create_schema:
            # models register themselves on Base.metadata at import
            from workflow_notifier import models  # noqa: F401

            Base.metadata.create_all(self._engine)
        logger.info("database_connected", url=self._engine.url.render_as_string(hide_password=True))

    def disconnect(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("database_disconnected")

    def session(self) -> Session:
        """
        Create a new SQLAlchemy session.
        Caller is responsible for committing/closing when appropriate.
        """
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        return self._sessionmaker()

    def health_check(self) -> bool:
        try:
            with self.session() as db:
                db.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, RuntimeError) as exc:
            logger.error("database_health_check_failed", error=str(exc))
            return False

    def iter_session(self) -> Iterator[Session]:
        """FastAPI dependency-style session generator."""
        db = self.session()
        try:
            yield db
        finally:
            db.close()
