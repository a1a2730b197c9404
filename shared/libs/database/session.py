from contextlib import contextmanager
from typing import Any, Dict, Generator, Iterable, Optional, Type

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

from shared.libs.observability.logger_config import log


class Database:
    """
    Owns one service's SQLModel engine.
    Each service passes the table models it owns so `create_all` never
    creates another service's tables in a shared database.
    """

    def __init__(
        self,
        url: str,
        models: Iterable[Type[SQLModel]] = (),
        echo: bool = False,
        connect_args: Optional[Dict[str, Any]] = None,
    ):
        self.url = url
        self.models = list(models)
        self.echo = echo
        self.connect_args = connect_args or {}
        self._engine: Optional[Engine] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            options: Dict[str, Any] = {"echo": self.echo, "pool_pre_ping": True}
            if not self.url.startswith("sqlite"):
                options["pool_recycle"] = 300
            self._engine = create_engine(
                self.url, connect_args=self.connect_args, **options
            )
        return self._engine

    def init(self) -> None:
        """
        Verify connectivity and create the service's tables if missing.

        Raises:
            RuntimeError: If the database is unreachable.
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            SQLModel.metadata.create_all(
                self.engine, tables=[model.__table__ for model in self.models]
            )
        except SQLAlchemyError as e:
            log.critical("Failed to initialize database", error=str(e))
            raise RuntimeError("Failed to initialize database engine") from e
        log.info(
            "Database initialized",
            tables=[model.__tablename__ for model in self.models],
        )

    def is_healthy(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            log.error("Database healthcheck failed", error=str(e))
            return False

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Session scope for event handlers; rolls back on error."""
        session = Session(self.engine, expire_on_commit=False)
        try:
            yield session
        except Exception as e:
            log.error("Database session error, rolling back", error=str(e))
            session.rollback()
            raise
        finally:
            session.close()

    def get_session(self) -> Generator[Session, None, None]:
        """FastAPI dependency yielding a request-scoped session."""
        with self.session() as session:
            yield session

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
