"""
Processed-event ledger keyed by (event_id, consumer_group).

Off by default. When enabled, the consumer skips events already recorded for
its group, so redelivery after a successful handler does not reapply it.
A handler that fails after partially committing is still not covered: the
ledger entry is written only after the handler returns.
"""

from datetime import datetime, timezone
from typing import Callable, ContextManager

from sqlalchemy import Column, DateTime
from sqlalchemy.exc import IntegrityError
from sqlmodel import Field, Session, SQLModel

from shared.libs.observability.logger_config import log


class ProcessedEvent(SQLModel, table=True):
    __tablename__ = "processed_events"

    event_id: str = Field(primary_key=True, max_length=64)
    consumer_group: str = Field(primary_key=True, max_length=100)
    event_kind: str = Field(max_length=50, nullable=False)
    processed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class ProcessedEventLedger:
    def __init__(self, session_factory: Callable[[], ContextManager[Session]]):
        self.session_factory = session_factory

    def seen(self, event_id: str, group: str) -> bool:
        with self.session_factory() as session:
            return session.get(ProcessedEvent, (event_id, group)) is not None

    def record(self, event_id: str, group: str, kind: str) -> None:
        with self.session_factory() as session:
            session.add(
                ProcessedEvent(event_id=event_id, consumer_group=group, event_kind=kind)
            )
            try:
                session.commit()
            except IntegrityError:
                # Another worker in the same group recorded it first
                session.rollback()
                log.debug("Event already recorded", event_id=event_id, group=group)
