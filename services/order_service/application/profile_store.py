"""
Read-modify-write persistence for analytical profiles.

By default a profile update reads the row, mutates it and writes it back
without checking for concurrent writers, so two updates of the same profile
racing each other can lose one (last write wins). With optimistic locking
enabled the write is a conditional UPDATE on `version`; a conflict re-reads
the row and re-applies the mutation, a bounded number of times.
"""

from typing import Callable, ContextManager, Generic, List, Optional, Type, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, select
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt

from services.order_service.core.exceptions import (
    ProfileConcurrencyError,
    StaleProfileError,
)
from services.order_service.domain.models import utcnow
from shared.libs.observability.logger_config import log
from shared.libs.observability.metrics import PROFILE_WRITE_CONFLICTS

ProfileT = TypeVar("ProfileT", bound=SQLModel)

# Columns never rewritten by an update
_IMMUTABLE_COLUMNS = {"id", "created_at"}


class ProfileStore(Generic[ProfileT]):
    def __init__(
        self,
        session_factory: Callable[[], ContextManager[Session]],
        model: Type[ProfileT],
        key_field: str,
        factory: Callable[[str], ProfileT],
        profile_name: str,
        optimistic_locking: bool = False,
        max_attempts: int = 5,
    ):
        """
        Args:
            session_factory: Returns a session context manager (Database.session).
            model: Profile table model.
            key_field: Column holding the business key (user_id, seller_id).
            factory: Builds a zeroed profile for a key on first touch.
            profile_name: Label for logs and metrics.
            optimistic_locking: Use version-checked conditional updates.
            max_attempts: Versioned write attempts before giving up.
        """
        self.session_factory = session_factory
        self.model = model
        self.key_field = key_field
        self.factory = factory
        self.profile_name = profile_name
        self.optimistic_locking = optimistic_locking
        self.max_attempts = max_attempts

    def find(self, session: Session, key: str) -> Optional[ProfileT]:
        column = getattr(self.model, self.key_field)
        return session.exec(select(self.model).where(column == key)).first()

    def get(self, key: str) -> Optional[ProfileT]:
        with self.session_factory() as session:
            return self.find(session, key)

    def get_or_create(self, key: str) -> ProfileT:
        with self.session_factory() as session:
            return self._get_or_create(session, key)

    def _get_or_create(self, session: Session, key: str) -> ProfileT:
        profile = self.find(session, key)
        if profile is not None:
            return profile

        profile = self.factory(key)
        session.add(profile)
        try:
            session.commit()
        except IntegrityError:
            # Created concurrently by another worker; use theirs
            session.rollback()
            profile = self.find(session, key)
            if profile is None:
                raise
            return profile
        log.info("Profile created", profile=self.profile_name, key=key)
        return profile

    def apply(self, key: str, mutate: Callable[[ProfileT], None]) -> ProfileT:
        """Load (or create) the profile for `key`, apply `mutate` and persist it."""
        if not self.optimistic_locking:
            return self._apply_unversioned(key, mutate)

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            retry=retry_if_exception_type(StaleProfileError),
            reraise=True,
        )
        try:
            return retrying(self._apply_versioned, key, mutate)
        except StaleProfileError as e:
            log.error(
                "Profile write retries exhausted",
                profile=self.profile_name,
                key=key,
                attempts=self.max_attempts,
            )
            raise ProfileConcurrencyError(
                self.profile_name, key, self.max_attempts
            ) from e

    def _apply_unversioned(
        self, key: str, mutate: Callable[[ProfileT], None]
    ) -> ProfileT:
        with self.session_factory() as session:
            profile = self._get_or_create(session, key)
            mutate(profile)
            profile.version += 1
            profile.updated_at = utcnow()
            session.add(profile)
            session.commit()
            return profile

    def _apply_versioned(self, key: str, mutate: Callable[[ProfileT], None]) -> ProfileT:
        with self.session_factory() as session:
            profile = self._get_or_create(session, key)
            # Detach so the mutation is never autoflushed as an unconditional UPDATE
            session.expunge(profile)
            expected = profile.version

            mutate(profile)
            profile.version = expected + 1
            profile.updated_at = utcnow()

            values = {
                column.name: getattr(profile, column.name)
                for column in self.model.__table__.columns
                if column.name not in _IMMUTABLE_COLUMNS
                and column.name != self.key_field
            }
            result = session.execute(
                update(self.model)
                .where(self.model.id == profile.id, self.model.version == expected)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                PROFILE_WRITE_CONFLICTS.labels(profile=self.profile_name).inc()
                log.warning(
                    "Profile changed concurrently, re-applying",
                    profile=self.profile_name,
                    key=key,
                    expected_version=expected,
                )
                raise StaleProfileError(
                    f"{self.profile_name} profile {key} is no longer at version {expected}"
                )
            session.commit()
            return profile

    def top(self, order_column, limit: int) -> List[ProfileT]:
        key_column = getattr(self.model, self.key_field)
        with self.session_factory() as session:
            return list(
                session.exec(
                    select(self.model)
                    .order_by(order_column.desc(), key_column)
                    .limit(limit)
                ).all()
            )
