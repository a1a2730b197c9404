import os

# Keep test runs off the rotating file sinks
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("CONSOLE_LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

from services.order_service.domain.models import SellerProfile, UserProfile  # noqa: E402
from shared.libs.database.session import Database  # noqa: E402
from shared.libs.events.idempotency import ProcessedEvent  # noqa: E402
from tests.support.builders import build_profile_services  # noqa: E402
from tests.support.fakes import FakeProducer, InMemoryBroker  # noqa: E402


@pytest.fixture
def broker():
    return InMemoryBroker()


@pytest.fixture
def producer(broker):
    return FakeProducer(broker)


@pytest.fixture
def make_database(tmp_path):
    """File-backed SQLite databases so worker threads share the same data."""
    created = []

    def factory(*models, name: str = "test.db") -> Database:
        db = Database(
            f"sqlite:///{tmp_path / name}",
            models=models,
            connect_args={"check_same_thread": False},
        )
        db.init()
        created.append(db)
        return db

    yield factory
    for db in created:
        db.dispose()


@pytest.fixture
def order_db(make_database):
    return make_database(UserProfile, SellerProfile, ProcessedEvent, name="orders.db")


@pytest.fixture
def profile_services(order_db):
    return build_profile_services(order_db)
