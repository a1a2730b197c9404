import json
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from services.media_service.application.media_cleanup_service import (
    MediaCleanupService,
)
from services.media_service.domain.models import Media
from services.media_service.events.handlers import (
    ProductEventHandler,
    UserDeletedHandler as MediaUserDeletedHandler,
)
from services.media_service.events.registry import build_registry as media_registry
from services.product_service.application.product_service import ProductService
from services.product_service.core.exceptions import (
    DatabaseError,
    ProductAccessDeniedError,
    ProductNotFoundError,
)
from services.product_service.domain.models import Product, ProductCreate, ProductUpdate
from services.product_service.events.handlers import (
    UserDeletedHandler as ProductUserDeletedHandler,
)
from services.product_service.events.producer import ProductEventProducer
from services.product_service.events.registry import build_registry as product_registry
from services.user_service.application.user_account_service import UserAccountService
from services.user_service.core.exceptions import UserNotFoundError
from services.user_service.domain.models import User, UserRole
from services.user_service.events.producer import UserEventProducer
from shared.libs.events.consumer import EventConsumer
from shared.libs.events.exceptions import EventPublishError
from shared.libs.events.schemas import (
    ProductEvent,
    ProductEventType,
    UserDeleted,
    encode_event,
)
from shared.libs.events.topics import (
    MEDIA_SERVICE_GROUP,
    PRODUCT_EVENTS,
    PRODUCT_SERVICE_GROUP,
    USER_EVENTS,
    dead_letter_topic,
)
from tests.support.fakes import FakeConsumer, FakeProducer, FakeStorage, drain


@pytest.fixture
def user_db(make_database):
    return make_database(User, name="users.db")


@pytest.fixture
def product_db(make_database):
    return make_database(Product, name="products.db")


@pytest.fixture
def media_db(make_database):
    return make_database(Media, name="media.db")


def add_user(db, user_id, role=UserRole.SELLER):
    with db.session() as session:
        session.add(User(id=user_id, email=f"{user_id}@example.com", role=role))
        session.commit()


def add_product(db, product_id, owner_id):
    with db.session() as session:
        session.add(
            Product(
                id=product_id,
                owner_id=owner_id,
                name=f"Product {product_id}",
                price=Decimal("9.99"),
                quantity=1,
            )
        )
        session.commit()


def add_media(db, media_id, owner_id, product_id=None):
    with db.session() as session:
        session.add(
            Media(
                id=media_id,
                owner_id=owner_id,
                product_id=product_id,
                filename=f"{media_id}.jpg",
                content_type="image/jpeg",
                file_size=1024,
                storage_key=f"media/{media_id}.jpg",
            )
        )
        session.commit()


def rows(db, model, *criteria):
    with db.session() as session:
        return list(session.exec(select(model).where(*criteria)).all())


def consumer_for(group, registry, broker, producer):
    return EventConsumer(
        group, registry, FakeConsumer(broker, group), producer, backoff_seconds=0
    )


class TestUserDeletionCascade:
    def test_user_products_and_media_are_all_removed(
        self, broker, producer, user_db, product_db, media_db
    ):
        add_user(user_db, "U1")
        add_product(product_db, "P1", "U1")
        add_product(product_db, "P2", "U1")
        add_product(product_db, "P3", "U2")
        add_media(media_db, "M1", "U1", "P1")
        # Uploaded by a collaborator, removed only through the product cascade
        add_media(media_db, "M2", "U9", "P2")
        add_media(media_db, "M3", "U1")
        add_media(media_db, "M4", "U2", "P3")
        storage = FakeStorage(keys={f"media/M{i}.jpg" for i in range(1, 5)})

        with user_db.session() as session:
            UserAccountService(session, UserEventProducer(producer)).delete_account("U1")

        products = consumer_for(
            PRODUCT_SERVICE_GROUP,
            product_registry(
                ProductUserDeletedHandler(product_db.session, ProductEventProducer(producer))
            ),
            broker,
            producer,
        )
        media = consumer_for(
            MEDIA_SERVICE_GROUP,
            media_registry(
                ProductEventHandler(media_db.session, storage),
                MediaUserDeletedHandler(media_db.session, storage),
            ),
            broker,
            producer,
        )
        drain(products)
        drain(media)

        assert rows(user_db, User, User.id == "U1") == []
        assert rows(product_db, Product, Product.owner_id == "U1") == []
        assert [p.id for p in rows(product_db, Product)] == ["P3"]
        assert rows(media_db, Media, Media.product_id.in_(["P1", "P2"])) == []
        assert rows(media_db, Media, Media.owner_id == "U1") == []
        assert [m.id for m in rows(media_db, Media)] == ["M4"]
        assert storage.objects == {"media/M4.jpg"}

        deleted = [json.loads(m.value()) for m in broker.messages(PRODUCT_EVENTS)]
        assert {d["productId"] for d in deleted} == {"P1", "P2"}
        assert {d["eventType"] for d in deleted} == {"DELETED"}
        assert broker.messages(dead_letter_topic(MEDIA_SERVICE_GROUP)) == []

    def test_user_without_products(self, broker, producer, product_db):
        handler = ProductUserDeletedHandler(product_db.session, ProductEventProducer(producer))
        handler(UserDeleted(user_id="U1"))

        assert broker.messages(PRODUCT_EVENTS) == []

    def test_re_running_product_cascade_is_harmless(self, broker, producer, product_db):
        add_product(product_db, "P1", "U1")
        with product_db.session() as session:
            service = ProductService(session, ProductEventProducer(producer))
            assert service.delete_products_for_owner("U1") == 1
            assert service.delete_products_for_owner("U1") == 0
        assert len(broker.messages(PRODUCT_EVENTS)) == 1


class TestMediaCleanup:
    def test_storage_failure_keeps_row_and_batch_continues(self, media_db):
        add_media(media_db, "M1", "U1", "P1")
        add_media(media_db, "M2", "U1", "P1")
        add_media(media_db, "M3", "U1", "P1")
        storage = FakeStorage(
            keys={"media/M1.jpg", "media/M2.jpg", "media/M3.jpg"},
            failing={"media/M2.jpg"},
        )
        handler = ProductEventHandler(media_db.session, storage)

        handler(
            ProductEvent(
                event_type=ProductEventType.DELETED, product_id="P1", seller_id="U1"
            )
        )

        assert [m.id for m in rows(media_db, Media)] == ["M2"]
        assert sorted(storage.removed) == ["media/M1.jpg", "media/M3.jpg"]

    def test_missing_file_still_removes_row(self, media_db):
        add_media(media_db, "M1", "U1", "P1")
        add_media(media_db, "M2", "U1", "P1")
        storage = FakeStorage(keys={"media/M2.jpg"})

        with media_db.session() as session:
            result = MediaCleanupService(session, storage).delete_media_for_product("P1")

        assert result.deleted == 2
        assert result.missing_files == 1
        assert result.failed == 0
        assert rows(media_db, Media) == []

    def test_created_and_updated_events_are_ignored(self, media_db):
        add_media(media_db, "M1", "U1", "P1")
        storage = FakeStorage(keys={"media/M1.jpg"})

        ProductEventHandler(media_db.session, storage)(
            ProductEvent(
                event_type=ProductEventType.UPDATED,
                product_id="P1",
                seller_id="U1",
                name="Lamp",
                price=Decimal("5.00"),
                quantity=1,
            )
        )

        assert len(rows(media_db, Media)) == 1
        assert storage.removed == []

    def test_partial_failure_is_acknowledged(self, broker, producer, media_db):
        add_media(media_db, "M1", "U1", "P1")
        add_media(media_db, "M2", "U1", "P1")
        storage = FakeStorage(keys={"media/M2.jpg"}, failing={"media/M1.jpg"})
        consumer = consumer_for(
            MEDIA_SERVICE_GROUP,
            media_registry(
                ProductEventHandler(media_db.session, storage),
                MediaUserDeletedHandler(media_db.session, storage),
            ),
            broker,
            producer,
        )
        event = ProductEvent(
            event_type=ProductEventType.DELETED, product_id="P1", seller_id="U1"
        )
        msg = broker.append(PRODUCT_EVENTS, encode_event(event), b"P1")

        assert consumer.process_message(msg) is True
        assert [m.id for m in rows(media_db, Media)] == ["M1"]
        assert broker.messages(dead_letter_topic(MEDIA_SERVICE_GROUP)) == []


class TestPublishBeforeDelete:
    def test_failed_publish_keeps_the_user(self, broker, user_db):
        add_user(user_db, "U1")
        producer = FakeProducer(broker, produce_error=BufferError("queue full"))

        with user_db.session() as session:
            with pytest.raises(EventPublishError):
                UserAccountService(session, UserEventProducer(producer)).delete_account("U1")

        assert [u.id for u in rows(user_db, User)] == ["U1"]
        assert broker.messages(USER_EVENTS) == []

    def test_unknown_user(self, producer, user_db):
        with user_db.session() as session:
            with pytest.raises(UserNotFoundError):
                UserAccountService(session, UserEventProducer(producer)).delete_account("U1")

    def test_failed_delete_after_publish_leaves_product_behind(
        self, broker, producer, product_db, monkeypatch
    ):
        add_product(product_db, "P1", "U1")

        with product_db.session() as session:
            service = ProductService(session, ProductEventProducer(producer))

            def failing_delete(instance):
                raise OperationalError("DELETE FROM products", {}, Exception("disk I/O error"))

            monkeypatch.setattr(session, "delete", failing_delete)
            with pytest.raises(DatabaseError):
                service.delete_product("P1", "U1")

        # Downstream already saw DELETED while the row survives
        [msg] = broker.messages(PRODUCT_EVENTS)
        assert json.loads(msg.value())["eventType"] == "DELETED"
        assert [p.id for p in rows(product_db, Product)] == ["P1"]


class TestProductWrites:
    def test_create_publishes_details(self, broker, producer, product_db):
        with product_db.session() as session:
            service = ProductService(session, ProductEventProducer(producer))
            product = service.create_product(
                ProductCreate(name="Lamp", price=Decimal("19.99"), quantity=3), "U1"
            )

        [msg] = broker.messages(PRODUCT_EVENTS)
        assert msg.key() == product.id.encode()
        payload = json.loads(msg.value())
        assert payload["eventType"] == "CREATED"
        assert payload["sellerId"] == "U1"
        assert payload["name"] == "Lamp"
        assert Decimal(payload["price"]) == Decimal("19.99")

    def test_update_requires_ownership(self, broker, producer, product_db):
        add_product(product_db, "P1", "U1")
        with product_db.session() as session:
            service = ProductService(session, ProductEventProducer(producer))
            with pytest.raises(ProductAccessDeniedError):
                service.update_product("P1", ProductUpdate(quantity=5), "U2")
            with pytest.raises(ProductNotFoundError):
                service.update_product("P9", ProductUpdate(quantity=5), "U1")

            updated = service.update_product("P1", ProductUpdate(quantity=5), "U1")

        assert updated.quantity == 5
        [msg] = broker.messages(PRODUCT_EVENTS)
        assert json.loads(msg.value())["eventType"] == "UPDATED"

    def test_delete_requires_ownership(self, broker, producer, product_db):
        add_product(product_db, "P1", "U1")
        with product_db.session() as session:
            service = ProductService(session, ProductEventProducer(producer))
            with pytest.raises(ProductAccessDeniedError):
                service.delete_product("P1", "U2")
            service.delete_product("P1", "U1")

        assert rows(product_db, Product) == []
        assert len(broker.messages(PRODUCT_EVENTS)) == 1

    def test_failed_publish_after_create_leaves_unannounced_product(
        self, broker, product_db
    ):
        producer = FakeProducer(broker, produce_error=BufferError("queue full"))

        with product_db.session() as session:
            service = ProductService(session, ProductEventProducer(producer))
            with pytest.raises(EventPublishError):
                service.create_product(
                    ProductCreate(name="Lamp", price=Decimal("19.99"), quantity=1), "U1"
                )

        # The row is committed but no consumer will ever hear about it
        assert [p.name for p in rows(product_db, Product)] == ["Lamp"]
        assert broker.messages(PRODUCT_EVENTS) == []
