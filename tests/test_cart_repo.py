import json
import time
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import storefront.data.models  # noqa: F401
from storefront.data.database import Base
from storefront.domain.schemas import CartItem
from storefront.repos.cart_repo import (
    CART_SCHEMA_VERSION,
    DebouncedCartRepository,
    InMemoryCartRepository,
    RedisCartRepository,
    SqlCartRepository,
    deserialize_cart,
    serialize_cart,
)

ITEMS = [
    CartItem(id="Arcana A", name="Arcana A", hero="Pudge", qty=2, price=600000, cart_qty=2),
    CartItem(id="Courier D", name="Courier D", qty=5, price=30000, cart_qty=1),
]


def as_map(items):
    return {i.id: i.cart_qty for i in items}


class TestSerialization:

    def test_round_trip(self):
        restored = deserialize_cart(serialize_cart(ITEMS))
        assert as_map(restored) == as_map(ITEMS)
        assert restored == ITEMS

    def test_document_carries_schema_version(self):
        doc = json.loads(serialize_cart(ITEMS))
        assert doc["version"] == CART_SCHEMA_VERSION

    def test_legacy_bare_array_is_migrated(self):
        legacy = json.dumps([
            {"id": "Arcana A", "name": "Arcana A", "hero": "Pudge", "qty": 2, "price": 600000, "cartQty": 1},
            {"name": "No Id", "qty": 3, "price": 100, "cartQty": 2},
        ])
        restored = deserialize_cart(legacy)
        assert as_map(restored) == {"Arcana A": 1, "No Id": 2}

    @pytest.mark.parametrize("raw", ["{not json", "42", '{"version": 99, "items": []}', None, ""])
    def test_corrupted_payload_is_discarded(self, raw):
        assert deserialize_cart(raw) == []

    def test_invalid_entries_are_dropped(self):
        raw = json.dumps({
            "version": CART_SCHEMA_VERSION,
            "items": [{"id": "X"}, ITEMS[1].model_dump()],
        })
        assert as_map(deserialize_cart(raw)) == {"Courier D": 1}


class TestInMemoryRepository:

    def test_missing_key_loads_empty(self):
        assert InMemoryCartRepository().load("nobody") == []

    def test_save_then_load(self):
        repo = InMemoryCartRepository()
        repo.save("k1", ITEMS)
        assert repo.load("k1") == ITEMS
        assert repo.load("k2") == []


class TestSqlRepository:

    @pytest.fixture
    def repo(self):
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=engine)
        return SqlCartRepository(sessionmaker(bind=engine))

    def test_save_and_overwrite(self, repo):
        repo.save("visitor-1", ITEMS)
        assert as_map(repo.load("visitor-1")) == as_map(ITEMS)

        repo.save("visitor-1", ITEMS[:1])
        assert as_map(repo.load("visitor-1")) == {"Arcana A": 2}

    def test_unknown_key(self, repo):
        assert repo.load("ghost") == []

    def test_transient_operational_error_is_retried(self, repo):
        real_factory = repo.session_factory
        calls = []

        def flaky_factory():
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError("SELECT 1", {}, Exception("database is locked"))
            return real_factory()

        repo.session_factory = flaky_factory
        repo.save("visitor-2", ITEMS)
        assert len(calls) == 2
        assert as_map(repo.load("visitor-2")) == as_map(ITEMS)


class TestRedisRepository:

    def test_uses_prefixed_key(self):
        client = MagicMock()
        repo = RedisCartRepository(client)
        repo.save("abc", ITEMS)

        key, payload = client.set.call_args.args
        assert key == "cart:abc"

        client.get.return_value = payload
        assert repo.load("abc") == ITEMS
        client.get.assert_called_with("cart:abc")


class TestDebouncedRepository:

    def test_rapid_saves_are_coalesced(self):
        inner = MagicMock()
        repo = DebouncedCartRepository(inner, delay=30)

        for n in range(1, 6):
            repo.save("k", ITEMS[:1] if n % 2 else ITEMS)
        inner.save.assert_not_called()

        repo.flush()
        inner.save.assert_called_once_with("k", ITEMS[:1])

    def test_load_sees_pending_state(self):
        inner = InMemoryCartRepository()
        repo = DebouncedCartRepository(inner, delay=30)
        repo.save("k", ITEMS)

        assert repo.load("k") == ITEMS
        assert inner.load("k") == []
        repo.flush()
        assert inner.load("k") == ITEMS

    def test_zero_delay_writes_through(self):
        inner = MagicMock()
        DebouncedCartRepository(inner, delay=0).save("k", ITEMS)
        inner.save.assert_called_once_with("k", ITEMS)

    def test_failed_flush_keeps_cart_pending(self):
        inner = InMemoryCartRepository()
        inner.save = MagicMock(side_effect=[OSError("disk full"), None])
        repo = DebouncedCartRepository(inner, delay=30)
        repo.save("k", ITEMS)

        assert repo.flush() == ["k"]
        assert repo.load("k") == ITEMS

        assert repo.flush() == []
        assert inner.save.call_count == 2
        assert repo.pending_keys() == []

    def test_failed_write_does_not_override_newer_save(self):
        inner = MagicMock()
        repo = DebouncedCartRepository(inner, delay=30)

        def save_and_fail(key, items):
            repo.save("k", ITEMS[:1])
            raise OSError("timeout")

        inner.save.side_effect = save_and_fail
        repo.save("k", ITEMS)
        assert repo.flush() == ["k"]
        assert repo.load("k") == ITEMS[:1]

        inner.save.side_effect = None
        assert repo.flush() == []
        inner.save.assert_called_with("k", ITEMS[:1])


def wait_for(condition, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return False


class TestDebouncedTimer:

    def test_timer_writes_after_quiet_period(self):
        inner = InMemoryCartRepository()
        repo = DebouncedCartRepository(inner, delay=0.05)
        repo.save("k", ITEMS[:1])
        repo.save("k", ITEMS)

        assert wait_for(lambda: inner.load("k") == ITEMS)
        assert repo.pending_keys() == []

    def test_timer_retries_failed_write(self):
        inner = InMemoryCartRepository()
        real_save = inner.save
        attempts = []

        def flaky_save(key, items):
            attempts.append(1)
            if len(attempts) == 1:
                raise OSError("connection reset")
            real_save(key, items)

        inner.save = flaky_save
        repo = DebouncedCartRepository(inner, delay=0.05)
        repo.save("k", ITEMS)

        assert wait_for(lambda: inner.load("k") == ITEMS)
        assert len(attempts) == 2
        assert repo.pending_keys() == []
