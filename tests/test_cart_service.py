"""
Serwis koszyka: silniki w pamieci (LRU + TTL) i komendy z wielu watkow.
"""
import threading

import pytest

from storefront.repos.cart_repo import InMemoryCartRepository
from storefront.services.cart_engine import CartEngine
from storefront.services.cart_service import CartService, CartSessionStore
from storefront.services.catalog_service import CatalogLoader


class TestCartSessionStore:

    @pytest.fixture
    def clock(self):
        return [0.0]

    @pytest.fixture
    def store(self, clock):
        return CartSessionStore(max_size=3, ttl_seconds=60, clock=lambda: clock[0])

    def test_least_recently_used_is_evicted(self, store):
        engines = {key: store.put(key, CartEngine()) for key in ("a", "b", "c")}
        assert store.get("a") is engines["a"]

        store.put("d", CartEngine())
        assert len(store) == 3
        assert store.get("b") is None
        assert store.get("a") is engines["a"]

    def test_idle_engine_expires(self, store, clock):
        engine = store.put("a", CartEngine())
        clock[0] += 30
        assert store.get("a") is engine

        clock[0] += 61
        assert store.get("a") is None
        assert len(store) == 0

    def test_first_engine_wins(self, store):
        first = store.put("a", CartEngine())
        assert store.put("a", CartEngine()) is first


class TestCartServiceConcurrency:

    def test_parallel_adds_on_one_key_keep_single_line(self, price_store):
        repo = InMemoryCartRepository()
        service = CartService(repo, CatalogLoader(price_store), CartSessionStore())
        barrier = threading.Barrier(6)
        results = []

        def worker():
            barrier.wait(timeout=5)
            results.append(service.add_product("shared", "Arcana A"))

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert sorted(r["event"] for r in results).count("stock_limit") == 4
        body = service.get_cart("shared")
        assert [(i["id"], i["cart_qty"]) for i in body["items"]] == [("Arcana A", 2)]
        assert [(i.id, i.cart_qty) for i in repo.load("shared")] == [("Arcana A", 2)]
