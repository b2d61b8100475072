"""
HTTP: katalog, obrazki, koszyk i checkout przez TestClient.
"""
import json
from unittest.mock import MagicMock

import requests
from fastapi.testclient import TestClient

from storefront.main import create_app
from storefront.repos.cart_repo import DebouncedCartRepository, InMemoryCartRepository
from storefront.services.cart_service import CartSessionStore

from tests.conftest import PRICE_RECORDS


class TestCatalogApi:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_browse_hides_unpurchasable_and_pages(self, client):
        body = client.get("/catalog").json()
        assert body["total"] == 3
        assert [i["name"] for i in body["items"]] == ["Arcana A", "Set C"]
        assert body["has_more"] is True
        assert body["heroes"] == ["Lina", "Pudge"]

        body = client.get("/catalog", params={"page": 2}).json()
        assert len(body["items"]) == 3
        assert body["has_more"] is False

    def test_items_carry_resolved_images(self, client):
        items = {i["name"]: i["image"] for i in client.get("/catalog", params={"page": 5}).json()["items"]}
        assert items["Arcana A"] == "https://img.example/arcana-a.png"
        assert items["Courier D"] == "/icon.png"

    def test_items_carry_inquiry_link(self, client):
        item = client.get("/catalog").json()["items"][0]
        assert item["name"] == "Arcana A"
        assert item["inquiry_url"].startswith("https://wa.me/")
        assert "Arcana%20A" in item["inquiry_url"]

    def test_huge_page_is_answered_immediately(self, client):
        body = client.get("/catalog", params={"page": 2_000_000_000}).json()
        assert len(body["items"]) == 3
        assert body["visible"] == 3
        assert body["has_more"] is False

    def test_filter_change_starts_again_from_first_page(self, client):
        body = client.get("/catalog", params={"page": 2}).json()
        assert body["visible"] == 3

        body = client.get("/catalog", params={"max_price": 200000, "page": 1}).json()
        assert [i["name"] for i in body["items"]] == ["Set C", "Courier D"]
        assert body["visible"] == 2

        #inne sortowanie na tej samej stronie, okno bez zmian
        body = client.get("/catalog", params={"max_price": 200000, "sort": "price-asc", "page": 1}).json()
        assert [i["name"] for i in body["items"]] == ["Courier D", "Set C"]

    def test_search_and_price_bracket(self, client):
        body = client.get("/catalog", params={"q": "pudge"}).json()
        assert [i["name"] for i in body["items"]] == ["Arcana A"]

        body = client.get("/catalog", params={"max_price": 50000}).json()
        assert [i["name"] for i in body["items"]] == ["Courier D"]

    def test_sort_and_hero(self, client):
        body = client.get("/catalog", params={"sort": "name-asc", "page": 3}).json()
        assert [i["name"] for i in body["items"]] == ["Arcana A", "Courier D", "Set C"]

        body = client.get("/catalog", params={"hero": "Lina"}).json()
        assert [i["name"] for i in body["items"]] == ["Set C"]

    def test_invalid_sort_rejected(self, client):
        assert client.get("/catalog", params={"sort": "random"}).status_code == 422

    def test_store_failure_is_visible_error(self, client, price_file):
        price_file.write_text("{broken", encoding="utf-8")
        resp = client.get("/catalog")
        assert resp.status_code == 503

    def test_image_lookup(self, client):
        assert client.get("/images", params={"name": "Set C"}).json() == {
            "item": "Set C",
            "image_url": "https://img.example/set-c.png",
            "fallback": False,
        }
        assert client.get("/images", params={"name": "Nope"}).json()["fallback"] is True

    def test_flash_sale_and_lucky(self, client):
        sale = client.get("/catalog/flash-sale").json()
        assert 0 < len(sale["items"]) <= 4
        for item in sale["items"]:
            assert item["price"] < item["original_price"]

        lucky = client.get("/catalog/lucky").json()
        assert lucky["item"]["name"] in {"Arcana A", "Set C", "Courier D"}
        assert lucky["rarity"] in {"MYTHICAL", "LEGENDARY", "RARE", "UNCOMMON", "COMMON"}


class TestCartApi:

    def add(self, client, name, key="visitor1"):
        return client.post(f"/carts/{key}/items", json={"product_id": name})

    def test_add_and_stock_limit_notice(self, client):
        assert self.add(client, "Arcana A").json()["event"] == "added"
        assert self.add(client, "Arcana A").json()["event"] == "incremented"

        body = self.add(client, "Arcana A").json()
        assert body["event"] == "stock_limit"
        assert body["notice"]
        assert body["items"][0]["cart_qty"] == 2
        assert body["count"] == 2
        assert body["total"] == 1200000

    def test_unknown_or_unpurchasable_product(self, client):
        assert self.add(client, "Immortal B").status_code == 404
        assert self.add(client, "Missing").status_code == 404

    def test_decrement_confirm_flow(self, client):
        self.add(client, "Set C")
        body = client.post("/carts/visitor1/items/Set C/decrement").json()
        assert body["event"] == "confirm_remove"
        assert body["pending_delete_ids"] == ["Set C"]
        assert len(body["items"]) == 1

        body = client.post("/carts/visitor1/pending-delete/cancel").json()
        assert body["pending_delete_ids"] is None
        assert body["items"][0]["cart_qty"] == 1

        client.post("/carts/visitor1/items/Set C/decrement")
        body = client.post("/carts/visitor1/pending-delete/confirm").json()
        assert body["items"] == []
        assert body["selected_ids"] == []

    def test_set_qty(self, client):
        self.add(client, "Set C")
        body = client.put("/carts/visitor1/items/Set C/qty", json={"value": "40"}).json()
        assert body["items"][0]["cart_qty"] == 5

        body = client.put("/carts/visitor1/items/Set C/qty", json={"value": ""}).json()
        assert body["event"] == "noop"

        body = client.put("/carts/visitor1/items/Set C/qty", json={"value": "0"}).json()
        assert body["event"] == "confirm_remove"

    def test_selection_and_remove(self, client):
        self.add(client, "Set C")
        self.add(client, "Courier D")

        body = client.post("/carts/visitor1/select/Set C").json()
        assert body["selected_ids"] == ["Courier D"]
        assert body["total"] == 30000

        body = client.post("/carts/visitor1/select-all").json()
        assert body["selected_ids"] == ["Courier D", "Set C"]

        body = client.post("/carts/visitor1/remove", json={"ids": ["Courier D"]}).json()
        assert [i["id"] for i in body["items"]] == ["Set C"]
        assert body["selected_ids"] == ["Set C"]

    def test_carts_are_isolated_and_persisted(self, client, cart_repo):
        self.add(client, "Set C", key="alice")
        assert client.get("/carts/bob").json()["items"] == []
        assert [i.id for i in cart_repo.load("alice")] == ["Set C"]

    def test_cart_rehydrates_from_repository(self, client, container, cart_repo):
        self.add(client, "Courier D", key="carol")
        container.carts.sessions.drop("carol")

        body = client.get("/carts/carol").json()
        assert [i["id"] for i in body["items"]] == ["Courier D"]
        assert body["selected_ids"] == ["Courier D"]

    def test_quantity_commands_use_current_stock(self, client, price_file):
        self.add(client, "Set C")
        client.put("/carts/visitor1/items/Set C/qty", json={"value": "4"})

        records = [dict(r) for r in PRICE_RECORDS]
        for r in records:
            if r["name"] == "Set C":
                r["qty"] = 2
        price_file.write_text(json.dumps(records), encoding="utf-8")

        body = client.post("/carts/visitor1/items/Set C/increment").json()
        assert body["event"] == "stock_limit"
        assert body["items"][0]["cart_qty"] == 2
        assert body["items"][0]["qty"] == 2

        body = client.put("/carts/visitor1/items/Set C/qty", json={"value": "5"}).json()
        assert body["items"][0]["cart_qty"] == 2

    def test_catalog_outage_keeps_cart_usable(self, client, price_file):
        self.add(client, "Set C")
        price_file.write_text("{broken", encoding="utf-8")

        body = client.post("/carts/visitor1/items/Set C/increment").json()
        assert body["event"] == "incremented"
        assert body["items"][0]["cart_qty"] == 2

    def test_idle_carts_are_evicted_but_items_survive(self, client, container):
        container.carts.sessions = CartSessionStore(max_size=5)
        self.add(client, "Courier D", key="keeper")

        for n in range(50):
            assert client.get(f"/carts/visitor-{n}").status_code == 200

        assert len(container.carts.sessions) == 5
        body = client.get("/carts/keeper").json()
        assert [i["id"] for i in body["items"]] == ["Courier D"]

    def test_invalid_cart_key(self, client):
        assert client.get("/carts/bad key!").status_code == 422

    def test_checkout(self, client, notify):
        self.add(client, "Set C")
        self.add(client, "Set C")
        body = client.post("/carts/visitor1/checkout").json()
        assert body["total"] == 300000
        assert body["url"].startswith("https://wa.me/6280000000000?text=")
        assert "Set C x2" in body["message"]
        notify.assert_called_once_with("visitor1", 2, 300000)

    def test_checkout_empty_selection(self, client):
        resp = client.post("/carts/visitor1/checkout")
        assert resp.status_code == 400


class TestSteamApi:

    INVENTORY = [
        {"id": "1", "name": "Arcana A", "hero": "Pudge", "icon": None, "qty": 2, "price": 600000},
    ]

    def test_inventory(self, client, container):
        container.steam.inventory_with_prices = MagicMock(return_value=self.INVENTORY)
        assert client.get("/inventory").json() == {"success": True, "items": self.INVENTORY}

    def test_inventory_failure(self, client, container):
        container.steam.inventory_with_prices = MagicMock(side_effect=requests.ConnectionError("down"))
        resp = client.get("/inventory")
        assert resp.status_code == 500
        assert resp.json()["success"] is False

    def test_testimonials_page(self, client, container):
        page = {
            "comments": [
                {"author": "Happy Customer", "avatar": "/icon.png", "comment": "+rep", "date": "Today"},
            ],
            "page": 2,
            "limit": 1,
            "total": 3,
            "has_more": True,
        }
        container.steam.comments = MagicMock(return_value=page)

        resp = client.get("/testimonials", params={"page": 2, "limit": 1})
        assert resp.status_code == 200
        assert resp.json() == page
        container.steam.comments.assert_called_once_with(page=2, limit=1)

    def test_testimonials_paging_bounds(self, client):
        assert client.get("/testimonials", params={"page": 0}).status_code == 422
        assert client.get("/testimonials", params={"limit": 500}).status_code == 422

    def test_testimonials_failure(self, client, container):
        container.steam.comments = MagicMock(side_effect=requests.Timeout("steam slow"))
        resp = client.get("/testimonials")
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "Failed to fetch Steam comments"}


class TestLifespan:

    def test_shutdown_flushes_pending_carts(self, container):
        inner = InMemoryCartRepository()
        container.carts.repo = DebouncedCartRepository(inner, delay=30)

        with TestClient(create_app(container)) as c:
            c.post("/carts/late/items", json={"product_id": "Set C"})
            assert inner.load("late") == []

        assert [i.id for i in inner.load("late")] == ["Set C"]
