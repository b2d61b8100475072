# storefront/services/catalog_service.py
import random
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from storefront.domain.catalog import CatalogQuery, VisibleCursor, apply_pipeline, list_heroes
from storefront.domain.schemas import Product
from storefront.repos.price_repo import PriceStore
from storefront.services.checkout_service import build_inquiry_link
from storefront.services.image_resolver import ImageCache
from storefront.services.promo_service import (
    flash_sale_items,
    lucky_pick,
    rarity_for,
    time_left_today,
)
from storefront.utils.settings import WHATSAPP_NUMBER
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def to_product(record: Dict[str, Any]) -> Optional[Product]:
    """Mapuje surowy rekord price store na Product, None dla rekordow bez nazwy."""
    name = record.get("name")
    if not isinstance(name, str) or not name.strip():
        return None

    qty = record.get("qty")
    try:
        return Product(
            id=name,
            name=name,
            hero=record.get("hero") or None,
            qty=int(qty) if qty is not None else 0,
            price=int(record.get("price") or 0),
        )
    except (TypeError, ValueError, ValidationError):
        logger.warning(f"Pomijam niepoprawny rekord price store: {name!r}")
        return None


def is_purchasable(product: Product) -> bool:
    return product.price > 0 and product.qty > 0


class CatalogLoader:
    """
    Laduje katalog z price store.
    Produkty z price <= 0 albo qty <= 0 nie trafiaja nigdzie do ui.
    """

    def __init__(self, store: PriceStore):
        self.store = store

    def load(self, sort: bool = True) -> List[Product]:
        #PriceStoreError idzie wyzej, retry jest w samym store
        records = self.store.read()

        products: List[Product] = []
        seen: set[str] = set()
        for record in records:
            if not isinstance(record, dict):
                continue
            product = to_product(record)
            if product is None:
                continue
            if product.id in seen:
                logger.warning(f"Zduplikowana nazwa produktu {product.id!r}, pomijam")
                continue
            seen.add(product.id)
            if is_purchasable(product):
                products.append(product)

        if sort:
            products.sort(key=lambda p: p.price, reverse=True)

        logger.info(f"Zaladowano katalog: {len(products)} z {len(records)} rekordow")
        return products

    def get_product(self, product_id: str) -> Product:
        for product in self.load(sort=False):
            if product.id == product_id:
                return product
        raise LookupError(f"Product {product_id!r} not found")


class CatalogService:
    """Widok katalogu dla api: pipeline filtr/sort, stronicowanie, obrazki, promocje."""

    def __init__(self, loader: CatalogLoader, images: ImageCache,
                 initial: int = 10, page_size: int = 10,
                 whatsapp_number: str = WHATSAPP_NUMBER):
        self.loader = loader
        self.images = images
        self.initial = initial
        self.page_size = page_size
        self.whatsapp_number = whatsapp_number

    def _decorate(self, item: Dict[str, Any]) -> Dict[str, Any]:
        #obrazek + link "zapytaj o dostepnosc" dla pojedynczej pozycji
        return {
            **item,
            "image": self.images.resolve(item["name"]),
            "inquiry_url": build_inquiry_link(item["name"], self.whatsapp_number),
        }

    def browse(self, query: CatalogQuery, page: int = 1) -> Dict[str, Any]:
        products = self.loader.load()
        results = apply_pipeline(products, query)

        #zmiana filtrow po stronie klienta = page 1
        cursor = VisibleCursor(self.initial, self.page_size)
        cursor.seek(page)

        return {
            "items": [self._decorate(p.model_dump()) for p in cursor.window(results)],
            "total": len(results),
            "visible": min(cursor.visible, len(results)),
            "has_more": cursor.has_more(len(results)),
            "heroes": list_heroes(products),
        }

    def flash_sale(self, now: datetime) -> Dict[str, Any]:
        items = flash_sale_items(self.loader.load(), now.date())
        return {
            "items": [self._decorate(i) for i in items],
            "ends_in": time_left_today(now),
        }

    def lucky(self, rng: Optional[random.Random] = None) -> Dict[str, Any]:
        product = lucky_pick(self.loader.load(), rng)
        return {"item": self._decorate(product.model_dump()), "rarity": rarity_for(product.price)}

    def image(self, name: str) -> Dict[str, Any]:
        url = self.images.lookup(name)
        return {
            "item": name,
            "image_url": url or self.images.placeholder,
            "fallback": url is None,
        }
