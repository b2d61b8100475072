# storefront/services/cart_service.py
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple

from storefront.repos.cart_repo import CartRepository
from storefront.repos.price_repo import PriceStoreError
from storefront.services.cart_engine import CartEngine, CartEvent
from storefront.services.catalog_service import CatalogLoader
from storefront.utils.settings import CART_SESSION_MAX, CART_SESSION_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

NOTICES = {
    CartEvent.STOCK_LIMIT: "Stock limit reached for this item",
    CartEvent.CONFIRM_REMOVE: "Remove this item from the cart?",
}


class CartSessionStore:
    """
    Silniki koszykow trzymane w pamieci procesu (LRU + TTL).
    Zaznaczenie i pending delete sa ulotne, trwale sa tylko pozycje (repozytorium),
    wiec wyrzucony silnik jest po prostu odtwarzany z repozytorium.
    """

    def __init__(
        self,
        max_size: int = CART_SESSION_MAX,
        ttl_seconds: float = CART_SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._engines: "OrderedDict[str, Tuple[CartEngine, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._engines)

    def get(self, cart_key: str) -> Optional[CartEngine]:
        now = self._clock()
        with self._lock:
            entry = self._engines.get(cart_key)
            if entry is None:
                return None
            engine, touched = entry
            if now - touched > self.ttl_seconds:
                del self._engines[cart_key]
                return None
            self._engines[cart_key] = (engine, now)
            self._engines.move_to_end(cart_key)
            return engine

    def put(self, cart_key: str, engine: CartEngine) -> CartEngine:
        now = self._clock()
        with self._lock:
            #jesli inny request zdazyl pierwszy, zostaje jego silnik
            entry = self._engines.get(cart_key)
            if entry is not None:
                engine = entry[0]
            self._engines[cart_key] = (engine, now)
            self._engines.move_to_end(cart_key)
            self._evict(now)
            return engine

    def drop(self, cart_key: str) -> None:
        with self._lock:
            self._engines.pop(cart_key, None)

    def _evict(self, now: float) -> None:
        #najstarsze na poczatku
        while self._engines:
            key, (_, touched) = next(iter(self._engines.items()))
            if len(self._engines) <= self.max_size and now - touched <= self.ttl_seconds:
                break
            del self._engines[key]


class CartService:
    """
    Use case'y koszyka nad CartEngine.
    commands (add, increment, decrement, set qty, remove, select, confirm/cancel)
    query (get) tylko odczyt
    Komenda i zbudowanie odpowiedzi ida pod lockiem silnika.
    """

    def __init__(
        self,
        repository: CartRepository,
        catalog: CatalogLoader,
        sessions: CartSessionStore,
    ):
        self.repo = repository
        self.catalog = catalog
        self.sessions = sessions

    def engine(self, cart_key: str) -> CartEngine:
        if not cart_key or len(cart_key) > 128:
            raise ValueError("Invalid cart key")

        existing = self.sessions.get(cart_key)
        if existing is not None:
            return existing

        items = self.repo.load(cart_key)
        logger.info(f"Odtworzono koszyk {cart_key}, pozycji: {len(items)}")
        engine = CartEngine(
            items,
            on_change=lambda snapshot: self.repo.save(cart_key, snapshot),
        )
        return self.sessions.put(cart_key, engine)

    def _refresh_stock(self, engine: CartEngine, product_id: str) -> None:
        #limit ilosci z aktualnego katalogu, przy awarii zostaje zapamietany stan
        if engine.get_item(product_id) is None:
            return
        try:
            product = self.catalog.get_product(product_id)
        except LookupError:
            logger.info(f"{product_id!r} nie ma juz w katalogu, zostaje zapisany limit")
            return
        except PriceStoreError as e:
            logger.warning(f"Nie odswiezono stanu {product_id!r}: {e}")
            return
        engine.refresh_stock(product)

    #query - odczyt
    def get_cart(self, cart_key: str) -> Dict[str, Any]:
        engine = self.engine(cart_key)
        with engine.lock:
            return self.to_dict(cart_key, engine, CartEvent.NOOP)

    #commands
    def add_product(self, cart_key: str, product_id: str) -> Dict[str, Any]:
        engine = self.engine(cart_key)
        #LookupError -> 404
        product = self.catalog.get_product(product_id)
        with engine.lock:
            event = engine.add_to_cart(product)
            return self.to_dict(cart_key, engine, event)

    def increment(self, cart_key: str, product_id: str) -> Dict[str, Any]:
        engine = self.engine(cart_key)
        with engine.lock:
            self._refresh_stock(engine, product_id)
            return self.to_dict(cart_key, engine, engine.increment_qty(product_id))

    def decrement(self, cart_key: str, product_id: str) -> Dict[str, Any]:
        engine = self.engine(cart_key)
        with engine.lock:
            return self.to_dict(cart_key, engine, engine.decrement_qty(product_id))

    def set_quantity(self, cart_key: str, product_id: str, raw_value: str) -> Dict[str, Any]:
        engine = self.engine(cart_key)
        with engine.lock:
            self._refresh_stock(engine, product_id)
            return self.to_dict(cart_key, engine, engine.set_qty_direct(product_id, raw_value))

    def remove(self, cart_key: str, product_ids: list[str]) -> Dict[str, Any]:
        engine = self.engine(cart_key)
        with engine.lock:
            return self.to_dict(cart_key, engine, engine.remove_from_cart(product_ids))

    def toggle_select(self, cart_key: str, product_id: str) -> Dict[str, Any]:
        engine = self.engine(cart_key)
        with engine.lock:
            return self.to_dict(cart_key, engine, engine.toggle_select(product_id))

    def toggle_select_all(self, cart_key: str) -> Dict[str, Any]:
        engine = self.engine(cart_key)
        with engine.lock:
            return self.to_dict(cart_key, engine, engine.toggle_select_all())

    def confirm_delete(self, cart_key: str) -> Dict[str, Any]:
        engine = self.engine(cart_key)
        with engine.lock:
            return self.to_dict(cart_key, engine, engine.confirm_pending_delete())

    def cancel_delete(self, cart_key: str) -> Dict[str, Any]:
        engine = self.engine(cart_key)
        with engine.lock:
            return self.to_dict(cart_key, engine, engine.cancel_pending_delete())

    @staticmethod
    def to_dict(cart_key: str, engine: CartEngine, event: CartEvent) -> Dict[str, Any]:
        #dict przeksztalcany w jsona (CartOut)
        return {
            "cart_key": cart_key,
            "items": [
                {
                    "id": i.id,
                    "name": i.name,
                    "hero": i.hero,
                    "price": i.price,
                    "qty": i.qty,
                    "cart_qty": i.cart_qty,
                    "selected": i.id in engine.selected_ids,
                    "subtotal": i.price * i.cart_qty,
                }
                for i in engine.items
            ],
            "selected_ids": sorted(engine.selected_ids),
            "pending_delete_ids": engine.pending_delete_ids,
            "total": engine.derived_total(),
            "count": engine.derived_count(),
            "event": event.value,
            "notice": NOTICES.get(event),
        }
