# storefront/services/cart_engine.py
import threading
from enum import Enum
from functools import wraps
from typing import Callable, Iterable, List, Optional, Set

from storefront.domain.schemas import CartItem, Product
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartEvent(str, Enum):
    ADDED = "added"
    INCREMENTED = "incremented"
    DECREMENTED = "decremented"
    UPDATED = "updated"
    REMOVED = "removed"
    STOCK_LIMIT = "stock_limit"
    CONFIRM_REMOVE = "confirm_remove"
    SELECTION_CHANGED = "selection_changed"
    CANCELLED = "cancelled"
    NOOP = "noop"


def locked(method):
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)
    return wrapper


class CartEngine:
    """
    Stan koszyka jednego klienta.

    items - lista CartItem (jednostka persystencji)
    selected_ids - pozycje wliczane do checkoutu, zawsze podzbior id z koszyka
    pending_delete_ids - usuniecie czekajace na potwierdzenie, nie jest zapisywane

    Kazda zmiana listy przechodzi przez _commit(): sprzatanie zaznaczenia
    i wywolanie on_change (zapis do repozytorium).

    Silnik jest wspoldzielony przez watki requestow, kazda komenda
    wykonuje odczyt, sprawdzenie i zmiane pod self.lock.
    """

    def __init__(
        self,
        items: Iterable[CartItem] = (),
        on_change: Optional[Callable[[List[CartItem]], None]] = None,
    ):
        self.items: List[CartItem] = []
        seen: Set[str] = set()
        for item in items:
            if item.id in seen or item.qty <= 0:
                continue
            seen.add(item.id)
            if item.cart_qty > item.qty:
                item = item.model_copy(update={"cart_qty": item.qty})
            self.items.append(item)

        #odtworzone pozycje sa domyslnie zaznaczone, tak jak nowo dodane
        self.selected_ids: Set[str] = {i.id for i in self.items}
        self.pending_delete_ids: Optional[List[str]] = None
        self._on_change = on_change
        #RLock: confirm_pending_delete wola remove_from_cart
        self.lock = threading.RLock()

    # query
    def get_item(self, product_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.id == product_id:
                return item
        return None

    @locked
    def selected_items(self) -> List[CartItem]:
        return [i for i in self.items if i.id in self.selected_ids]

    @locked
    def derived_total(self) -> int:
        return sum(i.price * i.cart_qty for i in self.items if i.id in self.selected_ids)

    @locked
    def derived_count(self) -> int:
        #badge - niezalezny od zaznaczenia
        return sum(i.cart_qty for i in self.items)

    # commands
    @locked
    def add_to_cart(self, product: Product) -> CartEvent:
        existing = self.get_item(product.id)
        if existing is not None:
            existing = self._sync_with_product(existing, product)

        #sprawdzenie limitu to czysty odczyt przed jakakolwiek zmiana stanu
        current = existing.cart_qty if existing else 0
        if current >= product.qty:
            logger.info(f"Limit stanu dla {product.id!r}: {current}/{product.qty}")
            return CartEvent.STOCK_LIMIT

        if existing:
            self._replace(existing, cart_qty=current + 1)
            self._commit()
            return CartEvent.INCREMENTED

        self.items.append(CartItem(**product.model_dump(), cart_qty=1))
        self.selected_ids.add(product.id)
        self._commit()
        logger.info(f"Dodano {product.id!r} do koszyka")
        return CartEvent.ADDED

    @locked
    def refresh_stock(self, product: Product) -> bool:
        """Aktualny stan i cena z katalogu; cart_qty przycinane do nowego limitu."""
        item = self.get_item(product.id)
        if item is None:
            return False
        return self._sync_with_product(item, product) is not item

    @locked
    def increment_qty(self, product_id: str) -> CartEvent:
        item = self.get_item(product_id)
        if item is None:
            return CartEvent.NOOP
        if item.cart_qty >= item.qty:
            return CartEvent.STOCK_LIMIT

        self._replace(item, cart_qty=min(item.cart_qty + 1, item.qty))
        self._commit()
        return CartEvent.INCREMENTED

    @locked
    def decrement_qty(self, product_id: str) -> CartEvent:
        item = self.get_item(product_id)
        if item is None:
            return CartEvent.NOOP

        if item.cart_qty <= 1:
            #nie zmniejszamy do zera, najpierw prosba o potwierdzenie usuniecia
            self.pending_delete_ids = [product_id]
            return CartEvent.CONFIRM_REMOVE

        self._replace(item, cart_qty=item.cart_qty - 1)
        self._commit()
        return CartEvent.DECREMENTED

    @locked
    def set_qty_direct(self, product_id: str, raw_value: str) -> CartEvent:
        item = self.get_item(product_id)
        if item is None:
            return CartEvent.NOOP

        raw = (raw_value or "").strip()
        if raw == "":
            #uzytkownik jeszcze pisze
            return CartEvent.NOOP

        try:
            value = int(raw)
        except ValueError:
            return CartEvent.NOOP

        if value == 0:
            self.pending_delete_ids = [product_id]
            return CartEvent.CONFIRM_REMOVE
        if value < 0:
            return CartEvent.NOOP

        clamped = max(1, min(value, item.qty))
        if clamped == item.cart_qty:
            return CartEvent.STOCK_LIMIT if value > item.qty else CartEvent.NOOP

        self._replace(item, cart_qty=clamped)
        self._commit()
        return CartEvent.UPDATED

    @locked
    def remove_from_cart(self, product_ids: Iterable[str]) -> CartEvent:
        ids = set(product_ids)
        before = len(self.items)
        self.items = [i for i in self.items if i.id not in ids]
        if len(self.items) == before:
            return CartEvent.NOOP

        self._commit()
        logger.info(f"Usunieto z koszyka: {sorted(ids)}")
        return CartEvent.REMOVED

    @locked
    def toggle_select(self, product_id: str) -> CartEvent:
        if self.get_item(product_id) is None:
            return CartEvent.NOOP
        if product_id in self.selected_ids:
            self.selected_ids.discard(product_id)
        else:
            self.selected_ids.add(product_id)
        return CartEvent.SELECTION_CHANGED

    @locked
    def toggle_select_all(self) -> CartEvent:
        all_ids = {i.id for i in self.items}
        if all_ids and self.selected_ids == all_ids:
            self.selected_ids = set()
        else:
            self.selected_ids = all_ids
        return CartEvent.SELECTION_CHANGED

    @locked
    def confirm_pending_delete(self) -> CartEvent:
        if not self.pending_delete_ids:
            self.pending_delete_ids = None
            return CartEvent.NOOP
        ids = self.pending_delete_ids
        self.pending_delete_ids = None
        return self.remove_from_cart(ids)

    @locked
    def cancel_pending_delete(self) -> CartEvent:
        if self.pending_delete_ids is None:
            return CartEvent.NOOP
        self.pending_delete_ids = None
        return CartEvent.CANCELLED

    # internals
    def _sync_with_product(self, item: CartItem, product: Product) -> CartItem:
        cart_qty = max(1, min(item.cart_qty, product.qty))
        if (item.qty, item.price, item.cart_qty) == (product.qty, product.price, cart_qty):
            return item

        if cart_qty < item.cart_qty:
            logger.info(f"Stan {product.id!r} spadl do {product.qty}, przycinam koszyk")
        updated = self._replace(item, qty=product.qty, price=product.price, cart_qty=cart_qty)
        self._commit()
        return updated

    def _replace(self, item: CartItem, **changes) -> CartItem:
        idx = self.items.index(item)
        updated = item.model_copy(update=changes)
        self.items[idx] = updated
        return updated

    def _commit(self) -> None:
        ids = {i.id for i in self.items}
        self.selected_ids &= ids
        if self.pending_delete_ids is not None:
            pending = [pid for pid in self.pending_delete_ids if pid in ids]
            self.pending_delete_ids = pending or None

        if self._on_change is not None:
            self._on_change(list(self.items))
