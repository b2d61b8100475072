# storefront/repos/cart_repo.py
import json
import threading
from typing import Callable, Dict, List, Optional

import redis
from pydantic import ValidationError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.domain.schemas import CartItem
from storefront.utils.retry import db_retry, redis_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CART_SCHEMA_VERSION = 2


def serialize_cart(items: List[CartItem]) -> str:
    return json.dumps(
        {
            "version": CART_SCHEMA_VERSION,
            "items": [i.model_dump() for i in items],
        },
        ensure_ascii=False,
    )


def _migrate_v1(entry: dict) -> dict:
    #v1 = goly array z frontendu, pole ilosci nazywalo sie cartQty
    entry = dict(entry)
    if "cart_qty" not in entry and "cartQty" in entry:
        entry["cart_qty"] = entry.pop("cartQty")
    if "id" not in entry and "name" in entry:
        entry["id"] = entry["name"]
    if entry.get("qty") is None:
        entry["qty"] = 0
    return entry


def deserialize_cart(raw: Optional[str | bytes]) -> List[CartItem]:
    """
    Odczyt zapisanego koszyka. Uszkodzony dokument jest odrzucany (pusty koszyk),
    pojedyncze niepoprawne pozycje sa pomijane.
    """
    if not raw:
        return []

    try:
        doc = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Uszkodzony zapis koszyka, odrzucam")
        return []

    if isinstance(doc, list):
        entries = [_migrate_v1(e) for e in doc if isinstance(e, dict)]
    elif isinstance(doc, dict) and isinstance(doc.get("items"), list):
        version = doc.get("version")
        if version != CART_SCHEMA_VERSION:
            logger.warning(f"Nieznana wersja koszyka {version!r}, odrzucam")
            return []
        entries = [e for e in doc["items"] if isinstance(e, dict)]
    else:
        logger.warning("Nieznany format koszyka, odrzucam")
        return []

    items: List[CartItem] = []
    for entry in entries:
        try:
            items.append(CartItem.model_validate(entry))
        except ValidationError:
            logger.warning(f"Pomijam niepoprawna pozycje koszyka: {entry.get('id')!r}")
    return items


class CartRepository:
    """Trwaly slot koszyka: caly koszyk czytany i zapisywany naraz."""

    def load(self, cart_key: str) -> List[CartItem]:
        raise NotImplementedError

    def save(self, cart_key: str, items: List[CartItem]) -> None:
        raise NotImplementedError


class InMemoryCartRepository(CartRepository):
    def __init__(self):
        self._slots: Dict[str, str] = {}

    def load(self, cart_key: str) -> List[CartItem]:
        return deserialize_cart(self._slots.get(cart_key))

    def save(self, cart_key: str, items: List[CartItem]) -> None:
        self._slots[cart_key] = serialize_cart(items)


class SqlCartRepository(CartRepository):
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    @db_retry()
    def load(self, cart_key: str) -> List[CartItem]:
        db = self.session_factory()
        try:
            row = db.get(CartModel, cart_key)
            return deserialize_cart(row.payload) if row else []
        finally:
            db.close()

    @db_retry()
    def save(self, cart_key: str, items: List[CartItem]) -> None:
        db = self.session_factory()
        try:
            row = db.get(CartModel, cart_key)
            if row is None:
                row = CartModel(cart_key=cart_key)
                db.add(row)
            row.schema_version = CART_SCHEMA_VERSION
            row.payload = serialize_cart(items)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class RedisCartRepository(CartRepository):
    def __init__(self, client: redis.Redis, prefix: str = "cart"):
        self.redis = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisCartRepository":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def _key(self, cart_key: str) -> str:
        return f"{self.prefix}:{cart_key}"

    @redis_retry()
    def load(self, cart_key: str) -> List[CartItem]:
        return deserialize_cart(self.redis.get(self._key(cart_key)))

    @redis_retry()
    def save(self, cart_key: str, items: List[CartItem]) -> None:
        self.redis.set(self._key(cart_key), serialize_cart(items))


class DebouncedCartRepository(CartRepository):
    """
    Zbija szybkie kolejne zapisy tego samego koszyka w jeden zapis na koncu okna.
    load() zwraca najnowszy stan, takze jeszcze niezapisany.
    Nieudany zapis wraca do kolejki (o ile nie przyszedl nowszy) i jest ponawiany
    po kolejnym oknie, wiec koszyk nie ginie przy chwilowej awarii backendu.
    """

    def __init__(self, inner: CartRepository, delay: float = 0.5):
        self.inner = inner
        self.delay = delay
        self._pending: Dict[str, List[CartItem]] = {}
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def load(self, cart_key: str) -> List[CartItem]:
        with self._lock:
            if cart_key in self._pending:
                return list(self._pending[cart_key])
        return self.inner.load(cart_key)

    def save(self, cart_key: str, items: List[CartItem]) -> None:
        if self.delay <= 0:
            self.inner.save(cart_key, items)
            return

        with self._lock:
            self._pending[cart_key] = list(items)
            self._schedule(cart_key)

    def pending_keys(self) -> List[str]:
        with self._lock:
            return list(self._pending)

    def _schedule(self, cart_key: str) -> None:
        #wolane pod self._lock
        timer = self._timers.pop(cart_key, None)
        if timer is not None:
            timer.cancel()
        timer = threading.Timer(self.delay, self._on_timer, args=(cart_key,))
        timer.daemon = True
        self._timers[cart_key] = timer
        timer.start()

    def _on_timer(self, cart_key: str) -> None:
        if not self._write(cart_key):
            with self._lock:
                if cart_key in self._pending and cart_key not in self._timers:
                    self._schedule(cart_key)

    def _write(self, cart_key: str) -> bool:
        with self._lock:
            items = self._pending.pop(cart_key, None)
            self._timers.pop(cart_key, None)
        if items is None:
            return True

        try:
            self.inner.save(cart_key, items)
        except Exception as e:
            logger.error(f"Zapis koszyka {cart_key} nie powiodl sie, ponowie: {e}")
            with self._lock:
                #nowszy stan z save() ma pierwszenstwo
                self._pending.setdefault(cart_key, items)
            return False
        return True

    def flush(self) -> List[str]:
        """Zapisuje wszystko od razu; zwraca klucze, ktorych nie udalo sie zapisac."""
        with self._lock:
            keys = list(self._pending)
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()

        failed = [key for key in keys if not self._write(key)]
        if failed:
            logger.error(f"Niezapisane koszyki po flush: {failed}")
        return failed
