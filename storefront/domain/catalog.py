# storefront/domain/catalog.py
"""
Pipeline widoku katalogu: najpierw filtr (search ∧ hero ∧ przedzial cen),
potem sortowanie. Funkcje sa czyste, nie modyfikuja listy wejsciowej.
"""
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from storefront.domain.schemas import Product

ALL_HEROES = "all"


class SortOption(str, Enum):
    PRICE_DESC = "price-desc"
    PRICE_ASC = "price-asc"
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"


@dataclass(frozen=True)
class CatalogQuery:
    query: str = ""
    hero: str = ALL_HEROES
    price_min: int = 0
    price_max: Optional[int] = None  # None = +inf
    sort: SortOption = SortOption.PRICE_DESC


def matches_search(product: Product, query: str) -> bool:
    needle = query.strip().lower()
    if not needle:
        return True
    if needle in product.name.lower():
        return True
    return product.hero is not None and needle in product.hero.lower()


def matches_hero(product: Product, hero: str) -> bool:
    if not hero or hero == ALL_HEROES:
        return True
    return product.hero == hero


def matches_price(product: Product, price_min: int = 0, price_max: Optional[int] = None) -> bool:
    if product.price < price_min:
        return False
    return price_max is None or product.price <= price_max


def filter_products(products: Iterable[Product], q: CatalogQuery) -> List[Product]:
    return [
        p for p in products
        if matches_search(p, q.query)
        and matches_hero(p, q.hero)
        and matches_price(p, q.price_min, q.price_max)
    ]


def collation_key(name: str) -> tuple:
    #porownanie "locale-aware": bez akcentow, bez wielkosci liter, surowa nazwa jako tiebreaker
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), name)


def sort_products(products: Iterable[Product], sort: SortOption) -> List[Product]:
    sort = SortOption(sort)
    if sort is SortOption.PRICE_DESC:
        return sorted(products, key=lambda p: p.price, reverse=True)
    if sort is SortOption.PRICE_ASC:
        return sorted(products, key=lambda p: p.price)
    if sort is SortOption.NAME_ASC:
        return sorted(products, key=lambda p: collation_key(p.name))
    return sorted(products, key=lambda p: collation_key(p.name), reverse=True)


def apply_pipeline(products: Iterable[Product], q: CatalogQuery) -> List[Product]:
    return sort_products(filter_products(products, q), q.sort)


def list_heroes(products: Iterable[Product]) -> List[str]:
    return sorted({p.hero for p in products if p.hero}, key=collation_key)


class VisibleCursor:
    """
    Kursor "visible count" dla stopniowego odslaniania listy.

    advance() odpowiada wejsciu sentinela w viewport albo klikowi "load more".
    Kursor nie pamieta filtrow: po zmianie kryteriow klient zaczyna od strony 1
    (reset()), sama zmiana sortowania moze zostac na biezacej stronie.
    """

    def __init__(self, initial: int = 10, page_size: int = 10):
        if initial <= 0 or page_size <= 0:
            raise ValueError("initial and page_size must be positive")
        self.initial = initial
        self.page_size = page_size
        self.visible = initial

    def advance(self) -> int:
        self.visible += self.page_size
        return self.visible

    def reset(self) -> None:
        self.visible = self.initial

    def seek(self, page: int) -> int:
        #strona n = kursor przesuniety n-1 razy, liczone wprost
        self.visible = self.initial + (max(page, 1) - 1) * self.page_size
        return self.visible

    def window(self, items: Sequence[Product]) -> List[Product]:
        return list(items[: self.visible])

    def has_more(self, total: int) -> bool:
        return self.visible < total
