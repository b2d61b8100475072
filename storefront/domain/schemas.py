# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional


class PriceRecord(BaseModel):
    """Rekord price store (wire format pliku prices.json)."""

    name: str = Field(..., min_length=1)
    price: int = 0
    qty: Optional[int] = None
    hero: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class Product(BaseModel):
    """Produkt z katalogu, id = name."""

    id: str
    name: str
    hero: Optional[str] = None
    qty: int = 0
    price: int

    model_config = ConfigDict(frozen=True)


class CartItem(Product):
    """Produkt w koszyku + ilosc wybrana przez uzytkownika."""

    cart_qty: int = Field(..., ge=1)


class CatalogItemOut(Product):
    image: str
    inquiry_url: str


class CatalogPageOut(BaseModel):
    items: List[CatalogItemOut]
    total: int
    visible: int
    has_more: bool
    heroes: List[str]


class ImageOut(BaseModel):
    item: str
    image_url: str
    fallback: bool


class FlashSaleItemOut(CatalogItemOut):
    original_price: int


class FlashSaleOut(BaseModel):
    items: List[FlashSaleItemOut]
    ends_in: str


class LuckyOut(BaseModel):
    item: CatalogItemOut
    rarity: str


class AddItemIn(BaseModel):
    product_id: str = Field(..., min_length=1)


class QtyIn(BaseModel):
    """Surowa wartosc z inputa, parsowana po stronie serwisu."""

    value: str


class RemoveIn(BaseModel):
    ids: List[str]


class CartItemOut(BaseModel):
    id: str
    name: str
    hero: Optional[str] = None
    price: int
    qty: int
    cart_qty: int
    selected: bool
    subtotal: int


class CartOut(BaseModel):
    cart_key: str
    items: List[CartItemOut]
    selected_ids: List[str]
    pending_delete_ids: Optional[List[str]] = None
    total: int
    count: int
    event: str
    notice: Optional[str] = None


class CheckoutOut(BaseModel):
    message: str
    url: str
    total: int
    count: int


class LoginIn(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class InventoryItemOut(BaseModel):
    id: str
    name: str
    hero: Optional[str] = None
    icon: Optional[str] = None
    qty: int
    price: int


class CommentOut(BaseModel):
    author: str
    avatar: str
    comment: str
    date: str


class InventoryOut(BaseModel):
    success: bool
    items: List[InventoryItemOut]


class CommentsPageOut(BaseModel):
    comments: List[CommentOut]
    page: int
    limit: int
    total: int
    has_more: bool
