#storefront/api/routers/carts.py
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path

from storefront.api.deps import get_carts, get_checkout
from storefront.domain.schemas import (
    AddItemIn,
    CartOut,
    CheckoutOut,
    QtyIn,
    RemoveIn,
)
from storefront.repos.price_repo import PriceStoreError
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutDispatcher

router = APIRouter(prefix="/carts", tags=["carts"])

CartKey = Annotated[str, Path(min_length=1, max_length=128, pattern=r"^[A-Za-z0-9_-]+$")]


@router.get("/{cart_key}", response_model=CartOut)
def get_cart(cart_key: CartKey, svc: CartService = Depends(get_carts)):
    return svc.get_cart(cart_key)


@router.post("/{cart_key}/items", response_model=CartOut)
def add_item(
    cart_key: CartKey,
    payload: AddItemIn,
    svc: CartService = Depends(get_carts),
):
    try:
        return svc.add_product(cart_key, payload.product_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PriceStoreError:
        raise HTTPException(status_code=503, detail="Catalog is unavailable, please try again later")


@router.post("/{cart_key}/items/{product_id}/increment", response_model=CartOut)
def increment_item(cart_key: CartKey, product_id: str, svc: CartService = Depends(get_carts)):
    return svc.increment(cart_key, product_id)


@router.post("/{cart_key}/items/{product_id}/decrement", response_model=CartOut)
def decrement_item(cart_key: CartKey, product_id: str, svc: CartService = Depends(get_carts)):
    return svc.decrement(cart_key, product_id)


@router.put("/{cart_key}/items/{product_id}/qty", response_model=CartOut)
def set_item_qty(
    cart_key: CartKey,
    product_id: str,
    payload: QtyIn,
    svc: CartService = Depends(get_carts),
):
    return svc.set_quantity(cart_key, product_id, payload.value)


@router.post("/{cart_key}/remove", response_model=CartOut)
def remove_items(cart_key: CartKey, payload: RemoveIn, svc: CartService = Depends(get_carts)):
    return svc.remove(cart_key, payload.ids)


@router.post("/{cart_key}/select-all", response_model=CartOut)
def toggle_select_all(cart_key: CartKey, svc: CartService = Depends(get_carts)):
    return svc.toggle_select_all(cart_key)


@router.post("/{cart_key}/select/{product_id}", response_model=CartOut)
def toggle_select(cart_key: CartKey, product_id: str, svc: CartService = Depends(get_carts)):
    return svc.toggle_select(cart_key, product_id)


@router.post("/{cart_key}/pending-delete/confirm", response_model=CartOut)
def confirm_delete(cart_key: CartKey, svc: CartService = Depends(get_carts)):
    return svc.confirm_delete(cart_key)


@router.post("/{cart_key}/pending-delete/cancel", response_model=CartOut)
def cancel_delete(cart_key: CartKey, svc: CartService = Depends(get_carts)):
    return svc.cancel_delete(cart_key)


@router.post("/{cart_key}/checkout", response_model=CheckoutOut)
def checkout(
    cart_key: CartKey,
    svc: CartService = Depends(get_carts),
    dispatcher: CheckoutDispatcher = Depends(get_checkout),
):
    try:
        return dispatcher.dispatch(cart_key, svc.engine(cart_key))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
