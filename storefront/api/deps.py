# storefront/api/deps.py
from dataclasses import dataclass

from fastapi import Request

from storefront.services.admin_service import AdminService
from storefront.services.auth_service import AuthService
from storefront.services.cart_service import CartService
from storefront.services.catalog_service import CatalogService
from storefront.services.checkout_service import CheckoutDispatcher
from storefront.services.steam_client import SteamClient
from storefront.repos.price_repo import PriceStore
from storefront.utils.settings import SESSION_COOKIE_NAME


@dataclass
class Container:
    """Wspoldzielone serwisy aplikacji, tworzone raz w create_app."""

    price_store: PriceStore
    catalog: CatalogService
    carts: CartService
    checkout: CheckoutDispatcher
    admin: AdminService
    auth: AuthService
    steam: SteamClient


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_catalog(request: Request) -> CatalogService:
    return get_container(request).catalog


def get_carts(request: Request) -> CartService:
    return get_container(request).carts


def get_checkout(request: Request) -> CheckoutDispatcher:
    return get_container(request).checkout


def get_admin(request: Request) -> AdminService:
    return get_container(request).admin


def get_auth(request: Request) -> AuthService:
    return get_container(request).auth


def get_steam(request: Request) -> SteamClient:
    return get_container(request).steam


def require_admin(request: Request) -> dict:
    """Brak waznej sesji = AuthError -> 401, zadnego zapisu."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    return get_auth(request).decode_session(token)
