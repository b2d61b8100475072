# storefront/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from storefront.api.deps import Container
from storefront.api.routers import admin, auth, carts, catalog, health, steam
from storefront.data.database import Base, SessionLocal, engine
from storefront.repos.cart_repo import (
    CartRepository,
    DebouncedCartRepository,
    InMemoryCartRepository,
    RedisCartRepository,
    SqlCartRepository,
)
from storefront.repos.price_repo import HttpPriceSource, JsonFilePriceStore, PriceStore
from storefront.services.admin_service import AdminService
from storefront.services.auth_service import AuthError, AuthService
from storefront.services.cart_service import CartService, CartSessionStore
from storefront.services.catalog_service import CatalogLoader, CatalogService
from storefront.services.checkout_service import CheckoutDispatcher
from storefront.services.image_resolver import build_image_cache
from storefront.services.steam_client import SteamClient
from storefront.utils.settings import (
    CART_BACKEND,
    CART_SAVE_DEBOUNCE_SECONDS,
    CATALOG_INITIAL_VISIBLE,
    CATALOG_PAGE_SIZE,
    PRICE_STORE_PATH,
    PRICE_STORE_URL,
    REDIS_URL,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def build_cart_repository(backend: str = CART_BACKEND) -> CartRepository:
    if backend == "memory":
        inner: CartRepository = InMemoryCartRepository()
    elif backend == "redis":
        inner = RedisCartRepository.from_url(REDIS_URL)
    elif backend == "sql":
        #import modeli przed create_all, zeby tabela byla w Base.metadata
        import storefront.data.models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        inner = SqlCartRepository(SessionLocal)
    else:
        raise ValueError(f"Unknown CART_BACKEND {backend!r}")

    logger.info(f"Repozytorium koszykow: {backend}")
    return DebouncedCartRepository(inner, delay=CART_SAVE_DEBOUNCE_SECONDS)


def build_container() -> Container:
    #zapisy admina zawsze ida do pliku, katalog moze czytac z url
    price_store: PriceStore = JsonFilePriceStore(PRICE_STORE_PATH)
    source: PriceStore = HttpPriceSource(PRICE_STORE_URL) if PRICE_STORE_URL else price_store

    loader = CatalogLoader(source)
    return Container(
        price_store=price_store,
        catalog=CatalogService(
            loader,
            build_image_cache(),
            initial=CATALOG_INITIAL_VISIBLE,
            page_size=CATALOG_PAGE_SIZE,
        ),
        carts=CartService(build_cart_repository(), loader, CartSessionStore()),
        checkout=CheckoutDispatcher(),
        admin=AdminService(price_store),
        auth=AuthService(),
        steam=SteamClient(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    #koszyki czekajace w oknie debounce trafiaja do backendu przed wyjsciem
    repo = app.state.container.carts.repo
    if isinstance(repo, DebouncedCartRepository):
        repo.flush()


def create_app(container: Optional[Container] = None) -> FastAPI:
    app = FastAPI(
        title="GetRest Store",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.container = container or build_container()

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        #fail closed: jawny 401, zadnej czesciowej odpowiedzi
        return JSONResponse(status_code=401, content={"success": False, "error": "Unauthorized"})

    # Include routers
    app.include_router(health.router)
    app.include_router(catalog.router)
    app.include_router(carts.router)
    app.include_router(steam.router)
    app.include_router(auth.router)
    app.include_router(admin.router)
    app.include_router(admin.public_router)

    return app


if __name__ == "__main__":
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
