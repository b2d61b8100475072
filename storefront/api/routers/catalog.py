# storefront/api/routers/catalog.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.api.deps import get_catalog
from storefront.domain.catalog import ALL_HEROES, CatalogQuery, SortOption
from storefront.domain.schemas import CatalogPageOut, FlashSaleOut, ImageOut, LuckyOut
from storefront.repos.price_repo import PriceStoreError
from storefront.services.catalog_service import CatalogService

router = APIRouter(tags=["catalog"])

CATALOG_UNAVAILABLE = "Catalog is unavailable, please try again later"


@router.get("/catalog", response_model=CatalogPageOut)
def browse_catalog(
    q: str = Query("", max_length=200),
    hero: str = Query(ALL_HEROES),
    min_price: int = Query(0, ge=0),
    max_price: Optional[int] = Query(None, ge=0),
    sort: SortOption = Query(SortOption.PRICE_DESC),
    page: int = Query(1, ge=1),
    svc: CatalogService = Depends(get_catalog),
):
    query = CatalogQuery(query=q, hero=hero, price_min=min_price, price_max=max_price, sort=sort)
    try:
        return svc.browse(query, page=page)
    except PriceStoreError:
        raise HTTPException(status_code=503, detail=CATALOG_UNAVAILABLE)


@router.get("/catalog/flash-sale", response_model=FlashSaleOut)
def flash_sale(svc: CatalogService = Depends(get_catalog)):
    try:
        return svc.flash_sale(datetime.now())
    except PriceStoreError:
        raise HTTPException(status_code=503, detail=CATALOG_UNAVAILABLE)


@router.get("/catalog/lucky", response_model=LuckyOut)
def test_my_luck(svc: CatalogService = Depends(get_catalog)):
    try:
        return svc.lucky()
    except PriceStoreError:
        raise HTTPException(status_code=503, detail=CATALOG_UNAVAILABLE)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/images", response_model=ImageOut)
def resolve_image(
    name: str = Query(..., min_length=1),
    svc: CatalogService = Depends(get_catalog),
):
    return svc.image(name)
