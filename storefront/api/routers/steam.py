# storefront/api/routers/steam.py
import requests
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from storefront.api.deps import get_container, Container
from storefront.domain.schemas import CommentsPageOut, InventoryOut
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["steam"])


@router.get("/inventory", response_model=InventoryOut)
def inventory(c: Container = Depends(get_container)):
    """Ekwipunek steam polaczony z cenami z price store."""
    try:
        items = c.steam.inventory_with_prices(c.price_store)
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Nie udalo sie pobrac ekwipunku steam: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to fetch Steam inventory"},
        )
    return {"success": True, "items": items}


@router.get("/testimonials", response_model=CommentsPageOut)
def testimonials(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    c: Container = Depends(get_container),
):
    try:
        return c.steam.comments(page=page, limit=limit)
    except requests.RequestException as e:
        logger.error(f"Nie udalo sie pobrac komentarzy steam: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to fetch Steam comments"},
        )
