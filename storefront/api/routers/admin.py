# storefront/api/routers/admin.py
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from storefront.api.deps import get_admin, get_auth, require_admin
from storefront.repos.price_repo import PriceStoreError
from storefront.services.admin_service import XLSX_MIME, AdminService
from storefront.services.auth_service import AuthService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#wszystko pod /api/admin wymaga waznej sesji
router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)

#warianty bez sesji: upload z haslem w formularzu + pobranie szablonu
public_router = APIRouter(prefix="/api", tags=["admin"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def _upload(svc: AdminService, file: Optional[UploadFile]) -> JSONResponse | dict:
    content = await file.read() if file is not None else None
    content_type = file.content_type if file is not None else None
    try:
        updated = svc.upload_spreadsheet(content_type, content)
    except ValueError as e:
        return _error(400, str(e))
    except PriceStoreError:
        return _error(500, "Failed to process the uploaded file.")
    return {"success": True, "updated": updated}


@router.get("/prices")
def get_prices(svc: AdminService = Depends(get_admin)):
    try:
        return svc.get_prices()
    except PriceStoreError:
        return _error(500, "Failed to read prices")


@router.put("/prices")
async def put_prices(request: Request, svc: AdminService = Depends(get_admin)):
    try:
        payload = await request.json()
    except ValueError:
        return _error(400, "Invalid data format")

    try:
        count = svc.replace_prices(payload)
    except ValueError as e:
        return _error(400, str(e))
    except PriceStoreError:
        return _error(500, "Failed to write prices")
    return {"success": True, "count": count}


@router.post("/upload-prices")
async def upload_prices(
    file: Optional[UploadFile] = File(None),
    svc: AdminService = Depends(get_admin),
):
    return await _upload(svc, file)


@public_router.post("/update-prices")
async def update_prices_with_password(
    password: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    svc: AdminService = Depends(get_admin),
    auth: AuthService = Depends(get_auth),
):
    if not auth.verify_upload_password(password):
        logger.warning("Upload cen z niepoprawnym haslem")
        return _error(401, "Unauthorized. Invalid password.")
    return await _upload(svc, file)


@public_router.get("/download-template")
def download_template(svc: AdminService = Depends(get_admin)):
    try:
        content = svc.export_template()
    except PriceStoreError as e:
        return _error(500, str(e))
    return Response(
        content=content,
        media_type=XLSX_MIME,
        headers={"Content-Disposition": 'attachment; filename="template.xlsx"'},
    )
