# storefront/api/routers/auth.py
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from storefront.api.deps import get_auth
from storefront.domain.schemas import LoginIn
from storefront.services.auth_service import AuthError, AuthService
from storefront.utils.settings import SESSION_COOKIE_NAME, SESSION_COOKIE_SECURE

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _missing_credentials() -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Username and password are required"},
    )


@router.post("/login")
async def login(request: Request, response: Response, auth: AuthService = Depends(get_auth)):
    #body czytane recznie: zly json albo brak pol to 400, nie 422
    try:
        payload = LoginIn.model_validate(await request.json())
    except (ValueError, ValidationError):
        return _missing_credentials()

    if not payload.username or not payload.password:
        return _missing_credentials()

    try:
        token = auth.login(payload.username, payload.password)
    except AuthError as e:
        return JSONResponse(status_code=401, content={"success": False, "error": str(e)})

    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=auth.ttl_seconds,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    return {"success": True}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return {"success": True}


@router.get("/session")
def session(request: Request, auth: AuthService = Depends(get_auth)):
    try:
        payload = auth.decode_session(request.cookies.get(SESSION_COOKIE_NAME))
    except AuthError:
        return {"authenticated": False, "username": None}
    return {"authenticated": True, "username": payload.get("username")}
