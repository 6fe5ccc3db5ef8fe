# app/api/v1/routers/auth.py
from fastapi import APIRouter, Depends, Response

from app.api.v1.deps import get_current_principal
from app.models.principal import Principal
from app.schemas.auth import LoginRequest
from app.services import directory, portal

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/login")
async def login(payload: LoginRequest, response: Response):
    """
    Authenticate a principal and create an access token.

    The token is returned in the response body and also set as an HttpOnly
    cookie for browser-based clients. The user object is role-tagged: funded
    tiers include their wallet, sellers their user creation charge, users
    their plan expiry and devices.

    Returns:
        dict: {"success": True, "data": {"user": {...}, "accessToken": "..."}}

    Raises:
        Unauthorized (401): AUTH_INVALID_CREDENTIALS for unknown user or wrong password
    """
    principal, token = await portal.login(payload.username, payload.password)
    response.set_cookie("accessToken", token, httponly=True, secure=False, samesite="lax")
    user = await directory.describe(principal, with_transactions=False)
    return {"success": True, "data": {"user": user, "accessToken": token}}

@router.get("/me")
async def me(principal: Principal = Depends(get_current_principal)):
    """
    Get the current authenticated principal (role-tagged view).

    Raises:
        Unauthorized (401): If not authenticated
    """
    return {"success": True, "data": await directory.describe(principal, with_transactions=False)}

@router.post("/logout")
async def logout(response: Response):
    """
    Log out by clearing the access token cookie.

    Note:
        The JWT itself remains valid until it expires.
    """
    response.delete_cookie("accessToken")
    return {"success": True}
