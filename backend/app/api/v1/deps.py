# app/api/v1/deps.py
from fastapi import Depends, Header, Request

from app.models.principal import Principal, Role
from app.services import authz

async def get_current_principal(
    request: Request,
    authorization: str | None = Header(default=None),
) -> Principal:
    """
    FastAPI dependency to get the current authenticated principal.

    This dependency extracts the JWT token from either:
    1. Authorization header (Bearer token) - preferred method
    2. HttpOnly cookie (accessToken) - fallback method

    and resolves it through the authorization gate.

    Raises:
        Unauthorized (401): no token, invalid/expired token, or principal gone
    """
    token = None
    # 1) Prioritize Authorization: Bearer xxx
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    # 2) Secondly HttpOnly Cookie: accessToken
    if not token:
        token = request.cookies.get("accessToken")
    return await authz.authenticate(token)

def require_role(*roles: Role):
    """
    Build a dependency that only lets the given roles through.

    Usage:
        @router.get("/admin/dashboard")
        async def dashboard(admin: Principal = Depends(require_role(Role.ADMIN))):
            ...

    Raises:
        Forbidden (403): authenticated, but role not allowed
    """
    async def _dependency(current: Principal = Depends(get_current_principal)) -> Principal:
        return authz.authorize(current, roles)
    return _dependency

require_admin = require_role(Role.ADMIN)
require_subadmin = require_role(Role.SUBADMIN)
require_seller = require_role(Role.SELLER)
