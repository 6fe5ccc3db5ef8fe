# app/services/authz.py
"""
Authorization gate.

Stateless: a caller is resolved from its JWT plus one directory lookup, and
scope checks are pure functions of the caller and the target's creator edge.

Ownership scope:
- admin acts on any principal
- subadmin acts only on sellers it created
- seller acts only on users it created
"""
from typing import Iterable, Optional, Union

import jwt  # PyJWT

from app.core.errors import Forbidden, Unauthorized
from app.core.security import decode_access_token
from app.models.principal import Principal, Role
from app.services import directory

# Which role each tier may own
_OWNED_ROLE = {
    Role.SUBADMIN: Role.SELLER,
    Role.SELLER: Role.USER,
}


async def authenticate(token: Optional[str]) -> Principal:
    """
    Resolve the principal behind an access token.

    Raises:
        Unauthorized: no token, bad signature, expired token, unknown principal,
            or a role claim that no longer matches the stored principal
    """
    if not token:
        raise Unauthorized()
    try:
        payload = decode_access_token(token)
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid or expired token", code="AUTH_INVALID_TOKEN")

    principal = await directory.find_by_id(payload.get("sub"))
    if principal is None:
        raise Unauthorized("User not found", code="AUTH_USER_NOT_FOUND")
    if payload.get("role") != principal.role.value:
        raise Unauthorized("Invalid or expired token", code="AUTH_INVALID_TOKEN")
    return principal


def authorize(principal: Principal, required: Union[Role, Iterable[Role]]) -> Principal:
    """
    Ensure the principal holds the required role (or one of a set of roles).

    Raises:
        Forbidden: role not allowed
    """
    allowed = {required} if isinstance(required, Role) else set(required)
    if principal.role not in allowed:
        names = "/".join(sorted(r.value for r in allowed))
        raise Forbidden(f"{names} access required", code="FORBIDDEN_ROLE")
    return principal


def in_scope(actor: Principal, target: Principal) -> bool:
    if actor.role == Role.ADMIN:
        return True
    owned = _OWNED_ROLE.get(actor.role)
    return (
        owned is not None
        and target.role == owned
        and target.created_by_id is not None
        and str(target.created_by_id) == str(actor.id)
    )


def ensure_scope(actor: Principal, target: Principal) -> Principal:
    """
    Ensure the actor may act on the target.

    Raises:
        Forbidden: target outside the actor's ownership scope
    """
    if not in_scope(actor, target):
        raise Forbidden("You are not authorized to manage this account", code="FORBIDDEN_NOT_OWNER")
    return target
