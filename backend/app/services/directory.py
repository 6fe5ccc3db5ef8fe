# app/services/directory.py
"""
Account directory: identity records for every principal.

Usernames are unique across all roles. Uniqueness is enforced by the
database unique index; insert() translates the integrity error instead of
trusting an earlier read, so two concurrent inserts of the same username
cannot both succeed.
"""
import datetime as dt
import logging
import uuid
from decimal import Decimal
from typing import List, Optional

from tortoise.backends.base.client import BaseDBAsyncClient
from tortoise.exceptions import IntegrityError

from app.core.errors import DuplicateUsername, ValidationError
from app.models.principal import Principal, Role
from app.models.wallet import Wallet, WalletTransaction
from app.schemas.principal import AdminOut, SellerOut, SubadminOut, UserOut

logger = logging.getLogger("uvicorn.error")


def utc_now() -> dt.datetime:
    """
    Get current UTC datetime with timezone information.
    """
    return dt.datetime.now(dt.timezone.utc)


def _iso(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _as_uuid(principal_id) -> Optional[uuid.UUID]:
    if isinstance(principal_id, uuid.UUID):
        return principal_id
    try:
        return uuid.UUID(str(principal_id))
    except (TypeError, ValueError):
        return None


async def find_by_username(
    username: str, *, connection: Optional[BaseDBAsyncClient] = None
) -> Optional[Principal]:
    """Case-sensitive exact match on username."""
    qs = Principal.filter(username=username)
    if connection is not None:
        qs = qs.using_db(connection)
    return await qs.get_or_none()


async def find_by_id(
    principal_id,
    *,
    lock: bool = False,
    connection: Optional[BaseDBAsyncClient] = None,
) -> Optional[Principal]:
    """Look up a principal by id; malformed ids resolve to None. lock takes a row lock."""
    pid = _as_uuid(principal_id)
    if pid is None:
        return None
    qs = Principal.filter(id=pid)
    if lock:
        qs = qs.select_for_update()
    if connection is not None:
        qs = qs.using_db(connection)
    return await qs.get_or_none()


async def insert(
    *,
    username: str,
    password_hash: str,
    role: Role,
    plan_expiry: dt.datetime,
    created_by_id=None,
    user_creation_charge: Optional[Decimal] = None,
    connection: Optional[BaseDBAsyncClient] = None,
) -> Principal:
    """
    Insert a principal.

    Raises:
        DuplicateUsername: the username is already taken (any role)
    """
    try:
        return await Principal.create(
            username=username,
            password_hash=password_hash,
            role=role,
            plan_expiry=plan_expiry,
            created_by_id=created_by_id,
            devices=[],
            user_creation_charge=user_creation_charge,
            using_db=connection,
        )
    except IntegrityError as exc:
        logger.warning("[directory] duplicate username=%s", username)
        raise DuplicateUsername() from exc


async def list_by_role(role: Role, *, created_by=None) -> List[Principal]:
    """List a tier's roster, newest first, optionally scoped to one creator."""
    qs = Principal.filter(role=role)
    if created_by is not None:
        qs = qs.filter(created_by_id=created_by)
    return await qs.order_by("-created_at")


async def count_by_role(role: Role) -> int:
    return await Principal.filter(role=role).count()


async def count_children(principal_id) -> int:
    return await Principal.filter(created_by_id=principal_id).count()


async def remove(principal: Principal, *, connection: Optional[BaseDBAsyncClient] = None) -> None:
    """
    Delete a user principal.
    The creator's children list is the reverse of created_by, so it shrinks with the row.
    """
    if principal.role != Role.USER:
        raise ValidationError("Only user accounts can be deleted", code="DELETE_NOT_ALLOWED")
    await principal.delete(using_db=connection)


async def describe(principal: Principal, *, with_transactions: bool = True) -> dict:
    """
    Build the role-tagged view of a principal for API responses.
    The password hash is never included.
    """
    base = {
        "id": str(principal.id),
        "username": principal.username,
        "createdAt": _iso(principal.created_at),
        "createdBy": str(principal.created_by_id) if principal.created_by_id else None,
    }

    if principal.role == Role.USER:
        return UserOut(
            **base,
            planExpiry=_iso(principal.plan_expiry),
            devices=[str(d) for d in (principal.devices or [])],
        ).model_dump()

    wallet = await Wallet.get_or_none(principal_id=principal.id)
    wallet_view = {"balance": float(wallet.balance) if wallet else 0.0, "transactions": []}
    if wallet and with_transactions:
        entries = await WalletTransaction.filter(wallet_id=wallet.id).order_by("id")
        wallet_view["transactions"] = [
            {"amount": float(e.amount), "description": e.description, "createdAt": _iso(e.created_at)}
            for e in entries
        ]

    if principal.role == Role.ADMIN:
        return AdminOut(**base, wallet=wallet_view).model_dump()
    children = await count_children(principal.id)
    if principal.role == Role.SUBADMIN:
        return SubadminOut(**base, wallet=wallet_view, createdSellers=children).model_dump()
    return SellerOut(
        **base,
        wallet=wallet_view,
        userCreationCharge=float(principal.user_creation_charge or 0),
        createdUsers=children,
    ).model_dump()
