# app/services/provisioning.py
"""
Provisioning engine: creates subordinate principals and funds them.

Each creation runs Validate -> CheckFunds -> CheckUniqueness -> Persist ->
DebitCreator -> LinkRelationship inside a single database transaction. Any
failure raises a typed PortalError and the transaction rolls back, so there is
never a principal without its debit or a debit without its principal.

Pricing:
- admin-created subadmins and sellers are not funds-checked
- a subadmin pays a new seller's initial balance from its own wallet
- a seller pays its userCreationCharge for every user it creates
"""
import datetime as dt
import logging
from decimal import Decimal
from typing import Optional, Tuple

from tortoise.backends.base.client import BaseDBAsyncClient

from app.config import settings
from app.core.db import atomic, guarded
from app.core.errors import (
    DuplicateUsername,
    Forbidden,
    InsufficientBalance,
    NotFound,
    ValidationError,
)
from app.core.security import hash_password
from app.models.principal import Principal, Role
from app.services import authz, directory, ledger
from app.services.directory import utc_now

logger = logging.getLogger("uvicorn.error")

ZERO = Decimal("0")


# ------------------------------------------------------------------------------
# Validation helpers
# ------------------------------------------------------------------------------
def _validate_credentials(username: str, password: str) -> None:
    if not isinstance(username, str) or len(username) < settings.min_username_length:
        raise ValidationError(
            f"Username must be at least {settings.min_username_length} characters",
            code="USERNAME_TOO_SHORT",
        )
    if not isinstance(password, str) or len(password) < settings.min_password_length:
        raise ValidationError(
            f"Password must be at least {settings.min_password_length} characters",
            code="PASSWORD_TOO_SHORT",
        )


def _non_negative(value, field: str) -> Decimal:
    amount = ledger.to_amount(value)
    if amount < ZERO:
        raise ValidationError(f"{field} cannot be negative", code="AMOUNT_NEGATIVE")
    return amount


def _staff_expiry() -> dt.datetime:
    return utc_now() + dt.timedelta(days=settings.staff_plan_days)


async def _load(principal_id, role: Role, connection: BaseDBAsyncClient) -> Principal:
    principal = await directory.find_by_id(principal_id, connection=connection)
    if principal is None:
        raise NotFound(f"{role.value.capitalize()} not found", code=f"{role.value.upper()}_NOT_FOUND")
    if principal.role != role:
        raise Forbidden(f"{role.value} access required", code="FORBIDDEN_ROLE")
    return principal


async def _ensure_username_free(username: str, connection: BaseDBAsyncClient) -> None:
    if await directory.find_by_username(username, connection=connection):
        raise DuplicateUsername()


# ------------------------------------------------------------------------------
# Admin paths (not funds-checked)
# ------------------------------------------------------------------------------
async def _create_funded(
    username: str,
    password: str,
    role: Role,
    initial_balance,
    user_creation_charge: Optional[Decimal] = None,
) -> Principal:
    _validate_credentials(username, password)
    initial_balance = _non_negative(initial_balance, "Initial balance")
    password_hash = hash_password(password)

    async def _unit() -> Principal:
        async with atomic() as conn:
            await _ensure_username_free(username, conn)
            principal = await directory.insert(
                username=username,
                password_hash=password_hash,
                role=role,
                plan_expiry=_staff_expiry(),
                user_creation_charge=user_creation_charge,
                connection=conn,
            )
            await ledger.open_wallet(principal.id, initial_balance, connection=conn)
            return principal

    principal = await guarded(f"create {role.value}", _unit())
    logger.info("[provisioning] admin created %s username=%s id=%s initial=%s",
                role.value, username, principal.id, initial_balance)
    return principal


async def create_subadmin(username: str, password: str, initial_balance=ZERO) -> Principal:
    """Admin creates a subadmin; the wallet is seeded, the admin is not debited."""
    return await _create_funded(username, password, Role.SUBADMIN, initial_balance)


async def create_seller(
    username: str,
    password: str,
    user_creation_charge=ZERO,
    initial_balance=ZERO,
) -> Principal:
    """Admin creates a seller directly; same seeding rule as create_subadmin."""
    charge = _non_negative(user_creation_charge, "User creation charge")
    return await _create_funded(username, password, Role.SELLER, initial_balance, charge)


# ------------------------------------------------------------------------------
# Funded paths
# ------------------------------------------------------------------------------
async def create_seller_by_subadmin(
    subadmin_id,
    username: str,
    password: str,
    user_creation_charge=ZERO,
    initial_balance=ZERO,
) -> Principal:
    """
    Subadmin creates a seller and pays its initial balance.

    Raises:
        InsufficientBalance: subadmin balance < initial_balance (nothing written)
        DuplicateUsername: username taken
    """
    _validate_credentials(username, password)
    charge = _non_negative(user_creation_charge, "User creation charge")
    initial_balance = _non_negative(initial_balance, "Initial balance")
    password_hash = hash_password(password)

    async def _unit() -> Principal:
        async with atomic() as conn:
            subadmin = await _load(subadmin_id, Role.SUBADMIN, conn)
            wallet = await ledger.get_wallet(subadmin.id, lock=True, connection=conn)
            if wallet.balance < initial_balance:
                raise InsufficientBalance(required=initial_balance, current=wallet.balance)
            await _ensure_username_free(username, conn)
            seller = await directory.insert(
                username=username,
                password_hash=password_hash,
                role=Role.SELLER,
                plan_expiry=_staff_expiry(),
                created_by_id=subadmin.id,
                user_creation_charge=charge,
                connection=conn,
            )
            await ledger.open_wallet(seller.id, initial_balance, connection=conn)
            await ledger.debit(
                subadmin.id, initial_balance, f"Seller creation: {username}", connection=conn
            )
            return seller

    seller = await guarded("create seller", _unit())
    logger.info("[provisioning] subadmin=%s created seller username=%s id=%s funded=%s",
                subadmin_id, username, seller.id, initial_balance)
    return seller


async def create_user_by_seller(
    seller_id,
    username: str,
    password: str,
    plan_days: Optional[int] = None,
) -> Principal:
    """
    Seller creates an end user and pays its userCreationCharge.

    A zero charge always succeeds and is still recorded in the seller's log.

    Raises:
        InsufficientBalance: seller balance < userCreationCharge (nothing written)
        DuplicateUsername: username taken
    """
    _validate_credentials(username, password)
    if plan_days is None:
        plan_days = settings.default_plan_days
    if isinstance(plan_days, bool) or not isinstance(plan_days, int) or plan_days < 1:
        raise ValidationError("planDays must be a positive integer", code="PLAN_DAYS_INVALID")
    password_hash = hash_password(password)

    async def _unit() -> Principal:
        async with atomic() as conn:
            seller = await _load(seller_id, Role.SELLER, conn)
            charge = seller.user_creation_charge or ZERO
            wallet = await ledger.get_wallet(seller.id, lock=True, connection=conn)
            if wallet.balance < charge:
                raise InsufficientBalance(required=charge, current=wallet.balance)
            await _ensure_username_free(username, conn)
            user = await directory.insert(
                username=username,
                password_hash=password_hash,
                role=Role.USER,
                plan_expiry=utc_now() + dt.timedelta(days=plan_days),
                created_by_id=seller.id,
                connection=conn,
            )
            await ledger.debit(seller.id, charge, f"User creation: {username}", connection=conn)
            return user

    user = await guarded("create user", _unit())
    logger.info("[provisioning] seller=%s created user username=%s id=%s plan_days=%s",
                seller_id, username, user.id, plan_days)
    return user


# ------------------------------------------------------------------------------
# User maintenance
# ------------------------------------------------------------------------------
async def _load_user(
    user_id,
    connection: Optional[BaseDBAsyncClient] = None,
    *,
    lock: bool = False,
) -> Principal:
    user = await directory.find_by_id(user_id, lock=lock, connection=connection)
    if user is None or user.role != Role.USER:
        raise NotFound("User not found", code="USER_NOT_FOUND")
    return user


async def delete_user(user_id) -> None:
    """Delete a user with no ownership check (admin path). No refund."""

    async def _unit() -> None:
        async with atomic() as conn:
            user = await _load_user(user_id, conn, lock=True)
            await directory.remove(user, connection=conn)

    await guarded("delete user", _unit())
    logger.info("[provisioning] deleted user id=%s", user_id)


async def delete_user_by_seller(seller_id, user_id) -> None:
    """
    Seller deletes one of its own users. No refund.

    Raises:
        Forbidden: the user was not created by this seller (user is kept)
    """

    async def _unit() -> None:
        async with atomic() as conn:
            user = await _load_user(user_id, conn, lock=True)
            if user.created_by_id is None or str(user.created_by_id) != str(seller_id):
                raise Forbidden("You are not authorized to delete this user", code="FORBIDDEN_NOT_OWNER")
            await directory.remove(user, connection=conn)

    await guarded("delete user", _unit())
    logger.info("[provisioning] seller=%s deleted user id=%s", seller_id, user_id)


async def _update_devices(user_id, step: str, change) -> Principal:
    """Read-modify-write of a user's device list under a row lock."""

    async def _unit() -> Principal:
        async with atomic() as conn:
            user = await _load_user(user_id, conn, lock=True)
            current = list(user.devices or [])
            updated = change(current)
            if updated != current:
                user.devices = updated
                await user.save(using_db=conn, update_fields=["devices"])
            return user

    return await guarded(step, _unit())


async def reset_user_devices(user_id) -> Principal:
    """Clear every device bound to a user. Idempotent."""
    return await _update_devices(user_id, "reset devices", lambda devices: [])


async def remove_user_device(user_id, device_id: str) -> Principal:
    """Unbind one device from a user; unknown device ids are ignored."""
    return await _update_devices(
        user_id,
        "remove device",
        lambda devices: [d for d in devices if str(d) != str(device_id)],
    )


# ------------------------------------------------------------------------------
# Wallet adjustment
# ------------------------------------------------------------------------------
async def adjust_wallet(
    acting: Principal,
    target_id,
    amount,
    description: Optional[str] = None,
) -> Tuple[Decimal, Optional[Decimal]]:
    """
    Signed balance adjustment by an admin or a subadmin.

    - admin: any funded target, recorded as-is, never funds-checked
    - subadmin on its own seller: a positive amount is a transfer from the
      subadmin's wallet (funds-checked before any write); a negative amount
      only debits the seller
    - anyone else: Forbidden

    Returns:
        (target balance, acting subadmin balance or None)
    """
    amount = ledger.to_amount(amount)
    if amount == ZERO:
        raise ValidationError("Amount must be non-zero", code="AMOUNT_ZERO")
    description = (description or "").strip() or None

    async def _unit() -> Tuple[Principal, Decimal, Optional[Decimal]]:
        async with atomic() as conn:
            target = await directory.find_by_id(target_id, connection=conn)
            if target is None:
                raise NotFound("Account not found", code="ACCOUNT_NOT_FOUND")
            if not target.is_funded:
                raise ValidationError("Account has no wallet", code="WALLET_NOT_SUPPORTED")

            if acting.role == Role.ADMIN:
                balance = await ledger.record_signed_transaction(
                    target.id,
                    amount,
                    description or ("Deposit" if amount > ZERO else "Withdrawal"),
                    connection=conn,
                )
                return target, balance, None
            if acting.role != Role.SUBADMIN:
                raise Forbidden("Wallet adjustments require admin or subadmin", code="FORBIDDEN_ROLE")

            authz.ensure_scope(acting, target)
            if amount > ZERO:
                suffix = f" - {description}" if description else ""
                actor_balance, balance = await ledger.transfer(
                    acting.id,
                    target.id,
                    amount,
                    f"Transfer to seller: {target.username}{suffix}",
                    description or "Deposit from subadmin",
                    connection=conn,
                )
                return target, balance, actor_balance
            balance = await ledger.debit(
                target.id, -amount, description or "Withdrawal",
                enforce_funds=False, connection=conn,
            )
            actor_balance = (await ledger.get_wallet(acting.id, connection=conn)).balance
            return target, balance, actor_balance

    target, balance, actor_balance = await guarded("adjust wallet", _unit())
    logger.info("[provisioning] %s=%s adjusted wallet of %s by %s -> %s",
                acting.role.value, acting.id, target.username, amount, balance)
    return balance, actor_balance
