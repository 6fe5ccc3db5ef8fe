# app/core/bootstrap.py
"""
Bootstrap module for application initialization.
Handles the one-time creation of the single admin account, either through the
setup endpoint (guarded by ADMIN_SETUP_KEY) or from environment variables on
first startup.

Exactly one admin is assumed everywhere else; it is only enforced here.
"""
import asyncio
import datetime as dt
import hmac
import logging
import os

from app.config import settings
from app.core.db import atomic, guarded
from app.core.errors import Forbidden, ValidationError
from app.core.security import hash_password
from app.models.principal import Principal, Role
from app.services import directory, ledger

logger = logging.getLogger("uvicorn.error")

# Serializes bootstrap within this process; the admin-exists check runs inside the transaction
_bootstrap_lock = asyncio.Lock()


async def setup_needed() -> bool:
    """True while no admin exists."""
    return not await Principal.filter(role=Role.ADMIN).exists()


async def _create_admin(username: str, password: str) -> Principal:
    password_hash = hash_password(password)

    async def _unit() -> Principal:
        async with atomic() as conn:
            if await Principal.filter(role=Role.ADMIN).using_db(conn).exists():
                raise ValidationError("Admin account already exists", code="ADMIN_EXISTS")
            admin = await directory.insert(
                username=username,
                password_hash=password_hash,
                role=Role.ADMIN,
                plan_expiry=directory.utc_now() + dt.timedelta(days=settings.staff_plan_days),
                connection=conn,
            )
            await ledger.open_wallet(admin.id, connection=conn)
            return admin

    async with _bootstrap_lock:
        return await guarded("create admin", _unit())


async def bootstrap_admin(username: str, password: str, setup_key: str) -> Principal:
    """
    Create the admin account once.

    Raises:
        Forbidden: setup key missing on the server or not matching (SETUP_KEY_INVALID)
        ValidationError: an admin already exists, or credentials are too short
        DuplicateUsername: username already taken
    """
    expected = settings.admin_setup_key
    if not expected or not hmac.compare_digest(str(setup_key or ""), expected):
        logger.warning("[bootstrap] setup refused: invalid setup key")
        raise Forbidden("Invalid setup key", code="SETUP_KEY_INVALID")
    if len(username or "") < settings.min_username_length:
        raise ValidationError("Username too short", code="USERNAME_TOO_SHORT")
    if len(password or "") < settings.min_password_length:
        raise ValidationError("Password too short", code="PASSWORD_TOO_SHORT")

    admin = await _create_admin(username, password)
    logger.warning("[bootstrap] Created admin via setup -> username=%s id=%s", admin.username, admin.id)
    return admin


async def ensure_default_admin() -> None:
    """
    If no admin exists in the database, create one from environment variables.
    Only takes effect under the following conditions:
      - Currently no principal with role="admin"
      - And ADMIN_PASSWORD is set (to avoid using default weak password)
    Environment variables:
      ADMIN_USERNAME (default: "admin")
      ADMIN_PASSWORD (required, otherwise won't create)
    """
    if not await setup_needed():
        return  # Skip creation if admin already exists

    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_password:
        logger.warning("[bootstrap] No admin present, ADMIN_PASSWORD not set -> waiting for /setup.")
        return

    admin_username = os.getenv("ADMIN_USERNAME", "admin")

    # If username is already taken by another tier, create a non-conflicting name
    base_username = admin_username
    suffix = 1
    while await directory.find_by_username(admin_username):
        suffix += 1
        admin_username = f"{base_username}{suffix}"

    admin = await _create_admin(admin_username, admin_password)
    logger.warning("[bootstrap] Created default admin -> username=%s id=%s", admin.username, admin.id)
