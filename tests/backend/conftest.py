import os
import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from app.core import db as db_module
from app.core.security import hash_password
from app.main import app
from app.models.principal import Principal, Role
from app.services import directory, ledger, provisioning


TEST_DB_URL = "sqlite://:memory:"
os.environ["DATABASE_URL"] = TEST_DB_URL
db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL

PASSWORD = "Passw0rd!"


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


def _name(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:6]}"


@pytest_asyncio.fixture
async def db():
    """Fresh database for service-level tests."""
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def client(db):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


@pytest_asyncio.fixture
async def create_admin(db):
    """
    Factory fixture creating the admin directly via the directory and ledger.
    """

    async def _create_admin(password: str = PASSWORD) -> Principal:
        admin = await directory.insert(
            username=_name("admin"),
            password_hash=hash_password(password),
            role=Role.ADMIN,
            plan_expiry=directory.utc_now(),
        )
        await ledger.open_wallet(admin.id)
        return admin

    return _create_admin


@pytest_asyncio.fixture
async def create_subadmin(db):
    """Factory fixture: admin-path subadmin seeded with ``balance``."""

    async def _create_subadmin(balance=0, username: str | None = None) -> Principal:
        return await provisioning.create_subadmin(username or _name("sub"), PASSWORD, Decimal(str(balance)))

    return _create_subadmin


@pytest_asyncio.fixture
async def create_seller(db):
    """
    Factory fixture for sellers.
    With ``owner`` the seller is created by that subadmin (which pays ``balance``);
    otherwise through the admin path.
    """

    async def _create_seller(balance=0, charge=0, owner: Principal | None = None,
                             username: str | None = None) -> Principal:
        username = username or _name("seller")
        if owner is not None:
            return await provisioning.create_seller_by_subadmin(owner.id, username, PASSWORD, charge, balance)
        return await provisioning.create_seller(username, PASSWORD, charge, balance)

    return _create_seller


@pytest_asyncio.fixture
async def create_user(db):
    """Factory fixture: user created (and paid for) by ``seller``, optionally with devices."""

    async def _create_user(seller: Principal, devices: list[str] | None = None,
                           username: str | None = None) -> Principal:
        user = await provisioning.create_user_by_seller(seller.id, username or _name("user"), PASSWORD)
        if devices:
            user.devices = list(devices)
            await user.save(update_fields=["devices"])
        return user

    return _create_user


@pytest_asyncio.fixture
async def auth_header_factory(client):
    """
    Helper fixture to obtain Authorization headers via the login endpoint.
    """

    async def _get_headers(principal: Principal, password: str = PASSWORD) -> dict[str, str]:
        resp = await client.post(
            "/api/v1/auth/login",
            json={"username": principal.username, "password": password},
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["data"]["accessToken"]
        return {"Authorization": f"Bearer {token}"}

    return _get_headers


@pytest.fixture
def assert_ledger_consistent():
    """Check the cached balance equals the sum of the transaction log."""

    async def _check(principal: Principal) -> None:
        balance, computed = await ledger.audit_wallet(principal.id)
        assert balance == computed

    return _check
