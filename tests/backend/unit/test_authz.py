"""
Unit tests for services.authz.
Tests token resolution and the creator-based ownership scope.
"""
import datetime as dt

import jwt
import pytest

from app.core.errors import Forbidden, Unauthorized
from app.core.security import JWT_ALG, JWT_SECRET, create_access_token
from app.models.principal import Role
from app.services import authz


pytestmark = pytest.mark.asyncio


class TestAuthenticate:
    """Token to principal resolution."""

    async def test_resolves_principal(self, create_seller):
        seller = await create_seller(balance=0)
        token = create_access_token(str(seller.id), seller.username, "seller")

        principal = await authz.authenticate(token)
        assert principal.id == seller.id
        assert principal.role == Role.SELLER

    async def test_missing_token(self, db):
        with pytest.raises(Unauthorized) as exc_info:
            await authz.authenticate(None)
        assert exc_info.value.code == "AUTH_REQUIRED"

    async def test_rejects_garbage(self, db):
        with pytest.raises(Unauthorized) as exc_info:
            await authz.authenticate("invalid.token.here")
        assert exc_info.value.code == "AUTH_INVALID_TOKEN"

    async def test_rejects_expired_token(self, create_seller):
        seller = await create_seller(balance=0)
        past = dt.datetime.now(dt.timezone.utc) - dt.timedelta(hours=2)
        token = jwt.encode(
            {"sub": str(seller.id), "role": "seller", "iat": past, "exp": past + dt.timedelta(minutes=1)},
            JWT_SECRET,
            algorithm=JWT_ALG,
        )
        with pytest.raises(Unauthorized):
            await authz.authenticate(token)

    async def test_rejects_role_mismatch(self, create_seller):
        seller = await create_seller(balance=0)
        token = create_access_token(str(seller.id), seller.username, "admin")
        with pytest.raises(Unauthorized):
            await authz.authenticate(token)

    async def test_rejects_deleted_principal(self, create_seller, create_user):
        seller = await create_seller(balance=0)
        user = await create_user(seller)
        token = create_access_token(str(user.id), user.username, "user")
        await user.delete()

        with pytest.raises(Unauthorized) as exc_info:
            await authz.authenticate(token)
        assert exc_info.value.code == "AUTH_USER_NOT_FOUND"


class TestScope:
    """Role checks and creator-edge ownership."""

    async def test_authorize_roles(self, create_seller):
        seller = await create_seller(balance=0)
        assert authz.authorize(seller, Role.SELLER) is seller
        assert authz.authorize(seller, (Role.ADMIN, Role.SELLER)) is seller
        with pytest.raises(Forbidden):
            authz.authorize(seller, Role.ADMIN)

    async def test_ownership_scope(self, create_admin, create_subadmin, create_seller, create_user):
        admin = await create_admin()
        sub = await create_subadmin(balance=100)
        other_sub = await create_subadmin(balance=100)
        seller = await create_seller(balance=50, owner=sub)
        user = await create_user(seller)
        stray_seller = await create_seller(balance=0)

        # admin acts on anyone
        for target in (sub, seller, user, stray_seller):
            assert authz.in_scope(admin, target)

        # subadmin: only its own sellers
        assert authz.in_scope(sub, seller)
        assert not authz.in_scope(other_sub, seller)
        assert not authz.in_scope(sub, stray_seller)
        assert not authz.in_scope(sub, user)

        # seller: only its own users
        assert authz.in_scope(seller, user)
        assert not authz.in_scope(stray_seller, user)
        assert not authz.in_scope(seller, sub)

        # users own nothing
        assert not authz.in_scope(user, user)

        with pytest.raises(Forbidden) as exc_info:
            authz.ensure_scope(other_sub, seller)
        assert exc_info.value.code == "FORBIDDEN_NOT_OWNER"
