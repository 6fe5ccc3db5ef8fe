# app/services/portal.py
"""
Portal operations called by the HTTP layer.

Each function takes the already-authenticated acting principal, applies the
role and ownership rules of the authorization gate, then delegates to the
provisioning engine, the ledger or the directory.
"""
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from app.core.errors import Forbidden, InvalidCredentials, NotFound, ValidationError
from app.core.security import create_access_token, verify_password
from app.models.principal import Principal, Role
from app.schemas.provisioning import SellerCreateIn, SubadminCreateIn, UserCreateIn
from app.services import authz, directory, provisioning

CreateRequest = Union[SubadminCreateIn, SellerCreateIn, UserCreateIn]

# Default roster each tier sees
_SUBORDINATE_ROLE = {
    Role.ADMIN: Role.SUBADMIN,
    Role.SUBADMIN: Role.SELLER,
    Role.SELLER: Role.USER,
}


async def login(username: str, password: str) -> Tuple[Principal, str]:
    """
    Verify credentials and issue an access token.

    Raises:
        InvalidCredentials: unknown username or wrong password (indistinguishable)
    """
    if not username or not password:
        raise ValidationError("Username and password are required", code="BAD_REQUEST")
    principal = await directory.find_by_username(username)
    if principal is None or not verify_password(password, principal.password_hash):
        raise InvalidCredentials()
    token = create_access_token(str(principal.id), principal.username, principal.role.value)
    return principal, token


async def dashboard_stats(actor: Principal) -> dict:
    authz.authorize(actor, Role.ADMIN)
    return {
        "totalUsers": await directory.count_by_role(Role.USER),
        "totalSellers": await directory.count_by_role(Role.SELLER),
        "totalSubadmins": await directory.count_by_role(Role.SUBADMIN),
    }


async def list_subordinates(actor: Principal, role: Optional[Role] = None) -> List[Principal]:
    """
    Roster visible to the actor.

    The admin may list any tier (subadmins by default). Subadmins see only the
    sellers they created, sellers only the users they created.
    """
    default = _SUBORDINATE_ROLE.get(actor.role)
    if default is None:
        raise Forbidden("No subordinates for this role", code="FORBIDDEN_ROLE")
    if actor.role == Role.ADMIN:
        return await directory.list_by_role(role or default)
    if role is not None and role != default:
        raise Forbidden(f"Cannot list {role.value} accounts", code="FORBIDDEN_ROLE")
    return await directory.list_by_role(default, created_by=actor.id)


async def create_subordinate(actor: Principal, request: CreateRequest) -> Principal:
    """Dispatch a creation request to the provisioning path for the actor's role."""
    if actor.role == Role.ADMIN:
        if isinstance(request, SubadminCreateIn):
            return await provisioning.create_subadmin(
                request.username, request.password, request.initialBalance
            )
        if isinstance(request, SellerCreateIn):
            return await provisioning.create_seller(
                request.username, request.password, request.userCreationCharge, request.initialBalance
            )
    elif actor.role == Role.SUBADMIN and isinstance(request, SellerCreateIn):
        return await provisioning.create_seller_by_subadmin(
            actor.id, request.username, request.password, request.userCreationCharge, request.initialBalance
        )
    elif actor.role == Role.SELLER and isinstance(request, UserCreateIn):
        return await provisioning.create_user_by_seller(
            actor.id, request.username, request.password, request.planDays
        )
    raise Forbidden(f"A {actor.role.value} cannot create this account type", code="FORBIDDEN_ROLE")


async def adjust_wallet(
    actor: Principal,
    target_id,
    amount,
    description: Optional[str] = None,
    expected_role: Optional[Role] = None,
) -> Tuple[Principal, Decimal, Optional[Decimal]]:
    """
    Adjust a wallet on behalf of the actor.

    expected_role pins the target tier for role-specific routes
    (e.g. /admin/sellers/{id}/wallet).
    """
    authz.authorize(actor, (Role.ADMIN, Role.SUBADMIN))
    target = await directory.find_by_id(target_id)
    if target is None or (expected_role is not None and target.role != expected_role):
        label = expected_role.value.capitalize() if expected_role else "Account"
        raise NotFound(f"{label} not found", code="ACCOUNT_NOT_FOUND")
    authz.ensure_scope(actor, target)
    balance, actor_balance = await provisioning.adjust_wallet(actor, target.id, amount, description)
    return target, balance, actor_balance


async def delete_user(actor: Principal, user_id) -> None:
    """Owning seller deletes its user; the admin may delete any user."""
    authz.authorize(actor, (Role.ADMIN, Role.SELLER))
    if actor.role == Role.ADMIN:
        await provisioning.delete_user(user_id)
    else:
        await provisioning.delete_user_by_seller(actor.id, user_id)


async def _scoped_user(actor: Principal, user_id) -> Principal:
    user = await directory.find_by_id(user_id)
    if user is None or user.role != Role.USER:
        raise NotFound("User not found", code="USER_NOT_FOUND")
    return authz.ensure_scope(actor, user)


async def reset_devices(actor: Principal, user_id) -> Principal:
    authz.authorize(actor, (Role.ADMIN, Role.SELLER))
    user = await _scoped_user(actor, user_id)
    return await provisioning.reset_user_devices(user.id)


async def remove_device(actor: Principal, user_id, device_id: str) -> Principal:
    authz.authorize(actor, Role.ADMIN)
    user = await _scoped_user(actor, user_id)
    return await provisioning.remove_user_device(user.id, device_id)


async def profile(actor: Principal) -> dict:
    """The actor's own tagged view, re-read from the store."""
    current = await directory.find_by_id(actor.id)
    if current is None:
        raise NotFound("User not found", code="USER_NOT_FOUND")
    return await directory.describe(current)
