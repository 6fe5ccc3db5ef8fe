# app/api/v1/routers/sellers.py
from fastapi import APIRouter, Depends

from app.api.v1.deps import require_role, require_seller
from app.models.principal import Principal, Role
from app.schemas.principal import PrincipalListOut
from app.schemas.provisioning import UserCreateIn
from app.services import directory, ledger, portal

router = APIRouter(prefix="/sellers", tags=["sellers"])


@router.get("/profile")
async def profile(seller: Principal = Depends(require_seller)):
    """The seller's own wallet (with history), charge and user count."""
    return {"success": True, "data": await portal.profile(seller)}


@router.get("/users", response_model=PrincipalListOut)
async def list_users(seller: Principal = Depends(require_seller)):
    """Users created by the calling seller only."""
    rows = await portal.list_subordinates(seller)
    items = [await directory.describe(p) for p in rows]
    return {"items": items, "total": len(items)}


@router.post("/users")
async def create_user(body: UserCreateIn, seller: Principal = Depends(require_seller)):
    """
    Create an end user; the seller's wallet is charged its userCreationCharge.

    Raises:
        InsufficientBalance (400): balance < userCreationCharge (required/current/shortage)
        DuplicateUsername (400): USERNAME_EXISTS
    """
    user = await portal.create_subordinate(seller, body)
    wallet = await ledger.get_wallet(seller.id)
    data = await directory.describe(user)
    data["walletBalanceAfter"] = float(wallet.balance)
    return {"success": True, "data": data}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    actor: Principal = Depends(require_role(Role.SELLER, Role.ADMIN)),
):
    """
    Delete a user. Sellers may only delete their own users; no refund.

    Raises:
        Forbidden (403): FORBIDDEN_NOT_OWNER
        NotFound (404): USER_NOT_FOUND
    """
    await portal.delete_user(actor, user_id)
    return {"success": True, "message": "User deleted successfully"}


@router.post("/users/{user_id}/reset-devices")
async def reset_devices(
    user_id: str,
    actor: Principal = Depends(require_role(Role.SELLER, Role.ADMIN)),
):
    """Unbind every device from a user. Idempotent."""
    user = await portal.reset_devices(actor, user_id)
    return {
        "success": True,
        "message": "All devices reset successfully",
        "data": {"id": str(user.id), "username": user.username, "devices": list(user.devices or [])},
    }
