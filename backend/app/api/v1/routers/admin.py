# app/api/v1/routers/admin.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.v1.deps import require_admin
from app.models.principal import Principal, Role
from app.schemas.principal import DashboardStatsOut, PrincipalListOut
from app.schemas.provisioning import (
    SellerCreateIn,
    SubadminCreateIn,
    WalletAdjustIn,
    WalletAdjustOut,
)
from app.services import directory, portal

router = APIRouter(prefix="/admin", tags=["admin"])


async def _roster(admin: Principal, role: Role) -> dict:
    rows = await portal.list_subordinates(admin, role)
    items = [await directory.describe(p, with_transactions=False) for p in rows]
    return {"items": items, "total": len(items)}


async def _adjust(admin: Principal, target_id: str, body: WalletAdjustIn, role: Role) -> dict:
    target, balance, _ = await portal.adjust_wallet(
        admin, target_id, body.amount, body.description, expected_role=role
    )
    return {"id": str(target.id), "username": target.username, "balance": float(balance)}


# ==============================================================================
# I. Dashboard
# ==============================================================================
@router.get("/dashboard", response_model=DashboardStatsOut)
async def dashboard(admin: Principal = Depends(require_admin)):
    """
    Headline counts for the admin dashboard (admin only).

    Returns:
        DashboardStatsOut: totalUsers, totalSellers, totalSubadmins
    """
    return await portal.dashboard_stats(admin)


# ==============================================================================
# II. Subadmins
#     Prefix: /api/v1/admin/subadmins
# ==============================================================================
@router.get("/subadmins", response_model=PrincipalListOut)
async def list_subadmins(admin: Principal = Depends(require_admin)):
    """List every subadmin with its balance and seller count (admin only)."""
    return await _roster(admin, Role.SUBADMIN)


@router.post("/subadmins")
async def create_subadmin(body: SubadminCreateIn, admin: Principal = Depends(require_admin)):
    """
    Create a subadmin (admin only).

    The admin's own wallet is not debited; a positive initialBalance is seeded
    as an "Initial balance" credit.

    Raises:
        DuplicateUsername (400): USERNAME_EXISTS
    """
    subadmin = await portal.create_subordinate(admin, body)
    return {"success": True, "data": await directory.describe(subadmin)}


@router.post("/subadmins/{subadmin_id}/wallet", response_model=WalletAdjustOut)
async def adjust_subadmin_wallet(
    subadmin_id: str,
    body: WalletAdjustIn,
    admin: Principal = Depends(require_admin),
):
    """
    Deposit into or withdraw from a subadmin's wallet (admin only).
    Withdrawals are not funds-checked; the balance may go negative.

    Raises:
        NotFound (404): ACCOUNT_NOT_FOUND when the id is not a subadmin
    """
    return await _adjust(admin, subadmin_id, body, Role.SUBADMIN)


# ==============================================================================
# III. Sellers
#     Prefix: /api/v1/admin/sellers
# ==============================================================================
@router.get("/sellers", response_model=PrincipalListOut)
async def list_sellers(admin: Principal = Depends(require_admin)):
    """List every seller, whoever created it (admin only)."""
    return await _roster(admin, Role.SELLER)


@router.post("/sellers")
async def create_seller(body: SellerCreateIn, admin: Principal = Depends(require_admin)):
    """
    Create a seller directly (admin only). Not funds-checked.

    Raises:
        DuplicateUsername (400): USERNAME_EXISTS
    """
    seller = await portal.create_subordinate(admin, body)
    return {"success": True, "data": await directory.describe(seller)}


@router.post("/sellers/{seller_id}/wallet", response_model=WalletAdjustOut)
async def adjust_seller_wallet(
    seller_id: str,
    body: WalletAdjustIn,
    admin: Principal = Depends(require_admin),
):
    """Deposit into or withdraw from a seller's wallet (admin only)."""
    return await _adjust(admin, seller_id, body, Role.SELLER)


# ==============================================================================
# IV. Users
# ==============================================================================
@router.delete("/users/{user_id}/devices/{device_id}")
async def remove_user_device(
    user_id: str,
    device_id: str,
    admin: Principal = Depends(require_admin),
):
    """
    Unbind one device from a user (admin only).

    Raises:
        NotFound (404): USER_NOT_FOUND
    """
    user = await portal.remove_device(admin, user_id, device_id)
    return {
        "success": True,
        "message": "Device removed successfully",
        "data": {"updatedDevices": list(user.devices or [])},
    }
