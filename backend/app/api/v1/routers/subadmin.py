# app/api/v1/routers/subadmin.py
from fastapi import APIRouter, Depends

from app.api.v1.deps import require_subadmin
from app.models.principal import Principal, Role
from app.schemas.principal import PrincipalListOut
from app.schemas.provisioning import SellerCreateIn, WalletAdjustIn, WalletAdjustOut
from app.services import directory, ledger, portal

router = APIRouter(prefix="/subadmin", tags=["subadmin"])


@router.get("/profile")
async def profile(subadmin: Principal = Depends(require_subadmin)):
    """The subadmin's own wallet (with history) and seller count."""
    return {"success": True, "data": await portal.profile(subadmin)}


@router.get("/sellers", response_model=PrincipalListOut)
async def list_sellers(subadmin: Principal = Depends(require_subadmin)):
    """Sellers created by the calling subadmin only."""
    rows = await portal.list_subordinates(subadmin)
    items = [await directory.describe(p, with_transactions=False) for p in rows]
    return {"items": items, "total": len(items)}


@router.post("/sellers")
async def create_seller(body: SellerCreateIn, subadmin: Principal = Depends(require_subadmin)):
    """
    Create a seller funded from the subadmin's wallet.

    Raises:
        InsufficientBalance (400): balance < initialBalance (required/current/shortage)
        DuplicateUsername (400): USERNAME_EXISTS
    """
    seller = await portal.create_subordinate(subadmin, body)
    wallet = await ledger.get_wallet(subadmin.id)
    data = await directory.describe(seller)
    data["walletBalanceAfter"] = float(wallet.balance)
    return {"success": True, "data": data}


@router.post("/sellers/{seller_id}/wallet", response_model=WalletAdjustOut)
async def adjust_seller_wallet(
    seller_id: str,
    body: WalletAdjustIn,
    subadmin: Principal = Depends(require_subadmin),
):
    """
    Top up (amount > 0, paid from the subadmin's wallet) or withdraw from
    (amount < 0, seller only) one of the subadmin's own sellers.

    Raises:
        Forbidden (403): FORBIDDEN_NOT_OWNER for another subadmin's seller
        InsufficientBalance (400): subadmin cannot cover a top up
    """
    target, balance, actor_balance = await portal.adjust_wallet(
        subadmin, seller_id, body.amount, body.description, expected_role=Role.SELLER
    )
    return {
        "id": str(target.id),
        "username": target.username,
        "balance": float(balance),
        "actorBalance": float(actor_balance) if actor_balance is not None else None,
    }
