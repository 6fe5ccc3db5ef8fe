# app/schemas/principal.py
"""
Pydantic views of principals.

A principal is returned as a tagged union on "role": each variant carries only
the fields that mean something for that tier. Funded tiers expose their wallet,
sellers their user creation charge, users their subscription and devices.
"""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class TransactionOut(BaseModel):
    """One wallet log entry (amount is signed)."""
    amount: float
    description: str
    createdAt: Optional[str] = None


class WalletOut(BaseModel):
    balance: float  # Signed; may be negative
    transactions: List[TransactionOut] = []


class PrincipalBase(BaseModel):
    id: str
    username: str
    createdAt: Optional[str] = None
    createdBy: Optional[str] = None


class AdminOut(PrincipalBase):
    role: Literal["admin"] = "admin"
    wallet: WalletOut


class SubadminOut(PrincipalBase):
    role: Literal["subadmin"] = "subadmin"
    wallet: WalletOut
    createdSellers: int = 0  # Number of sellers this subadmin created


class SellerOut(PrincipalBase):
    role: Literal["seller"] = "seller"
    wallet: WalletOut
    userCreationCharge: float = 0
    createdUsers: int = 0  # Number of users this seller created


class UserOut(PrincipalBase):
    role: Literal["user"] = "user"
    planExpiry: Optional[str] = None
    devices: List[str] = []


PrincipalOut = Annotated[
    Union[AdminOut, SubadminOut, SellerOut, UserOut],
    Field(discriminator="role"),
]


class PrincipalListOut(BaseModel):
    items: List[PrincipalOut]
    total: int


class DashboardStatsOut(BaseModel):
    totalUsers: int
    totalSellers: int
    totalSubadmins: int
