# app/schemas/provisioning.py
"""
Request models for provisioning subordinate principals and adjusting wallets.
Field constraints mirror the service-level checks so malformed bodies are
rejected before they reach the engine.
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class SubadminCreateIn(BaseModel):
    """Admin creates a subadmin, optionally funding its wallet."""
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    initialBalance: Decimal = Field(default=Decimal("0"), ge=0)


class SellerCreateIn(BaseModel):
    """Admin or subadmin creates a seller. A subadmin pays initialBalance from its own wallet."""
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    userCreationCharge: Decimal = Field(default=Decimal("0"), ge=0)  # Charged to the seller per user
    initialBalance: Decimal = Field(default=Decimal("0"), ge=0)


class UserCreateIn(BaseModel):
    """Seller creates an end user; the seller is charged its userCreationCharge."""
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    planDays: int = Field(default=30, ge=1)  # Subscription length in days


class WalletAdjustIn(BaseModel):
    """
    Signed wallet adjustment.
    amount > 0 deposits, amount < 0 withdraws. A subadmin's deposit into its
    own seller is paid from the subadmin's wallet.
    """
    amount: Decimal
    description: Optional[str] = None


class WalletAdjustOut(BaseModel):
    id: str
    username: str
    balance: float
    actorBalance: Optional[float] = None  # Acting subadmin's balance after a transfer
