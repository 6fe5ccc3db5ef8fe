# app/models/principal.py
"""
Database model for principals.
Every account in the portal (admin, subadmin, seller, user) lives in one
table with a unique username, a role tag and an optional creator edge.
"""
import uuid
from enum import Enum
from typing import Optional

from tortoise import fields, models


class Role(str, Enum):
    """Hierarchy tiers, highest first."""
    ADMIN = "admin"
    SUBADMIN = "subadmin"
    SELLER = "seller"
    USER = "user"


# Roles that own a wallet; users never transact
FUNDED_ROLES = frozenset({Role.ADMIN, Role.SUBADMIN, Role.SELLER})


class Principal(models.Model):
    """
    Principal database model.

    Relationships:
    - created_by: the principal that provisioned this one (null for the admin,
      for accounts the admin creates, and for seeded accounts)
    - created_children: reverse of created_by (subadmin -> sellers, seller -> users)
    - wallet: one-to-one Wallet, only for admin / subadmin / seller

    Security:
    - Password is stored as an argon2 hash, never returned by the API
    - Username is unique across all roles
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique principal identifier
    username = fields.CharField(max_length=256, unique=True, index=True)  # Unique across all roles
    password_hash = fields.CharField(max_length=255)
    role = fields.CharEnumField(Role, max_length=16)  # Immutable after creation

    # Ownership edge only: deleting a creator never deletes what it created
    created_by: Optional[fields.ForeignKeyNullableRelation["Principal"]] = fields.ForeignKeyField(
        "models.Principal",
        related_name="created_children",
        null=True,
        on_delete=fields.SET_NULL,
    )

    plan_expiry = fields.DatetimeField()  # Subscription validity for users; far-future sentinel otherwise
    devices = fields.JSONField(default=list)  # Device identifiers bound to a user
    user_creation_charge = fields.DecimalField(max_digits=14, decimal_places=2, null=True)  # Sellers only
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "principals"
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"{self.role.value}:{self.username}"

    @property
    def is_funded(self) -> bool:
        return self.role in FUNDED_ROLES
