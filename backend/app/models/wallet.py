# app/models/wallet.py
import uuid
from decimal import Decimal

from tortoise import fields, models


class Wallet(models.Model):
    """
    Spendable balance of a funded principal.
    - balance: cached running sum of the transaction log; only the ledger
      service writes it, in the same database transaction as the log append
    - May be negative (administrative debits are not funds-checked)
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    principal = fields.OneToOneField(
        "models.Principal", related_name="wallet", on_delete=fields.CASCADE
    )
    balance = fields.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "wallets"


class WalletTransaction(models.Model):
    """
    Append-only wallet log entry.
    amount > 0 is a credit (deposit), amount < 0 a debit (spend / withdrawal).
    """
    id = fields.IntField(pk=True)  # Insertion order is the log order
    wallet = fields.ForeignKeyField(
        "models.Wallet", related_name="transactions", on_delete=fields.CASCADE
    )
    amount = fields.DecimalField(max_digits=14, decimal_places=2)
    description = fields.CharField(max_length=512)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "wallet_transactions"
        ordering = ["id"]
