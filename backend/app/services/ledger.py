# app/services/ledger.py
"""
Wallet ledger: the only code that changes money.

Each wallet keeps a cached balance next to an append-only transaction log.
Every mutation goes through record_signed_transaction(), which locks the
wallet row, appends exactly one log entry and moves the balance by the same
signed amount inside one database transaction, so balance always equals the
sum of the log.

All public functions accept an optional open transaction (``connection``) so
the provisioning engine can compose several ledger and directory calls into
one atomic unit. Without it each call runs in its own transaction.
"""
import logging
import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional, Tuple

from tortoise.backends.base.client import BaseDBAsyncClient

from app.core.db import atomic
from app.core.errors import InsufficientBalance, NotFound, ValidationError
from app.models.wallet import Wallet, WalletTransaction

logger = logging.getLogger("uvicorn.error")

CENT = Decimal("0.01")
# Columns are NUMERIC(14, 2): at most 12 integer digits
MAX_AMOUNT = Decimal("1000000000000")
ZERO = Decimal("0")
INITIAL_BALANCE_DESCRIPTION = "Initial balance"


def to_amount(value) -> Decimal:
    """
    Parse a currency amount into a Decimal with minor-unit (cent) precision.

    Accepts int, float, numeric str and Decimal. Booleans, NaN, infinities and
    non-numeric input raise ValidationError, as does any magnitude the
    wallet columns cannot store (AMOUNT_TOO_LARGE).
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError("Amount must be a number", code="AMOUNT_INVALID")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError("Amount must be a finite number", code="AMOUNT_INVALID")
    try:
        # str() first so floats convert by their shortest repr (0.1 -> 0.10)
        amount = Decimal(str(value)) if isinstance(value, (int, float)) else Decimal(value)
        if not amount.is_finite():
            raise ValidationError("Amount must be a finite number", code="AMOUNT_INVALID")
        if abs(amount) >= MAX_AMOUNT:
            raise ValidationError("Amount is too large", code="AMOUNT_TOO_LARGE", limit=MAX_AMOUNT)
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("Amount must be a number", code="AMOUNT_INVALID")


async def get_wallet(
    principal_id,
    *,
    lock: bool = False,
    connection: Optional[BaseDBAsyncClient] = None,
) -> Wallet:
    """
    Load a principal's wallet, optionally with a row lock (SELECT ... FOR UPDATE).

    Raises:
        NotFound: the principal has no wallet (users never transact)
    """
    qs = Wallet.filter(principal_id=principal_id)
    if lock:
        qs = qs.select_for_update()
    if connection is not None:
        qs = qs.using_db(connection)
    wallet = await qs.get_or_none()
    if wallet is None:
        raise NotFound("Wallet not found", code="WALLET_NOT_FOUND")
    return wallet


async def _lock_wallets(connection: BaseDBAsyncClient, *principal_ids) -> dict:
    """Lock several wallets in a stable order so two transfers never deadlock."""
    wallets = {}
    for pid in sorted({str(p) for p in principal_ids}):
        wallets[pid] = await get_wallet(pid, lock=True, connection=connection)
    return wallets


async def _append(
    wallet: Wallet,
    signed_amount: Decimal,
    description: str,
    connection: BaseDBAsyncClient,
) -> Decimal:
    wallet.balance = wallet.balance + signed_amount
    await WalletTransaction.create(
        wallet_id=wallet.id,
        amount=signed_amount,
        description=description,
        using_db=connection,
    )
    await wallet.save(using_db=connection, update_fields=["balance", "updated_at"])
    return wallet.balance


async def open_wallet(
    principal_id,
    initial_balance=ZERO,
    *,
    connection: Optional[BaseDBAsyncClient] = None,
) -> Wallet:
    """
    Create the wallet of a newly provisioned funded principal.

    A positive initial balance is seeded through one credit labelled
    "Initial balance"; a zero balance leaves the log empty.
    """
    initial_balance = to_amount(initial_balance)
    if initial_balance < ZERO:
        raise ValidationError("Initial balance cannot be negative", code="AMOUNT_NEGATIVE")
    async with atomic(connection) as conn:
        wallet = await Wallet.create(principal_id=principal_id, balance=ZERO, using_db=conn)
        if initial_balance > ZERO:
            await _append(wallet, initial_balance, INITIAL_BALANCE_DESCRIPTION, conn)
        return wallet


async def record_signed_transaction(
    principal_id,
    signed_amount,
    description: str,
    *,
    connection: Optional[BaseDBAsyncClient] = None,
) -> Decimal:
    """
    Append one signed entry to a wallet and move its balance by the same amount.

    This is the primitive every other ledger operation reduces to. It performs
    no sufficiency check.

    Returns:
        The new balance.
    """
    amount = to_amount(signed_amount)
    async with atomic(connection) as conn:
        wallet = await get_wallet(principal_id, lock=True, connection=conn)
        new_balance = await _append(wallet, amount, description, conn)
    logger.info("[ledger] wallet=%s amount=%s balance=%s desc=%r",
                principal_id, amount, new_balance, description)
    return new_balance


async def credit(
    principal_id,
    amount,
    description: str,
    *,
    connection: Optional[BaseDBAsyncClient] = None,
) -> Decimal:
    """Deposit a strictly positive amount. Returns the new balance."""
    amount = to_amount(amount)
    if amount <= ZERO:
        raise ValidationError("Credit amount must be positive", code="AMOUNT_NOT_POSITIVE")
    return await record_signed_transaction(principal_id, amount, description, connection=connection)


async def debit(
    principal_id,
    amount,
    description: str,
    *,
    enforce_funds: bool = True,
    connection: Optional[BaseDBAsyncClient] = None,
) -> Decimal:
    """
    Withdraw a non-negative amount. Returns the new balance.

    With enforce_funds (every provisioning-triggered debit) the wallet must
    hold at least ``amount``; administrative debits pass enforce_funds=False
    and may take the balance negative. A zero debit is still recorded.

    Raises:
        InsufficientBalance: enforce_funds and balance < amount
    """
    amount = to_amount(amount)
    if amount < ZERO:
        raise ValidationError("Debit amount cannot be negative", code="AMOUNT_NEGATIVE")
    async with atomic(connection) as conn:
        wallet = await get_wallet(principal_id, lock=True, connection=conn)
        if enforce_funds and wallet.balance < amount:
            raise InsufficientBalance(required=amount, current=wallet.balance)
        new_balance = await _append(wallet, -amount, description, conn)
    logger.info("[ledger] debit wallet=%s amount=%s balance=%s desc=%r",
                principal_id, amount, new_balance, description)
    return new_balance


async def transfer(
    from_id,
    to_id,
    amount,
    description: str,
    credit_description: Optional[str] = None,
    *,
    connection: Optional[BaseDBAsyncClient] = None,
) -> Tuple[Decimal, Decimal]:
    """
    Move a positive amount between two wallets, all or nothing.

    The source is funds-checked before anything is written; if it cannot
    cover the amount neither wallet changes.

    Returns:
        (source balance, destination balance) after the transfer.
    """
    amount = to_amount(amount)
    if amount <= ZERO:
        raise ValidationError("Transfer amount must be positive", code="AMOUNT_NOT_POSITIVE")
    if str(from_id) == str(to_id):
        raise ValidationError("Cannot transfer to the same wallet", code="TRANSFER_SAME_WALLET")
    async with atomic(connection) as conn:
        wallets = await _lock_wallets(conn, from_id, to_id)
        source, target = wallets[str(from_id)], wallets[str(to_id)]
        if source.balance < amount:
            raise InsufficientBalance(required=amount, current=source.balance)
        source_balance = await _append(source, -amount, description, conn)
        target_balance = await _append(target, amount, credit_description or description, conn)
    logger.info("[ledger] transfer %s -> %s amount=%s", from_id, to_id, amount)
    return source_balance, target_balance


async def list_transactions(
    principal_id,
    *,
    connection: Optional[BaseDBAsyncClient] = None,
) -> List[WalletTransaction]:
    """Return a wallet's log, oldest first."""
    wallet = await get_wallet(principal_id, connection=connection)
    qs = WalletTransaction.filter(wallet_id=wallet.id).order_by("id")
    if connection is not None:
        qs = qs.using_db(connection)
    return await qs


async def audit_wallet(principal_id) -> Tuple[Decimal, Decimal]:
    """
    Compare a wallet's cached balance with the sum of its log.

    Returns:
        (cached balance, balance recomputed from the log)
    """
    wallet = await get_wallet(principal_id)
    entries = await WalletTransaction.filter(wallet_id=wallet.id)
    computed = sum((e.amount for e in entries), ZERO)
    return wallet.balance, computed


async def reconcile_wallet(principal_id) -> Decimal:
    """
    Rewrite a wallet's cached balance from its log if the two disagree.

    Returns:
        The reconciled balance.
    """
    async with atomic() as conn:
        wallet = await get_wallet(principal_id, lock=True, connection=conn)
        entries = await WalletTransaction.filter(wallet_id=wallet.id).using_db(conn)
        computed = sum((e.amount for e in entries), ZERO)
        if wallet.balance != computed:
            logger.warning("[ledger] balance drift wallet=%s cached=%s log=%s -> repaired",
                           principal_id, wallet.balance, computed)
            wallet.balance = computed
            await wallet.save(using_db=conn, update_fields=["balance", "updated_at"])
        return wallet.balance
