"""
Wallet Ledger

Append-only credit/debit log per user. The balance is never stored:
it is recomputed as sum(credit) - sum(debit) on every read, inside
whatever transaction the caller holds.
"""

import logging
from decimal import Decimal
from typing import Union

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.models import User, WalletEntry, WalletEntryType

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def wallet_lock_query(user_id: int):
    return select(User.id).where(User.id == user_id).with_for_update()


async def lock_wallet(db: AsyncSession, user_id: int) -> None:
    """Hold the user row until commit so concurrent spends read the balance one at a time."""
    await db.execute(wallet_lock_query(user_id))


async def get_wallet_balance(db: AsyncSession, user_id: int) -> Decimal:
    signed_amount = case(
        (WalletEntry.type == WalletEntryType.CREDIT, WalletEntry.amount),
        else_=-WalletEntry.amount,
    )
    result = await db.execute(
        select(func.coalesce(func.sum(signed_amount), 0)).where(
            WalletEntry.user_id == user_id
        )
    )
    return Decimal(str(result.scalar_one())).quantize(ZERO)


async def get_wallet_transactions(db: AsyncSession, user_id: int) -> list[WalletEntry]:
    result = await db.execute(
        select(WalletEntry)
        .where(WalletEntry.user_id == user_id)
        .order_by(WalletEntry.id.desc())
    )
    return list(result.scalars().all())


def _entry(
    user_id: int,
    reference_id: Union[int, str],
    entry_type: WalletEntryType,
    amount: Decimal,
) -> WalletEntry:
    if amount <= 0:
        raise ValueError(f"Wallet {entry_type.value} amount must be positive, got {amount}")
    return WalletEntry(
        user_id=user_id,
        reference_id=str(reference_id),
        type=entry_type,
        amount=amount,
    )


def add_credit(
    db: AsyncSession,
    user_id: int,
    reference_id: Union[int, str],
    amount: Decimal,
) -> WalletEntry:
    """Stage a credit entry on the session; the caller commits."""
    entry = _entry(user_id, reference_id, WalletEntryType.CREDIT, amount)
    db.add(entry)
    logger.info(f"Wallet credit staged: user={user_id} ref={reference_id} amount={amount}")
    return entry


def add_debit(
    db: AsyncSession,
    user_id: int,
    reference_id: Union[int, str],
    amount: Decimal,
) -> WalletEntry:
    """Stage a debit entry on the session; the caller commits."""
    entry = _entry(user_id, reference_id, WalletEntryType.DEBIT, amount)
    db.add(entry)
    logger.info(f"Wallet debit staged: user={user_id} ref={reference_id} amount={amount}")
    return entry
