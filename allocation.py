"""
Share allocation: turn an expense amount into owed shares that sum to it exactly
"""
from __future__ import annotations
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Mapping, Optional, Sequence, Tuple

from errors import IntegrityViolationError, InvalidAmountError, InvalidSplitError, ZeroParticipantsError
from models import ZERO, Allocation, ExpenseRecord, PendingShare, ShareEntry, SplitMode
from utils import CENT, MoneyLike, positive_money, to_money

logger = logging.getLogger(__name__)

FOUR_PLACES = Decimal("0.0001")


def per_person_share(amount: Decimal, count: int) -> Tuple[Decimal, Decimal]:
    """
    Rounded per-person value of amount over count people, and the rounding
    error (amount - rounded * count) that one of them has to absorb.
    """
    if count <= 0:
        raise ZeroParticipantsError("Equal split needs at least one participant")
    per_person = (amount / count).quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)
    rounded = per_person.quantize(CENT, rounding=ROUND_HALF_UP)
    return rounded, amount - rounded * count


def equal_split(amount: Decimal, count: int) -> List[Decimal]:
    """Split amount into count parts; the last part absorbs the rounding error"""
    rounded, rounding_error = per_person_share(amount, count)
    parts = [rounded] * count
    parts[-1] = rounded + rounding_error
    return parts


def _pending_labels(count: int, labels: Optional[Sequence[str]]) -> List[str]:
    if labels is None:
        return [f"pending-{i}" for i in range(1, count + 1)]
    if len(labels) != count:
        raise InvalidSplitError(f"Got {len(labels)} pending labels for {count} pending participants")
    return list(labels)


def _allocate_equal(expense_id, amount, participant_ids, pending_count, pending_labels):
    if pending_count < 0:
        raise InvalidSplitError(f"Pending participant count cannot be negative: {pending_count}")
    duplicates = sorted({pid for pid in participant_ids if participant_ids.count(pid) > 1})
    if duplicates:
        raise InvalidSplitError(f"Participants listed more than once: {', '.join(duplicates)}")
    labels = _pending_labels(pending_count, pending_labels)
    if participant_ids:
        # last real participant absorbs the drift; pending entries keep the rounded value
        rounded, rounding_error = per_person_share(amount, len(participant_ids) + pending_count)
        pending_parts = [rounded] * pending_count
        real_parts = [rounded] * len(participant_ids)
        real_parts[-1] = rounded + rounding_error
    else:
        real_parts = []
        pending_parts = equal_split(amount, pending_count)
    last = (real_parts or pending_parts)[-1]
    if last < 0:
        count = len(participant_ids) + pending_count
        logger.error("Equal split of %s over %d people leaves %s for the last share", amount, count, last)
        raise IntegrityViolationError(f"Amount {amount} is too small to split {count} ways")
    shares = [ShareEntry(expense_id, pid, amt) for pid, amt in zip(participant_ids, real_parts)]
    pending = [PendingShare(label, amt) for label, amt in zip(labels, pending_parts)]
    return shares, pending


def _custom_amount(who: str, value: MoneyLike) -> Decimal:
    try:
        d = to_money(value)
    except InvalidAmountError as exc:
        raise InvalidSplitError(f"Invalid share for {who}: {exc}") from exc
    if d < 0:
        raise InvalidSplitError(f"Share for {who} is negative: {d}")
    return d


def _allocate_custom(expense_id, amount, custom_shares, pending_shares):
    custom_shares = custom_shares or {}
    pending_shares = pending_shares or {}
    if not custom_shares and not pending_shares:
        raise InvalidSplitError("Custom shares must be provided for custom split type")

    shares = [ShareEntry(expense_id, pid, _custom_amount(pid, v)) for pid, v in custom_shares.items()]
    pending = [PendingShare(label, _custom_amount(label, v)) for label, v in pending_shares.items()]

    total = sum((s.amount_owed for s in shares), ZERO) + sum((p.amount_owed for p in pending), ZERO)
    if total != amount:
        raise InvalidSplitError(f"Sum of custom shares ({total}) must equal the expense amount ({amount})")
    return shares, pending


def check_allocation(amount: Decimal, allocation: Allocation) -> None:
    """Raise IntegrityViolationError unless shares are non-negative and sum to amount exactly"""
    if allocation.total != amount:
        logger.error("Allocation total %s does not match expense amount %s", allocation.total, amount)
        raise IntegrityViolationError(f"Allocated {allocation.total} for an expense of {amount}")
    negative = [s for s in allocation.shares if s.amount_owed < 0] + \
               [p for p in allocation.pending_shares if p.amount_owed < 0]
    if negative:
        logger.error("Allocation of %s produced negative shares: %s", amount, negative)
        raise IntegrityViolationError(f"Allocation of {amount} produced negative shares")


def allocate(
    expense_id: str,
    amount: MoneyLike,
    split_mode: SplitMode,
    participant_ids: Sequence[str] = (),
    pending_count: int = 0,
    custom_shares: Optional[Mapping[str, MoneyLike]] = None,
    pending_shares: Optional[Mapping[str, MoneyLike]] = None,
    pending_labels: Optional[Sequence[str]] = None,
) -> Allocation:
    """
    Split amount into per-participant shares.

    EQUAL divides among participant_ids plus pending_count invitees; the last
    real participant (or the last pending one when there are no real
    participants) absorbs the rounding error. CUSTOM takes explicit amounts
    from custom_shares (participant id -> amount) and pending_shares
    (label -> amount) that must add up to amount exactly.

    Pending shares are returned for the caller to display or store; they are
    never ShareEntry rows.
    """
    amount = positive_money(amount)
    if split_mode is SplitMode.EQUAL:
        if custom_shares or pending_shares:
            raise InvalidSplitError("Custom shares are only allowed with the custom split type")
        shares, pending = _allocate_equal(expense_id, amount, list(participant_ids), pending_count, pending_labels)
    elif split_mode is SplitMode.CUSTOM:
        shares, pending = _allocate_custom(expense_id, amount, custom_shares, pending_shares)
    else:
        raise InvalidSplitError(f"Unknown split mode: {split_mode!r}")

    allocation = Allocation(shares=shares, pending_shares=pending)
    check_allocation(amount, allocation)
    logger.debug("Allocated %s (%s) for expense %s: %s", amount, split_mode.value, expense_id, allocation)
    return allocation


def build_expense(
    expense_id: str,
    group_id: str,
    description: str,
    amount: MoneyLike,
    payer_id: str,
    split_mode: SplitMode,
    participant_ids: Sequence[str] = (),
    pending_count: int = 0,
    custom_shares: Optional[Mapping[str, MoneyLike]] = None,
    pending_shares: Optional[Mapping[str, MoneyLike]] = None,
    pending_labels: Optional[Sequence[str]] = None,
    created_at: Optional[datetime] = None,
) -> ExpenseRecord:
    """Allocate and return the expense with its shares attached"""
    allocation = allocate(
        expense_id, amount, split_mode, participant_ids, pending_count,
        custom_shares, pending_shares, pending_labels,
    )
    if split_mode is SplitMode.CUSTOM:
        participant_ids = [s.participant_id for s in allocation.shares]
    return ExpenseRecord(
        id=expense_id,
        group_id=group_id,
        description=description,
        amount=positive_money(amount),
        payer_id=payer_id,
        split_mode=split_mode,
        participant_ids=tuple(participant_ids),
        shares=tuple(allocation.shares),
        pending_shares=tuple(allocation.pending_shares),
        created_at=created_at,
    )
