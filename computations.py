"""
Balance computations for SettleLedger
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence

from errors import IntegrityViolationError
from models import ZERO, ExpenseRecord, GroupSnapshot, Participant, SettlementRecord

logger = logging.getLogger(__name__)


def active_expenses(expenses: Iterable[ExpenseRecord]) -> List[ExpenseRecord]:
    """Expenses that are not soft-deleted"""
    return [e for e in expenses if not e.is_deleted]


def apply_settlements(
    base: Dict[str, Decimal],
    settlements: Iterable[SettlementRecord],
) -> Dict[str, Decimal]:
    """
    Fold recorded settlements into balances.
    The payer (debtor) goes up by the amount, the receiver (creditor) goes down.
    Returns a new dict; parties missing from base are skipped.
    """
    balances = dict(base)
    for s in settlements:
        if s.from_id in balances:
            balances[s.from_id] += s.amount
        else:
            logger.debug("Settlement %s: payer %s is not a member, skipped", s.id, s.from_id)
        if s.to_id in balances:
            balances[s.to_id] -= s.amount
        else:
            logger.debug("Settlement %s: receiver %s is not a member, skipped", s.id, s.to_id)
    return balances


def base_balances(member_ids: Sequence[str], expenses: Iterable[ExpenseRecord]) -> Dict[str, Decimal]:
    """paid - owed per member over non-deleted expenses"""
    paid = {m: ZERO for m in member_ids}
    owed = {m: ZERO for m in member_ids}
    for e in active_expenses(expenses):
        if e.payer_id in paid:
            paid[e.payer_id] += e.amount
        for share in e.shares:
            if share.participant_id in owed:
                owed[share.participant_id] += share.amount_owed
    return {m: paid[m] - owed[m] for m in member_ids}


def compute_balances(
    members: Sequence[Participant],
    expenses: Iterable[ExpenseRecord],
    settlements: Iterable[SettlementRecord] = (),
) -> Dict[str, Decimal]:
    """
    Signed balance per member: positive -> is owed money; negative -> owes money.
    Keys follow member order.
    """
    member_ids = [m.id for m in members]
    return apply_settlements(base_balances(member_ids, expenses), settlements)


def off_ledger_total(members: Sequence[Participant], expenses: Iterable[ExpenseRecord]) -> Decimal:
    """Pending participants' share of live expenses paid by members; nobody on the ledger owes it"""
    member_ids = {m.id for m in members}
    return sum((e.pending_total for e in active_expenses(expenses) if e.payer_id in member_ids), ZERO)


def check_conservation(balances: Dict[str, Decimal], off_ledger: Decimal = ZERO) -> None:
    """Balances must sum to the off-ledger pending total (zero without pending participants)"""
    total = sum(balances.values(), ZERO)
    if total != off_ledger:
        logger.error("Balances sum to %s, expected %s: %s", total, off_ledger, balances)
        raise IntegrityViolationError(f"Balances sum to {total}, expected {off_ledger}")


def compute_group_balances(snapshot: GroupSnapshot) -> Dict[str, Decimal]:
    """compute_balances() for a snapshot, with the conservation check"""
    balances = compute_balances(snapshot.members, snapshot.expenses, snapshot.settlements)
    check_conservation(balances, off_ledger_total(snapshot.members, snapshot.expenses))
    return balances


def compute_summary(snapshot: GroupSnapshot) -> Dict[str, dict]:
    """
    Compute summary statistics for each member.
    Returns dict mapping member id -> {paid, owed, settled_paid, settled_received, net}
    """
    member_ids = snapshot.member_ids
    paid = {m: ZERO for m in member_ids}
    owed = {m: ZERO for m in member_ids}
    settled_paid = {m: ZERO for m in member_ids}
    settled_received = {m: ZERO for m in member_ids}

    for e in active_expenses(snapshot.expenses):
        if e.payer_id in paid:
            paid[e.payer_id] += e.amount
        for share in e.shares:
            if share.participant_id in owed:
                owed[share.participant_id] += share.amount_owed
    for s in snapshot.settlements:
        if s.from_id in settled_paid:
            settled_paid[s.from_id] += s.amount
        if s.to_id in settled_received:
            settled_received[s.to_id] += s.amount

    balances = compute_group_balances(snapshot)
    return {
        m: {
            "paid": paid[m],
            "owed": owed[m],
            "settled_paid": settled_paid[m],
            "settled_received": settled_received[m],
            "net": balances[m],
        } for m in member_ids
    }
