"""
Debt simplification: reduce group balances to point-to-point payments
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from computations import compute_group_balances, off_ledger_total
from errors import IntegrityViolationError
from models import ZERO, GroupSnapshot, SettlementTransaction

logger = logging.getLogger(__name__)

# remaining balances below this are treated as settled
EPSILON = Decimal("0.01")


def simplify(
    balances: Mapping[str, Decimal],
    names: Optional[Mapping[str, str]] = None,
    expected_residual: Decimal = ZERO,
) -> List[SettlementTransaction]:
    """
    Greedy settlement: debtors pay creditors. balance>0 creditor; balance<0 debtor.

    Largest creditors are matched with most negative debtors first; ties keep
    the order of `balances`, so identical inputs give identical output.
    expected_residual is credit that no member can pay off (pending
    participants' shares) and is allowed to remain with the creditors.
    """
    names = names or {}
    creditors = [[p, v] for p, v in balances.items() if v > 0]
    debtors = [[p, v] for p, v in balances.items() if v < 0]
    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1])

    transactions = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor, debtor = creditors[i], debtors[j]
        amount = min(creditor[1], abs(debtor[1]))
        if amount > 0:
            transactions.append(SettlementTransaction(
                from_id=debtor[0],
                to_id=creditor[0],
                amount=amount,
                from_name=names.get(debtor[0], ""),
                to_name=names.get(creditor[0], ""),
            ))
            creditor[1] -= amount
            debtor[1] += amount
            logger.debug("%s -> %s %s", debtor[0], creditor[0], amount)
            if abs(creditor[1]) < EPSILON:
                i += 1
            if abs(debtor[1]) < EPSILON:
                j += 1
        else:
            i += 1
            j += 1

    _check_residual(creditors[i:], debtors[j:], expected_residual)
    return transactions


def _check_residual(creditors: List[list], debtors: List[list], expected_residual: Decimal) -> None:
    unpaid = [(p, v) for p, v in debtors if abs(v) >= EPSILON]
    if unpaid:
        logger.error("Debtors left unsettled after simplification: %s", unpaid)
        raise IntegrityViolationError(f"Debtors left unsettled: {unpaid}")
    residual = sum((v for _, v in creditors), ZERO)
    if abs(residual - expected_residual) >= EPSILON:
        logger.error("Creditors left with %s after simplification, expected %s", residual, expected_residual)
        raise IntegrityViolationError(f"Creditors left with {residual}, expected {expected_residual}")


def apply_transactions(
    balances: Mapping[str, Decimal],
    transactions: Iterable[SettlementTransaction],
) -> Dict[str, Decimal]:
    """Balances after every proposed payment is made"""
    out = dict(balances)
    for t in transactions:
        out[t.from_id] += t.amount
        out[t.to_id] -= t.amount
    return out


def settle_group(snapshot: GroupSnapshot) -> List[SettlementTransaction]:
    """Transactions that settle every member of the group, with display names"""
    balances = compute_group_balances(snapshot)
    return simplify(
        balances,
        names=snapshot.names(),
        expected_residual=off_ledger_total(snapshot.members, snapshot.expenses),
    )
