"""
Service layer: feeds group snapshots to the core and hands results to a sink
"""
from __future__ import annotations
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from allocation import build_expense
from computations import compute_group_balances, compute_summary
from errors import InvalidOperationError, InvalidSplitError, NotFoundError
from models import ExpenseRecord, GroupSnapshot, SettlementRecord, SettlementTransaction, SplitMode
from simplifier import settle_group
from utils import MoneyLike, now, positive_money

logger = logging.getLogger(__name__)


class LedgerSink(ABC):
    """Persists computed records and sends notifications on behalf of the ledger"""

    @abstractmethod
    def save_expense(self, expense: ExpenseRecord) -> None:
        pass

    @abstractmethod
    def delete_expense(self, expense: ExpenseRecord) -> None:
        pass

    @abstractmethod
    def save_settlement(self, settlement: SettlementRecord) -> None:
        pass

    @abstractmethod
    def delete_settlement(self, settlement: SettlementRecord) -> None:
        pass

    @abstractmethod
    def notify_expense(self, expense: ExpenseRecord, recipient_ids: List[str]) -> None:
        pass

    @abstractmethod
    def notify_settlements(self, group_id: str, transactions: List[SettlementTransaction]) -> None:
        pass


class NullSink(LedgerSink):
    """Sink that stores and sends nothing"""

    def save_expense(self, expense):
        pass

    def delete_expense(self, expense):
        pass

    def save_settlement(self, settlement):
        pass

    def delete_settlement(self, settlement):
        pass

    def notify_expense(self, expense, recipient_ids):
        pass

    def notify_settlements(self, group_id, transactions):
        pass


class GroupLedger:
    """
    One group's expenses and settlements.

    Every mutation replaces the snapshot with a new immutable value; balances
    and settle-up suggestions are always recomputed from the full history.
    """

    def __init__(self, snapshot: GroupSnapshot, sink: Optional[LedgerSink] = None):
        self.snapshot = snapshot
        self.sink = sink or NullSink()

    @property
    def group_id(self) -> str:
        return self.snapshot.group_id

    def _require_member(self, participant_id: str, role: str = "Participant") -> None:
        if self.snapshot.member(participant_id) is None:
            raise NotFoundError(f"{role} {participant_id} is not a member of group {self.group_id}")

    def get_expense(self, expense_id: str) -> ExpenseRecord:
        for e in self.snapshot.expenses:
            if e.id == expense_id:
                return e
        raise NotFoundError(f"Expense {expense_id} not found")

    def get_settlement(self, settlement_id: str) -> SettlementRecord:
        for s in self.snapshot.settlements:
            if s.id == settlement_id:
                return s
        raise NotFoundError(f"Settlement {settlement_id} not found in group {self.group_id}")

    # ---------- Expenses ----------
    def add_expense(
        self,
        description: str,
        amount: MoneyLike,
        payer_id: str,
        split_mode: SplitMode = SplitMode.EQUAL,
        custom_shares: Optional[Mapping[str, MoneyLike]] = None,
        pending_shares: Optional[Mapping[str, MoneyLike]] = None,
        participant_ids: Optional[Sequence[str]] = None,
    ) -> ExpenseRecord:
        """
        Allocate and record a new expense.
        EQUAL splits over participant_ids (all members by default) plus every
        pending member; CUSTOM uses the given shares.
        """
        self._require_member(payer_id, "Payer")
        if split_mode is SplitMode.EQUAL and (custom_shares or pending_shares):
            raise InvalidSplitError("Custom shares are only allowed with the custom split type")
        if participant_ids is None:
            participant_ids = self.snapshot.member_ids
        for pid in list(participant_ids) + list(custom_shares or {}):
            self._require_member(pid)
        pending = list(self.snapshot.pending_members)
        for label in pending_shares or {}:
            if label not in pending:
                raise NotFoundError(f"Pending member {label} not found in group {self.group_id}")

        expense = build_expense(
            expense_id=uuid.uuid4().hex,
            group_id=self.group_id,
            description=description,
            amount=amount,
            payer_id=payer_id,
            split_mode=split_mode,
            participant_ids=participant_ids,
            pending_count=len(pending) if split_mode is SplitMode.EQUAL else 0,
            custom_shares=custom_shares,
            pending_shares=pending_shares,
            pending_labels=pending if split_mode is SplitMode.EQUAL else None,
            created_at=now(),
        )
        self.sink.save_expense(expense)
        self.snapshot = replace(self.snapshot, expenses=self.snapshot.expenses + (expense,))
        logger.info("Expense %s added to group %s: %s paid by %s", expense.id, self.group_id, expense.amount, payer_id)

        recipients = [m for m in self.snapshot.member_ids if m != payer_id]
        try:
            self.sink.notify_expense(expense, recipients)
        except Exception:
            # a failed notification must not undo the expense
            logger.exception("Failed to send expense notifications for %s", expense.id)
        return expense

    def _replace_expense(self, expense: ExpenseRecord) -> None:
        self.snapshot = replace(
            self.snapshot,
            expenses=tuple(expense if e.id == expense.id else e for e in self.snapshot.expenses),
        )

    def delete_expense(self, expense_id: str, actor_id: str) -> ExpenseRecord:
        """Soft delete; the expense stays in history but no longer counts"""
        expense = self.get_expense(expense_id)
        if expense.is_deleted:
            raise InvalidOperationError(f"Expense {expense_id} is already deleted")
        deleted = expense.soft_deleted(actor_id, now())
        self.sink.save_expense(deleted)
        self._replace_expense(deleted)
        logger.info("Expense %s soft-deleted by %s", expense_id, actor_id)
        return deleted

    def permanently_delete_expense(self, expense_id: str) -> None:
        expense = self.get_expense(expense_id)
        if not expense.is_deleted:
            raise InvalidOperationError("Expense must be soft deleted before permanent deletion")
        self.sink.delete_expense(expense)
        self.snapshot = replace(
            self.snapshot,
            expenses=tuple(e for e in self.snapshot.expenses if e.id != expense_id),
        )
        logger.info("Expense %s permanently deleted", expense_id)

    # ---------- Settlements ----------
    def record_settlement(
        self,
        from_id: str,
        to_id: str,
        amount: MoneyLike,
        message: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> SettlementRecord:
        """Record that from_id (the current user, the debtor) paid to_id (the creditor)"""
        self._require_member(from_id)
        self._require_member(to_id)
        if from_id == to_id:
            raise InvalidOperationError("Cannot settle up with yourself")
        settlement = SettlementRecord(
            id=uuid.uuid4().hex,
            group_id=self.group_id,
            from_id=from_id,
            to_id=to_id,
            amount=positive_money(amount),
            settled_at=now(),
            message=message,
            image_url=image_url,
        )
        self.sink.save_settlement(settlement)
        self.snapshot = replace(self.snapshot, settlements=self.snapshot.settlements + (settlement,))
        logger.info("Settlement %s: %s paid %s %s", settlement.id, from_id, to_id, settlement.amount)
        return settlement

    def delete_settlement(self, settlement_id: str) -> None:
        settlement = self.get_settlement(settlement_id)
        self.sink.delete_settlement(settlement)
        self.snapshot = replace(
            self.snapshot,
            settlements=tuple(s for s in self.snapshot.settlements if s.id != settlement_id),
        )
        logger.info("Settlement %s deleted from group %s", settlement_id, self.group_id)

    def settlement_history(self) -> List[SettlementRecord]:
        """Recorded settlements, newest first"""
        return sorted(
            self.snapshot.settlements,
            key=lambda s: s.settled_at.timestamp() if s.settled_at else 0.0,
            reverse=True,
        )

    # ---------- Reports ----------
    def balances(self) -> Dict[str, Decimal]:
        return compute_group_balances(self.snapshot)

    def summary(self) -> Dict[str, dict]:
        return compute_summary(self.snapshot)

    def suggest_settlements(self) -> List[SettlementTransaction]:
        return settle_group(self.snapshot)

    def process_settlements(self) -> List[SettlementTransaction]:
        """Compute settle-up payments and notify everyone involved"""
        transactions = self.suggest_settlements()
        self.sink.notify_settlements(self.group_id, transactions)
        return transactions
