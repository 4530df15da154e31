"""
Data models for SettleLedger
"""
from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

ZERO = Decimal("0.00")


class SplitMode(Enum):
    """How an expense amount is divided"""
    EQUAL = "EQUAL"
    CUSTOM = "CUSTOM"


@dataclass(frozen=True)
class Participant:
    """Group member with an account"""
    id: str
    name: str


@dataclass(frozen=True)
class ShareEntry:
    """Amount one member owes for one expense"""
    expense_id: str
    participant_id: str
    amount_owed: Decimal


@dataclass(frozen=True)
class PendingShare:
    """Share of an invitee who has no account yet; never persisted as a ShareEntry"""
    label: str  # e-mail or display label of the invitee
    amount_owed: Decimal


@dataclass(frozen=True)
class Allocation:
    """Result of splitting one expense"""
    shares: List[ShareEntry]
    pending_shares: List[PendingShare]

    @property
    def pending_total(self) -> Decimal:
        return sum((p.amount_owed for p in self.pending_shares), ZERO)

    @property
    def total(self) -> Decimal:
        return sum((s.amount_owed for s in self.shares), ZERO) + self.pending_total


@dataclass(frozen=True)
class ExpenseRecord:
    """Single expense with its shares attached"""
    id: str
    group_id: str
    description: str
    amount: Decimal
    payer_id: str
    split_mode: SplitMode
    participant_ids: Tuple[str, ...]
    shares: Tuple[ShareEntry, ...] = ()
    pending_shares: Tuple[PendingShare, ...] = ()
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None  # soft-delete marker
    deleted_by: Optional[str] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def pending_total(self) -> Decimal:
        return sum((p.amount_owed for p in self.pending_shares), ZERO)

    def share_of(self, participant_id: str) -> Decimal:
        """Amount owed by participant_id on this expense (0 if not involved)"""
        return sum((s.amount_owed for s in self.shares if s.participant_id == participant_id), ZERO)

    def soft_deleted(self, actor_id: str, at: datetime) -> "ExpenseRecord":
        return replace(self, deleted_at=at, deleted_by=actor_id)


@dataclass(frozen=True)
class SettlementRecord:
    """Real-world payment from a debtor to a creditor"""
    id: str
    group_id: str
    from_id: str  # debtor who paid
    to_id: str  # creditor who received
    amount: Decimal
    settled_at: Optional[datetime] = None
    message: Optional[str] = None
    image_url: Optional[str] = None


@dataclass(frozen=True)
class SettlementTransaction:
    """Proposed payment; returned to the caller, never stored by the core"""
    from_id: str
    to_id: str
    amount: Decimal
    from_name: str = ""
    to_name: str = ""


@dataclass(frozen=True)
class GroupSnapshot:
    """Point-in-time view of a group handed to the core"""
    group_id: str
    name: str
    members: Tuple[Participant, ...]
    pending_members: Tuple[str, ...] = ()
    expenses: Tuple[ExpenseRecord, ...] = ()
    settlements: Tuple[SettlementRecord, ...] = ()
    version: int = 1

    @property
    def member_ids(self) -> List[str]:
        return [m.id for m in self.members]

    def member(self, participant_id: str) -> Optional[Participant]:
        return next((m for m in self.members if m.id == participant_id), None)

    def names(self) -> dict:
        return {m.id: m.name for m in self.members}
