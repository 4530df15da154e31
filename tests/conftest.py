from datetime import datetime, timezone
from decimal import Decimal

import pytest

from allocation import build_expense
from models import GroupSnapshot, Participant, SettlementRecord, SplitMode


@pytest.fixture
def members():
    return (Participant("a", "Alice"), Participant("b", "Bob"), Participant("c", "Carol"))


def make_expense(expense_id, amount, payer_id, participant_ids, **kwargs):
    kwargs.setdefault("split_mode", SplitMode.EQUAL)
    description = kwargs.pop("description", f"expense {expense_id}")
    return build_expense(
        expense_id=expense_id,
        group_id="g1",
        description=description,
        amount=amount,
        payer_id=payer_id,
        participant_ids=participant_ids,
        created_at=datetime(2026, 1, 2, 12, 0, tzinfo=timezone.utc),
        **kwargs,
    )


def make_settlement(settlement_id, from_id, to_id, amount):
    return SettlementRecord(
        id=settlement_id,
        group_id="g1",
        from_id=from_id,
        to_id=to_id,
        amount=Decimal(amount),
        settled_at=datetime(2026, 1, 3, 9, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def snapshot(members):
    expenses = (
        make_expense("e1", "90.00", "a", ["a", "b", "c"]),
        make_expense("e2", "30.00", "b", ["a", "b", "c"]),
        make_expense(
            "e3", "25.00", "c", [],
            split_mode=SplitMode.CUSTOM,
            custom_shares={"a": "5.00", "b": "20.00"},
        ),
    )
    settlements = (make_settlement("s1", "b", "a", "10.00"),)
    return GroupSnapshot(group_id="g1", name="Trip", members=members,
                         expenses=expenses, settlements=settlements)
