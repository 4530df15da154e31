from decimal import Decimal

import pytest

from errors import InvalidOperationError, InvalidSplitError, NotFoundError, ZeroParticipantsError
from models import GroupSnapshot, Participant, SplitMode
from service import GroupLedger, LedgerSink


class RecordingSink(LedgerSink):
    def __init__(self, fail_notifications=False):
        self.saved_expenses = []
        self.deleted_expenses = []
        self.saved_settlements = []
        self.deleted_settlements = []
        self.expense_notifications = []
        self.settlement_notifications = []
        self.fail_notifications = fail_notifications

    def save_expense(self, expense):
        self.saved_expenses.append(expense)

    def delete_expense(self, expense):
        self.deleted_expenses.append(expense)

    def save_settlement(self, settlement):
        self.saved_settlements.append(settlement)

    def delete_settlement(self, settlement):
        self.deleted_settlements.append(settlement)

    def notify_expense(self, expense, recipient_ids):
        if self.fail_notifications:
            raise ConnectionError("smtp down")
        self.expense_notifications.append((expense.id, recipient_ids))

    def notify_settlements(self, group_id, transactions):
        self.settlement_notifications.append((group_id, transactions))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def ledger(members, sink):
    return GroupLedger(GroupSnapshot("g1", "Trip", members, pending_members=("dana@example.com",)), sink)


@pytest.fixture
def plain_ledger(members, sink):
    return GroupLedger(GroupSnapshot("g1", "Trip", members), sink)


def test_add_equal_expense_includes_pending_members(ledger, sink):
    expense = ledger.add_expense("Groceries", "100.00", "a")
    assert [s.amount_owed for s in expense.shares] == [Decimal("25.00")] * 3
    assert [(p.label, p.amount_owed) for p in expense.pending_shares] == [("dana@example.com", Decimal("25.00"))]
    assert sink.saved_expenses == [expense]
    assert sink.expense_notifications == [(expense.id, ["b", "c"])]
    assert ledger.snapshot.expenses == (expense,)
    assert expense.created_at is not None


def test_add_custom_expense(ledger):
    expense = ledger.add_expense("Taxi", "30.00", "b", SplitMode.CUSTOM,
                                 custom_shares={"a": "10.00", "c": "15.00"},
                                 pending_shares={"dana@example.com": "5.00"})
    assert expense.participant_ids == ("a", "c")
    assert ledger.balances() == {"a": Decimal("-10.00"), "b": Decimal("30.00"), "c": Decimal("-15.00")}


def test_add_expense_rejects_unknown_people(ledger):
    with pytest.raises(NotFoundError):
        ledger.add_expense("Dinner", "10.00", "zed")
    with pytest.raises(NotFoundError):
        ledger.add_expense("Dinner", "10.00", "a", SplitMode.CUSTOM, custom_shares={"zed": "10.00"})
    with pytest.raises(NotFoundError):
        ledger.add_expense("Dinner", "10.00", "a", SplitMode.CUSTOM, pending_shares={"eve@example.com": "10.00"})
    assert ledger.snapshot.expenses == ()


def test_add_expense_validation_errors_pass_through(members):
    ledger = GroupLedger(GroupSnapshot("g1", "Trip", members))
    with pytest.raises(InvalidSplitError):
        ledger.add_expense("Dinner", "100.00", "a", SplitMode.CUSTOM, custom_shares={"a": "99.99"})
    with pytest.raises(ZeroParticipantsError):
        ledger.add_expense("Dinner", "100.00", "a", participant_ids=[])


def test_add_expense_rejects_repeated_participants(plain_ledger, sink):
    with pytest.raises(InvalidSplitError):
        plain_ledger.add_expense("Dinner", "30.00", "b", participant_ids=["a", "b", "a"])
    assert plain_ledger.snapshot.expenses == ()
    assert sink.saved_expenses == []


def test_add_expense_equal_split_rejects_custom_shares(ledger):
    with pytest.raises(InvalidSplitError):
        ledger.add_expense("Dinner", "30.00", "a", custom_shares={"a": "30.00"})
    with pytest.raises(InvalidSplitError):
        ledger.add_expense("Dinner", "30.00", "a", pending_shares={"dana@example.com": "30.00"})
    assert ledger.snapshot.expenses == ()


def test_notification_failure_keeps_expense(members):
    sink = RecordingSink(fail_notifications=True)
    ledger = GroupLedger(GroupSnapshot("g1", "Trip", members), sink)
    expense = ledger.add_expense("Dinner", "30.00", "a")
    assert ledger.snapshot.expenses == (expense,)
    assert sink.saved_expenses == [expense]


def test_soft_delete_and_permanent_delete(ledger, sink):
    expense = ledger.add_expense("Dinner", "30.00", "a", participant_ids=["a", "b"])
    with pytest.raises(InvalidOperationError):
        ledger.permanently_delete_expense(expense.id)

    deleted = ledger.delete_expense(expense.id, "a")
    assert deleted.is_deleted and deleted.deleted_by == "a"
    assert ledger.balances() == {"a": Decimal("0.00"), "b": Decimal("0.00"), "c": Decimal("0.00")}
    with pytest.raises(InvalidOperationError):
        ledger.delete_expense(expense.id, "a")

    ledger.permanently_delete_expense(expense.id)
    assert ledger.snapshot.expenses == ()
    assert sink.deleted_expenses == [deleted]
    with pytest.raises(NotFoundError):
        ledger.get_expense(expense.id)


def test_record_settlement_moves_balances(plain_ledger, sink):
    ledger = plain_ledger
    ledger.add_expense("Hotel", "90.00", "a", participant_ids=["a", "b", "c"])
    settlement = ledger.record_settlement("b", "a", "30.00", message="thanks")
    assert settlement.from_id == "b" and settlement.to_id == "a"
    assert sink.saved_settlements == [settlement]
    assert ledger.balances() == {"a": Decimal("30.00"), "b": Decimal("0.00"), "c": Decimal("-30.00")}
    assert [(t.from_id, t.to_id, t.amount) for t in ledger.suggest_settlements()] == [("c", "a", Decimal("30.00"))]


def test_record_settlement_validation(ledger):
    with pytest.raises(NotFoundError):
        ledger.record_settlement("b", "zed", "5.00")
    with pytest.raises(InvalidOperationError):
        ledger.record_settlement("b", "b", "5.00")
    with pytest.raises(ValueError):
        ledger.record_settlement("b", "a", "0.00")


def test_delete_settlement(ledger, sink):
    settlement = ledger.record_settlement("b", "a", "5.00")
    ledger.delete_settlement(settlement.id)
    assert ledger.snapshot.settlements == ()
    assert sink.deleted_settlements == [settlement]
    with pytest.raises(NotFoundError):
        ledger.delete_settlement(settlement.id)


def test_settlement_history_newest_first(ledger):
    first = ledger.record_settlement("b", "a", "5.00")
    second = ledger.record_settlement("c", "a", "6.00")
    assert ledger.settlement_history()[0].id in {first.id, second.id}
    assert {s.id for s in ledger.settlement_history()} == {first.id, second.id}


def test_process_settlements_notifies(plain_ledger, sink):
    ledger = plain_ledger
    ledger.add_expense("Hotel", "90.00", "a", participant_ids=["a", "b", "c"])
    transactions = ledger.process_settlements()
    assert sink.settlement_notifications == [("g1", transactions)]
    assert [(t.from_name, t.to_name, t.amount) for t in transactions] == [
        ("Bob", "Alice", Decimal("30.00")),
        ("Carol", "Alice", Decimal("30.00")),
    ]


def test_pending_shares_stay_off_ledger(ledger):
    ledger.add_expense("Groceries", "100.00", "a")
    assert ledger.balances() == {"a": Decimal("75.00"), "b": Decimal("-25.00"), "c": Decimal("-25.00")}
    assert [(t.from_id, t.amount) for t in ledger.suggest_settlements()] == [
        ("b", Decimal("25.00")), ("c", Decimal("25.00"))]


def test_summary(plain_ledger):
    ledger = plain_ledger
    ledger.add_expense("Hotel", "90.00", "a", participant_ids=["a", "b", "c"])
    summary = ledger.summary()
    assert summary["a"]["paid"] == Decimal("90.00")
    assert summary["b"]["owed"] == Decimal("30.00")
    assert ledger.group_id == "g1"
    assert isinstance(ledger.snapshot.member("a"), Participant)
