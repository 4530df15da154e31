from datetime import datetime, timezone
from decimal import Decimal

from conftest import make_expense
from csv_handler import (
    export_expenses_to_csv,
    export_settlements_to_csv,
    import_expenses_from_csv,
    import_settlements_from_csv,
)


def test_expenses_csv_round_trip(snapshot, tmp_path):
    deleted = snapshot.expenses[0].soft_deleted("a", datetime(2026, 2, 1, tzinfo=timezone.utc))
    expenses = [deleted, *snapshot.expenses[1:],
                make_expense("e4", "10.00", "a", ["a"], pending_count=1, pending_labels=["dana@example.com"])]
    path = str(tmp_path / "expenses.csv")
    export_expenses_to_csv(expenses, path)

    loaded = import_expenses_from_csv(path)
    assert loaded == expenses
    assert loaded[0].is_deleted
    assert loaded[3].pending_total == Decimal("5.00")


def test_expenses_csv_columns(snapshot, tmp_path):
    path = tmp_path / "expenses.csv"
    export_expenses_to_csv(snapshot.expenses[:1], str(path))
    header, row = path.read_text(encoding="utf-8").splitlines()
    assert header.startswith("id,group_id,description,amount,payer_id")
    assert "a:30.00;b:30.00;c:30.00" in row


def test_settlements_csv_round_trip(snapshot, tmp_path):
    path = str(tmp_path / "settlements.csv")
    export_settlements_to_csv(snapshot.settlements, path)
    assert import_settlements_from_csv(path) == list(snapshot.settlements)
