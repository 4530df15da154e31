"""
CSV export and import functionality for SettleLedger
"""
from __future__ import annotations
import csv
from typing import Dict, Iterable, List

from models import ExpenseRecord, PendingShare, SettlementRecord, ShareEntry, SplitMode
from utils import format_timestamp, parse_timestamp, to_money

EXPENSE_COLUMNS = ['id', 'group_id', 'description', 'amount', 'payer_id', 'split_mode',
                   'participants', 'shares', 'pending_shares', 'created_at', 'deleted_at', 'deleted_by']
SETTLEMENT_COLUMNS = ['id', 'group_id', 'from_id', 'to_id', 'amount', 'settled_at', 'message', 'image_url']


def _pairs_to_str(pairs: Iterable) -> str:
    return ';'.join(f"{k}:{v}" for k, v in pairs)


def _str_to_pairs(s: str) -> Dict[str, str]:
    out = {}
    if s:
        for pair in s.split(';'):
            if ':' in pair:
                k, v = pair.rsplit(':', 1)
                out[k.strip()] = v.strip()
    return out


def export_expenses_to_csv(expenses: Iterable[ExpenseRecord], filepath: str) -> None:
    """
    Export expenses list to CSV file
    shares and pending_shares are written as "id:amount;id:amount"
    """
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(EXPENSE_COLUMNS)
        for e in expenses:
            writer.writerow([
                e.id,
                e.group_id,
                e.description,
                str(e.amount),
                e.payer_id,
                e.split_mode.value,
                ';'.join(e.participant_ids),
                _pairs_to_str((s.participant_id, s.amount_owed) for s in e.shares),
                _pairs_to_str((p.label, p.amount_owed) for p in e.pending_shares),
                format_timestamp(e.created_at) or '',
                format_timestamp(e.deleted_at) or '',
                e.deleted_by or '',
            ])


def import_expenses_from_csv(filepath: str) -> List[ExpenseRecord]:
    """
    Import expenses list from CSV file
    Returns list of ExpenseRecord objects
    """
    expenses = []

    with open(filepath, 'r', encoding='utf-8') as f:
        reader = csv.DictReader(f)

        for row in reader:
            expense_id = row['id']
            shares = tuple(ShareEntry(expense_id, pid, to_money(v))
                           for pid, v in _str_to_pairs(row['shares']).items())
            pending = tuple(PendingShare(label, to_money(v))
                            for label, v in _str_to_pairs(row.get('pending_shares', '')).items())
            participants = tuple(p for p in row.get('participants', '').split(';') if p)

            expenses.append(ExpenseRecord(
                id=expense_id,
                group_id=row.get('group_id', ''),
                description=row.get('description', ''),
                amount=to_money(row['amount']),
                payer_id=row['payer_id'],
                split_mode=SplitMode(row.get('split_mode') or SplitMode.EQUAL.value),
                participant_ids=participants,
                shares=shares,
                pending_shares=pending,
                created_at=parse_timestamp(row.get('created_at')),
                deleted_at=parse_timestamp(row.get('deleted_at')),
                deleted_by=row.get('deleted_by') or None,
            ))

    return expenses


def export_settlements_to_csv(settlements: Iterable[SettlementRecord], filepath: str) -> None:
    """Export recorded settlements to CSV file"""
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(SETTLEMENT_COLUMNS)
        for s in settlements:
            writer.writerow([
                s.id,
                s.group_id,
                s.from_id,
                s.to_id,
                str(s.amount),
                format_timestamp(s.settled_at) or '',
                s.message or '',
                s.image_url or '',
            ])


def import_settlements_from_csv(filepath: str) -> List[SettlementRecord]:
    """Import recorded settlements from CSV file"""
    with open(filepath, 'r', encoding='utf-8') as f:
        return [
            SettlementRecord(
                id=row['id'],
                group_id=row.get('group_id', ''),
                from_id=row['from_id'],
                to_id=row['to_id'],
                amount=to_money(row['amount']),
                settled_at=parse_timestamp(row.get('settled_at')),
                message=row.get('message') or None,
                image_url=row.get('image_url') or None,
            )
            for row in csv.DictReader(f)
        ]
