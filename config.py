"""
Configuration and data loading/saving for SettleLedger
"""
from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from models import (
    ExpenseRecord,
    GroupSnapshot,
    Participant,
    PendingShare,
    SettlementRecord,
    ShareEntry,
    SplitMode,
)
from utils import app_dir, format_timestamp, parse_timestamp, to_money

DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class Settings:
    """Runtime settings"""
    data_dir: str
    log_level: str = DEFAULT_LOG_LEVEL
    currency: str = "USD"


def load_settings(path: Optional[str] = None) -> Settings:
    """Load settings.json from the data directory, then apply environment overrides"""
    base = app_dir()
    path = path or os.path.join(base, "settings.json")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        data = {}

    settings = Settings(
        data_dir=data.get("data_dir", base),
        log_level=data.get("log_level", DEFAULT_LOG_LEVEL),
        currency=data.get("currency", "USD"),
    )
    settings.log_level = os.environ.get("SETTLELEDGER_LOG_LEVEL", settings.log_level)
    settings.currency = os.environ.get("SETTLELEDGER_CURRENCY", settings.currency)
    return settings


def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging; level from argument, else SETTLELEDGER_LOG_LEVEL"""
    level = level or os.environ.get("SETTLELEDGER_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger().setLevel(numeric_level)


def init_settings(path: Optional[str] = None) -> Settings:
    """Load settings and configure logging from them"""
    settings = load_settings(path)
    configure_logging(settings.log_level)
    return settings


def load_members(path: str) -> List[Participant]:
    """Load members list from JSON file"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return [Participant(**m) for m in data.get("members", [])]
    except FileNotFoundError:
        return []


def get_default_snapshot(settings: Optional[Settings] = None) -> GroupSnapshot:
    """Create an empty group with members loaded from the data directory"""
    base = settings.data_dir if settings else app_dir()
    members = load_members(os.path.join(base, "members.json"))
    return GroupSnapshot(group_id="default", name="Default", members=tuple(members))


def _expense_to_dict(e: ExpenseRecord) -> dict:
    return {
        "id": e.id,
        "group_id": e.group_id,
        "description": e.description,
        "amount": str(e.amount),
        "payer_id": e.payer_id,
        "split_mode": e.split_mode.value,
        "participant_ids": list(e.participant_ids),
        "shares": [{"participant_id": s.participant_id, "amount_owed": str(s.amount_owed)} for s in e.shares],
        "pending_shares": [{"label": p.label, "amount_owed": str(p.amount_owed)} for p in e.pending_shares],
        "created_at": format_timestamp(e.created_at),
        "deleted_at": format_timestamp(e.deleted_at),
        "deleted_by": e.deleted_by,
    }


def _dict_to_expense(d: dict) -> ExpenseRecord:
    expense_id = d["id"]
    return ExpenseRecord(
        id=expense_id,
        group_id=d.get("group_id", ""),
        description=d.get("description", ""),
        amount=to_money(d["amount"]),
        payer_id=d["payer_id"],
        split_mode=SplitMode(d.get("split_mode", SplitMode.EQUAL.value)),
        participant_ids=tuple(d.get("participant_ids", [])),
        shares=tuple(ShareEntry(expense_id, s["participant_id"], to_money(s["amount_owed"]))
                     for s in d.get("shares", [])),
        pending_shares=tuple(PendingShare(p["label"], to_money(p["amount_owed"]))
                             for p in d.get("pending_shares", [])),
        created_at=parse_timestamp(d.get("created_at")),
        deleted_at=parse_timestamp(d.get("deleted_at")),
        deleted_by=d.get("deleted_by"),
    )


def _settlement_to_dict(s: SettlementRecord) -> dict:
    return {
        "id": s.id,
        "group_id": s.group_id,
        "from_id": s.from_id,
        "to_id": s.to_id,
        "amount": str(s.amount),
        "settled_at": format_timestamp(s.settled_at),
        "message": s.message,
        "image_url": s.image_url,
    }


def _dict_to_settlement(d: dict) -> SettlementRecord:
    return SettlementRecord(
        id=d["id"],
        group_id=d.get("group_id", ""),
        from_id=d["from_id"],
        to_id=d["to_id"],
        amount=to_money(d["amount"]),
        settled_at=parse_timestamp(d.get("settled_at")),
        message=d.get("message"),
        image_url=d.get("image_url"),
    )


def snapshot_to_dict(snapshot: GroupSnapshot) -> dict:
    """Convert GroupSnapshot to dictionary for JSON serialization"""
    return {
        "version": snapshot.version,
        "group_id": snapshot.group_id,
        "name": snapshot.name,
        "members": [{"id": m.id, "name": m.name} for m in snapshot.members],
        "pending_members": list(snapshot.pending_members),
        "expenses": [_expense_to_dict(e) for e in snapshot.expenses],
        "settlements": [_settlement_to_dict(s) for s in snapshot.settlements],
    }


def dict_to_snapshot(d: dict) -> GroupSnapshot:
    """Convert dictionary from JSON to GroupSnapshot"""
    return GroupSnapshot(
        version=d.get("version", 1),
        group_id=d.get("group_id", "default"),
        name=d.get("name", ""),
        members=tuple(Participant(**m) for m in d.get("members", [])),
        pending_members=tuple(d.get("pending_members", [])),
        expenses=tuple(_dict_to_expense(e) for e in d.get("expenses", [])),
        settlements=tuple(_dict_to_settlement(s) for s in d.get("settlements", [])),
    )


def save_snapshot(snapshot: GroupSnapshot, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot_to_dict(snapshot), f, indent=2, ensure_ascii=False)


def load_snapshot(path: str) -> GroupSnapshot:
    with open(path, "r", encoding="utf-8") as f:
        return dict_to_snapshot(json.load(f))
