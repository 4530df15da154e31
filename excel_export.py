"""
Excel export functionality for SettleLedger
"""
from __future__ import annotations
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from computations import active_expenses, compute_summary
from models import GroupSnapshot
from simplifier import settle_group
from utils import format_timestamp

MONEY_FORMAT = "0.00"


def _style_header(ws, row=1):
    """Apply header styling to worksheet row"""
    header_font = Font(bold=True, color="FFFFFF")
    fill = PatternFill("solid", fgColor="4F81BD")
    align = Alignment(horizontal="center", vertical="center")
    thin = Side(style="thin", color="A0A0A0")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for cell in ws[row]:
        cell.font = header_font
        cell.fill = fill
        cell.alignment = align
        cell.border = border


def _autosize_columns(ws, min_width=10, max_width=45):
    """Auto-size columns based on content"""
    for col in range(1, ws.max_column + 1):
        letter = get_column_letter(col)
        max_len = 0
        for cell in ws[letter]:
            if cell.value is None:
                continue
            max_len = max(max_len, len(str(cell.value)))
        ws.column_dimensions[letter].width = max(min_width, min(max_width, max_len + 2))


def _money_columns(ws, first_col, last_col, first_row=2):
    for r in range(first_row, ws.max_row + 1):
        for c in range(first_col, last_col + 1):
            ws.cell(r, c).number_format = MONEY_FORMAT


def _new_sheet(wb, title, headers):
    ws = wb.create_sheet(title)
    ws.append(headers)
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    return ws


def _amount_header(label, currency):
    return f"{label} ({currency})" if currency else label


def _write_expenses(wb, snapshot: GroupSnapshot, currency: Optional[str] = None) -> None:
    members = snapshot.members
    names = snapshot.names()
    headers = ["date", "description", "paid by", _amount_header("amount", currency), "pending"]
    ws = _new_sheet(wb, "Expenses", headers + [m.name for m in members])
    for e in active_expenses(snapshot.expenses):
        row = [
            format_timestamp(e.created_at) or "",
            e.description,
            names.get(e.payer_id, e.payer_id),
            e.amount,
            e.pending_total,
        ]
        row += [e.share_of(m.id) for m in members]
        ws.append(row)

    # Footer totals using Excel formulas for transparency
    last_data_row = ws.max_row
    if last_data_row >= 2:
        ws.append(["TOTALS"] + [""] * (4 + len(members)))
        trow = ws.max_row
        ws.cell(trow, 1).font = Font(bold=True)
        for col in range(4, 6 + len(members)):
            letter = get_column_letter(col)
            ws.cell(trow, col).value = f"=SUM({letter}2:{letter}{last_data_row})"

    _money_columns(ws, 4, 5 + len(members))
    _autosize_columns(ws)


def export_excel(snapshot: GroupSnapshot, filepath: str, currency: Optional[str] = None) -> None:
    """
    Export group to Excel file with multiple sheets:
    - Expenses (live expenses, one share column per member)
    - Summary
    - Transfers (simplified settle-up payments)
    - Settlements (recorded history)

    When currency is given (e.g. Settings.currency) it labels the amount columns.
    """
    wb = Workbook()
    # remove default sheet
    wb.remove(wb.active)
    names = snapshot.names()

    _write_expenses(wb, snapshot, currency)

    # Summary sheet
    summary = compute_summary(snapshot)
    ws = _new_sheet(wb, "Summary", ["Member", "Paid", "Owed", "Settled (paid)", "Settled (received)", "Net"])
    for m in snapshot.members:
        s = summary[m.id]
        ws.append([m.name, s["paid"], s["owed"], s["settled_paid"], s["settled_received"], s["net"]])
    _money_columns(ws, 2, 6)
    _autosize_columns(ws)

    # Transfers sheet
    ws = _new_sheet(wb, "Transfers", ["From (Debtor)", "To (Creditor)", _amount_header("Amount", currency)])
    for t in settle_group(snapshot):
        ws.append([t.from_name or t.from_id, t.to_name or t.to_id, t.amount])
    _money_columns(ws, 3, 3)
    _autosize_columns(ws)

    # Settlements sheet
    ws = _new_sheet(wb, "Settlements", ["Date", "From", "To", _amount_header("Amount", currency), "Message"])
    for s in snapshot.settlements:
        ws.append([
            format_timestamp(s.settled_at) or "",
            names.get(s.from_id, s.from_id),
            names.get(s.to_id, s.to_id),
            s.amount,
            s.message or "",
        ])
    _money_columns(ws, 4, 4)
    _autosize_columns(ws)

    wb.save(filepath)
