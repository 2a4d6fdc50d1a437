"""
Excel balance report for a group
"""
from __future__ import annotations

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from computations import group_balances
from currencies import decimal_digits
from models import GroupSnapshot
from utils import parse_date


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
    """Size each column to its longest value"""
    for col in range(1, ws.max_column + 1):
        letter = get_column_letter(col)
        longest = max((len(str(c.value)) for c in ws[letter] if c.value is not None), default=0)
        ws.column_dimensions[letter].width = max(min_width, min(max_width, longest + 2))


def _date_cell(value):
    return parse_date(value) if value else ""


def number_format(currency: str) -> str:
    """'0.00' for USD, '0' for JPY, '0.000' for KWD"""
    digits = decimal_digits(currency)
    return "0." + "0" * digits if digits else "0"


def _new_sheet(wb, title, headers):
    ws = wb.create_sheet(title)
    ws.append(headers)
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    return ws


def export_excel(group: GroupSnapshot, filepath: str) -> None:
    """
    Export a group to an Excel file with sheets:
    - Expenses and Settlements (soft-deleted records left out)
    - one Balances sheet per currency
    - Payments (simplified debts)
    """
    result = group_balances(group.group_id, group.expenses, group.settlements, group.member_ids)

    wb = Workbook()
    # remove default sheet
    wb.remove(wb.active)

    ws = _new_sheet(wb, "Expenses", ["Date", "Description", "Paid by", "Amount", "Currency", "Split", "Shares"])
    for e in sorted((e for e in group.expenses if not e.is_deleted), key=lambda e: (e.date, e.id)):
        shares = ", ".join(f"{s.user_id} {s.amount}" for s in e.splits)
        ws.append([_date_cell(e.date), e.description, e.paid_by, e.amount, e.currency, e.split_type, shares])
        ws.cell(ws.max_row, 4).number_format = number_format(e.currency)
    _autosize_columns(ws)

    ws = _new_sheet(wb, "Settlements", ["Date", "From", "To", "Amount", "Currency", "Note"])
    for s in sorted((s for s in group.settlements if not s.is_deleted), key=lambda s: (s.date, s.id)):
        ws.append([_date_cell(s.date), s.payer_id, s.payee_id, s.amount, s.currency, s.note])
        ws.cell(ws.max_row, 4).number_format = number_format(s.currency)
    _autosize_columns(ws)

    for currency, balances in result.balances_by_currency.items():
        ws = _new_sheet(wb, f"Balances {currency}", ["User", "Owes", "Owed by", "Net"])
        fmt = number_format(currency)
        for uid, b in balances.items():
            ws.append([uid, sum(b.owes.values()), sum(b.owed_by.values()), b.net_balance])
        last = ws.max_row
        if last >= 2:
            # net column always totals zero; the formula makes that visible
            ws.append(["TOTALS", f"=SUM(B2:B{last})", f"=SUM(C2:C{last})", f"=SUM(D2:D{last})"])
            ws.cell(ws.max_row, 1).font = Font(bold=True)
        for r in range(2, ws.max_row + 1):
            for c in range(2, 5):
                ws.cell(r, c).number_format = fmt
        _autosize_columns(ws)

    ws = _new_sheet(wb, "Payments", ["From (Debtor)", "To (Creditor)", "Amount", "Currency"])
    for d in result.simplified_debts:
        ws.append([d.from_user, d.to_user, d.amount, d.currency])
        ws.cell(ws.max_row, 3).number_format = number_format(d.currency)
    _autosize_columns(ws)

    wb.save(filepath)
