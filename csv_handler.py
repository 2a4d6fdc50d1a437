"""
CSV export and import of expenses and settlements
"""
from __future__ import annotations
import csv
from typing import List

from currencies import format_amount, normalize_currency
from errors import DataIntegrityError
from models import Expense, Settlement, Split
from utils import parse_amount

EXPENSE_COLUMNS = [
    'id', 'group_id', 'date', 'paid_by', 'amount', 'currency', 'split_type',
    'splits', 'description', 'category', 'deleted_at',
]
SETTLEMENT_COLUMNS = [
    'id', 'group_id', 'date', 'payer_id', 'payee_id', 'amount', 'currency', 'note', 'deleted_at',
]


SPLIT_SEPARATORS = (':', ';')


def _splits_to_str(e: Expense) -> str:
    parts = []
    for s in e.splits:
        if any(sep in s.user_id for sep in SPLIT_SEPARATORS):
            raise DataIntegrityError(
                f"Expense {e.id}: user id {s.user_id!r} cannot be written to the splits column"
            )
        part = f"{s.user_id}:{format_amount(s.amount, e.currency)}"
        if s.percentage is not None:
            part += f":{s.percentage}"
        parts.append(part)
    return ';'.join(parts)


def _parse_splits(raw: str, expense_id: str) -> List[Split]:
    splits = []
    for chunk in raw.split(';'):
        if not chunk.strip():
            continue
        fields = chunk.split(':')
        if len(fields) not in (2, 3):
            raise DataIntegrityError(f"Expense {expense_id}: malformed split {chunk!r}")
        pct = parse_amount(fields[2].strip()) if len(fields) == 3 else None
        splits.append(Split(fields[0].strip(), parse_amount(fields[1].strip()), pct))
    return splits


def export_expenses_to_csv(expenses: List[Expense], filepath: str) -> None:
    """
    Export expenses list to CSV file
    Splits column: user:amount[:percentage] joined with ';'
    """
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(EXPENSE_COLUMNS)
        for e in expenses:
            writer.writerow([
                e.id,
                e.group_id,
                e.date,
                e.paid_by,
                format_amount(e.amount, e.currency),
                e.currency,
                e.split_type,
                _splits_to_str(e),
                e.description,
                e.category,
                e.deleted_at or '',
            ])


def import_expenses_from_csv(filepath: str) -> List[Expense]:
    """
    Import expenses list from CSV file
    Participants are taken from the split column, in order
    """
    expenses = []
    with open(filepath, 'r', newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        for row in reader:
            splits = _parse_splits(row['splits'], row['id'])
            expenses.append(Expense(
                id=row['id'],
                group_id=row['group_id'],
                paid_by=row['paid_by'],
                amount=parse_amount(row['amount']),
                currency=normalize_currency(row['currency']),
                split_type=row['split_type'],
                participants=[s.user_id for s in splits],
                splits=splits,
                description=row.get('description', ''),
                category=row.get('category', ''),
                date=row['date'],
                deleted_at=row.get('deleted_at') or None,
            ))
    return expenses


def export_settlements_to_csv(settlements: List[Settlement], filepath: str) -> None:
    """Export settlements list to CSV file"""
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(SETTLEMENT_COLUMNS)
        for s in settlements:
            writer.writerow([
                s.id,
                s.group_id,
                s.date,
                s.payer_id,
                s.payee_id,
                format_amount(s.amount, s.currency),
                s.currency,
                s.note,
                s.deleted_at or '',
            ])


def import_settlements_from_csv(filepath: str) -> List[Settlement]:
    """Import settlements list from CSV file"""
    settlements = []
    with open(filepath, 'r', newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        for row in reader:
            settlements.append(Settlement(
                id=row['id'],
                group_id=row['group_id'],
                payer_id=row['payer_id'],
                payee_id=row['payee_id'],
                amount=parse_amount(row['amount']),
                currency=normalize_currency(row['currency']),
                date=row['date'],
                note=row.get('note', ''),
                deleted_at=row.get('deleted_at') or None,
            ))
    return settlements
