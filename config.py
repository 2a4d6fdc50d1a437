"""
Snapshot loading/saving and wire (dict) conversion.
Money is written as a decimal string at currency precision and parsed
strictly on the way back in.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Dict, List, Optional

from currencies import format_amount, normalize_currency
from models import Expense, GroupBalances, GroupSnapshot, Settlement, SimplifiedDebt, Split, UserBalance
from utils import parse_amount

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def split_to_dict(split: Split, currency: str) -> dict:
    d = {"userId": split.user_id, "amount": format_amount(split.amount, currency)}
    if split.percentage is not None:
        d["percentage"] = str(split.percentage)
    return d


def dict_to_split(d: dict) -> Split:
    pct = d.get("percentage")
    return Split(
        user_id=d["userId"],
        amount=parse_amount(d["amount"]),
        percentage=parse_amount(pct) if pct is not None else None,
    )


def expense_to_dict(e: Expense) -> dict:
    return {
        "id": e.id,
        "groupId": e.group_id,
        "paidBy": e.paid_by,
        "amount": format_amount(e.amount, e.currency),
        "currency": e.currency,
        "splitType": e.split_type,
        "participants": list(e.participants),
        "splits": [split_to_dict(s, e.currency) for s in e.splits],
        "description": e.description,
        "category": e.category,
        "date": e.date,
        "createdBy": e.created_by,
        "createdAt": e.created_at,
        "updatedAt": e.updated_at,
        "deletedAt": e.deleted_at,
        "deletedBy": e.deleted_by,
    }


def dict_to_expense(d: dict) -> Expense:
    return Expense(
        id=d["id"],
        group_id=d.get("groupId", ""),
        paid_by=d["paidBy"],
        amount=parse_amount(d["amount"]),
        currency=normalize_currency(d["currency"]),
        split_type=d.get("splitType", "equal"),
        participants=list(d.get("participants", [])),
        splits=[dict_to_split(s) for s in d.get("splits", [])],
        description=d.get("description", ""),
        category=d.get("category", ""),
        date=d.get("date", ""),
        created_by=d.get("createdBy", ""),
        created_at=d.get("createdAt", ""),
        updated_at=d.get("updatedAt", ""),
        deleted_at=d.get("deletedAt"),
        deleted_by=d.get("deletedBy"),
    )


def settlement_to_dict(s: Settlement) -> dict:
    return {
        "id": s.id,
        "groupId": s.group_id,
        "payerId": s.payer_id,
        "payeeId": s.payee_id,
        "amount": format_amount(s.amount, s.currency),
        "currency": s.currency,
        "date": s.date,
        "note": s.note,
        "createdBy": s.created_by,
        "createdAt": s.created_at,
        "updatedAt": s.updated_at,
        "deletedAt": s.deleted_at,
    }


def dict_to_settlement(d: dict) -> Settlement:
    return Settlement(
        id=d["id"],
        group_id=d.get("groupId", ""),
        payer_id=d["payerId"],
        payee_id=d["payeeId"],
        amount=parse_amount(d["amount"]),
        currency=normalize_currency(d["currency"]),
        date=d.get("date", ""),
        note=d.get("note") or "",
        created_by=d.get("createdBy", ""),
        created_at=d.get("createdAt", ""),
        updated_at=d.get("updatedAt", ""),
        deleted_at=d.get("deletedAt"),
    )


def group_to_dict(group: GroupSnapshot) -> dict:
    """Convert GroupSnapshot object to dictionary for JSON serialization"""
    return {
        "version": group.version,
        "groupId": group.group_id,
        "memberIds": list(group.member_ids),
        "expenses": [expense_to_dict(e) for e in group.expenses],
        "settlements": [settlement_to_dict(s) for s in group.settlements],
    }


def dict_to_group(d: dict) -> GroupSnapshot:
    """Convert dictionary from JSON to GroupSnapshot object"""
    return GroupSnapshot(
        version=d.get("version", SNAPSHOT_VERSION),
        group_id=d.get("groupId", ""),
        member_ids=list(d.get("memberIds", [])),
        expenses=[dict_to_expense(e) for e in d.get("expenses", [])],
        settlements=[dict_to_settlement(s) for s in d.get("settlements", [])],
    )


def user_balance_to_dict(b: UserBalance, currency: str) -> dict:
    return {
        "userId": b.user_id,
        "owes": {k: format_amount(v, currency) for k, v in b.owes.items()},
        "owedBy": {k: format_amount(v, currency) for k, v in b.owed_by.items()},
        "netBalance": format_amount(b.net_balance, currency),
    }


def dict_to_user_balance(d: dict) -> UserBalance:
    return UserBalance(
        user_id=d["userId"],
        owes={k: parse_amount(v) for k, v in d.get("owes", {}).items()},
        owed_by={k: parse_amount(v) for k, v in d.get("owedBy", {}).items()},
        net_balance=parse_amount(d.get("netBalance", "0")),
    )


def simplified_debt_to_dict(debt: SimplifiedDebt) -> dict:
    return {
        "from": {"userId": debt.from_user},
        "to": {"userId": debt.to_user},
        "amount": format_amount(debt.amount, debt.currency),
        "currency": debt.currency,
    }


def balances_to_dict(balances: GroupBalances) -> dict:
    """Wire form of the group balances the API layer sends out"""
    return {
        "groupId": balances.group_id,
        "balancesByCurrency": {
            cur: {uid: user_balance_to_dict(b, cur) for uid, b in users.items()}
            for cur, users in balances.balances_by_currency.items()
        },
        "simplifiedDebts": [simplified_debt_to_dict(d) for d in balances.simplified_debts],
        "lastUpdated": balances.last_updated,
    }


def dict_to_balances_by_currency(d: Dict[str, Any]) -> Dict[str, Dict[str, UserBalance]]:
    """Read a stored `balancesByCurrency` table back (for incremental updates)"""
    return {
        normalize_currency(cur): {uid: dict_to_user_balance(b) for uid, b in users.items()}
        for cur, users in d.items()
    }


def load_group(path: str, group_id: str = "", member_ids: Optional[List[str]] = None) -> GroupSnapshot:
    """Load a group snapshot from JSON file; a missing file gives an empty group"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.info("No snapshot at %s, starting empty group %s", path, group_id)
        return GroupSnapshot(group_id=group_id, member_ids=list(member_ids or []))
    return dict_to_group(data)


def save_group(group: GroupSnapshot, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(group_to_dict(group), f, ensure_ascii=False, indent=2)
