"""
Data models for the group balance core
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional


class SplitType:
    """How an expense total is divided among its participants"""
    EQUAL = "equal"
    EXACT = "exact"
    PERCENTAGE = "percentage"

    ALL = (EQUAL, EXACT, PERCENTAGE)


@dataclass
class Split:
    """One participant's share of an expense"""
    user_id: str
    amount: Decimal
    percentage: Optional[Decimal] = None  # only for percentage splits


@dataclass
class Expense:
    """Single shared cost paid by one member"""
    id: str
    group_id: str
    paid_by: str
    amount: Decimal
    currency: str
    split_type: str
    participants: List[str]
    splits: List[Split]
    description: str = ""
    category: str = ""
    date: str = ""  # YYYY-MM-DD
    created_by: str = ""
    created_at: str = ""
    updated_at: str = ""
    deleted_at: Optional[str] = None
    deleted_by: Optional[str] = None

    @property
    def is_deleted(self) -> bool:
        return bool(self.deleted_at)


@dataclass
class Settlement:
    """Direct payment from payer to payee"""
    id: str
    group_id: str
    payer_id: str
    payee_id: str
    amount: Decimal
    currency: str
    date: str = ""
    note: str = ""
    created_by: str = ""
    created_at: str = ""
    updated_at: str = ""
    deleted_at: Optional[str] = None

    @property
    def is_deleted(self) -> bool:
        return bool(self.deleted_at)


@dataclass
class UserBalance:
    """One user's position in one currency"""
    user_id: str
    owes: Dict[str, Decimal] = field(default_factory=dict)  # creditor -> amount
    owed_by: Dict[str, Decimal] = field(default_factory=dict)  # debtor -> amount
    net_balance: Decimal = Decimal("0")  # positive -> is owed money


@dataclass
class SimplifiedDebt:
    """Suggested payment"""
    from_user: str
    to_user: str
    amount: Decimal
    currency: str


@dataclass
class GroupBalances:
    """Balances of a group across all currencies plus suggested payments"""
    group_id: str
    balances_by_currency: Dict[str, Dict[str, UserBalance]]
    simplified_debts: List[SimplifiedDebt]
    last_updated: str = ""


@dataclass
class GroupSnapshot:
    """Everything the core needs about a group, as read from storage"""
    group_id: str
    member_ids: List[str]
    expenses: List[Expense] = field(default_factory=list)
    settlements: List[Settlement] = field(default_factory=list)
    version: int = 1
