from __future__ import annotations
import random
from decimal import Decimal
from typing import List

import pytest

from models import Expense, Settlement, Split, SplitType
from splits import split_equal

MEMBERS = ["alice", "bob", "carol", "dave"]


def make_expense(id, paid_by, amount, participants, currency="USD", deleted_at=None, group_id="g1"):
    """Equal-split expense"""
    return Expense(
        id=id,
        group_id=group_id,
        paid_by=paid_by,
        amount=Decimal(amount),
        currency=currency,
        split_type=SplitType.EQUAL,
        participants=list(participants),
        splits=split_equal(amount, currency, participants),
        date="2025-01-01",
        deleted_at=deleted_at,
    )


def make_exact_expense(id, paid_by, amount, shares, currency="USD"):
    return Expense(
        id=id,
        group_id="g1",
        paid_by=paid_by,
        amount=Decimal(amount),
        currency=currency,
        split_type=SplitType.EXACT,
        participants=list(shares),
        splits=[Split(uid, Decimal(v)) for uid, v in shares.items()],
        date="2025-01-01",
    )


def make_settlement(id, payer, payee, amount, currency="USD", deleted_at=None):
    return Settlement(
        id=id,
        group_id="g1",
        payer_id=payer,
        payee_id=payee,
        amount=Decimal(amount),
        currency=currency,
        date="2025-01-02",
        deleted_at=deleted_at,
    )


def random_ledger(rng: random.Random, n_expenses=20, n_settlements=8, currencies=("USD", "EUR", "JPY")):
    expenses: List[Expense] = []
    for i in range(n_expenses):
        currency = rng.choice(currencies)
        scale = 1 if currency == "JPY" else 100
        amount = Decimal(rng.randint(1, 50000)) / scale
        participants = rng.sample(MEMBERS, rng.randint(1, len(MEMBERS)))
        expenses.append(make_expense(f"e{i}", rng.choice(MEMBERS), str(amount), participants, currency))
    settlements: List[Settlement] = []
    for i in range(n_settlements):
        currency = rng.choice(currencies)
        scale = 1 if currency == "JPY" else 100
        payer, payee = rng.sample(MEMBERS, 2)
        amount = Decimal(rng.randint(1, 20000)) / scale
        settlements.append(make_settlement(f"s{i}", payer, payee, str(amount), currency))
    return expenses, settlements


@pytest.fixture
def members():
    return list(MEMBERS)
