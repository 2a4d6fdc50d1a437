"""
Incremental balance maintenance.

A stored balance table can be kept current by applying the change one record
makes instead of replaying the whole ledger. Every function returns a new
currency -> user -> UserBalance mapping and leaves its input untouched.
Unlike a full replay, a currency stays in the table (with zero balances) once
its last record is deleted.
"""
from __future__ import annotations
import logging
from typing import Iterable, Mapping, Set

from computations import (
    CurrencyBalances,
    Pairs,
    add_pairs,
    balances_to_pairs,
    expense_pair_deltas,
    net_pairs,
    net_units,
    ordered_users,
    pairs_to_balances,
    settlement_pair_deltas,
)
from debts import check_conservation
from models import Expense, Settlement, UserBalance

logger = logging.getLogger(__name__)


def _apply(
    existing: Mapping[str, Mapping[str, UserBalance]],
    currency: str,
    delta: Pairs,
    member_ids: Iterable[str],
    sign: int,
) -> CurrencyBalances:
    members = list(member_ids)
    result: CurrencyBalances = {}
    for cur in sorted(set(existing) | {currency}):
        current = existing.get(cur, {})
        pairs = balances_to_pairs(current, cur)
        seen: Set[str] = set(current)
        if cur == currency:
            add_pairs(pairs, delta, sign)
            for debtor, creditor in delta:
                seen.update((debtor, creditor))
        balances = pairs_to_balances(net_pairs(pairs), ordered_users(members, seen), cur)
        check_conservation(net_units(balances, cur), cur)
        result[cur] = balances
    return result


def apply_expense_created(
    balances: Mapping[str, Mapping[str, UserBalance]], expense: Expense, member_ids: Iterable[str]
) -> CurrencyBalances:
    logger.info("Applying expense creation to balance: group=%s expense=%s", expense.group_id, expense.id)
    currency, delta = expense_pair_deltas(expense)
    return _apply(balances, currency, delta, member_ids, 1)


def apply_expense_deleted(
    balances: Mapping[str, Mapping[str, UserBalance]], expense: Expense, member_ids: Iterable[str]
) -> CurrencyBalances:
    logger.info("Applying expense deletion to balance: group=%s expense=%s", expense.group_id, expense.id)
    currency, delta = expense_pair_deltas(expense)
    return _apply(balances, currency, delta, member_ids, -1)


def apply_expense_updated(
    balances: Mapping[str, Mapping[str, UserBalance]],
    old_expense: Expense,
    new_expense: Expense,
    member_ids: Iterable[str],
) -> CurrencyBalances:
    """Remove the old version's effect, then add the new one (currency may change)"""
    logger.info("Applying expense update to balance: group=%s expense=%s", new_expense.group_id, new_expense.id)
    members = list(member_ids)
    old_currency, old_delta = expense_pair_deltas(old_expense)
    new_currency, new_delta = expense_pair_deltas(new_expense)
    updated = _apply(balances, old_currency, old_delta, members, -1)
    return _apply(updated, new_currency, new_delta, members, 1)


def apply_settlement_created(
    balances: Mapping[str, Mapping[str, UserBalance]], settlement: Settlement, member_ids: Iterable[str]
) -> CurrencyBalances:
    logger.info("Applying settlement creation to balance: group=%s settlement=%s",
                settlement.group_id, settlement.id)
    currency, delta = settlement_pair_deltas(settlement)
    return _apply(balances, currency, delta, member_ids, 1)


def apply_settlement_deleted(
    balances: Mapping[str, Mapping[str, UserBalance]], settlement: Settlement, member_ids: Iterable[str]
) -> CurrencyBalances:
    logger.info("Applying settlement deletion to balance: group=%s settlement=%s",
                settlement.group_id, settlement.id)
    currency, delta = settlement_pair_deltas(settlement)
    return _apply(balances, currency, delta, member_ids, -1)


def apply_settlement_updated(
    balances: Mapping[str, Mapping[str, UserBalance]],
    old_settlement: Settlement,
    new_settlement: Settlement,
    member_ids: Iterable[str],
) -> CurrencyBalances:
    logger.info("Applying settlement update to balance: group=%s settlement=%s",
                new_settlement.group_id, new_settlement.id)
    members = list(member_ids)
    old_currency, old_delta = settlement_pair_deltas(old_settlement)
    new_currency, new_delta = settlement_pair_deltas(new_settlement)
    updated = _apply(balances, old_currency, old_delta, members, -1)
    return _apply(updated, new_currency, new_delta, members, 1)

