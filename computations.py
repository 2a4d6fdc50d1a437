"""
Ledger reducer: replays a group's expenses and settlements into per-currency
balances, and the composed "group balances" pipeline built on top of it.
"""
from __future__ import annotations
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Set, Tuple

from currencies import from_minor_units, normalize_currency, to_minor_units
from debts import check_conservation, simplify_debts_for_all_currencies
from errors import DataIntegrityError, InvalidAmount
from models import Expense, GroupBalances, Settlement, UserBalance
from utils import now_iso, parse_amount

logger = logging.getLogger(__name__)

# (debtor, creditor) -> minor units owed
Pairs = Dict[Tuple[str, str], int]
CurrencyBalances = Dict[str, Dict[str, UserBalance]]


def expense_pair_deltas(expense: Expense) -> Tuple[str, Pairs]:
    """
    What one expense adds to the debt graph: every participant other than the
    payer owes the payer their share.
    Returns (currency, pairs).
    """
    currency = normalize_currency(expense.currency)
    total = to_minor_units(parse_amount(expense.amount), currency)
    if not expense.splits:
        raise DataIntegrityError(f"Expense {expense.id} has no splits")

    share_units = [(s.user_id, to_minor_units(parse_amount(s.amount), currency)) for s in expense.splits]
    split_total = sum(u for _, u in share_units)
    if split_total != total:
        logger.error(
            "Expense %s splits sum to %s but total is %s %s",
            expense.id, from_minor_units(split_total, currency),
            from_minor_units(total, currency), currency,
        )
        raise DataIntegrityError(
            f"Expense {expense.id}: splits sum to {from_minor_units(split_total, currency)}, "
            f"expected {from_minor_units(total, currency)} {currency}"
        )

    pairs: Pairs = defaultdict(int)
    for uid, units in share_units:
        if uid == expense.paid_by:
            continue
        pairs[(uid, expense.paid_by)] += units
    return currency, dict(pairs)


def settlement_pair_deltas(settlement: Settlement) -> Tuple[str, Pairs]:
    """A settlement reduces what the payer owes the payee"""
    currency = normalize_currency(settlement.currency)
    amount = parse_amount(settlement.amount)
    if amount <= 0:
        raise InvalidAmount(f"Settlement {settlement.id} amount must be positive, got {amount}")
    if settlement.payer_id == settlement.payee_id:
        raise DataIntegrityError(f"Settlement {settlement.id} pays {settlement.payer_id} to themselves")
    return currency, {(settlement.payer_id, settlement.payee_id): -to_minor_units(amount, currency)}


def add_pairs(target: Pairs, deltas: Mapping[Tuple[str, str], int], sign: int = 1) -> None:
    for key, units in deltas.items():
        target[key] = target.get(key, 0) + sign * units


def net_pairs(raw: Mapping[Tuple[str, str], int]) -> Pairs:
    """
    Collapse A->B and B->A into a single edge in the direction of the larger
    debt. Negative values (overpaid settlements) flip direction here.
    """
    net: Dict[Tuple[str, str], int] = {}
    for (debtor, creditor), units in raw.items():
        a, b = sorted((debtor, creditor))
        signed = units if (debtor, creditor) == (a, b) else -units
        net[(a, b)] = net.get((a, b), 0) + signed

    out: Pairs = {}
    for (a, b), units in sorted(net.items()):
        if units > 0:
            out[(a, b)] = units
        elif units < 0:
            out[(b, a)] = -units
    return out


def ordered_users(member_ids: Iterable[str], seen: Iterable[str]) -> List[str]:
    """Group members in their given order, then anyone else (departed members) sorted"""
    members = list(dict.fromkeys(member_ids))
    known = set(members)
    return members + sorted(set(seen) - known)


def pairs_to_balances(pairs: Pairs, users: List[str], currency: str) -> Dict[str, UserBalance]:
    """Derive owes / owed_by / net for each user from a netted pair table"""
    owes: Dict[str, Dict[str, int]] = {uid: {} for uid in users}
    owed_by: Dict[str, Dict[str, int]] = {uid: {} for uid in users}
    for (debtor, creditor), units in pairs.items():
        owes.setdefault(debtor, {})[creditor] = units
        owed_by.setdefault(creditor, {})[debtor] = units
    extra = sorted((set(owes) | set(owed_by)) - set(users))

    balances: Dict[str, UserBalance] = {}
    for uid in users + extra:
        user_owes = owes.get(uid, {})
        user_owed_by = owed_by.get(uid, {})
        net = sum(user_owed_by.values()) - sum(user_owes.values())
        balances[uid] = UserBalance(
            user_id=uid,
            owes={k: from_minor_units(user_owes[k], currency) for k in sorted(user_owes)},
            owed_by={k: from_minor_units(user_owed_by[k], currency) for k in sorted(user_owed_by)},
            net_balance=from_minor_units(net, currency),
        )
    return balances


def balances_to_pairs(balances: Mapping[str, UserBalance], currency: str) -> Pairs:
    """Inverse of pairs_to_balances, read from the `owes` side"""
    pairs: Pairs = {}
    for debtor, balance in balances.items():
        for creditor, amount in balance.owes.items():
            key = (debtor, creditor)
            pairs[key] = pairs.get(key, 0) + to_minor_units(parse_amount(amount), currency)
    return pairs


def net_units(balances: Mapping[str, UserBalance], currency: str) -> Dict[str, int]:
    return {uid: to_minor_units(b.net_balance, currency) for uid, b in balances.items()}


def reduce_ledger(
    expenses: Iterable[Expense],
    settlements: Iterable[Settlement],
    group_member_ids: Iterable[str],
) -> CurrencyBalances:
    """
    Replay expenses and settlements into currency -> user -> UserBalance.
    Soft-deleted records are skipped; a currency without any live record is
    left out; every group member appears in each currency that is present.
    """
    members = list(group_member_ids)
    raw: Dict[str, Pairs] = {}
    seen: Dict[str, Set[str]] = {}

    n_exp = n_set = 0
    for expense in expenses:
        if expense.is_deleted:
            continue
        currency, deltas = expense_pair_deltas(expense)
        add_pairs(raw.setdefault(currency, {}), deltas)
        users = seen.setdefault(currency, set())
        users.add(expense.paid_by)
        users.update(s.user_id for s in expense.splits)
        n_exp += 1

    for settlement in settlements:
        if settlement.is_deleted:
            continue
        currency, deltas = settlement_pair_deltas(settlement)
        add_pairs(raw.setdefault(currency, {}), deltas)
        seen.setdefault(currency, set()).update((settlement.payer_id, settlement.payee_id))
        n_set += 1

    logger.debug("Reduced %d expenses and %d settlements across %d currencies", n_exp, n_set, len(raw))

    result: CurrencyBalances = {}
    for currency in sorted(raw):
        balances = pairs_to_balances(net_pairs(raw[currency]), ordered_users(members, seen[currency]), currency)
        check_conservation(net_units(balances, currency), currency)
        result[currency] = balances
    return result


def group_balances(
    group_id: str,
    expenses: Iterable[Expense],
    settlements: Iterable[Settlement],
    group_member_ids: Iterable[str],
) -> GroupBalances:
    """Reduce the ledger, then simplify debts in every currency present"""
    balances = reduce_ledger(expenses, settlements, group_member_ids)
    return GroupBalances(
        group_id=group_id,
        balances_by_currency=balances,
        simplified_debts=simplify_debts_for_all_currencies(balances),
        last_updated=now_iso(),
    )


def user_currency_summary(balances_by_currency: CurrencyBalances, user_id: str) -> Dict[str, Dict[str, Decimal]]:
    """
    Per-currency totals for one user.
    Returns dict mapping currency -> {net_balance, total_owed, total_owing}
    """
    out: Dict[str, Dict[str, Decimal]] = {}
    for currency, balances in balances_by_currency.items():
        balance = balances.get(user_id)
        if balance is None:
            continue
        zero = from_minor_units(0, currency)
        out[currency] = {
            "net_balance": balance.net_balance,
            "total_owed": sum(balance.owed_by.values(), zero),
            "total_owing": sum(balance.owes.values(), zero),
        }
    return out
