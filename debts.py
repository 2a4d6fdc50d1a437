"""
Debt simplification.

Greedy settlement: the largest debtor pays the largest creditor as much as
either side allows, the remainder goes back in line, repeat. Each step clears
at least one person, so n people with a non-zero balance need at most n - 1
payments. This is not guaranteed to be the global minimum (that problem is
NP-hard) but it is deterministic: ties are broken by user id.
"""
from __future__ import annotations
import heapq
import logging
from typing import Dict, List, Mapping, Tuple, Union

from currencies import from_minor_units, normalize_currency, to_minor_units
from errors import ConservationViolation
from models import SimplifiedDebt, UserBalance
from utils import AmountLike, parse_amount

logger = logging.getLogger(__name__)


def check_conservation(net_units: Mapping[str, int], currency: str) -> None:
    """Net balances in one currency must add up to exactly zero"""
    total = sum(net_units.values())
    if total != 0:
        logger.error("Balances in %s are off by %s", currency, from_minor_units(total, currency))
        raise ConservationViolation(
            f"Balances in {currency} sum to {from_minor_units(total, currency)}, expected 0"
        )


def _to_units(balances: Mapping[str, Union[AmountLike, UserBalance]], currency: str) -> Dict[str, int]:
    net: Dict[str, int] = {}
    for uid, value in balances.items():
        if isinstance(value, UserBalance):
            value = value.net_balance
        net[uid] = to_minor_units(parse_amount(value), currency)
    return net


def simplify_debts(
    balances: Mapping[str, Union[AmountLike, UserBalance]],
    currency: str,
) -> List[SimplifiedDebt]:
    """
    Turn net balances (positive -> is owed, negative -> owes) into suggested
    payments. Applying every returned payment brings each balance to zero.
    """
    currency = normalize_currency(currency)
    net = _to_units(balances, currency)
    check_conservation(net, currency)

    # heapq is a min-heap: store negated amounts so the largest comes first,
    # and the user id as second key so equal amounts pop in id order
    creditors: List[Tuple[int, str]] = [(-u, uid) for uid, u in net.items() if u > 0]
    debtors: List[Tuple[int, str]] = [(u, uid) for uid, u in net.items() if u < 0]
    heapq.heapify(creditors)
    heapq.heapify(debtors)

    payments: List[SimplifiedDebt] = []
    while creditors and debtors:
        credit_neg, creditor = heapq.heappop(creditors)
        debt_neg, debtor = heapq.heappop(debtors)
        credit, debt = -credit_neg, -debt_neg

        pay = min(credit, debt)
        payments.append(SimplifiedDebt(debtor, creditor, from_minor_units(pay, currency), currency))

        if credit > pay:
            heapq.heappush(creditors, (-(credit - pay), creditor))
        if debt > pay:
            heapq.heappush(debtors, (-(debt - pay), debtor))

    logger.debug("Simplified %d non-zero balances in %s into %d payments",
                 sum(1 for u in net.values() if u), currency, len(payments))
    return payments


def simplify_debts_for_all_currencies(
    balances_by_currency: Mapping[str, Mapping[str, Union[AmountLike, UserBalance]]],
) -> List[SimplifiedDebt]:
    """Simplify each currency on its own; currencies in sorted order"""
    out: List[SimplifiedDebt] = []
    for currency in sorted(balances_by_currency):
        out.extend(simplify_debts(balances_by_currency[currency], currency))
    return out

