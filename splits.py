"""
Split engine: turns an expense total into per-participant shares.

Every function here works on integer minor units of the expense currency, so
the shares it returns always add up to the total exactly, whatever the
currency precision.
"""
from __future__ import annotations
import logging
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from currencies import MONEY_CONTEXT, from_minor_units, normalize_currency, quantize, to_minor_units
from errors import InvalidParticipants, SplitMismatch
from models import Expense, Split, SplitType
from utils import AmountLike, now_iso, parse_amount, parse_positive_amount, today_str

logger = logging.getLogger(__name__)

PERCENTAGE_TOTAL = Decimal("100")
PERCENTAGE_TOLERANCE = Decimal("0.01")

SharesByUser = Union[Mapping[str, AmountLike], Iterable[Tuple[str, AmountLike]]]


def _total_units(total: AmountLike, currency: str) -> int:
    return to_minor_units(parse_positive_amount(total), currency)


def _check_participants(participant_ids: Iterable[str]) -> List[str]:
    ids = list(participant_ids)
    if not ids:
        raise InvalidParticipants("At least one participant is required")
    for uid in ids:
        if not isinstance(uid, str) or not uid.strip():
            raise InvalidParticipants(f"Invalid participant id: {uid!r}")
    if len(set(ids)) != len(ids):
        dupes = sorted({uid for uid in ids if ids.count(uid) > 1})
        raise InvalidParticipants(f"Duplicate participants: {', '.join(dupes)}")
    return ids


def _pairs(shares_by_user: SharesByUser) -> List[Tuple[str, AmountLike]]:
    if isinstance(shares_by_user, Mapping):
        return list(shares_by_user.items())
    return [(uid, value) for uid, value in shares_by_user]


def _absorb_drift(shares: List[int], drift: int, eligible: List[int]) -> None:
    """
    Move rounding drift onto the largest share, one minor unit at a time,
    re-picking the largest after every unit; an earlier share wins a tie.
    Only shares at the `eligible` indexes move, and none goes below zero.
    """
    if drift > 0:
        # the share that takes the first unit stays the largest
        top = max(eligible, key=lambda i: (shares[i], -i))
        shares[top] += drift
        return
    remaining = -drift
    while remaining:
        top = max(shares[i] for i in eligible)
        tied = [i for i in eligible if shares[i] == top]
        below = max((shares[i] for i in eligible if shares[i] < top), default=0)
        room = (top - below) * len(tied)
        if remaining >= room:
            for i in tied:
                shares[i] = below
            remaining -= room
        else:
            per_share, extra = divmod(remaining, len(tied))
            for k, i in enumerate(tied):
                shares[i] -= per_share + (1 if k < extra else 0)
            remaining = 0


def split_equal(total: AmountLike, currency: str, participant_ids: Sequence[str]) -> List[Split]:
    """
    Divide `total` into equal shares.
    The remainder after floor division is given one minor unit at a time to
    the first participants, in the order they were passed.
    """
    currency = normalize_currency(currency)
    units = _total_units(total, currency)
    ids = _check_participants(participant_ids)

    base, remainder = divmod(units, len(ids))
    return [
        Split(uid, from_minor_units(base + (1 if i < remainder else 0), currency))
        for i, uid in enumerate(ids)
    ]


def split_exact(total: AmountLike, currency: str, amounts: SharesByUser) -> List[Split]:
    """Validate caller-specified shares; they must add up to the total exactly"""
    currency = normalize_currency(currency)
    units = _total_units(total, currency)
    pairs = _pairs(amounts)
    _check_participants(uid for uid, _ in pairs)

    share_units = [to_minor_units(parse_amount(v), currency) for _, v in pairs]
    if sum(share_units) != units:
        raise SplitMismatch(
            f"Split amounts sum to {from_minor_units(sum(share_units), currency)}, "
            f"expected {from_minor_units(units, currency)} {currency}"
        )
    return [Split(uid, from_minor_units(u, currency)) for (uid, _), u in zip(pairs, share_units)]


def split_percentage(total: AmountLike, currency: str, percentages: SharesByUser) -> List[Split]:
    """
    Split by percentage.
    Each share is rounded half-up to the currency precision; whatever rounding
    leaves over (or short) is moved one minor unit at a time onto the largest
    shares.
    """
    currency = normalize_currency(currency)
    units = _total_units(total, currency)
    pairs = _pairs(percentages)
    ids = _check_participants(uid for uid, _ in pairs)

    pcts = [parse_amount(v) for _, v in pairs]
    for uid, pct in zip(ids, pcts):
        if pct < 0:
            raise SplitMismatch(f"Percentage for {uid} must not be negative, got {pct}")
    pct_sum = sum(pcts, Decimal(0))
    if abs(pct_sum - PERCENTAGE_TOTAL) > PERCENTAGE_TOLERANCE:
        raise SplitMismatch(f"Percentages must sum to 100, got {pct_sum}")

    with localcontext(MONEY_CONTEXT):
        shares = [
            int((Decimal(units) * pct / PERCENTAGE_TOTAL).quantize(Decimal(1), rounding=ROUND_HALF_UP))
            for pct in pcts
        ]

    drift = units - sum(shares)
    if drift:
        _absorb_drift(shares, drift, [i for i, pct in enumerate(pcts) if pct > 0])
        logger.debug("Moved %d minor unit(s) of rounding drift onto the largest shares", drift)

    return [
        Split(uid, from_minor_units(u, currency), pct)
        for uid, u, pct in zip(ids, shares, pcts)
    ]


def compute_splits(total: AmountLike, currency: str, split_type: str, shares_by_user: Any) -> List[Split]:
    """
    Dispatch on split type.
    `shares_by_user` is the participant id list for equal splits, and a mapping (or
    pairs) of participant -> amount / percentage for exact / percentage splits.
    """
    if split_type == SplitType.EQUAL:
        return split_equal(total, currency, shares_by_user)
    if split_type == SplitType.EXACT:
        return split_exact(total, currency, shares_by_user)
    if split_type == SplitType.PERCENTAGE:
        return split_percentage(total, currency, shares_by_user)
    raise SplitMismatch(f"Unknown split type: {split_type!r}")


def build_expense(
    expense_id: str,
    group_id: str,
    paid_by: str,
    total: AmountLike,
    currency: str,
    split_type: str,
    participants: Sequence[str],
    shares_by_user: Optional[SharesByUser] = None,
    description: str = "",
    category: str = "",
    date: str = "",
    created_by: str = "",
) -> Expense:
    """Create an expense record whose splits come from the split engine"""
    currency = normalize_currency(currency)
    if split_type == SplitType.EQUAL:
        splits = split_equal(total, currency, participants)
    else:
        if shares_by_user is None:
            raise SplitMismatch(f"Splits must be provided for {split_type} expenses")
        splits = compute_splits(total, currency, split_type, shares_by_user)
        if sorted(s.user_id for s in splits) != sorted(participants):
            raise InvalidParticipants("Splits must be provided for exactly the participants")

    now = now_iso()
    return Expense(
        id=expense_id,
        group_id=group_id,
        paid_by=paid_by,
        amount=quantize(parse_positive_amount(total), currency),
        currency=currency,
        split_type=split_type,
        participants=list(participants),
        splits=splits,
        description=description,
        category=category,
        date=date or today_str(),
        created_by=created_by or paid_by,
        created_at=now,
        updated_at=now,
    )
