import random
from decimal import Decimal

import pytest

from errors import InvalidAmount, InvalidCurrency, InvalidParticipants, SplitMismatch
from models import SplitType
from splits import build_expense, compute_splits, split_equal, split_exact, split_percentage


def amounts(splits):
    return [s.amount for s in splits]


class TestSplitEqual:
    def test_remainder_goes_to_first_participants(self):
        splits = split_equal("100.00", "USD", ["a", "b", "c"])
        assert amounts(splits) == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]
        assert sum(amounts(splits)) == Decimal("100.00")

    def test_participant_order_decides_who_gets_remainder(self):
        splits = split_equal("0.05", "USD", ["z", "y", "x"])
        assert [(s.user_id, s.amount) for s in splits] == [
            ("z", Decimal("0.02")), ("y", Decimal("0.02")), ("x", Decimal("0.01")),
        ]

    def test_zero_decimal_currency(self):
        splits = split_equal("1000", "JPY", ["a", "b", "c"])
        assert amounts(splits) == [Decimal("334"), Decimal("333"), Decimal("333")]

    def test_three_decimal_currency(self):
        splits = split_equal("10.000", "KWD", ["a", "b", "c"])
        assert amounts(splits) == [Decimal("3.334"), Decimal("3.333"), Decimal("3.333")]

    def test_single_participant_gets_everything(self):
        assert amounts(split_equal("12.34", "EUR", ["a"])) == [Decimal("12.34")]

    def test_more_participants_than_minor_units(self):
        splits = split_equal("0.02", "USD", ["a", "b", "c"])
        assert amounts(splits) == [Decimal("0.01"), Decimal("0.01"), Decimal("0.00")]

    @pytest.mark.parametrize("total", ["0", "0.00", "-5.00"])
    def test_non_positive_total(self, total):
        with pytest.raises(InvalidAmount):
            split_equal(total, "USD", ["a"])

    @pytest.mark.parametrize("total", ["abc", "1e5", "NaN", "", "10.", 10.5])
    def test_malformed_total(self, total):
        with pytest.raises(InvalidAmount):
            split_equal(total, "USD", ["a"])

    def test_total_finer_than_currency(self):
        with pytest.raises(InvalidAmount):
            split_equal("10.005", "USD", ["a", "b"])
        with pytest.raises(InvalidAmount):
            split_equal("10.5", "JPY", ["a", "b"])

    def test_empty_participants(self):
        with pytest.raises(InvalidParticipants):
            split_equal("10.00", "USD", [])

    def test_duplicate_participants(self):
        with pytest.raises(InvalidParticipants):
            split_equal("10.00", "USD", ["a", "b", "a"])

    def test_bad_currency(self):
        with pytest.raises(InvalidCurrency):
            split_equal("10.00", "US", ["a"])

    def test_lowercase_currency_is_normalized(self):
        assert amounts(split_equal("1.00", "usd", ["a", "b"])) == [Decimal("0.50"), Decimal("0.50")]

    def test_total_with_too_many_digits(self):
        with pytest.raises(InvalidAmount):
            split_equal("12345678901234567890123456789.01", "USD", ["a"])

    def test_largest_accepted_total_is_exact(self):
        total = "12345678901234567890123456.78"
        splits = split_equal(total, "USD", ["a", "b"])
        assert sum(amounts(splits)) == Decimal(total)
        assert str(splits[0].amount) == "6172839450617283945061728.39"


class TestSplitExact:
    def test_valid(self):
        splits = split_exact("100.00", "USD", {"a": "30.00", "b": "40.00", "c": "30.00"})
        assert amounts(splits) == [Decimal("30.00"), Decimal("40.00"), Decimal("30.00")]

    def test_accepts_pairs(self):
        splits = split_exact("10", "USD", [("a", "2.5"), ("b", "7.5")])
        assert [(s.user_id, s.amount) for s in splits] == [("a", Decimal("2.50")), ("b", Decimal("7.50"))]

    def test_sum_below_total(self):
        with pytest.raises(SplitMismatch):
            split_exact("100.00", "USD", {"a": "33.33", "b": "33.33", "c": "33.32"})

    def test_sum_above_total(self):
        with pytest.raises(SplitMismatch):
            split_exact("100.00", "USD", {"a": "30", "b": "40", "c": "40"})

    def test_zero_and_negative_shares_allowed_when_sum_matches(self):
        splits = split_exact("100", "USD", {"a": "120", "b": "-10", "c": "-10"})
        assert sum(amounts(splits)) == Decimal("100")
        assert amounts(split_exact("100", "USD", {"a": "100", "b": "0"})) == [Decimal("100.00"), Decimal("0.00")]

    def test_share_finer_than_currency(self):
        with pytest.raises(InvalidAmount):
            split_exact("1", "USD", {"a": "0.505", "b": "0.495"})

    def test_duplicate_participants(self):
        with pytest.raises(InvalidParticipants):
            split_exact("10", "USD", [("a", "5"), ("a", "5")])

    def test_empty(self):
        with pytest.raises(InvalidParticipants):
            split_exact("10", "USD", {})


class TestSplitPercentage:
    def test_rounding_drift_is_corrected(self):
        splits = split_percentage("100.01", "USD", {"a": "33.3", "b": "33.3", "c": "33.4"})
        assert sum(amounts(splits)) == Decimal("100.01")
        assert amounts(splits) == [Decimal("33.30"), Decimal("33.30"), Decimal("33.41")]

    def test_negative_drift_taken_from_largest(self):
        # two shares round up and the total comes out one fils over
        splits = split_percentage("100.005", "KWD", {"a": "33.335", "b": "33.33", "c": "33.335"})
        assert sum(amounts(splits)) == Decimal("100.005")

    def test_percentages_are_kept(self):
        splits = split_percentage("50", "EUR", {"a": "60", "b": "40"})
        assert [(s.amount, s.percentage) for s in splits] == [
            (Decimal("30.00"), Decimal("60")), (Decimal("20.00"), Decimal("40")),
        ]

    def test_within_tolerance(self):
        splits = split_percentage("100", "USD", {"a": "33.33", "b": "33.33", "c": "33.33"})
        assert sum(amounts(splits)) == Decimal("100.00")

    def test_sum_not_100(self):
        with pytest.raises(SplitMismatch):
            split_percentage("100", "USD", {"a": "50", "b": "40"})

    def test_negative_percentage(self):
        with pytest.raises(SplitMismatch):
            split_percentage("100", "USD", {"a": "110", "b": "-10"})

    def test_large_drift_never_makes_a_share_negative(self):
        # percentages sum to 100.01, so rounding leaves 100.00 USD too much
        splits = split_percentage("1000000.00", "USD", {"a": "100.009", "b": "0.0005", "c": "0.0005"})
        assert all(s.amount >= 0 for s in splits)
        assert sum(amounts(splits)) == Decimal("1000000.00")
        assert amounts(splits) == [Decimal("999990.00"), Decimal("5.00"), Decimal("5.00")]

    def test_short_drift_goes_to_largest_share_only(self):
        # percentages sum to 99.99, leaving 100 units to hand out
        splits = split_percentage("1000000", "JPY", {"a": "49.99", "b": "25", "c": "25"})
        assert amounts(splits) == [Decimal("500000"), Decimal("250000"), Decimal("250000")]

    def test_drift_skips_zero_percentage_participants(self):
        splits = split_percentage("0.01", "USD", {"a": "0", "b": "33.33", "c": "33.33", "d": "33.34"})
        assert amounts(splits) == [Decimal("0.00"), Decimal("0.01"), Decimal("0.00"), Decimal("0.00")]

    def test_very_large_total(self):
        splits = split_percentage("1234567890123456789012345.67", "USD", {"a": "50", "b": "50"})
        assert sum(amounts(splits)) == Decimal("1234567890123456789012345.67")

    def test_zero_percentage_participant_gets_nothing(self):
        splits = split_percentage("0.01", "USD", {"a": "0", "b": "50", "c": "50"})
        assert splits[0].amount == Decimal("0.00")
        assert sum(amounts(splits)) == Decimal("0.01")


class TestComputeSplits:
    def test_dispatch(self):
        assert len(compute_splits("9", "USD", SplitType.EQUAL, ["a", "b", "c"])) == 3
        assert len(compute_splits("9", "USD", SplitType.EXACT, {"a": "9"})) == 1
        assert len(compute_splits("9", "USD", SplitType.PERCENTAGE, {"a": "100"})) == 1

    def test_unknown_type(self):
        with pytest.raises(SplitMismatch):
            compute_splits("9", "USD", "shares", ["a"])

    @pytest.mark.parametrize("currency", ["USD", "JPY", "KWD"])
    def test_every_split_type_sums_exactly(self, currency):
        rng = random.Random(f"splits-{currency}")
        scale = {"USD": 100, "JPY": 1, "KWD": 1000}[currency]
        for _ in range(200):
            n = rng.randint(1, 50)
            ids = [f"u{i}" for i in range(n)]
            total = Decimal(rng.randint(1, 10_000_000)) / scale

            equal = split_equal(str(total), currency, ids)
            assert sum(amounts(equal)) == total
            assert max(amounts(equal)) - min(amounts(equal)) <= Decimal(1) / scale

            weights = [rng.randint(0, 1000) for _ in ids]
            weights[0] += 1
            pcts = [Decimal(w) * 100 / sum(weights) for w in weights]
            pcts = [p.quantize(Decimal("0.0001")) for p in pcts]
            pcts[-1] += Decimal(100) - sum(pcts)
            if pcts[-1] < 0:
                continue
            pct_splits = split_percentage(str(total), currency, list(zip(ids, pcts)))
            assert sum(amounts(pct_splits)) == total

            exact = split_exact(str(total), currency, [(s.user_id, s.amount) for s in pct_splits])
            assert sum(amounts(exact)) == total


class TestBuildExpense:
    def test_equal_expense(self):
        e = build_expense("e1", "g1", "a", "90", "usd", SplitType.EQUAL, ["a", "b", "c"])
        assert e.currency == "USD"
        assert e.amount == Decimal("90.00")
        assert amounts(e.splits) == [Decimal("30.00")] * 3
        assert e.created_by == "a"
        assert not e.is_deleted

    def test_exact_requires_shares(self):
        with pytest.raises(SplitMismatch):
            build_expense("e1", "g1", "a", "90", "USD", SplitType.EXACT, ["a", "b"])

    def test_splits_must_match_participants(self):
        with pytest.raises(InvalidParticipants):
            build_expense("e1", "g1", "a", "90", "USD", SplitType.EXACT, ["a", "b", "c"], {"a": "45", "b": "45"})

    def test_keyword_arguments(self):
        e = build_expense(
            expense_id="e7", group_id="g1", paid_by="b", total="10", currency="EUR",
            split_type=SplitType.PERCENTAGE, participants=["a", "b"],
            shares_by_user={"a": "25", "b": "75"}, description="taxi",
        )
        assert (e.id, e.description) == ("e7", "taxi")
        assert amounts(e.splits) == [Decimal("2.50"), Decimal("7.50")]
