"""Tests for revenue concentration (Pareto / Gini) analysis."""

from datetime import datetime
from decimal import Decimal

import pytest

from customer_analytics.analyses.concentration import (
    ConcentrationResult,
    ParetoPoint,
    analyze_concentration,
    compare_concentration,
    rank_customer_revenues,
    revenue_share_of_top,
)
from customer_analytics.foundation.customers import Customer, Transaction


def _customer(customer_id: str, *amounts: str) -> Customer:
    return Customer(
        customer_id,
        f"Customer {customer_id}",
        transactions=tuple(
            Transaction(f"{customer_id}-T{i}", datetime(2024, 1, 1 + i), Decimal(a))
            for i, a in enumerate(amounts)
        ),
    )


class TestRankCustomerRevenues:
    """Test revenue ranking."""

    def test_sorted_descending(self):
        """Highest revenue first, summing all transactions."""
        ranked = rank_customer_revenues(
            [_customer("A", "10"), _customer("B", "30", "20"), _customer("C", "40")]
        )
        assert [r.customer_id for r in ranked] == ["B", "C", "A"]
        assert ranked[0].revenue == Decimal("50")

    def test_ties_keep_input_order(self):
        """The sort is stable."""
        ranked = rank_customer_revenues([_customer("X", "5"), _customer("Y", "5")])
        assert [r.customer_id for r in ranked] == ["X", "Y"]


class TestAnalyzeConcentration:
    """Test curve, Pareto ratio and Gini coefficient."""

    def test_two_of_three_customers_hold_all_revenue(self):
        """[100, 100, 0] reaches 80% of revenue at two thirds of customers."""
        result = analyze_concentration(
            [_customer("A", "100"), _customer("B", "100"), Customer("C", "Customer C")]
        )

        assert [p.customer_percentage for p in result.curve] == pytest.approx([1 / 3, 2 / 3, 1.0])
        assert [p.revenue_percentage for p in result.curve] == pytest.approx([0.5, 1.0, 1.0])
        assert result.pareto_ratio == pytest.approx(2 / 3)
        assert result.gini_coefficient == pytest.approx(1 - 2 * (2.0 / 3))

    def test_share_of_exactly_80_percent_meets_threshold(self):
        """A cumulative share landing exactly on 80% sets the Pareto ratio."""
        amounts = ["35.74", "24.67", "34.51", "14.38", "1.43", "4.97", "1.1", "1.64", "0.21"]
        result = analyze_concentration([_customer(f"C{i}", a) for i, a in enumerate(amounts)])

        assert result.curve[2].revenue_percentage == 0.8
        assert result.pareto_ratio == 3 / 9

    def test_fractional_revenues_stay_within_unit_range(self):
        """Cent amounts never push a share outside [0, 1]."""
        amounts = [
            "93.92", "90.14", "77.31", "65.08", "54.47", "48.83", "40.19", "33.76",
            "27.65", "21.04", "15.93", "11.28", "7.77", "4.61", "2.55",
        ]
        curve = analyze_concentration([_customer(f"C{i}", a) for i, a in enumerate(amounts)]).curve

        assert all(0 <= p.revenue_percentage <= 1 for p in curve)
        assert curve[-1].revenue_percentage == 1.0

    def test_equal_revenue_has_zero_gini(self):
        """Perfect equality gives a Gini of zero."""
        result = analyze_concentration([_customer(c, "25") for c in "ABCD"])

        assert result.gini_coefficient == pytest.approx(0.0)
        assert result.pareto_ratio == pytest.approx(1.0)

    def test_concentrated_revenue_is_negative(self):
        """Unequal revenue gives a negative coefficient in descending orientation."""
        result = analyze_concentration(
            [_customer("A", "1000"), _customer("B", "10"), _customer("C", "10"), _customer("D", "10")]
        )
        assert result.gini_coefficient < 0
        assert result.pareto_ratio == pytest.approx(0.25)

    def test_single_customer(self):
        """One customer covers everything."""
        result = analyze_concentration([_customer("A", "42")])

        assert result.curve == (ParetoPoint(1.0, 1.0),)
        assert result.pareto_ratio == 1.0
        assert result.gini_coefficient == pytest.approx(0.0)

    def test_empty_cohort(self):
        """Empty input gives empty curve, ratio 0 and Gini 0."""
        result = analyze_concentration([])

        assert result.ranked_revenues == ()
        assert result.curve == ()
        assert result.pareto_ratio == 0.0
        assert result.gini_coefficient == 0.0

    def test_zero_total_revenue(self):
        """Zero revenue yields zero shares and the default ratio."""
        result = analyze_concentration([Customer("A", "A"), _customer("B", "0")])

        assert all(p.revenue_percentage == 0.0 for p in result.curve)
        assert result.pareto_ratio == 1.0
        assert result.gini_coefficient == pytest.approx(1.0)

    def test_curve_is_monotone_and_ends_at_one(self):
        """Both coordinates are non-decreasing and end at 1."""
        customers = [_customer(f"C{i}", str(i * 13 % 97 + 1)) for i in range(25)]
        curve = analyze_concentration(customers).curve

        for earlier, later in zip(curve, curve[1:]):
            assert later.customer_percentage > earlier.customer_percentage
            assert later.revenue_percentage >= earlier.revenue_percentage
        assert curve[-1].customer_percentage == pytest.approx(1.0)
        assert curve[-1].revenue_percentage == pytest.approx(1.0)

    def test_total_revenue_and_as_dict(self):
        """Serialised output uses the contract keys."""
        result = analyze_concentration([_customer("A", "60"), _customer("B", "40")])
        payload = result.as_dict()

        assert result.total_revenue == Decimal("100")
        assert set(payload) == {"customerRevenues", "paretoPoints", "paretoRatio", "giniCoefficient"}
        assert payload["customerRevenues"][0] == {"id": "A", "name": "Customer A", "revenue": 60.0}
        assert payload["paretoPoints"][0] == {"customerPercentage": 0.5, "revenuePercentage": 0.6}

    def test_mismatched_curve_rejected(self):
        """The curve needs one point per ranked customer."""
        with pytest.raises(ValueError, match="one point per customer"):
            ConcentrationResult(ranked_revenues=(), curve=(ParetoPoint(1.0, 1.0),),
                                pareto_ratio=1.0, gini_coefficient=0.0)


class TestRevenueShareOfTop:
    """Test top-percentile revenue shares."""

    def test_top_10_and_20_percent(self):
        """Shares read off the curve at the top-N cut."""
        customers = [_customer("BIG", "1000")] + [_customer(f"C{i}", "100") for i in range(9)]
        shares = revenue_share_of_top(analyze_concentration(customers))

        assert shares[10] == pytest.approx(1000 / 1900)
        assert shares[20] == pytest.approx(1100 / 1900)

    def test_at_least_one_customer_counted(self):
        """Tiny percentiles still include the top customer."""
        shares = revenue_share_of_top(
            analyze_concentration([_customer("A", "75"), _customer("B", "25")]), (1,)
        )
        assert shares[1] == pytest.approx(0.75)

    def test_empty_cohort(self):
        """Empty results give zero shares."""
        assert revenue_share_of_top(analyze_concentration([])) == {10: 0.0, 20: 0.0}


class TestCompareConcentration:
    """Test the concentration differ."""

    def test_differences(self):
        """Changes are current minus previous."""
        current = analyze_concentration([_customer("A", "100"), _customer("B", "100"), Customer("C", "C")])
        previous = analyze_concentration([_customer(c, "25") for c in "ABCD"])
        comparison = compare_concentration(current, previous)

        assert comparison.ratio_change == pytest.approx(2 / 3 - 1.0)
        assert comparison.gini_change == pytest.approx(current.gini_coefficient)
        assert comparison.current_ratio == current.pareto_ratio
        assert comparison.previous_gini == previous.gini_coefficient

    def test_self_comparison_is_zero(self):
        """Comparing a result with itself gives zero change."""
        result = analyze_concentration([_customer("A", "70"), _customer("B", "30")])
        comparison = compare_concentration(result, result)

        assert comparison.ratio_change == 0.0
        assert comparison.gini_change == 0.0

    @pytest.mark.parametrize("side", ["current", "previous"])
    def test_missing_side_gives_empty_comparison(self, side):
        """A result that was not computed yields an empty comparison."""
        result = analyze_concentration([_customer("A", "10")])
        args = {"current": result, "previous": result, side: None}
        comparison = compare_concentration(**args)

        assert comparison.is_empty
        assert comparison.as_dict() == {}

    def test_as_dict_contract(self):
        """Serialised comparison uses the output keys."""
        result = analyze_concentration([_customer("A", "10")])
        assert set(compare_concentration(result, result).as_dict()) == {
            "ratioChange",
            "giniChange",
            "currentRatio",
            "previousRatio",
            "currentGini",
            "previousGini",
        }
