"""Tests for current-versus-previous period analysis."""

from datetime import datetime
from decimal import Decimal

import pytest

from customer_analytics.analyses.period_analysis import (
    analyze_period,
    compare_periods,
    summarize_segments,
    top_customers_by_segment,
)
from customer_analytics.foundation.customers import Customer, Transaction
from customer_analytics.foundation.periods import AnalysisPeriod, PeriodPair
from customer_analytics.foundation.rfm import RFMWeights, Segment, calculate_rfm
from customer_analytics.models.clv import CLVConfig
from customer_analytics.synthetic import generate_sample_customers

TODAY = datetime(2024, 6, 30, 23, 59)
PERIODS = PeriodPair(
    current=AnalysisPeriod(datetime(2024, 6, 1), TODAY),
    previous=AnalysisPeriod(datetime(2024, 5, 1), datetime(2024, 5, 31, 23, 59)),
)


def _customers():
    def txn(txn_id, month, day, amount):
        return Transaction(txn_id, datetime(2024, month, day), Decimal(amount))

    return [
        Customer("A", "Retained", transactions=(txn("A1", 5, 10, "100"), txn("A2", 6, 20, "150"))),
        Customer("B", "Lost", transactions=(txn("B1", 5, 15, "80"),)),
        Customer("C", "New", transactions=(txn("C1", 6, 5, "300"),)),
        Customer("D", "Dormant", transactions=(txn("D1", 1, 2, "500"),)),
    ]


class TestAnalyzePeriod:
    """Test single-window analysis."""

    def test_snapshot_contents(self):
        """Only customers active in the window are analysed."""
        snapshot = analyze_period(_customers(), PERIODS.current, TODAY)

        assert [c.customer_id for c in snapshot.customers] == ["A", "C"]
        assert [r.customer_id for r in snapshot.rfm] == ["A", "C"]
        assert [r.customer_id for r in snapshot.clv] == ["A", "C"]
        assert snapshot.concentration.ranked_revenues[0].customer_id == "C"
        # A only counts its June purchase
        assert snapshot.rfm[0].monetary == Decimal("150")

    def test_empty_window(self):
        """A window without transactions yields empty results."""
        period = AnalysisPeriod(datetime(2020, 1, 1), datetime(2020, 1, 31))
        snapshot = analyze_period(_customers(), period, TODAY)

        assert snapshot.rfm == ()
        assert snapshot.clv == ()
        assert snapshot.concentration.pareto_ratio == 0.0


class TestComparePeriods:
    """Test the full two-period comparison."""

    def test_new_lost_retained(self):
        """Presence in each window decides new, lost and retained."""
        result = compare_periods(_customers(), PERIODS, TODAY)

        assert [c.customer_id for c in result.rfm.new_customers] == ["C"]
        assert [c.customer_id for c in result.rfm.lost_customers] == ["B"]
        assert [c.customer_id for c in result.rfm.retained_customers] == ["A"]
        assert result.clv.customer_count.current == 2
        assert result.clv.customer_count.previous == 2
        assert not result.concentration.is_empty

    def test_keep_inactive_disables_new_and_lost(self):
        """With inactive customers kept, both windows hold everyone."""
        result = compare_periods(_customers(), PERIODS, TODAY, drop_inactive=False)

        assert len(result.current.customers) == 4
        assert result.rfm.new_customers == []
        assert result.rfm.lost_customers == []

    def test_parameters_forwarded(self):
        """Weights and CLV config reach the underlying models."""
        config = CLVConfig(churn_rate=0.0, discount_rate=0.02)
        result = compare_periods(
            _customers(), PERIODS, TODAY, weights=RFMWeights(1, 0, 0), clv_config=config
        )

        for record in result.current.rfm:
            assert record.weighted_score == pytest.approx(record.r_score)
        for record in result.current.clv:
            assert record.value == pytest.approx(0.5 * record.avg_monthly_revenue / 0.02)

    def test_as_dict_contract(self):
        """Serialised comparison carries both periods and three comparisons."""
        payload = compare_periods(_customers(), PERIODS, TODAY).as_dict()

        assert set(payload) == {
            "currentPeriod",
            "previousPeriod",
            "rfmComparison",
            "clvComparison",
            "paretoComparison",
        }
        assert payload["currentPeriod"]["period"]["label"] == "Jun 1, 2024 - Jun 30, 2024"
        assert payload["currentPeriod"]["customerCount"] == 2

    def test_segment_counts_match_cohort(self):
        """Per-segment counts sum to the number of scored customers."""
        customers = generate_sample_customers(
            80, 10, start=datetime(2023, 7, 1), end=TODAY, seed=11
        )
        result = compare_periods(customers, PERIODS, TODAY)

        assert sum(c.current for c in result.rfm.segment_changes) == len(result.current.rfm)
        assert sum(c.previous for c in result.rfm.segment_changes) == len(result.previous.rfm)


class TestSegmentSummaries:
    """Test per-segment summaries and top customers."""

    def _rfm(self):
        customers = generate_sample_customers(
            60, 8, start=datetime(2024, 1, 1), end=TODAY, seed=3
        )
        return customers, calculate_rfm(customers, TODAY)

    def test_summaries_cover_every_customer(self):
        """Counts add up and revenue is sorted descending."""
        customers, rfm = self._rfm()
        summaries = summarize_segments(rfm, customers)

        assert sum(s.customer_count for s in summaries) == len(customers)
        revenues = [s.total_revenue for s in summaries]
        assert revenues == sorted(revenues, reverse=True)
        for summary in summaries:
            assert summary.avg_revenue == summary.total_revenue / summary.customer_count
            assert 1 <= summary.avg_rfm_score <= 5

    def test_top_customers_by_segment(self):
        """Top customers are members of the segment, best score first."""
        _, rfm = self._rfm()
        segment = rfm[0].segment
        top = top_customers_by_segment(rfm, segment.value, limit=3)

        assert 1 <= len(top) <= 3
        assert all(r.segment is segment for r in top)
        scores = [r.weighted_score for r in top]
        assert scores == sorted(scores, reverse=True)

    def test_top_customers_unknown_segment(self):
        """Unknown segment labels are rejected."""
        _, rfm = self._rfm()
        with pytest.raises(ValueError):
            top_customers_by_segment(rfm, "Whales")

    def test_top_customers_negative_limit(self):
        """Limits cannot be negative."""
        with pytest.raises(ValueError, match="limit cannot be negative"):
            top_customers_by_segment([], Segment.CHAMPIONS, limit=-1)
