"""Tests for RFM metric aggregation."""

from datetime import timedelta

import pandas as pd
import pytest

from rfm_segmentation.customer_segmentation import (
    Customer,
    RawOrder,
    RFMRecord,
    RFMFeatureEngineer,
)
from tests.conftest import REFERENCE_DATE, orders_for


@pytest.fixture
def engineer():
    return RFMFeatureEngineer()


class TestRFMRecord:
    """Test RFMRecord validation."""

    def test_valid_record(self):
        record = RFMRecord('C1', 10, 3, 150.0)
        assert record.as_vector() == (10.0, 3.0, 150.0)

    def test_zero_frequency_raises_error(self):
        with pytest.raises(ValueError, match="Frequency must be positive"):
            RFMRecord('C1', 10, 0, 150.0)

    def test_negative_recency_raises_error(self):
        with pytest.raises(ValueError, match="Recency cannot be negative"):
            RFMRecord('C1', -1, 1, 150.0)

    def test_negative_monetary_raises_error(self):
        with pytest.raises(ValueError, match="Monetary value cannot be negative"):
            RFMRecord('C1', 1, 1, -5.0)


class TestCalculateRFM:
    """Test calculate_rfm aggregation."""

    def test_empty_orders_returns_empty_list(self, engineer):
        customers = [Customer('C1')]
        assert engineer.calculate_rfm(customers, [], REFERENCE_DATE) == []

    def test_empty_customers_returns_empty_list(self, engineer):
        assert engineer.calculate_rfm([], orders_for('C1', 2, 100, 1), REFERENCE_DATE) == []

    def test_single_customer_metrics(self, engineer):
        orders = orders_for('C1', 3, 300.0, 10)
        records = engineer.calculate_rfm([Customer('C1')], orders, REFERENCE_DATE)

        assert records == [RFMRecord('C1', 10, 3, 300.0)]

    def test_recency_is_floored_to_whole_days(self, engineer):
        orders = [RawOrder('C1', 50.0, REFERENCE_DATE - timedelta(hours=36))]
        records = engineer.calculate_rfm([Customer('C1')], orders, REFERENCE_DATE)

        assert records[0].recency == 1

    def test_future_orders_clamp_recency_to_zero(self, engineer):
        orders = [
            RawOrder('C1', 50.0, REFERENCE_DATE + timedelta(days=3)),
            RawOrder('C1', 70.0, REFERENCE_DATE + timedelta(days=1)),
        ]
        records = engineer.calculate_rfm([Customer('C1')], orders, REFERENCE_DATE)

        assert records[0].recency == 0
        assert records[0].frequency == 2
        assert records[0].monetary == pytest.approx(120.0)

    def test_customers_without_orders_are_dropped(self, engineer):
        customers = [Customer('C1'), Customer('C2'), Customer('C3')]
        orders = orders_for('C1', 1, 10, 1) + orders_for('C3', 2, 20, 2)

        records = engineer.calculate_rfm(customers, orders, REFERENCE_DATE)

        assert [r.customer_id for r in records] == ['C1', 'C3']
        assert all(r.frequency >= 1 for r in records)

    def test_customer_order_is_preserved(self, engineer):
        customers = [Customer('Z'), Customer('A'), Customer('M')]
        orders = (
            orders_for('A', 1, 10, 1)
            + orders_for('M', 1, 10, 1)
            + orders_for('Z', 1, 10, 1)
        )

        records = engineer.calculate_rfm(customers, orders, REFERENCE_DATE)

        assert [r.customer_id for r in records] == ['Z', 'A', 'M']

    def test_non_delivered_orders_are_ignored(self, engineer):
        orders = (
            orders_for('C1', 2, 200, 5)
            + orders_for('C1', 3, 900, 1, status='cancelled')
            + orders_for('C2', 1, 50, 1, status='pending')
        )
        records = engineer.calculate_rfm(
            [Customer('C1'), Customer('C2')], orders, REFERENCE_DATE
        )

        assert records == [RFMRecord('C1', 5, 2, 200.0)]

    def test_status_match_is_case_insensitive(self, engineer):
        orders = orders_for('C1', 1, 10, 1, status='Delivered')
        assert len(engineer.calculate_rfm([Customer('C1')], orders, REFERENCE_DATE)) == 1

    def test_missing_totals_count_as_zero(self, engineer):
        orders = [
            RawOrder('C1', None, REFERENCE_DATE - timedelta(days=2)),
            RawOrder('C1', 40.0, REFERENCE_DATE - timedelta(days=4)),
        ]
        records = engineer.calculate_rfm([Customer('C1')], orders, REFERENCE_DATE)

        assert records[0].frequency == 2
        assert records[0].monetary == pytest.approx(40.0)

    def test_orders_without_customer_are_skipped(self, engineer):
        orders = [RawOrder(None, 40.0, REFERENCE_DATE)] + orders_for('C1', 1, 5, 0)
        records = engineer.calculate_rfm([Customer('C1')], orders, REFERENCE_DATE)

        assert records[0].monetary == pytest.approx(5.0)

    def test_naive_timestamps_are_treated_as_utc(self, engineer):
        naive_ref = REFERENCE_DATE.replace(tzinfo=None)
        orders = [RawOrder('C1', 10.0, naive_ref - timedelta(days=7))]

        records = engineer.calculate_rfm([Customer('C1')], orders, REFERENCE_DATE)

        assert records[0].recency == 7

    def test_dataframe_variant(self, engineer):
        customers_df = pd.DataFrame({'customer_id': ['C1', 'C2']})
        orders_df = pd.DataFrame({
            'customer_id': ['C1', 'C1', 'C2'],
            'total': [100.0, 50.0, 30.0],
            'created_at': [
                REFERENCE_DATE - timedelta(days=2),
                REFERENCE_DATE - timedelta(days=9),
                REFERENCE_DATE - timedelta(days=1),
            ],
            'status': ['delivered', 'delivered', 'cancelled'],
        })

        rfm = engineer.calculate_rfm_frame(customers_df, orders_df, REFERENCE_DATE)

        assert list(rfm.columns) == ['customer_id', 'recency', 'frequency', 'monetary']
        assert rfm.to_dict('records') == [
            {'customer_id': 'C1', 'recency': 2, 'frequency': 2, 'monetary': 150.0}
        ]


class TestPopulationStatistics:
    """Test descriptive statistics over RFM records."""

    def test_describe_population_percentiles(self, engineer):
        records = [RFMRecord(f'C{i}', i, 1, float(i * 10)) for i in range(1, 6)]

        stats = engineer.describe_population(records)

        assert stats['recency']['min'] == 1
        assert stats['recency']['max'] == 5
        assert stats['recency']['p50'] == pytest.approx(3.0)
        assert stats['monetary']['p25'] == pytest.approx(20.0)
        assert stats['frequency']['std'] == 0

    def test_describe_single_record_has_zero_std(self, engineer):
        stats = engineer.describe_population([RFMRecord('C1', 3, 2, 10.0)])
        assert stats['recency']['std'] == 0.0

    def test_describe_empty_population(self, engineer):
        assert engineer.describe_population([]) == {}

    def test_rfm_statistics(self, engineer):
        records = [RFMRecord('C1', 10, 2, 100.0), RFMRecord('C2', 21, 3, 250.0)]

        stats = engineer.get_rfm_statistics(records, total_customers=5)

        assert stats['total_customers'] == 5
        assert stats['customers_with_orders'] == 2
        assert stats['avg_recency'] == 16
        assert stats['avg_frequency'] == 2.5
        assert stats['avg_monetary'] == 175
        assert stats['recency_range'] == {'min': 10, 'max': 21}

    def test_rfm_statistics_empty(self, engineer):
        stats = engineer.get_rfm_statistics([])
        assert stats['customers_with_orders'] == 0
        assert stats['monetary_range'] == {'min': 0, 'max': 0}


class TestDataQuality:
    """Test validate_data_quality checks."""

    def test_no_data(self, engineer):
        report = engineer.validate_data_quality([], [])

        assert not report.is_valid
        assert "No customers found" in report.issues
        assert "No delivered orders found" in report.issues

    def test_no_matching_customers(self, engineer):
        report = engineer.validate_data_quality(
            [Customer('C1')], orders_for('X9', 1, 10, 1)
        )
        assert "No customers match with order customer ids" in report.issues

    def test_too_few_customers_with_orders(self, engineer):
        customers = [Customer(f'C{i}') for i in range(5)]
        orders = [o for i in range(5) for o in orders_for(f'C{i}', 1, 10, 1)]

        report = engineer.validate_data_quality(customers, orders)

        assert not report.is_valid
        assert any('minimum 10 recommended' in issue for issue in report.issues)

    def test_low_order_coverage(self):
        engineer = RFMFeatureEngineer(min_customers_for_clustering=1)
        customers = [Customer(f'C{i}') for i in range(20)]

        report = engineer.validate_data_quality(customers, orders_for('C0', 1, 10, 1))

        assert "Only 1/20 customers have orders" in report.issues

    def test_valid_data(self, engineer):
        customers = [Customer(f'C{i}') for i in range(12)]
        orders = [o for i in range(12) for o in orders_for(f'C{i}', 2, 10, i)]

        report = engineer.validate_data_quality(customers, orders)

        assert report.is_valid
        assert report.issues == []
