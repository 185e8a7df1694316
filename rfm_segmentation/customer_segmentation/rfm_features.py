"""
RFM Feature Engineering Module
==============================

Derives per-customer Recency, Frequency and Monetary metrics from
delivered orders, plus population statistics and data quality checks
used before clustering.

Usage:
    from rfm_segmentation.customer_segmentation import RFMFeatureEngineer

    engineer = RFMFeatureEngineer()
    records = engineer.calculate_rfm(customers, orders)
    stats = engineer.describe_population(records)
"""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Sequence

import numpy as np
import pandas as pd
from loguru import logger

from .models import (
    RFM_AXES,
    Customer,
    RawOrder,
    RFMRecord,
    DataQualityReport,
)

PERCENTILES = [0.25, 0.5, 0.75, 0.9]

PROGRESS_LOG_EVERY = 100


def _to_utc(value) -> pd.Timestamp:
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        return ts.tz_localize('UTC')
    return ts.tz_convert('UTC')


class RFMFeatureEngineer:
    """
    Metric aggregator turning raw orders into RFM records.

    Only delivered orders are counted. Customers without any eligible
    order are dropped rather than recorded with frequency 0.

    Example:
        >>> engineer = RFMFeatureEngineer()
        >>> records = engineer.calculate_rfm(customers, orders)
        >>> print(records[0].recency, records[0].frequency, records[0].monetary)
    """

    def __init__(self, min_customers_for_clustering: int = 10):
        """
        Initialize RFM Feature Engineer.

        Args:
            min_customers_for_clustering: Customers with orders required
                for a data set to pass the quality check
        """
        self.min_customers_for_clustering = min_customers_for_clustering
        logger.info("RFMFeatureEngineer initialized")

    def calculate_rfm(
        self,
        customers: Sequence[Customer],
        orders: Sequence[RawOrder],
        reference_date: Optional[datetime] = None
    ) -> List[RFMRecord]:
        """
        Calculate RFM metrics for every customer that has eligible orders.

        Args:
            customers: All customers, in the order results should follow
            orders: Orders; anything not delivered is ignored
            reference_date: Date recency is measured from (default: now, UTC)

        Returns:
            List of RFMRecord, one per customer with at least one order

        Example:
            >>> records = engineer.calculate_rfm(customers, orders)
        """
        reference = _to_utc(reference_date or datetime.now(timezone.utc))

        eligible = [o for o in orders if o.is_eligible and o.customer_id]
        logger.info(
            f"Calculating RFM from {len(customers)} customers and "
            f"{len(eligible)}/{len(orders)} eligible orders"
        )

        if not customers or not eligible:
            logger.warning("No data available for RFM calculation")
            return []

        orders_df = pd.DataFrame({
            'customer_id': [str(o.customer_id) for o in eligible],
            'total': [o.total for o in eligible],
            'created_at': [_to_utc(o.created_at) for o in eligible],
        })
        orders_df['total'] = pd.to_numeric(orders_df['total'], errors='coerce').fillna(0.0)

        grouped = orders_df.groupby('customer_id').agg(
            last_order=('created_at', 'max'),
            frequency=('created_at', 'count'),
            monetary=('total', 'sum')
        )
        logger.info(f"Customers with orders: {len(grouped)}")

        records = []
        for customer in customers:
            if not customer.customer_id:
                continue

            customer_id = str(customer.customer_id)
            if customer_id not in grouped.index:
                continue

            row = grouped.loc[customer_id]
            recency = (reference - row['last_order']).days

            records.append(RFMRecord(
                customer_id=customer_id,
                recency=max(0, int(recency)),
                frequency=max(1, int(row['frequency'])),
                monetary=max(0.0, float(row['monetary']))
            ))

            if len(records) % PROGRESS_LOG_EVERY == 0:
                logger.debug(f"Processed {len(records)} customers...")

        logger.info(f"Calculated RFM for {len(records)} customers")
        return records

    def calculate_rfm_frame(
        self,
        customers_df: pd.DataFrame,
        orders_df: pd.DataFrame,
        reference_date: Optional[datetime] = None,
        customer_id: str = 'customer_id',
        amount_column: str = 'total',
        date_column: str = 'created_at',
        status_column: str = 'status'
    ) -> pd.DataFrame:
        """
        DataFrame variant of calculate_rfm.

        Args:
            customers_df: Customers with an id column
            orders_df: Orders with id, amount, date and status columns
            reference_date: Date recency is measured from
            customer_id: Customer ID column
            amount_column: Order total column
            date_column: Order creation date column
            status_column: Fulfillment status column

        Returns:
            DataFrame with customer_id, recency, frequency, monetary columns
        """
        customers = [
            Customer(customer_id=str(cid))
            for cid in customers_df[customer_id].dropna()
        ]

        if status_column in orders_df.columns:
            statuses = orders_df[status_column].fillna('').astype(str)
        else:
            statuses = pd.Series(['delivered'] * len(orders_df), index=orders_df.index)

        orders = [
            RawOrder(
                customer_id=None if pd.isna(cid) else str(cid),
                total=None if pd.isna(amount) else float(amount),
                created_at=created,
                status=status
            )
            for cid, amount, created, status in zip(
                orders_df[customer_id],
                orders_df[amount_column],
                pd.to_datetime(orders_df[date_column], utc=True),
                statuses
            )
        ]

        records = self.calculate_rfm(customers, orders, reference_date)
        return self.to_frame(records)

    @staticmethod
    def to_frame(records: Sequence[RFMRecord]) -> pd.DataFrame:
        """Convert RFM records to a DataFrame."""
        return pd.DataFrame(
            [(r.customer_id, r.recency, r.frequency, r.monetary) for r in records],
            columns=['customer_id', *RFM_AXES]
        )

    def describe_population(
        self,
        records: Sequence[RFMRecord]
    ) -> Dict[str, Dict[str, float]]:
        """
        Percentile statistics of each RFM axis.

        Args:
            records: RFM records of the population

        Returns:
            Mapping axis -> {count, mean, std, min, p25, p50, p75, p90, max}
        """
        if not records:
            return {}

        summary = self.to_frame(records)[list(RFM_AXES)].astype(float).describe(
            percentiles=PERCENTILES
        )

        stats = {}
        for axis in RFM_AXES:
            column = summary[axis].fillna(0.0)
            stats[axis] = {
                'count': float(column['count']),
                'mean': float(column['mean']),
                'std': float(column['std']),
                'min': float(column['min']),
                'p25': float(column['25%']),
                'p50': float(column['50%']),
                'p75': float(column['75%']),
                'p90': float(column['90%']),
                'max': float(column['max']),
            }

        return stats

    def get_rfm_statistics(
        self,
        records: Sequence[RFMRecord],
        total_customers: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Summary statistics for validating an RFM run.

        Args:
            records: RFM records
            total_customers: Size of the full customer base

        Returns:
            Dictionary with counts, rounded averages and min/max ranges
        """
        if not records:
            return {
                'total_customers': total_customers or 0,
                'customers_with_orders': 0,
                'avg_recency': 0,
                'avg_frequency': 0.0,
                'avg_monetary': 0,
                'recency_range': {'min': 0, 'max': 0},
                'frequency_range': {'min': 0, 'max': 0},
                'monetary_range': {'min': 0, 'max': 0},
            }

        recency = np.array([r.recency for r in records])
        frequency = np.array([r.frequency for r in records])
        monetary = np.array([r.monetary for r in records], dtype=float)

        return {
            'total_customers': total_customers if total_customers is not None else len(records),
            'customers_with_orders': len(records),
            'avg_recency': int(round(recency.mean())),
            'avg_frequency': round(float(frequency.mean()), 1),
            'avg_monetary': int(round(monetary.mean())),
            'recency_range': {'min': int(recency.min()), 'max': int(recency.max())},
            'frequency_range': {'min': int(frequency.min()), 'max': int(frequency.max())},
            'monetary_range': {'min': float(monetary.min()), 'max': float(monetary.max())},
        }

    def validate_data_quality(
        self,
        customers: Sequence[Customer],
        orders: Sequence[RawOrder]
    ) -> DataQualityReport:
        """
        Check whether the data supports a meaningful segmentation.

        Args:
            customers: All customers
            orders: All orders (non-delivered ones are ignored)

        Returns:
            DataQualityReport with issues and recommendations
        """
        issues = []
        recommendations = []

        delivered = [o for o in orders if o.is_eligible]

        if not customers:
            issues.append("No customers found")
            recommendations.append("Add customer data before running RFM analysis")

        if not delivered:
            issues.append("No delivered orders found")
            recommendations.append('Ensure orders have "delivered" status')

        if customers and delivered:
            customer_ids = {str(c.customer_id) for c in customers if c.customer_id}
            order_ids = {str(o.customer_id) for o in delivered if o.customer_id}
            matched = customer_ids & order_ids

            if not matched:
                issues.append("No customers match with order customer ids")
                recommendations.append("Check customer ID and order customer_id field mapping")
            elif len(matched) < len(customer_ids) * 0.1:
                issues.append(f"Only {len(matched)}/{len(customer_ids)} customers have orders")
                recommendations.append(
                    "Consider data completeness - most customers have no orders"
                )

            if len(order_ids) < self.min_customers_for_clustering:
                issues.append(
                    f"Only {len(order_ids)} customers have orders "
                    f"(minimum {self.min_customers_for_clustering} recommended)"
                )
                recommendations.append(
                    "Need more customers with orders for meaningful clustering"
                )

        for issue in issues:
            logger.warning(f"Data quality: {issue}")

        return DataQualityReport(
            is_valid=not issues,
            issues=issues,
            recommendations=recommendations
        )
