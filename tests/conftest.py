"""Shared fixtures for segmentation tests."""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest
from loguru import logger

from rfm_segmentation.customer_segmentation import Customer, RawOrder, RFMRecord

REFERENCE_DATE = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


def orders_for(customer_id, n_orders, total, last_days_ago, status='delivered'):
    """n_orders orders summing to total, the latest last_days_ago days before REFERENCE_DATE."""
    return [
        RawOrder(
            customer_id=customer_id,
            total=total / n_orders,
            created_at=REFERENCE_DATE - timedelta(days=last_days_ago + i),
            status=status
        )
        for i in range(n_orders)
    ]


@pytest.fixture
def reference_date():
    return REFERENCE_DATE


@pytest.fixture
def scenario_a():
    """Two high-value and two low-value customers."""
    customers = [Customer(customer_id=cid) for cid in ('C1', 'C2', 'C3', 'C4')]
    orders = (
        orders_for('C1', 10, 5_000_000, 5)
        + orders_for('C2', 1, 200_000, 60)
        + orders_for('C3', 8, 4_500_000, 3)
        + orders_for('C4', 1, 150_000, 90)
    )
    return customers, orders


@pytest.fixture
def rfm_records():
    """A small population with three well separated groups."""
    return [
        RFMRecord('A1', 2, 12, 9_000_000),
        RFMRecord('A2', 4, 10, 8_500_000),
        RFMRecord('A3', 3, 11, 9_200_000),
        RFMRecord('B1', 40, 4, 2_000_000),
        RFMRecord('B2', 45, 5, 2_300_000),
        RFMRecord('B3', 38, 4, 1_900_000),
        RFMRecord('D1', 200, 1, 100_000),
        RFMRecord('D2', 210, 1, 150_000),
        RFMRecord('D3', 190, 2, 120_000),
    ]


@pytest.fixture
def blobs():
    """Three tight, well separated groups in the unit cube."""
    rng = np.random.default_rng(0)
    centers = np.array([[0.1, 0.1, 0.1], [0.9, 0.1, 0.5], [0.5, 0.9, 0.9]])
    points = [c + rng.normal(0, 0.02, size=(20, 3)) for c in centers]
    return np.clip(np.vstack(points), 0, 1)


@pytest.fixture
def logged_warnings():
    """Messages of every warning logged while the test runs."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record['message']), level='WARNING')
    yield messages
    logger.remove(handler_id)
