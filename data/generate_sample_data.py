#!/usr/bin/env python3
"""
Sample Data Generator
=====================

Generates synthetic customers and orders for the segmentation pipeline.

Usage:
    python data/generate_sample_data.py

This will create:
    - sample_customers.csv: Customer base (some without orders)
    - sample_orders.csv: Orders with status and totals
"""

import os
from datetime import timedelta

import numpy as np
import pandas as pd

# Set random seed for reproducibility
np.random.seed(42)

ORDER_STATUSES = ['delivered', 'pending', 'shipping', 'cancelled']


def generate_customers(n_customers: int = 500) -> pd.DataFrame:
    """
    Generate a synthetic customer base.

    Args:
        n_customers: Number of customers

    Returns:
        DataFrame with customer_id, name, email
    """
    ids = [f"C{i:05d}" for i in range(1, n_customers + 1)]
    return pd.DataFrame({
        'customer_id': ids,
        'name': [f"Customer {i}" for i in range(1, n_customers + 1)],
        'email': [f"{cid.lower()}@example.com" for cid in ids]
    })


def generate_orders(
    customers: pd.DataFrame,
    n_orders: int = 4000,
    end_date: str = '2024-12-31',
    inactive_share: float = 0.1
) -> pd.DataFrame:
    """
    Generate synthetic orders for RFM analysis.

    Customers get a frequency profile (high/medium/low) controlling how
    often and how recently they order, and a lognormal basket size.
    A share of customers never orders at all.

    Args:
        customers: Customer base from generate_customers()
        n_orders: Total number of orders
        end_date: Date of the most recent possible order
        inactive_share: Share of customers without orders

    Returns:
        DataFrame with order_id, customer_id, total, created_at, status
    """
    end = pd.Timestamp(end_date, tz='UTC')

    ids = customers['customer_id'].tolist()
    n_active = int(len(ids) * (1 - inactive_share))
    active = list(np.random.choice(ids, size=n_active, replace=False))

    profiles = {}
    for cid in active:
        profiles[cid] = {
            'avg_amount': np.random.lognormal(12.5, 0.8),
            'frequency': np.random.choice(['high', 'medium', 'low'], p=[0.2, 0.5, 0.3])
        }

    weights = np.array([
        {'high': 5.0, 'medium': 2.0, 'low': 1.0}[profiles[cid]['frequency']]
        for cid in active
    ])
    weights = weights / weights.sum()

    records = []
    for order_id in range(1, n_orders + 1):
        cid = np.random.choice(active, p=weights)
        profile = profiles[cid]

        scale = {'high': 30, 'medium': 90, 'low': 180}[profile['frequency']]
        days_ago = min(int(np.random.exponential(scale)), 720)

        amount = max(10000, np.random.normal(profile['avg_amount'], profile['avg_amount'] * 0.3))

        records.append({
            'order_id': order_id,
            'customer_id': cid,
            'total': round(amount, -3),
            'created_at': end - timedelta(days=days_ago, hours=int(np.random.randint(0, 24))),
            'status': np.random.choice(ORDER_STATUSES, p=[0.8, 0.08, 0.07, 0.05])
        })

    df = pd.DataFrame(records)
    df = df.sort_values('created_at').reset_index(drop=True)

    return df


def main():
    """Generate sample datasets."""
    script_dir = os.path.dirname(os.path.abspath(__file__))

    print("Generating sample datasets...")

    customers = generate_customers()
    customers_path = os.path.join(script_dir, 'sample_customers.csv')
    customers.to_csv(customers_path, index=False)
    print(f"    Saved {len(customers)} customers to {customers_path}")

    orders = generate_orders(customers)
    orders_path = os.path.join(script_dir, 'sample_orders.csv')
    orders.to_csv(orders_path, index=False)
    print(f"    Saved {len(orders)} orders to {orders_path}")

    delivered = orders[orders['status'] == 'delivered']
    print("\nDataset Summary:")
    print(f"  Customers: {len(customers)}")
    print(f"  Orders: {len(orders)} ({len(delivered)} delivered, "
          f"{delivered['customer_id'].nunique()} customers with delivered orders)")


if __name__ == '__main__':
    main()
