"""Tests for the command-line runner."""

import argparse
import json

import pandas as pd
import pytest

from rfm_segmentation.common import Reporter, SegmentationConfig
from rfm_segmentation.customer_segmentation import (
    ClusteringResult,
    DataLoadError,
    EmptyPopulationResult,
)
from run_segmentation import apply_overrides, run_segmentation


def _write_customers(path):
    pd.DataFrame({
        'customer_id': ['C1', 'C2', 'C3', 'C4'],
        'name': ['Ann', 'Bob', 'Cid', 'Dee'],
    }).to_csv(path, index=False)
    return path


def _write_orders(path, status='delivered'):
    rows = [
        ('C1', 500_000.0, '2024-06-25 10:00:00'),
        ('C1', 500_000.0, '2024-06-20 10:00:00'),
        ('C1', 500_000.0, '2024-06-15 10:00:00'),
        ('C2', 200_000.0, '2024-04-01 10:00:00'),
        ('C3', 450_000.0, '2024-06-27 10:00:00'),
        ('C3', 450_000.0, '2024-06-22 10:00:00'),
        ('C4', 150_000.0, '2024-03-01 10:00:00'),
    ]
    pd.DataFrame({
        'customer_id': [r[0] for r in rows],
        'total': [r[1] for r in rows],
        'created_at': [r[2] for r in rows],
        'status': [status] * len(rows),
    }).to_csv(path, index=False)
    return path


@pytest.fixture
def config():
    return SegmentationConfig(n_clusters=2, random_state=42)


@pytest.fixture
def make_args(tmp_path):
    customers = _write_customers(tmp_path / 'customers.csv')
    orders = _write_orders(tmp_path / 'orders.csv')
    output = tmp_path / 'out'

    def _make(**overrides):
        values = dict(customers=customers, orders=orders, output=output, force=False)
        values.update(overrides)
        return argparse.Namespace(**values)

    return _make


class TestRunSegmentation:
    """Test run_segmentation end to end on CSV input."""

    def test_first_run_stores_result(self, make_args, config):
        args = make_args()

        result = run_segmentation(args, config)

        assert isinstance(result, ClusteringResult)
        assert result.n_clusters == 2
        stored = json.loads(Reporter(args.output).latest_path.read_text())
        assert stored['status'] == 'ok'
        assert len(stored['segments']) == 4
        assert list(args.output.glob('customer_segments_*.csv'))

    def test_recent_result_skips_run(self, make_args, config):
        args = make_args()
        run_segmentation(args, config)
        latest = Reporter(args.output).latest_path
        before = latest.read_text()

        assert run_segmentation(args, config) is None
        assert latest.read_text() == before

    def test_force_runs_despite_recent_result(self, make_args, config):
        args = make_args()
        first = run_segmentation(args, config)

        second = run_segmentation(make_args(force=True), config)

        assert isinstance(second, ClusteringResult)
        assert second.created_at >= first.created_at
        assert Reporter(args.output).read_last_run_at() == second.created_at

    def test_stale_result_reruns(self, make_args, config):
        args = make_args()
        run_segmentation(args, config)
        reporter = Reporter(args.output)
        payload = json.loads(reporter.latest_path.read_text())
        payload['created_at'] = '2020-01-01T00:00:00+00:00'
        reporter.latest_path.write_text(json.dumps(payload))

        result = run_segmentation(args, config)

        assert isinstance(result, ClusteringResult)
        assert reporter.read_last_run_at() == result.created_at

    def test_load_failure_leaves_output_untouched(self, make_args, config, tmp_path):
        args = make_args()
        run_segmentation(args, config)
        latest = Reporter(args.output).latest_path
        before = latest.read_text()
        reports_before = sorted(p.name for p in args.output.iterdir())

        with pytest.raises(DataLoadError, match="File not found"):
            run_segmentation(make_args(orders=tmp_path / 'missing.csv', force=True), config)

        assert latest.read_text() == before
        assert sorted(p.name for p in args.output.iterdir()) == reports_before

    def test_no_data_keeps_stored_result(self, make_args, config, tmp_path):
        args = make_args()
        first = run_segmentation(args, config)
        cancelled = _write_orders(tmp_path / 'cancelled.csv', status='cancelled')

        result = run_segmentation(make_args(orders=cancelled, force=True), config)

        assert isinstance(result, EmptyPopulationResult)
        stored = json.loads(Reporter(args.output).latest_path.read_text())
        assert stored['status'] == 'ok'
        assert stored['created_at'] == first.created_at.isoformat()
        no_data_reports = [
            json.loads(p.read_text())
            for p in args.output.glob('customer_segments_*.json')
        ]
        assert any(report['status'] == 'no_data' for report in no_data_reports)

    def test_configured_cluster_count(self, make_args):
        config = apply_overrides(
            SegmentationConfig(), argparse.Namespace(n_clusters=3, seed=9)
        )

        result = run_segmentation(make_args(), config)

        assert result.n_clusters == 3
        assert len(result.centers) == 3


class TestApplyOverrides:
    """Test command-line overrides of the file configuration."""

    def test_no_overrides_keeps_config(self):
        config = SegmentationConfig(n_clusters=4, random_state=1)

        assert apply_overrides(config, argparse.Namespace(n_clusters=None, seed=None)) is config

    def test_n_clusters_and_seed(self):
        config = SegmentationConfig(max_iter=50)

        overridden = apply_overrides(config, argparse.Namespace(n_clusters=3, seed=9))

        assert overridden.n_clusters == 3
        assert overridden.random_state == 9
        assert overridden.max_iter == 50
        assert config.n_clusters is None

    def test_invalid_override_is_rejected(self):
        with pytest.raises(ValueError):
            apply_overrides(SegmentationConfig(), argparse.Namespace(n_clusters=0, seed=None))
