#!/usr/bin/env python3
"""
RFM Segmentation - Main Runner
==============================

Command-line interface for running the customer segmentation pipeline.

Usage:
    python run_segmentation.py --customers data/sample_customers.csv --orders data/sample_orders.csv
    python run_segmentation.py --customers c.csv --orders o.csv --n-clusters 4 --seed 42
    python run_segmentation.py --customers c.csv --orders o.csv --force

The run is skipped when the stored result in the output directory is
younger than the configured re-run interval, unless --force is given.
"""

import argparse
import sys
from pathlib import Path
from dataclasses import replace

from loguru import logger

from rfm_segmentation.common import SegmentationConfig, DataLoader, Reporter
from rfm_segmentation.customer_segmentation import (
    ClusteringResult,
    DataLoadError,
    SegmentationPipeline,
    is_rerun_due,
)


def setup_logging(log_level: str = "INFO"):
    """Configure logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>"
    )


def apply_overrides(config: SegmentationConfig, args) -> SegmentationConfig:
    """Apply --n-clusters and --seed on top of the file configuration."""
    overrides = {}
    if args.n_clusters is not None:
        overrides['n_clusters'] = args.n_clusters
    if args.seed is not None:
        overrides['random_state'] = args.seed
    return replace(config, **overrides) if overrides else config


def run_segmentation(args, config: SegmentationConfig):
    """Run customer segmentation pipeline."""
    reporter = Reporter(output_dir=args.output)

    last_run_at = reporter.read_last_run_at()
    if not args.force and not is_rerun_due(last_run_at, interval_days=config.rerun_interval_days):
        logger.info(f"Segmentation not needed yet (last run {last_run_at.isoformat()})")
        return None

    # Both collections are loaded up front; a failure aborts before anything is written
    loader = DataLoader()
    customers = loader.load_customers(args.customers)
    orders = loader.load_orders(args.orders)

    pipeline = SegmentationPipeline(config)
    result = pipeline.run(customers, orders)

    recommendations = None
    if isinstance(result, ClusteringResult):
        recommendations = pipeline.ranker.get_campaign_recommendations(
            [center.ranked for center in result.centers]
        )
        logger.info(f"Silhouette Score: {result.metrics.silhouette_score:.3f}")
        for rec in recommendations:
            logger.info(rec)

    reporter.generate_segmentation_report(
        result, 'customer_segments', recommendations=recommendations
    )

    # a run without data keeps the stored segmentation and its schedule
    if isinstance(result, ClusteringResult):
        reporter.write_latest(result)
    else:
        logger.warning("No customers to segment; stored segmentation left unchanged")

    logger.info(f"Segmentation complete. Results saved to {args.output}")
    return result


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='RFM Customer Segmentation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument('--customers', type=str, required=True, help='Path to customers CSV')
    parser.add_argument('--orders', type=str, required=True, help='Path to orders CSV')

    parser.add_argument(
        '--config',
        type=str,
        default='config/settings.yaml',
        help='Path to configuration file'
    )

    parser.add_argument(
        '--output',
        type=str,
        default='outputs',
        help='Output directory for results'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level'
    )

    parser.add_argument(
        '--n-clusters',
        type=int,
        default=None,
        help='Number of clusters (elbow selection if not specified)'
    )

    parser.add_argument('--seed', type=int, default=None, help='Random seed')

    parser.add_argument(
        '--force',
        action='store_true',
        help='Run even if the stored result is within the re-run interval'
    )

    args = parser.parse_args()

    setup_logging(args.log_level)
    config = apply_overrides(SegmentationConfig.from_yaml(args.config), args)

    Path(args.output).mkdir(parents=True, exist_ok=True)

    try:
        run_segmentation(args, config)
    except DataLoadError as e:
        logger.error(f"Aborting segmentation run: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
