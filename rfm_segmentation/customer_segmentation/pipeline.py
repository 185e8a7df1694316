"""
Segmentation Pipeline
=====================

End-to-end RFM segmentation run:

    orders -> RFM records -> normalized vectors -> K selection
           -> final K-Means -> evaluation -> ranked segments

Each run rebuilds everything from the inputs and returns a single
result that replaces any previously stored one.

Usage:
    from rfm_segmentation.customer_segmentation import SegmentationPipeline

    pipeline = SegmentationPipeline(config)
    outcome = pipeline.run(customers, orders)
    if outcome.status == 'ok':
        print(outcome.segment_counts())
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence, Union

from loguru import logger

from rfm_segmentation.common.config import SegmentationConfig
from .evaluation import ClusterEvaluator
from .exceptions import InsufficientPopulationError
from .kmeans_clustering import KMeansSegmenter
from .model_selection import ModelSelector
from .models import (
    Customer,
    RawOrder,
    RFMRecord,
    ClusterCenter,
    ClusteringResult,
    CustomerSegment,
    EmptyPopulationResult,
)
from .normalization import normalize_rfm
from .rfm_features import RFMFeatureEngineer
from .segment_analysis import SegmentRanker

SegmentationOutcome = Union[ClusteringResult, EmptyPopulationResult]


def is_rerun_due(
    last_run_at: Optional[datetime],
    now: Optional[datetime] = None,
    interval_days: int = 7
) -> bool:
    """
    Whether a new segmentation run is due.

    Args:
        last_run_at: Creation time of the stored result (None if none)
        now: Current time (default: now, UTC)
        interval_days: Days between runs

    Returns:
        True when there is no stored result or it is at least
        interval_days whole days old
    """
    if last_run_at is None:
        return True

    now = now or datetime.now(timezone.utc)
    if (now.tzinfo is None) != (last_run_at.tzinfo is None):
        # compare naive timestamps as UTC
        now = now if now.tzinfo else now.replace(tzinfo=timezone.utc)
        last_run_at = last_run_at if last_run_at.tzinfo else last_run_at.replace(tzinfo=timezone.utc)

    return (now - last_run_at) >= timedelta(days=interval_days)


class SegmentationPipeline:
    """
    Runs the full RFM + K-Means segmentation over in-memory data.

    Example:
        >>> pipeline = SegmentationPipeline(SegmentationConfig(random_state=42))
        >>> result = pipeline.run(customers, orders)
        >>> for center in result.centers:
        ...     print(center.segment_label, center.ranked.statistics.size)
    """

    def __init__(self, config: Optional[SegmentationConfig] = None):
        """
        Initialize the pipeline.

        Args:
            config: Segmentation policy (defaults when None)
        """
        self.config = config or SegmentationConfig()

        self.feature_engineer = RFMFeatureEngineer(
            min_customers_for_clustering=self.config.min_customers_for_clustering
        )
        self.segmenter = KMeansSegmenter(
            max_iter=self.config.max_iter,
            tol=self.config.tol,
            empty_cluster_strategy=self.config.empty_cluster_strategy,
            random_state=self.config.random_state
        )
        self.selector = ModelSelector(
            min_k=self.config.min_k,
            max_k=self.config.max_k,
            max_iter=self.config.max_iter,
            tol=self.config.tol,
            empty_cluster_strategy=self.config.empty_cluster_strategy,
            random_state=self.config.random_state,
            n_jobs=self.config.n_jobs
        )
        self.evaluator = ClusterEvaluator()
        self.ranker = SegmentRanker(self.config)

        logger.info("SegmentationPipeline initialized")

    def run(
        self,
        customers: Sequence[Customer],
        orders: Sequence[RawOrder],
        reference_date: Optional[datetime] = None
    ) -> SegmentationOutcome:
        """
        Segment all customers with eligible orders.

        Args:
            customers: All customers
            orders: All orders (only delivered ones count)
            reference_date: Date recency is measured from (default: now)

        Returns:
            ClusteringResult, or EmptyPopulationResult when there is
            nothing to cluster
        """
        created_at = datetime.now(timezone.utc)
        logger.info("Starting RFM segmentation")

        quality = self.feature_engineer.validate_data_quality(customers, orders)
        if not quality.is_valid:
            logger.warning(f"Data quality issues: {len(quality.issues)}")

        records = self.feature_engineer.calculate_rfm(customers, orders, reference_date)
        if not records:
            logger.warning("No customers with delivered orders; skipping clustering")
            return EmptyPopulationResult(
                total_customers=len(customers),
                total_orders=len(orders),
                created_at=created_at
            )

        return self.segment(records, created_at=created_at)

    def segment(
        self,
        records: Sequence[RFMRecord],
        created_at: Optional[datetime] = None
    ) -> ClusteringResult:
        """
        Cluster, evaluate and rank already aggregated RFM records.

        Args:
            records: Non-empty RFM records
            created_at: Timestamp stored on the result

        Returns:
            ClusteringResult
        """
        features = normalize_rfm(records)

        sweep = None
        if self.config.n_clusters is not None:
            k = min(self.config.n_clusters, len(records))
            logger.info(f"Using configured K={k}")
        else:
            try:
                sweep = self.selector.sweep_vectors(features.vectors)
                k = sweep.optimal_k
            except InsufficientPopulationError as e:
                k = min(self.config.default_k, len(records))
                logger.warning(f"{e}; falling back to K={k}")

        result = self.segmenter.cluster(features.vectors, k)
        metrics = self.evaluator.evaluate(features.vectors, result)

        stats = self.ranker.compute_cluster_statistics(records, result.labels, k)
        ranked = self.ranker.rank_and_label(stats)
        labels = self.ranker.label_map(ranked)

        segments = [
            CustomerSegment(
                customer_id=record.customer_id,
                recency=record.recency,
                frequency=record.frequency,
                monetary=record.monetary,
                cluster_id=int(cluster),
                segment=labels[int(cluster)]
            )
            for record, cluster in zip(records, result.labels)
        ]

        centers = [
            ClusterCenter(
                cluster_id=cluster.cluster_id,
                recency_center=float(result.centroids[cluster.cluster_id][0]),
                frequency_center=float(result.centroids[cluster.cluster_id][1]),
                monetary_center=float(result.centroids[cluster.cluster_id][2]),
                ranked=cluster
            )
            for cluster in ranked
        ]

        clustering = ClusteringResult(
            segments=segments,
            centers=centers,
            metrics=metrics,
            n_clusters=k,
            population_statistics=self.feature_engineer.describe_population(records),
            created_at=created_at or datetime.now(timezone.utc),
            degenerate_axes=features.degenerate_axes,
            k_sweep=sweep
        )

        logger.info(
            f"Segmentation complete. {k} clusters, "
            f"distribution: {clustering.segment_counts()}"
        )
        return clustering
