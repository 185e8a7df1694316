"""
Segment Analysis Module
=======================

Turns K-Means clusters into ranked, labelled customer segments.

Each cluster gets a composite desirability score from its average
recency (inverted, fresher is better), frequency and monetary value.
Clusters are ranked by that score and mapped onto an ordered label
vocabulary such as VIP / Loyal / Potential / Pay Attention.

Usage:
    from rfm_segmentation.customer_segmentation import SegmentRanker

    ranker = SegmentRanker(config)
    stats = ranker.compute_cluster_statistics(records, labels, k)
    ranked = ranker.rank_and_label(stats)
"""

from typing import Optional, List, Dict, Sequence

import numpy as np
import pandas as pd
from loguru import logger

from rfm_segmentation.common.config import SegmentationConfig
from .models import RFMRecord, ClusterStatistics, RankedCluster


class SegmentRanker:
    """
    Rank clusters by composite score and attach segment labels.

    Weights and labels come from SegmentationConfig, so business policy
    can change without touching the clustering code.

    Example:
        >>> ranker = SegmentRanker()
        >>> ranked = ranker.rank_and_label(stats)
        >>> print([(c.rank, c.segment_label) for c in ranked])
    """

    def __init__(self, config: Optional[SegmentationConfig] = None):
        """
        Initialize SegmentRanker.

        Args:
            config: Segmentation policy (defaults when None)
        """
        self.config = config or SegmentationConfig()

    def compute_cluster_statistics(
        self,
        records: Sequence[RFMRecord],
        labels: Sequence[int],
        n_clusters: int
    ) -> List[ClusterStatistics]:
        """
        Size and mean RFM values of each cluster in the original scale.

        Args:
            records: RFM records that were clustered
            labels: Cluster index per record
            n_clusters: Number of clusters (empty ones included)

        Returns:
            ClusterStatistics ordered by cluster id
        """
        if len(records) != len(labels):
            raise ValueError(
                f"Got {len(records)} records but {len(labels)} cluster labels"
            )

        df = pd.DataFrame({
            'cluster': np.asarray(labels, dtype=int),
            'recency': [r.recency for r in records],
            'frequency': [r.frequency for r in records],
            'monetary': [r.monetary for r in records],
        })

        profile = df.groupby('cluster').agg(
            size=('recency', 'size'),
            avg_recency=('recency', 'mean'),
            avg_frequency=('frequency', 'mean'),
            avg_monetary=('monetary', 'mean')
        )

        stats = []
        for cluster in range(n_clusters):
            if cluster in profile.index:
                row = profile.loc[cluster]
                stats.append(ClusterStatistics(
                    cluster_id=cluster,
                    size=int(row['size']),
                    avg_recency=float(row['avg_recency']),
                    avg_frequency=float(row['avg_frequency']),
                    avg_monetary=float(row['avg_monetary'])
                ))
            else:
                logger.warning(f"Cluster {cluster} has no customers; its averages are reported as 0")
                stats.append(ClusterStatistics(cluster, 0, 0.0, 0.0, 0.0))

        return stats

    def composite_score(self, stats: ClusterStatistics) -> float:
        """Weighted desirability score of a cluster."""
        recency_score = 1.0 / stats.avg_recency if stats.avg_recency != 0 else 1.0

        return (
            self.config.recency_weight * recency_score
            + self.config.frequency_weight * stats.avg_frequency
            + self.config.monetary_weight * stats.avg_monetary
        )

    def label_for_rank(self, rank: int) -> str:
        """Label of a 1-based rank; ranks past the vocabulary get the last label."""
        labels = self.config.segment_labels
        return labels[min(rank, len(labels)) - 1]

    def rank_and_label(
        self,
        cluster_stats: Sequence[ClusterStatistics]
    ) -> List[RankedCluster]:
        """
        Rank clusters by composite score, best first.

        Args:
            cluster_stats: Statistics of every cluster

        Returns:
            RankedCluster list ordered by rank (1 = best)
        """
        scored = [(self.composite_score(s), s) for s in cluster_stats]
        # stable sort keeps cluster id order on equal scores
        scored.sort(key=lambda item: item[0], reverse=True)

        ranked = [
            RankedCluster(
                statistics=stats,
                composite_score=score,
                rank=rank,
                segment_label=self.label_for_rank(rank)
            )
            for rank, (score, stats) in enumerate(scored, start=1)
        ]

        for cluster in ranked:
            logger.debug(
                f"Cluster {cluster.cluster_id}: rank={cluster.rank} "
                f"label={cluster.segment_label} score={cluster.composite_score:.2f}"
            )

        return ranked

    def label_map(self, ranked: Sequence[RankedCluster]) -> Dict[int, str]:
        """Mapping cluster id -> segment label."""
        return {c.cluster_id: c.segment_label for c in ranked}

    def get_campaign_recommendations(
        self,
        ranked: Sequence[RankedCluster],
        total_customers: Optional[int] = None
    ) -> List[str]:
        """
        Generate a campaign recommendation for each ranked cluster.

        Args:
            ranked: Ranked clusters, best first
            total_customers: Population size for percentages

        Returns:
            List of recommendations in rank order
        """
        total = total_customers or sum(c.statistics.size for c in ranked) or 1
        median_frequency = np.median([c.statistics.avg_frequency for c in ranked])
        median_recency = np.median([c.statistics.avg_recency for c in ranked])

        recommendations = []

        for cluster in ranked:
            stats = cluster.statistics
            pct = stats.size / total * 100
            rec = (
                f"{cluster.segment_label} (cluster {cluster.cluster_id}, "
                f"{stats.size} customers, {pct:.1f}%): "
            )

            if cluster.rank == 1:
                rec += "VIP treatment - exclusive offers, early access, loyalty rewards. "
                rec += f"High value ({stats.avg_monetary:,.0f} avg), focus on retention."
            elif stats.avg_frequency > median_frequency:
                rec += "Cross-sell and upsell opportunities. "
                rec += f"Frequent buyers ({stats.avg_frequency:.1f} orders), increase basket size."
            elif stats.avg_recency < median_recency:
                rec += "Nurture new relationships. "
                rec += f"Recent customers ({stats.avg_recency:.0f} days), welcome series."
            else:
                rec += "Reactivation campaigns needed. "
                rec += f"At risk ({stats.avg_recency:.0f} days since last order), win-back offers."

            recommendations.append(rec)

        return recommendations
