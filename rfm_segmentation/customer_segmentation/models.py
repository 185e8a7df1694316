"""
Segmentation Data Model
=======================

Value types flowing through the RFM segmentation pipeline. All of them
are rebuilt from scratch on every analysis run.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple

import numpy as np

RFM_AXES = ('recency', 'frequency', 'monetary')

DELIVERED_STATUS = 'delivered'


@dataclass(frozen=True)
class Customer:
    """A customer as exposed by the surrounding system."""

    customer_id: str
    name: str = ''
    email: str = ''


@dataclass(frozen=True)
class RawOrder:
    """An order record; only delivered orders count towards RFM."""

    customer_id: Optional[str]
    total: Optional[float]
    created_at: datetime
    status: str = DELIVERED_STATUS

    @property
    def is_eligible(self) -> bool:
        return (self.status or '').strip().lower() == DELIVERED_STATUS


@dataclass(frozen=True)
class RFMRecord:
    """
    Per-customer Recency/Frequency/Monetary metrics.

    Attributes:
        customer_id: Customer reference
        recency: Whole days since the latest eligible order (>= 0)
        frequency: Number of eligible orders (>= 1)
        monetary: Total value of eligible orders (>= 0)
    """

    customer_id: str
    recency: int
    frequency: int
    monetary: float

    def __post_init__(self):
        if self.recency < 0:
            raise ValueError(f"Recency cannot be negative: {self.recency}")
        if self.frequency < 1:
            raise ValueError(f"Frequency must be positive: {self.frequency}")
        if self.monetary < 0:
            raise ValueError(f"Monetary value cannot be negative: {self.monetary}")

    def as_vector(self) -> Tuple[float, float, float]:
        return (float(self.recency), float(self.frequency), float(self.monetary))


@dataclass(frozen=True)
class ClusterStatistics:
    """Cluster size and mean RFM values in the original scale."""

    cluster_id: int
    size: int
    avg_recency: float
    avg_frequency: float
    avg_monetary: float


@dataclass(frozen=True)
class RankedCluster:
    """Cluster statistics with composite score, rank and segment label."""

    statistics: ClusterStatistics
    composite_score: float
    rank: int
    segment_label: str

    @property
    def cluster_id(self) -> int:
        return self.statistics.cluster_id


@dataclass(frozen=True)
class KMeansResult:
    """Output of a single K-means run in normalized space."""

    centroids: np.ndarray
    labels: np.ndarray
    iterations: int
    converged: bool
    n_reseeds: int = 0

    @property
    def n_clusters(self) -> int:
        return len(self.centroids)


@dataclass(frozen=True)
class EvaluationMetrics:
    """Quality metrics of a clustering result."""

    silhouette_score: float
    wcss: float
    iterations: int
    calinski_harabasz: Optional[float] = None
    davies_bouldin: Optional[float] = None


@dataclass(frozen=True)
class KSweepResult:
    """WCSS (and silhouette) per candidate K together with the elbow choice."""

    k_values: List[int]
    wcss: List[float]
    silhouettes: List[float]
    optimal_k: int


@dataclass(frozen=True)
class CustomerSegment:
    """Final assignment of a single customer."""

    customer_id: str
    recency: int
    frequency: int
    monetary: float
    cluster_id: int
    segment: str


@dataclass(frozen=True)
class ClusterCenter:
    """Ranked cluster with its centroid in normalized space."""

    cluster_id: int
    recency_center: float
    frequency_center: float
    monetary_center: float
    ranked: RankedCluster

    @property
    def segment_label(self) -> str:
        return self.ranked.segment_label


@dataclass(frozen=True)
class DataQualityReport:
    """Outcome of pre-analysis data quality checks."""

    is_valid: bool
    issues: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class EmptyPopulationResult:
    """Explicit "no data" outcome of a segmentation run."""

    total_customers: int
    total_orders: int
    created_at: datetime
    status: str = 'no_data'

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['created_at'] = self.created_at.isoformat()
        return data


@dataclass(frozen=True)
class ClusteringResult:
    """
    Complete, ranked segmentation of a customer population.

    The caller is expected to replace any previously stored result with
    this one in full.
    """

    segments: List[CustomerSegment]
    centers: List[ClusterCenter]
    metrics: EvaluationMetrics
    n_clusters: int
    population_statistics: Dict[str, Dict[str, float]]
    created_at: datetime
    degenerate_axes: Tuple[str, ...] = ()
    k_sweep: Optional[KSweepResult] = None
    status: str = 'ok'

    def segment_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for segment in self.segments:
            counts[segment.segment] = counts.get(segment.segment, 0) + 1
        return counts

    def segment_for(self, customer_id: str) -> Optional[CustomerSegment]:
        """Assignment of one customer, or None if the customer was not segmented."""
        for segment in self.segments:
            if segment.customer_id == customer_id:
                return segment
        return None

    def customers_in_segment(self, label: str) -> List[CustomerSegment]:
        """Customers carrying ``label``, highest monetary value first."""
        members = [s for s in self.segments if s.segment == label]
        return sorted(members, key=lambda s: s.monetary, reverse=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        centers = []
        for center in self.centers:
            stats = center.ranked.statistics
            centers.append({
                'cluster_id': center.cluster_id,
                'recency_center': center.recency_center,
                'frequency_center': center.frequency_center,
                'monetary_center': center.monetary_center,
                'segment_label': center.segment_label,
                'rank': center.ranked.rank,
                'composite_score': center.ranked.composite_score,
                'size': stats.size,
                'avg_recency': stats.avg_recency,
                'avg_frequency': stats.avg_frequency,
                'avg_monetary': stats.avg_monetary,
            })

        return {
            'status': self.status,
            'created_at': self.created_at.isoformat(),
            'n_clusters': self.n_clusters,
            'metrics': asdict(self.metrics),
            'degenerate_axes': list(self.degenerate_axes),
            'population_statistics': self.population_statistics,
            'k_sweep': asdict(self.k_sweep) if self.k_sweep else None,
            'cluster_centers': centers,
            'segments': [asdict(s) for s in self.segments],
        }
