"""
Customer Segmentation Module
============================

RFM feature engineering with K-Means++ clustering, elbow-based K
selection and ranked segment labelling.
"""

from .exceptions import (
    SegmentationError,
    EmptyPopulationError,
    InsufficientPopulationError,
    DataLoadError,
)
from .models import (
    Customer,
    RawOrder,
    RFMRecord,
    ClusterStatistics,
    RankedCluster,
    KMeansResult,
    EvaluationMetrics,
    KSweepResult,
    CustomerSegment,
    ClusterCenter,
    DataQualityReport,
    ClusteringResult,
    EmptyPopulationResult,
)
from .rfm_features import RFMFeatureEngineer
from .normalization import NormalizedFeatures, normalize_rfm
from .kmeans_clustering import KMeansSegmenter, kmeans
from .evaluation import ClusterEvaluator, silhouette, wcss
from .model_selection import ModelSelector, candidate_k_range, find_elbow
from .segment_analysis import SegmentRanker
from .pipeline import SegmentationPipeline, is_rerun_due

__all__ = [
    "SegmentationError",
    "EmptyPopulationError",
    "InsufficientPopulationError",
    "DataLoadError",
    "Customer",
    "RawOrder",
    "RFMRecord",
    "ClusterStatistics",
    "RankedCluster",
    "KMeansResult",
    "EvaluationMetrics",
    "KSweepResult",
    "CustomerSegment",
    "ClusterCenter",
    "DataQualityReport",
    "ClusteringResult",
    "EmptyPopulationResult",
    "RFMFeatureEngineer",
    "NormalizedFeatures",
    "normalize_rfm",
    "KMeansSegmenter",
    "kmeans",
    "ClusterEvaluator",
    "silhouette",
    "wcss",
    "ModelSelector",
    "candidate_k_range",
    "find_elbow",
    "SegmentRanker",
    "SegmentationPipeline",
    "is_rerun_due",
]
