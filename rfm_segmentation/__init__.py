"""
RFM Customer Segmentation
=========================

Segments customers by Recency, Frequency and Monetary value:

- RFM metric aggregation from delivered orders
- Min-max feature normalization
- K-Means++ clustering with elbow-based K selection
- WCSS / silhouette evaluation
- Ranked segment labels (VIP, Loyal, Potential, Pay Attention)

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Retail Analytics Team"

from .common import SegmentationConfig, DataLoader, Reporter
from .customer_segmentation import (
    Customer,
    RawOrder,
    RFMRecord,
    ClusteringResult,
    EmptyPopulationResult,
    RFMFeatureEngineer,
    KMeansSegmenter,
    ModelSelector,
    ClusterEvaluator,
    SegmentRanker,
    SegmentationPipeline,
    is_rerun_due,
)

__all__ = [
    "SegmentationConfig",
    "DataLoader",
    "Reporter",
    "Customer",
    "RawOrder",
    "RFMRecord",
    "ClusteringResult",
    "EmptyPopulationResult",
    "RFMFeatureEngineer",
    "KMeansSegmenter",
    "ModelSelector",
    "ClusterEvaluator",
    "SegmentRanker",
    "SegmentationPipeline",
    "is_rerun_due",
]
