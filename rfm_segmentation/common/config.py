"""
Segmentation Configuration
==========================

Business policy for RFM segmentation: composite score weights, the
ordered segment label vocabulary, K sweep bounds and K-means parameters.

Usage:
    from rfm_segmentation.common import SegmentationConfig

    config = SegmentationConfig.from_yaml("config/settings.yaml")
    config = SegmentationConfig(monetary_weight=0.5, frequency_weight=0.2)
"""

from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Optional, List, Dict, Any, Union

import yaml
from loguru import logger

DEFAULT_SEGMENT_LABELS = ['VIP', 'Loyal', 'Potential', 'Pay Attention']

EMPTY_CLUSTER_STRATEGIES = ('random', 'farthest')


@dataclass
class SegmentationConfig:
    """
    Tunable policy for the segmentation pipeline.

    Attributes:
        recency_weight: Weight of the inverse-recency score
        frequency_weight: Weight of the average frequency
        monetary_weight: Weight of the average monetary value
        segment_labels: Labels ordered from best to worst rank
        min_k: Smallest K in the elbow sweep
        max_k: Largest K in the elbow sweep (also capped at n // 2)
        default_k: K used when the population is too small to sweep
        n_clusters: Fixed K; skips the sweep when set
        max_iter: K-means iteration cap
        tol: Per-coordinate centroid movement below which K-means stops
        empty_cluster_strategy: 'random' or 'farthest' reseeding
        random_state: Seed for all randomness (None for fresh entropy)
        n_jobs: Worker threads for the K sweep (1 runs sequentially)
        min_customers_for_clustering: Data quality threshold
        rerun_interval_days: Days between scheduled runs
    """

    recency_weight: float = 0.3
    frequency_weight: float = 0.3
    monetary_weight: float = 0.4
    segment_labels: List[str] = field(default_factory=lambda: list(DEFAULT_SEGMENT_LABELS))
    min_k: int = 2
    max_k: int = 8
    default_k: int = 4
    n_clusters: Optional[int] = None
    max_iter: int = 100
    tol: float = 1e-4
    empty_cluster_strategy: str = 'random'
    random_state: Optional[int] = None
    n_jobs: int = 1
    min_customers_for_clustering: int = 10
    rerun_interval_days: int = 7

    def __post_init__(self):
        weights = (self.recency_weight, self.frequency_weight, self.monetary_weight)
        if any(w < 0 for w in weights):
            raise ValueError(f"Weights must be non-negative: {weights}")
        if not self.segment_labels:
            raise ValueError("At least one segment label is required")
        if self.min_k < 2:
            raise ValueError(f"min_k must be at least 2, got {self.min_k}")
        if self.max_k < self.min_k:
            raise ValueError(f"max_k ({self.max_k}) must be >= min_k ({self.min_k})")
        if self.default_k < 1:
            raise ValueError(f"default_k must be positive, got {self.default_k}")
        if self.n_clusters is not None and self.n_clusters < 1:
            raise ValueError(f"n_clusters must be positive, got {self.n_clusters}")
        if self.max_iter < 1:
            raise ValueError(f"max_iter must be positive, got {self.max_iter}")
        if self.tol <= 0:
            raise ValueError(f"tol must be positive, got {self.tol}")
        if self.empty_cluster_strategy not in EMPTY_CLUSTER_STRATEGIES:
            raise ValueError(f"Unknown empty cluster strategy: {self.empty_cluster_strategy}")
        if self.n_jobs < 1:
            raise ValueError(f"n_jobs must be positive, got {self.n_jobs}")

    @property
    def weights(self) -> Dict[str, float]:
        return {
            'recency': self.recency_weight,
            'frequency': self.frequency_weight,
            'monetary': self.monetary_weight,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'SegmentationConfig':
        """Build a config from a dictionary, ignoring unknown keys."""
        data = data or {}
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known - {'weights'}
        if unknown:
            logger.warning(f"Ignoring unknown segmentation settings: {sorted(unknown)}")

        # Nested `weights:` mapping is accepted as a shorthand
        weights = data.get('weights') or {}
        kwargs = {k: v for k, v in data.items() if k in known}
        for axis in ('recency', 'frequency', 'monetary'):
            if axis in weights:
                kwargs[f'{axis}_weight'] = weights[axis]

        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, config_path: Optional[Union[str, Path]]) -> 'SegmentationConfig':
        """
        Load the `segmentation` section of a YAML file.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            SegmentationConfig (defaults when the file does not exist)
        """
        if config_path and Path(config_path).exists():
            with open(config_path, 'r') as f:
                raw = yaml.safe_load(f) or {}
            logger.info(f"Loaded segmentation config from {config_path}")
            section = dict(raw.get('segmentation') or {})
            if 'weights' in section:
                section['weights'] = dict(section['weights'] or {})
            return cls.from_dict(section)

        logger.info("Using default segmentation config")
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
