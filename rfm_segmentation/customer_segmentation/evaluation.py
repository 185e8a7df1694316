"""
Cluster Evaluation Module
=========================

Within-cluster sum of squares and silhouette score for K-Means results,
plus the Calinski-Harabasz and Davies-Bouldin indices where defined.

Usage:
    from rfm_segmentation.customer_segmentation import ClusterEvaluator

    evaluator = ClusterEvaluator()
    metrics = evaluator.evaluate(features.vectors, result)
    print(f"Silhouette: {metrics.silhouette_score:.3f}")
"""

from typing import Optional

import numpy as np
from scipy.spatial.distance import cdist
from sklearn.metrics import calinski_harabasz_score, davies_bouldin_score
from loguru import logger

from .models import KMeansResult, EvaluationMetrics


def wcss(X: np.ndarray, centroids: np.ndarray, labels: np.ndarray) -> float:
    """Sum of squared distances from each point to its assigned centroid."""
    X = np.asarray(X, dtype=float)
    residuals = X - np.asarray(centroids, dtype=float)[np.asarray(labels)]
    return float(np.sum(residuals ** 2))


def silhouette_samples(X: np.ndarray, labels: np.ndarray) -> np.ndarray:
    """
    Per-point silhouette values.

    a(i) is the mean distance to the other members of the point's own
    cluster (0 for a singleton), b(i) the smallest mean distance to the
    members of any other non-empty cluster. Points where a(i) and b(i)
    are both 0 score 0.

    Args:
        X: Points, shape (n, d)
        labels: Cluster index per point

    Returns:
        Array of silhouette values, shape (n,)
    """
    X = np.asarray(X, dtype=float)
    labels = np.asarray(labels)
    n = len(X)

    clusters = np.unique(labels)
    if n <= 1 or len(clusters) < 2:
        return np.zeros(n)

    distances = cdist(X, X)

    # mean distance from every point to every non-empty cluster
    sizes = np.array([np.sum(labels == c) for c in clusters])
    sums = np.column_stack([distances[:, labels == c].sum(axis=1) for c in clusters])
    own = np.searchsorted(clusters, labels)

    own_sizes = sizes[own]
    a = np.zeros(n)
    multi = own_sizes > 1
    a[multi] = sums[np.arange(n), own][multi] / (own_sizes[multi] - 1)

    means = sums / sizes
    means[np.arange(n), own] = np.inf
    b = means.min(axis=1)

    denom = np.maximum(a, b)
    scores = np.zeros(n)
    valid = denom > 0
    scores[valid] = (b[valid] - a[valid]) / denom[valid]

    return scores


def silhouette(X: np.ndarray, labels: np.ndarray) -> float:
    """Mean silhouette value; 0 for populations of one or fewer."""
    scores = silhouette_samples(X, labels)
    if len(scores) <= 1:
        return 0.0
    return float(scores.mean())


class ClusterEvaluator:
    """
    Quality metrics for a clustering of normalized RFM vectors.

    Example:
        >>> evaluator = ClusterEvaluator()
        >>> metrics = evaluator.evaluate(X, result)
    """

    def evaluate(self, X: np.ndarray, result: KMeansResult) -> EvaluationMetrics:
        """
        Calculate clustering quality metrics.

        Args:
            X: Normalized vectors that were clustered
            result: K-Means result for X

        Returns:
            EvaluationMetrics
        """
        X = np.asarray(X, dtype=float)
        labels = np.asarray(result.labels)

        metrics = EvaluationMetrics(
            silhouette_score=silhouette(X, labels),
            wcss=wcss(X, result.centroids, labels),
            iterations=result.iterations,
            calinski_harabasz=self._calinski_harabasz(X, labels),
            davies_bouldin=self._davies_bouldin(X, labels)
        )

        logger.info(
            f"Evaluated {result.n_clusters} clusters: "
            f"silhouette={metrics.silhouette_score:.3f}, WCSS={metrics.wcss:.4f}"
        )
        return metrics

    @staticmethod
    def _defined(X: np.ndarray, labels: np.ndarray) -> bool:
        return 2 <= len(np.unique(labels)) <= len(X) - 1

    def _calinski_harabasz(self, X: np.ndarray, labels: np.ndarray) -> Optional[float]:
        if not self._defined(X, labels):
            return None
        score = float(calinski_harabasz_score(X, labels))
        return score if np.isfinite(score) else None

    def _davies_bouldin(self, X: np.ndarray, labels: np.ndarray) -> Optional[float]:
        if not self._defined(X, labels):
            return None
        score = float(davies_bouldin_score(X, labels))
        return score if np.isfinite(score) else None
