"""
K-Means Clustering Module
=========================

K-Means with k-means++ seeding over normalized RFM vectors.

Assignment scans centroids in index order and only switches on a strict
improvement, so ties go to the lowest cluster index. A cluster that ends
an iteration without members is reseeded, either to a uniformly random
point of the unit cube ('random') or to the point currently farthest
from its centroid ('farthest'). Random reseeding makes results depend
on the random source; a fixed seed reproduces them exactly.

Usage:
    from rfm_segmentation.customer_segmentation import KMeansSegmenter

    segmenter = KMeansSegmenter(random_state=42)
    result = segmenter.cluster(features.vectors, k=4)
    print(result.labels, result.iterations)
"""

from typing import Optional, Union

import numpy as np
from loguru import logger

from .models import KMeansResult

SeedLike = Union[None, int, np.random.SeedSequence, np.random.Generator]


def squared_distances(X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Squared Euclidean distance of every point to every centroid, shape (n, k)."""
    diff = X[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    return np.einsum('nkd,nkd->nk', diff, diff)


def assign_clusters(X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Index of the nearest centroid for each point (lowest index on ties)."""
    return np.argmin(squared_distances(X, centroids), axis=1)


def kmeans_plus_plus(X: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """
    Choose k initial centroids with D^2 weighting.

    Args:
        X: Points, shape (n, d)
        k: Number of centroids
        rng: Random source

    Returns:
        Initial centroids, shape (k, d)
    """
    n = len(X)
    centroids = np.empty((k, X.shape[1]), dtype=float)

    centroids[0] = X[rng.integers(n)]
    closest = squared_distances(X, centroids[:1])[:, 0]

    for c in range(1, k):
        total = closest.sum()
        if total > 0:
            index = rng.choice(n, p=closest / total)
        else:
            # every point coincides with a chosen centroid
            index = rng.integers(n)

        centroids[c] = X[index]
        closest = np.minimum(closest, squared_distances(X, centroids[c:c + 1])[:, 0])

    return centroids


def kmeans(
    X: np.ndarray,
    k: int,
    max_iter: int = 100,
    tol: float = 1e-4,
    empty_cluster_strategy: str = 'random',
    random_state: SeedLike = None
) -> KMeansResult:
    """
    Run K-Means to convergence.

    Args:
        X: Normalized points, shape (n, d)
        k: Number of clusters (1 <= k <= n)
        max_iter: Iteration cap
        tol: Convergence threshold on per-coordinate centroid movement
        empty_cluster_strategy: 'random' or 'farthest'
        random_state: Seed, SeedSequence or Generator

    Returns:
        KMeansResult with centroids, labels and the iteration count
    """
    X = np.asarray(X, dtype=float)
    if X.ndim != 2 or len(X) == 0:
        raise ValueError(f"Expected a non-empty 2-D array, got shape {X.shape}")
    if not 1 <= k <= len(X):
        raise ValueError(f"k must be between 1 and {len(X)}, got {k}")
    if max_iter < 1:
        raise ValueError(f"max_iter must be positive, got {max_iter}")
    if empty_cluster_strategy not in ('random', 'farthest'):
        raise ValueError(f"Unknown empty cluster strategy: {empty_cluster_strategy}")

    rng = np.random.default_rng(random_state)
    centroids = kmeans_plus_plus(X, k, rng)

    iterations = 0
    converged = False
    n_reseeds = 0

    while iterations < max_iter:
        labels = assign_clusters(X, centroids)
        new_centroids, reseeded = _update_centroids(
            X, labels, centroids, k, empty_cluster_strategy, rng
        )
        n_reseeds += reseeded
        iterations += 1

        shift = np.abs(new_centroids - centroids).max()
        centroids = new_centroids

        if shift < tol:
            converged = True
            break

    labels = assign_clusters(X, centroids)

    if not converged:
        logger.warning(f"K-Means (k={k}) stopped at max_iter={max_iter} without converging")
    if n_reseeds:
        logger.debug(f"K-Means (k={k}) reseeded {n_reseeds} empty clusters")

    return KMeansResult(
        centroids=centroids,
        labels=labels,
        iterations=iterations,
        converged=converged,
        n_reseeds=n_reseeds
    )


def _update_centroids(
    X: np.ndarray,
    labels: np.ndarray,
    centroids: np.ndarray,
    k: int,
    strategy: str,
    rng: np.random.Generator
):
    """Recompute centroids as member means; reseed the empty ones."""
    new_centroids = np.empty_like(centroids)
    empty = []

    for cluster in range(k):
        members = X[labels == cluster]
        if len(members) == 0:
            empty.append(cluster)
        else:
            new_centroids[cluster] = members.mean(axis=0)

    if not empty:
        return new_centroids, 0

    if strategy == 'random':
        for cluster in empty:
            new_centroids[cluster] = rng.random(X.shape[1])
    else:
        # distance of each point to the centroid it was assigned to
        own = squared_distances(X, centroids)[np.arange(len(X)), labels]
        for cluster in empty:
            farthest = int(np.argmax(own))
            new_centroids[cluster] = X[farthest]
            own[farthest] = -1.0

    return new_centroids, len(empty)


class KMeansSegmenter:
    """
    K-Means++ clustering for customer segmentation.

    Holds the K-Means parameters so the same engine can be run for many
    candidate K values. Each call to cluster() without an explicit
    random source draws from a fresh generator seeded with random_state,
    so repeated calls on identical input return identical results when
    random_state is fixed.

    Example:
        >>> segmenter = KMeansSegmenter(random_state=42)
        >>> segmenter.fit(features.vectors, n_clusters=3)
        >>> labels = segmenter.predict(features.vectors)
    """

    def __init__(
        self,
        max_iter: int = 100,
        tol: float = 1e-4,
        empty_cluster_strategy: str = 'random',
        random_state: Optional[int] = None
    ):
        """
        Initialize K-Means Segmenter.

        Args:
            max_iter: Maximum iterations per run
            tol: Convergence threshold
            empty_cluster_strategy: Reseeding policy for empty clusters
            random_state: Random seed for reproducibility
        """
        self.max_iter = max_iter
        self.tol = tol
        self.empty_cluster_strategy = empty_cluster_strategy
        self.random_state = random_state

        self.result_ = None
        self.cluster_centers_ = None
        self.labels_ = None
        self.n_iter_ = None

    def cluster(
        self,
        vectors: np.ndarray,
        k: int,
        random_state: SeedLike = None
    ) -> KMeansResult:
        """
        Cluster normalized vectors into k groups.

        Args:
            vectors: Normalized RFM vectors, shape (n, 3)
            k: Number of clusters
            random_state: Overrides the segmenter's seed for this run

        Returns:
            KMeansResult
        """
        seed = self.random_state if random_state is None else random_state
        return kmeans(
            vectors,
            k,
            max_iter=self.max_iter,
            tol=self.tol,
            empty_cluster_strategy=self.empty_cluster_strategy,
            random_state=seed
        )

    def fit(self, vectors: np.ndarray, n_clusters: int) -> 'KMeansSegmenter':
        """
        Fit K-Means and keep the result on the segmenter.

        Returns:
            Self for method chaining
        """
        self.result_ = self.cluster(vectors, n_clusters)
        self.cluster_centers_ = self.result_.centroids
        self.labels_ = self.result_.labels
        self.n_iter_ = self.result_.iterations

        logger.info(
            f"Fitted K-Means with {n_clusters} clusters "
            f"in {self.n_iter_} iterations"
        )
        return self

    def predict(self, vectors: np.ndarray) -> np.ndarray:
        """Assign vectors to the nearest fitted centroid."""
        if self.cluster_centers_ is None:
            raise ValueError("Model not fitted. Call fit() first.")
        return assign_clusters(np.asarray(vectors, dtype=float), self.cluster_centers_)
