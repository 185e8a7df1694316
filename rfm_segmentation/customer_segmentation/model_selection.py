"""
Model Selection Module
======================

Elbow-method selection of the number of clusters. Every candidate K is
an independent K-Means trial over the same normalized population with
its own random stream, so trials can run concurrently.

Usage:
    from rfm_segmentation.customer_segmentation import ModelSelector

    selector = ModelSelector(random_state=42)
    k = selector.select_optimal_k(records)
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from .evaluation import silhouette, wcss
from .exceptions import InsufficientPopulationError
from .kmeans_clustering import KMeansSegmenter
from .models import RFMRecord, KSweepResult
from .normalization import normalize_rfm


def candidate_k_range(n_customers: int, min_k: int = 2, max_k: int = 8) -> range:
    """
    Candidate K values for a population of the given size.

    The sweep covers min_k .. min(max_k, n_customers // 2).

    Raises:
        InsufficientPopulationError: If fewer than 2 * min_k customers
    """
    upper = min(max_k, n_customers // 2)
    if upper < min_k:
        raise InsufficientPopulationError(n_customers, 2 * min_k)
    return range(min_k, upper + 1)


def find_elbow(k_values: Sequence[int], inertias: Sequence[float]) -> int:
    """
    Pick the K where the marginal WCSS reduction drops off most sharply.

    For each interior K the score is the improvement over the previous K
    minus the improvement of the next K. The first K wins unless some
    interior K scores strictly above 0.
    """
    if not k_values:
        raise ValueError("k_values must not be empty")

    optimal_k = k_values[0]
    best = 0.0

    for i in range(1, len(k_values) - 1):
        improvement = inertias[i - 1] - inertias[i]
        next_improvement = inertias[i] - inertias[i + 1]
        score = improvement - next_improvement
        if score > best:
            best = score
            optimal_k = k_values[i]

    return optimal_k


class ModelSelector:
    """
    Elbow-method selection of K over normalized RFM features.

    Example:
        >>> selector = ModelSelector(random_state=42, n_jobs=4)
        >>> sweep = selector.sweep(records)
        >>> print(sweep.k_values, sweep.wcss, sweep.optimal_k)
    """

    def __init__(
        self,
        min_k: int = 2,
        max_k: int = 8,
        max_iter: int = 100,
        tol: float = 1e-4,
        empty_cluster_strategy: str = 'random',
        random_state: Optional[int] = None,
        n_jobs: int = 1,
        compute_silhouettes: bool = True
    ):
        """
        Initialize ModelSelector.

        Args:
            min_k: Smallest candidate K
            max_k: Largest candidate K
            max_iter: K-Means iteration cap per trial
            tol: K-Means convergence threshold
            empty_cluster_strategy: Reseeding policy for empty clusters
            random_state: Seed from which per-trial seeds are spawned
            n_jobs: Number of worker threads for the trials
            compute_silhouettes: Also record the silhouette per K
        """
        self.min_k = min_k
        self.max_k = max_k
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.compute_silhouettes = compute_silhouettes

        self.segmenter = KMeansSegmenter(
            max_iter=max_iter,
            tol=tol,
            empty_cluster_strategy=empty_cluster_strategy
        )

    def select_optimal_k(self, records: Sequence[RFMRecord]) -> int:
        """
        Select the number of clusters for a population.

        Args:
            records: RFM records of the population

        Returns:
            Optimal K

        Raises:
            InsufficientPopulationError: If the population is too small to sweep
        """
        return self.sweep(records).optimal_k

    def sweep(self, records: Sequence[RFMRecord]) -> KSweepResult:
        """
        Run one K-Means trial per candidate K and apply the elbow rule.

        Args:
            records: RFM records of the population

        Returns:
            KSweepResult with WCSS (and silhouette) per K
        """
        # population size is checked before normalizing
        candidate_k_range(len(records), self.min_k, self.max_k)
        return self.sweep_vectors(normalize_rfm(records).vectors)

    def sweep_vectors(self, X: np.ndarray) -> KSweepResult:
        """
        Same as :meth:`sweep` for an already normalized feature matrix.

        Args:
            X: Normalized RFM vectors, one row per customer

        Returns:
            KSweepResult with WCSS (and silhouette) per K
        """
        X = np.asarray(X, dtype=float)
        k_values = list(candidate_k_range(len(X), self.min_k, self.max_k))

        seeds = np.random.SeedSequence(self.random_state).spawn(len(k_values))
        trials = list(zip(k_values, seeds))

        logger.info(f"Sweeping K in {k_values[0]}..{k_values[-1]} over {len(X)} customers")

        if self.n_jobs > 1 and len(trials) > 1:
            with ThreadPoolExecutor(max_workers=self.n_jobs) as executor:
                outcomes = list(executor.map(lambda t: self._run_trial(X, *t), trials))
        else:
            outcomes = [self._run_trial(X, k, seed) for k, seed in trials]

        inertias = [o[0] for o in outcomes]
        silhouettes = [o[1] for o in outcomes]

        optimal_k = find_elbow(k_values, inertias)
        logger.info(f"Elbow method K={optimal_k}")
        for k, inertia in zip(k_values, inertias):
            logger.debug(f"K={k}: WCSS={inertia:.4f}")

        return KSweepResult(
            k_values=k_values,
            wcss=inertias,
            silhouettes=silhouettes,
            optimal_k=optimal_k
        )

    def _run_trial(
        self,
        X: np.ndarray,
        k: int,
        seed: np.random.SeedSequence
    ) -> Tuple[float, float]:
        result = self.segmenter.cluster(X, k, random_state=seed)
        inertia = wcss(X, result.centroids, result.labels)
        score = silhouette(X, result.labels) if self.compute_silhouettes else 0.0
        return inertia, score
