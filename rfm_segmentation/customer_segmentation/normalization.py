"""
Feature Normalization Module
============================

Min-max scaling of RFM records into [0, 1]^3. Axes without variance
normalize to 0 for every record and are reported as degenerate.

Usage:
    from rfm_segmentation.customer_segmentation import normalize_rfm

    features = normalize_rfm(records)
    X = features.vectors
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
from loguru import logger

from .exceptions import EmptyPopulationError
from .models import RFM_AXES, RFMRecord


@dataclass(frozen=True)
class NormalizedFeatures:
    """Normalized feature matrix with the scaling it was produced with."""

    vectors: np.ndarray
    minimum: np.ndarray
    maximum: np.ndarray
    degenerate_axes: Tuple[str, ...]

    def __len__(self) -> int:
        return len(self.vectors)


def min_max_scale(matrix: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Column-wise min-max scaling with the zero-variance rule.

    Returns:
        Tuple of (scaled matrix, column minimum, column maximum)
    """
    matrix = np.asarray(matrix, dtype=float)
    minimum = matrix.min(axis=0)
    maximum = matrix.max(axis=0)
    span = maximum - minimum

    scaled = np.zeros_like(matrix)
    varying = span > 0
    scaled[:, varying] = (matrix[:, varying] - minimum[varying]) / span[varying]

    return scaled, minimum, maximum


def normalize_rfm(records: Sequence[RFMRecord]) -> NormalizedFeatures:
    """
    Normalize RFM records over the given population.

    Args:
        records: RFM records; scaling is computed from exactly these

    Returns:
        NormalizedFeatures with one row per record

    Raises:
        EmptyPopulationError: If records is empty
    """
    if not records:
        raise EmptyPopulationError("Cannot normalize an empty population")

    matrix = np.array([r.as_vector() for r in records], dtype=float)
    vectors, minimum, maximum = min_max_scale(matrix)

    degenerate = tuple(
        axis for axis, lo, hi in zip(RFM_AXES, minimum, maximum) if lo == hi
    )
    if degenerate:
        logger.warning(
            f"No variance in {', '.join(degenerate)}; "
            f"axis normalized to 0 for all {len(records)} customers"
        )

    return NormalizedFeatures(
        vectors=vectors,
        minimum=minimum,
        maximum=maximum,
        degenerate_axes=degenerate
    )
