"""
Segmentation Errors
===================

Error taxonomy for the RFM segmentation pipeline.
"""


class SegmentationError(Exception):
    """Base class for all segmentation errors."""


class EmptyPopulationError(SegmentationError):
    """Raised when there are no customers with eligible orders to cluster."""


class InsufficientPopulationError(SegmentationError):
    """Raised when the population is too small for the K sweep."""

    def __init__(self, n_customers: int, minimum: int):
        self.n_customers = n_customers
        self.minimum = minimum
        super().__init__(
            f"K sweep needs at least {minimum} customers, got {n_customers}"
        )


class DataLoadError(SegmentationError):
    """Raised when customers or orders cannot be loaded."""
