"""
Common utilities for RFM segmentation.
"""

from .config import SegmentationConfig
from .data_loader import DataLoader
from .reporting import Reporter

__all__ = ["SegmentationConfig", "DataLoader", "Reporter"]
