"""
Reporting Module
================

Writes segmentation results to disk. The latest result file is always
replaced as a whole; previous assignments are never merged into it.

Usage:
    from rfm_segmentation.common import Reporter

    reporter = Reporter(output_dir="outputs")
    reporter.generate_segmentation_report(result, "customer_segments")
    reporter.write_latest(result)
"""

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any, Union

import numpy as np
import pandas as pd
from loguru import logger

from rfm_segmentation.customer_segmentation.models import (
    ClusteringResult,
    EmptyPopulationResult,
)

LATEST_RESULT_NAME = 'latest_segmentation.json'


class Reporter:
    """
    Report generation for segmentation results.

    Example:
        >>> reporter = Reporter(output_dir="outputs")
        >>> paths = reporter.generate_segmentation_report(result, "segments")
    """

    def __init__(self, output_dir: Union[str, Path] = "outputs"):
        """
        Initialize Reporter.

        Args:
            output_dir: Directory for saving reports
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Reporter initialized. Output: {self.output_dir}")

    @property
    def latest_path(self) -> Path:
        return self.output_dir / LATEST_RESULT_NAME

    def generate_segmentation_report(
        self,
        result: Union[ClusteringResult, EmptyPopulationResult],
        report_name: str,
        formats: List[str] = ('csv', 'json'),
        recommendations: Optional[List[str]] = None
    ) -> Dict[str, Path]:
        """
        Generate a timestamped segmentation report.

        Args:
            result: Outcome of a segmentation run
            report_name: Base name for report files
            formats: Output formats ('csv', 'json')
            recommendations: Campaign recommendations to include

        Returns:
            Dictionary of format -> file path
        """
        output_paths = {}
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

        if 'csv' in formats and isinstance(result, ClusteringResult):
            csv_path = self.output_dir / f"{report_name}_{timestamp}.csv"
            self.segments_frame(result).to_csv(csv_path, index=False)
            output_paths['csv'] = csv_path

        if 'json' in formats:
            json_path = self.output_dir / f"{report_name}_{timestamp}.json"
            payload = result.to_dict()
            if recommendations:
                payload['recommendations'] = recommendations

            with open(json_path, 'w') as f:
                json.dump(self._convert_to_serializable(payload), f, indent=2)
            output_paths['json'] = json_path

        logger.info(f"Generated segmentation report: {report_name}")
        return output_paths

    def write_latest(
        self,
        result: Union[ClusteringResult, EmptyPopulationResult],
        path: Optional[Union[str, Path]] = None
    ) -> Path:
        """
        Replace the stored latest result with this one.

        The file is written next to its destination and moved into place,
        so readers see either the previous result or the new one.

        Args:
            result: Outcome of a segmentation run
            path: Destination (default: <output_dir>/latest_segmentation.json)

        Returns:
            Path written
        """
        path = Path(path) if path else self.latest_path
        payload = self._convert_to_serializable(result.to_dict())

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.info(f"Stored latest segmentation at {path}")
        return path

    def read_latest(self, path: Optional[Union[str, Path]] = None) -> Optional[Dict[str, Any]]:
        """
        Load the stored latest result.

        A missing, unreadable or malformed file is treated as no stored
        result so that the next run starts from scratch.

        Args:
            path: Source (default: <output_dir>/latest_segmentation.json)

        Returns:
            Stored payload, or None
        """
        path = Path(path) if path else self.latest_path
        if not path.exists():
            return None

        try:
            with open(path, 'r') as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable segmentation file {path}: {e}")
            return None

        if not isinstance(payload, dict):
            logger.warning(f"Ignoring segmentation file {path}: expected an object")
            return None
        return payload

    def read_last_run_at(self, path: Optional[Union[str, Path]] = None) -> Optional[datetime]:
        """Creation time of the stored latest result, or None if there is none."""
        payload = self.read_latest(path)
        if payload is None:
            return None

        created_at = payload.get('created_at')
        if not created_at:
            return None
        try:
            return datetime.fromisoformat(created_at)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid created_at in stored segmentation: {created_at!r}")
            return None

    def all_segmentations(self) -> List[Dict[str, Any]]:
        """Every stored customer assignment, in stored order."""
        payload = self.read_latest()
        if payload is None:
            return []
        return list(payload.get('segments') or [])

    def segment_for(self, customer_id: str) -> Optional[Dict[str, Any]]:
        """Stored assignment of one customer, or None."""
        for segment in self.all_segmentations():
            if segment.get('customer_id') == customer_id:
                return segment
        return None

    def customers_in_segment(self, label: str) -> List[Dict[str, Any]]:
        """Stored assignments carrying ``label``, highest monetary value first."""
        members = [s for s in self.all_segmentations() if s.get('segment') == label]
        return sorted(members, key=lambda s: s.get('monetary') or 0.0, reverse=True)

    @staticmethod
    def segments_frame(result: ClusteringResult) -> pd.DataFrame:
        """Per-customer assignments as a DataFrame."""
        return pd.DataFrame([
            {
                'customer_id': s.customer_id,
                'recency': s.recency,
                'frequency': s.frequency,
                'monetary': s.monetary,
                'cluster_id': s.cluster_id,
                'segment': s.segment,
            }
            for s in result.segments
        ], columns=['customer_id', 'recency', 'frequency', 'monetary', 'cluster_id', 'segment'])

    def _convert_to_serializable(self, obj: Any) -> Any:
        """Convert numpy/pandas types to JSON serializable."""
        if isinstance(obj, dict):
            return {k: self._convert_to_serializable(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [self._convert_to_serializable(v) for v in obj]
        elif isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, datetime):
            return obj.isoformat()
        elif obj is None or isinstance(obj, (str, bool, int)):
            return obj
        elif isinstance(obj, float) and not np.isfinite(obj):
            return None
        else:
            return obj
