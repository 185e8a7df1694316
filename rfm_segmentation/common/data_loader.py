"""
Data Loading and Validation Module
===================================

Loads the customer and order collections an analysis run works on and
validates them against the expected schemas. Any failure aborts the run
with DataLoadError; a partial data set is never handed on.

Usage:
    from rfm_segmentation.common import DataLoader

    loader = DataLoader()
    customers = loader.load_customers("data/sample_customers.csv")
    orders = loader.load_orders("data/sample_orders.csv")
"""

from pathlib import Path
from typing import Optional, Union, List, Dict, Tuple, Any

import pandas as pd
from loguru import logger

from rfm_segmentation.customer_segmentation.exceptions import DataLoadError
from rfm_segmentation.customer_segmentation.models import Customer, RawOrder

SCHEMAS = {
    'customers': {
        'required': ['customer_id'],
        'numeric': [],
        'datetime': []
    },
    'orders': {
        'required': ['customer_id', 'total', 'created_at', 'status'],
        'numeric': ['total'],
        'datetime': ['created_at']
    }
}


class DataLoader:
    """
    CSV loader for customers and orders.

    Example:
        >>> loader = DataLoader()
        >>> orders = loader.load_orders("orders.csv")
        >>> print(f"Loaded {len(orders)} orders")
    """

    def __init__(self):
        """Initialize DataLoader."""
        self.supported_formats = ['.csv']
        logger.info("DataLoader initialized")

    def load_csv(
        self,
        filepath: Union[str, Path],
        date_columns: Optional[List[str]] = None,
        dtype: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> pd.DataFrame:
        """
        Load a CSV file.

        Args:
            filepath: Path to CSV file
            date_columns: Column names to parse as UTC datetimes
            dtype: Dictionary of column dtypes
            **kwargs: Additional arguments passed to pd.read_csv

        Returns:
            DataFrame with loaded data

        Raises:
            DataLoadError: If the file is missing, unsupported or unreadable
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise DataLoadError(f"File not found: {filepath}")

        if filepath.suffix.lower() not in self.supported_formats:
            raise DataLoadError(f"Unsupported format: {filepath.suffix}")

        logger.info(f"Loading data from {filepath}")

        try:
            df = pd.read_csv(filepath, dtype=dtype, low_memory=False, **kwargs)
            for col in date_columns or []:
                if col in df.columns:
                    df[col] = pd.to_datetime(df[col], utc=True)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
            raise DataLoadError(f"Could not read {filepath}: {e}") from e

        logger.info(f"Loaded {len(df)} records with {len(df.columns)} columns")
        return df

    def validate_data(
        self,
        df: pd.DataFrame,
        schema: str
    ) -> Tuple[bool, Dict[str, Any]]:
        """
        Validate a DataFrame against one of the known schemas.

        Args:
            df: DataFrame to validate
            schema: 'customers' or 'orders'

        Returns:
            Tuple of (is_valid, validation_report)
        """
        if schema not in SCHEMAS:
            raise ValueError(f"Unknown schema: {schema}")

        schema_def = SCHEMAS[schema]
        report = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'statistics': {
                'n_rows': len(df),
                'n_columns': len(df.columns),
                'missing_values': df.isna().sum().to_dict()
            }
        }

        missing = set(schema_def['required']) - set(df.columns)
        if missing:
            report['errors'].append(f"Schema '{schema}' missing columns: {sorted(missing)}")
            report['is_valid'] = False

        for col in schema_def['numeric']:
            if col in df.columns and not pd.api.types.is_numeric_dtype(df[col]):
                report['errors'].append(f"Column '{col}' should be numeric")
                report['is_valid'] = False

        for col in schema_def['datetime']:
            if col in df.columns and not pd.api.types.is_datetime64_any_dtype(df[col]):
                report['errors'].append(f"Column '{col}' should be datetime")
                report['is_valid'] = False

        if 'customer_id' in df.columns and df['customer_id'].isna().any():
            report['warnings'].append(
                f"{int(df['customer_id'].isna().sum())} rows without customer_id"
            )

        return report['is_valid'], report

    def _load_validated(
        self,
        filepath: Union[str, Path],
        schema: str
    ) -> pd.DataFrame:
        df = self.load_csv(
            filepath,
            date_columns=SCHEMAS[schema]['datetime'],
            dtype={'customer_id': str}
        )

        is_valid, report = self.validate_data(df, schema)
        for warning in report['warnings']:
            logger.warning(warning)
        if not is_valid:
            raise DataLoadError("; ".join(report['errors']))

        return df

    def load_customers(self, filepath: Union[str, Path]) -> List[Customer]:
        """
        Load all customers.

        Args:
            filepath: CSV with at least a customer_id column

        Returns:
            List of Customer
        """
        df = self._load_validated(filepath, 'customers')

        name = df['name'] if 'name' in df.columns else pd.Series('', index=df.index)
        email = df['email'] if 'email' in df.columns else pd.Series('', index=df.index)

        customers = [
            Customer(
                customer_id=str(cid),
                name='' if pd.isna(n) else str(n),
                email='' if pd.isna(e) else str(e)
            )
            for cid, n, e in zip(df['customer_id'], name, email)
            if not pd.isna(cid)
        ]

        logger.info(f"Loaded {len(customers)} customers")
        return customers

    def load_orders(self, filepath: Union[str, Path]) -> List[RawOrder]:
        """
        Load all orders.

        Args:
            filepath: CSV with customer_id, total, created_at, status

        Returns:
            List of RawOrder
        """
        df = self._load_validated(filepath, 'orders')

        orders = [
            RawOrder(
                customer_id=None if pd.isna(cid) else str(cid),
                total=None if pd.isna(total) else float(total),
                created_at=created.to_pydatetime(),
                status='' if pd.isna(status) else str(status)
            )
            for cid, total, created, status in zip(
                df['customer_id'], df['total'], df['created_at'], df['status']
            )
            if not pd.isna(created)
        ]

        skipped = len(df) - len(orders)
        if skipped:
            logger.warning(f"Skipped {skipped} orders without created_at")

        logger.info(f"Loaded {len(orders)} orders")
        return orders
