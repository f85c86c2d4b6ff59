"""
Base model classes and interfaces for California local regression analysis.
"""
import logging
import numpy as np
import pandas as pd
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..core.exceptions import ModelError, ValidationError
from .schemas import RegressionSpec

logger = logging.getLogger(__name__)


class BaseModel(ABC):
    """Abstract base class for all models."""

    def __init__(self, spec: RegressionSpec, config: Optional[Dict[str, Any]] = None):
        """Initialize the model with a regression formula and optional configuration."""
        self.spec = spec
        self.config = config or {}
        self.is_fitted = False
        self.results: Dict[str, Any] = {}

    @abstractmethod
    def fit(self, *args, **kwargs) -> Dict[str, Any]:
        """Fit the model to data."""
        pass

    def validate_inputs(self, data: pd.DataFrame) -> None:
        """
        Validate that the data carries every formula column as finite numbers.

        Raises:
            ValidationError: If a column is missing, non-numeric or non-finite
        """
        if data is None or len(data) == 0:
            raise ValidationError("No observations provided")

        missing = [col for col in self.spec.columns if col not in data.columns]
        if missing:
            raise ValidationError(f"Missing model columns: {', '.join(missing)}")

        values = data[self.spec.columns]
        non_numeric = [c for c in values.columns if not pd.api.types.is_numeric_dtype(values[c])]
        if non_numeric:
            raise ValidationError(f"Non-numeric model columns: {', '.join(non_numeric)}")

        if not np.isfinite(values.to_numpy(dtype=float)).all():
            raise ValidationError("Model columns contain NaN or infinite values")

    def get_results(self) -> Dict[str, Any]:
        """Get model results."""
        if not self.is_fitted:
            raise ModelError("Model has not been fitted yet")
        return self.results

    def set_config(self, config: Dict[str, Any]) -> None:
        """Update model configuration."""
        self.config.update(config)


def complete_cases(data: pd.DataFrame, spec: RegressionSpec) -> pd.DataFrame:
    """Drop rows with missing or non-finite values in the formula columns."""
    values = data[spec.columns].apply(pd.to_numeric, errors='coerce')
    keep = np.isfinite(values.to_numpy(dtype=float)).all(axis=1)
    dropped = int((~keep).sum())
    if dropped:
        logger.warning(f"Dropping {dropped} rows with missing values in {spec.columns}")
    return data.loc[keep]
