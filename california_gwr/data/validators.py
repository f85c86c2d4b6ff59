"""
Data validation functions for California local regression analysis.
"""
import logging
import pandas as pd
import geopandas as gpd
from typing import Any, Dict, Iterable, Optional

from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)


def validate_observation_table(
    gdf: gpd.GeoDataFrame,
    required_columns: Optional[Iterable[str]] = None,
    allow_duplicate_locations: bool = False
) -> Dict[str, Any]:
    """
    Validate an observation table before modelling.

    Checks that the table is a non-empty point GeoDataFrame with a CRS,
    that every required column exists and is numeric, and that each
    coordinate pair locates exactly one row.

    Args:
        gdf: Observation table with point geometries
        required_columns: Columns that must be present and numeric
        allow_duplicate_locations: Accept repeated coordinate pairs

    Returns:
        Dictionary with basic statistics about the table

    Raises:
        ValidationError: If any check fails
    """
    if not isinstance(gdf, gpd.GeoDataFrame):
        raise ValidationError("Observation table must be a GeoDataFrame")

    if gdf.empty:
        raise ValidationError("Observation table is empty")

    if gdf.crs is None:
        raise ValidationError("Observation table has no coordinate reference system")

    required_columns = list(required_columns or [])
    missing = [col for col in required_columns if col not in gdf.columns]
    if missing:
        raise ValidationError(f"Missing required columns: {', '.join(missing)}")

    non_numeric = [
        col for col in required_columns
        if not pd.api.types.is_numeric_dtype(gdf[col])
    ]
    if non_numeric:
        raise ValidationError(f"Non-numeric columns: {', '.join(non_numeric)}")

    if gdf.geometry.isna().any() or gdf.geometry.is_empty.any():
        raise ValidationError("Observation table contains missing geometries")

    geom_types = set(gdf.geom_type.unique())
    if geom_types != {'Point'}:
        raise ValidationError(f"Observations must be points, found: {sorted(geom_types)}")

    coords = pd.DataFrame({'x': gdf.geometry.x.values, 'y': gdf.geometry.y.values})
    duplicates = int(coords.duplicated().sum())
    if duplicates and not allow_duplicate_locations:
        raise ValidationError(f"{duplicates} observations share a coordinate pair with another row")
    elif duplicates:
        logger.warning(f"{duplicates} observations share a coordinate pair with another row")

    missing_values = {
        col: int(gdf[col].isna().sum()) for col in required_columns if gdf[col].isna().any()
    }
    if missing_values:
        logger.warning(f"Missing values detected: {missing_values}")

    return {
        'n_observations': len(gdf),
        'crs': gdf.crs.to_string(),
        'duplicate_locations': duplicates,
        'missing_values': missing_values,
        'bounds': tuple(float(b) for b in gdf.total_bounds)
    }


def check_minimum_observations(n_obs: int, min_obs: int, label: Optional[str] = None) -> bool:
    """Check if there are sufficient observations for a local fit."""
    if n_obs < min_obs:
        logger.debug(
            f"Insufficient observations{f' for {label}' if label is not None else ''}: "
            f"{n_obs} < {min_obs}"
        )
        return False
    return True
