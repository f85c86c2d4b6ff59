"""
Assembly of per-partition coefficients for mapping.
"""
import logging
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd
import geopandas as gpd

from ..core.exceptions import ValidationError
from ..data.spatial import Grid

logger = logging.getLogger(__name__)


def coefficients_to_regions(
    regions: gpd.GeoDataFrame,
    coefficients: pd.DataFrame,
    name_col: str = 'NAME'
) -> gpd.GeoDataFrame:
    """
    Attach per-region coefficients to dissolved region polygons.

    The join is one-to-one: every region keeps one row, regions without
    observations get NaN coefficients, and coefficient rows whose key names
    no region are rejected.

    Args:
        regions: Dissolved region polygons
        coefficients: Partition table indexed by region name
        name_col: Region name column

    Returns:
        Region polygons with one column per coefficient

    Raises:
        ValidationError: On duplicate region names or orphaned coefficient keys
    """
    if name_col not in regions.columns:
        raise ValidationError(f"Region table has no '{name_col}' column")

    duplicated = regions[name_col].duplicated()
    if duplicated.any():
        raise ValidationError(
            f"Region names are not unique; dissolve regions first: "
            f"{sorted(regions.loc[duplicated, name_col].unique())[:5]}"
        )

    if coefficients.index.has_duplicates:
        raise ValidationError("Coefficient table has duplicate partition keys")

    orphans = coefficients.index.difference(pd.Index(regions[name_col]))
    if len(orphans):
        raise ValidationError(f"Coefficients for unknown regions: {list(orphans[:5])}")

    merged = regions.merge(coefficients.rename_axis(None), how='left', left_on=name_col, right_index=True)
    merged.index = regions.index

    if 'n_obs' in merged.columns:
        merged['n_obs'] = merged['n_obs'].fillna(0).astype(int)
    if 'fitted' in merged.columns:
        merged['fitted'] = merged['fitted'].fillna(False).astype(bool)

    logger.debug(f"Attached coefficients to {len(merged)} regions")
    return merged


def grid_to_raster(grid: Grid, values: pd.Series) -> np.ndarray:
    """Per-cell values as a rows x cols array aligned with the grid."""
    return grid.to_raster(values)


def coefficient_rasters(
    grid: Grid,
    coefficients: pd.DataFrame,
    names: Optional[Iterable[str]] = None
) -> Dict[str, np.ndarray]:
    """One raster per coefficient column."""
    if names is None:
        names = [c for c in coefficients.columns if c not in ('n_obs', 'fitted')]
    return {name: grid.to_raster(coefficients[name]) for name in names}


def grid_coefficients_frame(grid: Grid, coefficients: pd.DataFrame) -> gpd.GeoDataFrame:
    """Cell centres with their coefficients, for export."""
    cells = grid.to_geodataframe()
    return cells.join(coefficients.rename_axis(None), how='left')


def coefficient_summary(coefficients: pd.DataFrame) -> pd.DataFrame:
    """
    Describe each coefficient over the fitted partitions.

    Returns:
        DataFrame indexed by coefficient with fitted/missing counts and
        mean, std, min, median and max
    """
    names = [c for c in coefficients.columns if c not in ('n_obs', 'fitted')]
    values = coefficients[names]

    summary = pd.DataFrame({
        'n_fitted': values.notna().sum(),
        'n_missing': values.isna().sum(),
        'mean': values.mean(),
        'std': values.std(),
        'min': values.min(),
        'median': values.median(),
        'max': values.max(),
    })
    summary.index.name = 'coefficient'
    return summary
