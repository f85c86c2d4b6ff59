"""
Data loading functions for California local regression analysis.
"""
import os
import logging
import numpy as np
import pandas as pd
import geopandas as gpd
from typing import List, Optional, Union

from ..core.config import get_config
from ..core.exceptions import DataProcessingError
from ..core.decorators import performance_tracker

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def _check_exists(file_path: PathLike) -> None:
    if not os.path.exists(file_path):
        raise DataProcessingError(f"Data file not found: {file_path}")


def to_geodataframe(
    df: pd.DataFrame,
    x_col: str,
    y_col: str,
    crs: Optional[str] = None
) -> gpd.GeoDataFrame:
    """Build a point GeoDataFrame from a coordinate pair."""
    missing = [col for col in (x_col, y_col) if col not in df.columns]
    if missing:
        raise DataProcessingError(f"Missing coordinate columns: {', '.join(missing)}")

    crs = crs or get_config().get('crs.geographic', 'EPSG:4326')
    geometry = gpd.points_from_xy(df[x_col], df[y_col])
    return gpd.GeoDataFrame(df.copy(), geometry=geometry, crs=crs)


@performance_tracker()
def load_observations(
    file_path: PathLike,
    x_col: str,
    y_col: str,
    crs: Optional[str] = None
) -> gpd.GeoDataFrame:
    """Load a CSV observation table with a coordinate pair as point geometries."""
    _check_exists(file_path)

    df = pd.read_csv(file_path)
    if df.empty:
        raise DataProcessingError(f"No rows in {file_path}")

    n_before = len(df)
    df = df.dropna(subset=[c for c in (x_col, y_col) if c in df.columns])
    if len(df) < n_before:
        logger.warning(f"Dropped {n_before - len(df)} rows without coordinates from {file_path}")

    gdf = to_geodataframe(df.reset_index(drop=True), x_col, y_col, crs)
    logger.info(f"Loaded {len(gdf)} observations from {file_path}")
    return gdf


def add_annual_total(
    df: pd.DataFrame,
    month_columns: Optional[List[str]] = None,
    total_col: str = 'pan'
) -> pd.DataFrame:
    """Add the sum of the monthly columns as an annual total."""
    month_columns = month_columns or get_config().get('precipitation.month_columns')
    missing = [col for col in month_columns if col not in df.columns]
    if missing:
        raise DataProcessingError(f"Missing monthly columns: {', '.join(missing)}")

    df = df.copy()
    df[total_col] = df[month_columns].apply(pd.to_numeric, errors='coerce').sum(axis=1, min_count=len(month_columns))
    return df


@performance_tracker()
def load_precipitation(file_path: Optional[PathLike] = None) -> gpd.GeoDataFrame:
    """
    Load the California weather station table.

    The table has station id, name, latitude, longitude, altitude and twelve
    monthly precipitation columns. The annual total is added as ``pan``.
    """
    cfg = get_config()
    file_path = file_path or cfg.get('data.precipitation_file')

    gdf = load_observations(
        file_path,
        x_col=cfg.get('precipitation.x_column', 'LONG'),
        y_col=cfg.get('precipitation.y_column', 'LAT'),
        crs=cfg.get('crs.geographic')
    )
    gdf = add_annual_total(
        gdf,
        month_columns=cfg.get('precipitation.month_columns'),
        total_col=cfg.get('precipitation.response', 'pan')
    )
    return gdf


def add_household_ratios(df: pd.DataFrame) -> pd.DataFrame:
    """Add per-person room counts and household size to block-group data."""
    required = ['rooms', 'bedrooms', 'population', 'households']
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise DataProcessingError(f"Missing columns: {', '.join(missing)}")

    df = df.copy()
    population = df['population'].replace(0, np.nan)
    households = df['households'].replace(0, np.nan)
    df['roomhead'] = df['rooms'] / population
    df['bedroomhead'] = df['bedrooms'] / population
    df['hhsize'] = df['population'] / households
    return df


@performance_tracker()
def load_house_prices(file_path: Optional[PathLike] = None) -> gpd.GeoDataFrame:
    """
    Load the 1990 California census block-group house price table.

    Derived covariates ``roomhead``, ``bedroomhead`` and ``hhsize`` are added;
    block groups with no population or no households are dropped.
    """
    cfg = get_config()
    file_path = file_path or cfg.get('data.houses_file')

    gdf = load_observations(
        file_path,
        x_col=cfg.get('houses.x_column', 'longitude'),
        y_col=cfg.get('houses.y_column', 'latitude'),
        crs=cfg.get('crs.geographic')
    )
    gdf = add_household_ratios(gdf)

    invalid = gdf[['roomhead', 'bedroomhead', 'hhsize']].isna().any(axis=1)
    if invalid.any():
        logger.warning(f"Dropping {int(invalid.sum())} block groups with zero population or households")
        gdf = gdf.loc[~invalid].reset_index(drop=True)

    return gdf


@performance_tracker()
def load_regions(
    file_path: Optional[PathLike] = None,
    name_col: Optional[str] = None
) -> gpd.GeoDataFrame:
    """Load region polygons (counties) with a name column."""
    cfg = get_config()
    file_path = file_path or cfg.get('data.regions_file')
    name_col = name_col or cfg.get('data.region_name_column', 'NAME')

    _check_exists(file_path)
    regions = gpd.read_file(file_path)

    if name_col not in regions.columns:
        raise DataProcessingError(f"Region file {file_path} has no '{name_col}' column")

    if regions.crs is None:
        raise DataProcessingError(f"Region file {file_path} has no coordinate reference system")

    logger.info(f"Loaded {len(regions)} region polygons ({regions[name_col].nunique()} names) from {file_path}")
    return regions


def project(gdf: gpd.GeoDataFrame, crs: Optional[str] = None) -> gpd.GeoDataFrame:
    """Reproject to the planar analysis CRS."""
    if gdf.crs is None:
        raise DataProcessingError("Cannot project data without a coordinate reference system")

    crs = crs or get_config().get('crs.projected', 'EPSG:3310')
    if gdf.crs == crs:
        return gdf
    return gdf.to_crs(crs)
