"""
End-to-end analyses for California precipitation and 1990 house prices.

Each workflow loads its data, projects it to the planar analysis CRS, fits
the models and assembles coefficient tables and rasters for mapping.
"""
import os
import logging
from typing import Any, Dict, Optional, Type, TypeVar

import numpy as np
import pandas as pd
import geopandas as gpd
from pydantic import BaseModel as SchemaModel
from pydantic import ValidationError as PydanticValidationError

from ..core.config import get_config
from ..core.decorators import performance_context, performance_tracker
from ..core.exceptions import ConfigurationError, ValidationError
from ..data.loaders import load_house_prices, load_precipitation, load_regions, project
from ..data.spatial import Grid, assign_regions, dissolve_regions, grid_for, mask_grid
from ..data.validators import validate_observation_table
from ..models.autocorrelation import residual_autocorrelation
from ..models.gwr import GeographicallyWeightedRegression
from ..models.interpolation import interpolate
from ..models.local import GridOLS, RegionalOLS
from ..models.ols import GlobalOLS
from ..models.schemas import GWRConfig, InterpolationConfig, LocalFitConfig, RegressionSpec
from .assembler import (
    coefficient_rasters, coefficient_summary, coefficients_to_regions, grid_to_raster
)

logger = logging.getLogger(__name__)

S = TypeVar('S', bound=SchemaModel)


def settings_from_config(schema: Type[S], section: str,
                         overrides: Optional[Dict[str, Any]] = None) -> S:
    """Build a parameter schema from a configuration section plus overrides."""
    values = dict(get_config().get(section, {}) or {})
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})
    try:
        return schema(**values)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid '{section}' settings: {e}") from e


def regression_spec(section: str) -> RegressionSpec:
    """Regression formula from the ``response``/``covariates`` keys of a section."""
    values = get_config().get(section, {}) or {}
    try:
        return RegressionSpec.from_config(values)
    except KeyError as e:
        raise ConfigurationError(f"'{section}' settings have no {e} key") from e
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid '{section}' formula: {e}") from e


def _region_set(file_path=None, required: bool = True) -> Optional[gpd.GeoDataFrame]:
    """Dissolved, projected region polygons, or None when optional and absent."""
    cfg = get_config()
    file_path = file_path or cfg.get('data.regions_file')
    name_col = cfg.get('data.region_name_column', 'NAME')

    if not required:
        if not file_path or not os.path.exists(file_path):
            logger.info("No region file available; using the observation extent")
            return None

    regions = load_regions(file_path, name_col)
    return project(dissolve_regions(regions, name_col))


def _analysis_grid(extent: gpd.GeoDataFrame, cell_size: float,
                   regions: Optional[gpd.GeoDataFrame]) -> Grid:
    grid = grid_for(extent, cell_size)
    if regions is not None:
        grid = mask_grid(grid, regions)
    return grid


def _gwr_surface(gwr: GeographicallyWeightedRegression, grid: Grid) -> pd.DataFrame:
    """GWR coefficients at the active grid cell centres, indexed by cell id."""
    active = grid.active_cells()
    if active.empty:
        logger.warning("No active grid cells to evaluate GWR at")
        return pd.DataFrame(columns=gwr.spec.coefficient_names)

    surface = gwr.predict_at(active[['x', 'y']].to_numpy(dtype=float))
    surface.index = active.index
    surface.index.name = 'cell_id'
    return surface


def _global_fit(data: gpd.GeoDataFrame, spec: RegressionSpec) -> Dict[str, Any]:
    ols = GlobalOLS(spec, {'cov_type': get_config().get('ols.cov_type', 'nonrobust')})
    results = ols.fit(data)
    results['moran'] = residual_autocorrelation(data, ols.residuals)
    results['residuals'] = ols.residuals
    return results


@performance_tracker(level="info")
def run_precipitation_analysis(
    data_path=None,
    regions_path=None,
    gwr_overrides: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Annual precipitation against altitude at California weather stations.

    Fits a global OLS model, tests its residuals for spatial autocorrelation,
    then fits GWR with a cross-validated bandwidth and evaluates its
    coefficients on a grid masked to the region set.

    Args:
        data_path: Station CSV (config ``data.precipitation_file``)
        regions_path: Region polygons; optional for this analysis
        gwr_overrides: Replacement values for the ``gwr`` settings

    Returns:
        Dictionary with the stations, global OLS results, GWR results, the
        grid, per-cell GWR coefficients and one raster per coefficient
    """
    spec = regression_spec('precipitation')
    gwr_settings = settings_from_config(GWRConfig, 'gwr', gwr_overrides)

    stations = load_precipitation(data_path)
    validation = validate_observation_table(stations, spec.columns)
    stations = project(stations)
    regions = _region_set(regions_path, required=False)

    with performance_context("precipitation global OLS", level="info"):
        ols_results = _global_fit(stations, spec)

    gwr = GeographicallyWeightedRegression(spec, gwr_settings)
    with performance_context("precipitation GWR", level="info"):
        gwr_results = gwr.fit(stations)

    grid = _analysis_grid(regions if regions is not None else stations,
                          gwr_settings.grid_cell_size, regions)
    surface = _gwr_surface(gwr, grid)

    return {
        'analysis': 'precipitation',
        'formula': spec.formula(),
        'validation': validation,
        'observations': stations,
        'regions': regions,
        'ols': ols_results,
        'gwr': gwr_results,
        'grid': grid,
        'gwr_surface': surface,
        'rasters': coefficient_rasters(grid, surface, spec.coefficient_names),
    }


@performance_tracker(level="info")
def run_house_price_analysis(
    data_path=None,
    regions_path=None,
    local_overrides: Optional[Dict[str, Any]] = None,
    gwr_overrides: Optional[Dict[str, Any]] = None,
    include_gwr: bool = True
) -> Dict[str, Any]:
    """
    House value against income, age and household composition.

    Block groups are assigned to dissolved counties and the formula is fitted
    globally, per county, per grid cell (observations within a fixed radius
    of the cell centre) and, optionally, by GWR evaluated at grid cell centres.

    Args:
        data_path: Block-group CSV (config ``data.houses_file``)
        regions_path: County polygons (config ``data.regions_file``)
        local_overrides: Replacement values for the ``local_fit`` settings
        gwr_overrides: Replacement values for the ``gwr`` settings
        include_gwr: Also fit GWR

    Returns:
        Dictionary with global, per-county, per-cell and GWR results, county
        polygons carrying their coefficients, the grid and coefficient rasters
    """
    cfg = get_config()
    name_col = cfg.get('data.region_name_column', 'NAME')
    spec = regression_spec('houses')
    local_settings = settings_from_config(LocalFitConfig, 'local_fit', local_overrides)
    gwr_settings = settings_from_config(GWRConfig, 'gwr', gwr_overrides)

    houses = load_house_prices(data_path)
    # block groups share centroids in the source table
    validation = validate_observation_table(houses, spec.columns, allow_duplicate_locations=True)
    houses = project(houses)
    counties = _region_set(regions_path)
    houses = assign_regions(houses, counties, name_col)

    with performance_context("house price global OLS", level="info"):
        ols_results = _global_fit(houses, spec)

    regional = RegionalOLS(spec, region_col=name_col)
    with performance_context("house price county OLS", level="info"):
        regional_results = regional.fit(houses, regions=counties[name_col])
    county_coefficients = coefficients_to_regions(counties, regional.coefficients, name_col)

    grid = _analysis_grid(counties, local_settings.cell_size, counties)
    grid_model = GridOLS(spec, local_settings)
    with performance_context("house price grid OLS", level="info"):
        grid_results = grid_model.fit(houses, grid)

    results = {
        'analysis': 'houses',
        'formula': spec.formula(),
        'validation': validation,
        'observations': houses,
        'regions': counties,
        'ols': ols_results,
        'regional': regional_results,
        'regional_summary': coefficient_summary(regional.coefficients),
        'county_coefficients': county_coefficients,
        'grid': grid,
        'grid_ols': grid_results,
        'grid_summary': coefficient_summary(grid_model.coefficients.loc[grid.active_cells().index]),
        'rasters': coefficient_rasters(grid, grid_model.coefficients, spec.coefficient_names),
        'gwr': None,
        'gwr_surface': None,
        'gwr_rasters': {},
    }

    if include_gwr:
        gwr = GeographicallyWeightedRegression(spec, gwr_settings)
        with performance_context("house price GWR", level="info"):
            results['gwr'] = gwr.fit(houses)
        gwr_grid = _analysis_grid(counties, gwr_settings.grid_cell_size, counties)
        surface = _gwr_surface(gwr, gwr_grid)
        results['gwr_grid'] = gwr_grid
        results['gwr_surface'] = surface
        results['gwr_rasters'] = coefficient_rasters(gwr_grid, surface, spec.coefficient_names)

    return results


@performance_tracker(level="info")
def run_interpolation(
    data_path=None,
    regions_path=None,
    variable: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Interpolate a station variable onto a grid.

    Args:
        data_path: Station CSV (config ``data.precipitation_file``)
        regions_path: Region polygons used to mask the grid; optional
        variable: Station column (config ``interpolation.variable``)
        overrides: Replacement values for the ``interpolation`` settings

    Returns:
        Dictionary with the grid, per-cell estimates and the estimate raster
        (plus the kriging variance raster for ordinary kriging)
    """
    cfg = get_config()
    variable = variable or cfg.get('interpolation.variable', 'pan')
    settings = settings_from_config(InterpolationConfig, 'interpolation', overrides)

    stations = load_precipitation(data_path)
    if variable not in stations.columns:
        raise ValidationError(f"Station table has no '{variable}' column")
    validation = validate_observation_table(stations, [variable])
    stations = project(stations)
    regions = _region_set(regions_path, required=False)

    grid = _analysis_grid(regions if regions is not None else stations, settings.cell_size, regions)
    active = grid.active_cells()

    points = np.column_stack([stations.geometry.x.to_numpy(), stations.geometry.y.to_numpy()])
    result = interpolate(points, stations[variable].to_numpy(dtype=float),
                         active[['x', 'y']].to_numpy(dtype=float), settings)

    estimate = pd.Series(result['estimate'], index=active.index, name=variable)
    rasters = {variable: grid_to_raster(grid, estimate)}
    if result['variance'] is not None:
        variance = pd.Series(result['variance'], index=active.index, name='variance')
        rasters['variance'] = grid_to_raster(grid, variance)

    logger.info(f"Interpolated {variable} onto {len(active)} grid cells by {settings.method}")
    return {
        'analysis': 'interpolation',
        'variable': variable,
        'method': settings.method,
        'settings': settings.model_dump(),
        'validation': validation,
        'observations': stations,
        'regions': regions,
        'grid': grid,
        'estimates': estimate,
        'rasters': rasters,
    }
