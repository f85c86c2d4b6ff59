"""
Data module for California local regression analysis.
"""
from .loaders import (
    to_geodataframe, load_observations, load_precipitation, load_house_prices,
    load_regions, project, add_annual_total, add_household_ratios
)
from .validators import validate_observation_table, check_minimum_observations
from .spatial import (
    Grid, make_grid, grid_for, mask_grid, dissolve_regions, assign_regions
)

__all__ = [
    'to_geodataframe', 'load_observations', 'load_precipitation', 'load_house_prices',
    'load_regions', 'project', 'add_annual_total', 'add_household_ratios',

    'validate_observation_table', 'check_minimum_observations',

    'Grid', 'make_grid', 'grid_for', 'mask_grid', 'dissolve_regions', 'assign_regions'
]
