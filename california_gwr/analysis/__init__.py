"""
Analysis module for California local regression analysis.
"""
from .assembler import (
    coefficients_to_regions, grid_to_raster, coefficient_rasters,
    grid_coefficients_frame, coefficient_summary
)
from .workflows import (
    run_precipitation_analysis, run_house_price_analysis, run_interpolation,
    settings_from_config, regression_spec
)

__all__ = [
    'coefficients_to_regions', 'grid_to_raster', 'coefficient_rasters',
    'grid_coefficients_frame', 'coefficient_summary',
    'run_precipitation_analysis', 'run_house_price_analysis', 'run_interpolation',
    'settings_from_config', 'regression_spec'
]
