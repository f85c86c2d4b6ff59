"""
Models module for California local regression analysis.
"""
from .base import BaseModel, complete_cases
from .schemas import RegressionSpec, LocalFitConfig, GWRConfig, InterpolationConfig
from .ols import GlobalOLS, fit_ols, design_matrix, coefficient_vector
from .local import RegionalOLS, GridOLS, fit_partitions
from .gwr import GeographicallyWeightedRegression, point_coordinates
from .autocorrelation import build_weights, moran_test, residual_autocorrelation
from .interpolation import (
    interpolate, interpolate_idw, interpolate_kriging, interpolate_tps
)

__all__ = [
    'BaseModel', 'complete_cases',
    'RegressionSpec', 'LocalFitConfig', 'GWRConfig', 'InterpolationConfig',
    'GlobalOLS', 'fit_ols', 'design_matrix', 'coefficient_vector',
    'RegionalOLS', 'GridOLS', 'fit_partitions',
    'GeographicallyWeightedRegression', 'point_coordinates',
    'build_weights', 'moran_test', 'residual_autocorrelation',
    'interpolate', 'interpolate_idw', 'interpolate_kriging', 'interpolate_tps'
]
