"""
Core module for California local regression analysis.
"""
from .config import Config, config, initialize_config, get_config, DEFAULT_CONFIG
from .decorators import error_handler, performance_tracker, validate_inputs, performance_context
from .exceptions import (
    LocalRegressionError, ConfigurationError, ValidationError, DataProcessingError,
    SpatialJoinError, ModelError, BandwidthSelectionError, InterpolationError,
    VisualizationError, ReportingError
)
from .logging_setup import setup_logging, setup_logging_from_config, JsonFormatter

__all__ = [
    'Config', 'config', 'initialize_config', 'get_config', 'DEFAULT_CONFIG',
    'error_handler', 'performance_tracker', 'validate_inputs', 'performance_context',
    'LocalRegressionError', 'ConfigurationError', 'ValidationError', 'DataProcessingError',
    'SpatialJoinError', 'ModelError', 'BandwidthSelectionError', 'InterpolationError',
    'VisualizationError', 'ReportingError',
    'setup_logging', 'setup_logging_from_config', 'JsonFormatter'
]
