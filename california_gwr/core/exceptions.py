"""
Custom exception classes for California local regression analysis.
"""


class LocalRegressionError(Exception):
    """Base exception for all california_gwr errors."""
    pass


class ConfigurationError(LocalRegressionError):
    """Error in configuration settings."""
    pass


class ValidationError(LocalRegressionError):
    """Error in data validation."""
    pass


class DataProcessingError(LocalRegressionError):
    """Error while loading or preparing data."""
    pass


class SpatialJoinError(DataProcessingError):
    """Error while associating observations with regions."""
    pass


class ModelError(LocalRegressionError):
    """Base class for model-related errors."""
    pass


class BandwidthSelectionError(ModelError):
    """Error in GWR bandwidth selection."""
    pass


class InterpolationError(ModelError):
    """Error in spatial interpolation."""
    pass


class VisualizationError(LocalRegressionError):
    """Error in map or chart creation."""
    pass


class ReportingError(LocalRegressionError):
    """Error in result export."""
    pass

