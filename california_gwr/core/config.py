"""
Configuration management for California local regression analysis.
"""
import os
import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from .exceptions import ConfigurationError


MONTH_COLUMNS = [
    'JAN', 'FEB', 'MAR', 'APR', 'MAY', 'JUN',
    'JUL', 'AUG', 'SEP', 'OCT', 'NOV', 'DEC'
]

DEFAULT_CONFIG: Dict[str, Any] = {
    'directories': {
        'data_dir': 'data',
        'results_dir': 'results',
        'logs_dir': 'results/logs'
    },
    'data': {
        'precipitation_file': 'data/precipitation.csv',
        'houses_file': 'data/houses1990.csv',
        'regions_file': 'data/counties.gpkg',
        'region_name_column': 'NAME'
    },
    'crs': {
        'geographic': 'EPSG:4326',
        # NAD83 / California Albers ("Teale Albers"), metres
        'projected': 'EPSG:3310'
    },
    'precipitation': {
        'x_column': 'LONG',
        'y_column': 'LAT',
        'month_columns': MONTH_COLUMNS,
        'response': 'pan',
        'covariates': ['ALT']
    },
    'houses': {
        'x_column': 'longitude',
        'y_column': 'latitude',
        'response': 'houseValue',
        'covariates': ['income', 'houseAge', 'roomhead', 'bedroomhead', 'population']
    },
    'ols': {
        # statsmodels covariance estimator for global standard errors
        'cov_type': 'nonrobust'
    },
    'local_fit': {
        'cell_size': 50000.0,
        'radius': 50000.0,
        'min_observations': 50
    },
    'gwr': {
        'kernel': 'gaussian',
        'fixed': True,
        'criterion': 'CV',
        'bandwidth': None,
        'sample_size': None,
        'random_state': 42,
        'grid_cell_size': 10000.0
    },
    'interpolation': {
        'method': 'idw',
        'variable': 'pan',
        'cell_size': 10000.0,
        'power': 2.0,
        'neighbors': 12,
        'variogram_model': 'spherical',
        'nlags': 12,
        'smoothing': 0.0
    },
    'autocorrelation': {
        'k_neighbors': 8,
        'permutations': 999,
        'alpha': 0.05
    },
    'logging': {
        'log_level': 'INFO',
        'verbose_libraries': {
            'matplotlib': 'WARNING',
            'matplotlib.font_manager': 'ERROR',
            'fiona': 'WARNING',
            'pyogrio': 'WARNING'
        }
    },
    'output': {
        'analysis_version': '1.0',
        'figure_format': 'png',
        'dpi': 150
    }
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Configuration manager for the application."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration from file or defaults."""
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file layered over the defaults."""
        if self.config_path and os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r') as f:
                    loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

            if not isinstance(loaded, dict):
                raise ConfigurationError(
                    f"Configuration file {self.config_path} must contain a mapping"
                )
            return _merge(DEFAULT_CONFIG, loaded)

        return copy.deepcopy(DEFAULT_CONFIG)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        keys = key_path.split('.')
        result = self.config

        for key in keys:
            if isinstance(result, dict) and key in result:
                result = result[key]
            else:
                return default

        return result

    def get_path(self, key_path: str) -> Path:
        """Get a directory path from configuration, ensuring it exists."""
        path_str = self.get(key_path)
        if not path_str:
            raise ConfigurationError(f"Path configuration '{key_path}' not found")

        path = Path(path_str)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation."""
        keys = key_path.split('.')
        target = self.config

        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]

        target[keys[-1]] = value

    def save(self, path: Optional[str] = None) -> None:
        """Save current configuration to file."""
        save_path = path or self.config_path
        if not save_path:
            raise ConfigurationError("No path specified for saving configuration")

        Path(save_path).parent.mkdir(parents=True, exist_ok=True)
        with open(save_path, 'w') as f:
            yaml.dump(self.config, f, default_flow_style=False)


# Global configuration instance
config = Config()


def initialize_config(config_path: Optional[str] = None) -> Config:
    """Initialize the global configuration."""
    global config
    config = Config(config_path)
    return config


def get_config() -> Config:
    """Return the active global configuration."""
    return config
