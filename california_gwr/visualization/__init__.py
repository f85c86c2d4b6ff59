"""
Visualization module for California local regression analysis.
"""
from .plot_manager import (
    PlotManager, get_plot_manager, set_plot_manager
)
from .maps import plot_coefficient_map, plot_raster, plot_observations
from .charts import plot_coefficient_dotchart
from .surfaces import plot_surface_3d

__all__ = [
    'PlotManager', 'get_plot_manager', 'set_plot_manager',
    'plot_coefficient_map', 'plot_raster', 'plot_observations',
    'plot_coefficient_dotchart',
    'plot_surface_3d'
]
