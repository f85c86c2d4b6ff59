"""
Maps of observations, regional coefficients and gridded surfaces.
"""
import logging
import numpy as np
import geopandas as gpd
import matplotlib.pyplot as plt
import matplotlib.colors as mcolors
from typing import Optional, Tuple

from ..core.decorators import error_handler, performance_tracker
from ..core.exceptions import VisualizationError
from .plot_manager import get_plot_manager

logger = logging.getLogger(__name__)


def _norm(values: np.ndarray, diverging: bool) -> Optional[mcolors.Normalize]:
    """Colour normalisation centred on zero for signed coefficients."""
    finite = np.asarray(values, dtype=float)
    finite = finite[np.isfinite(finite)]
    if finite.size == 0:
        return None
    vmin, vmax = float(finite.min()), float(finite.max())
    if diverging and vmin < 0 < vmax:
        return mcolors.TwoSlopeNorm(vmin=vmin, vcenter=0.0, vmax=vmax)
    return mcolors.Normalize(vmin=vmin, vmax=vmax)


def _outline(ax: plt.Axes, regions: Optional[gpd.GeoDataFrame], crs=None) -> None:
    if regions is None:
        return
    if crs is not None and regions.crs is not None and regions.crs != crs:
        regions = regions.to_crs(crs)
    regions.boundary.plot(ax=ax, color='0.3', linewidth=0.4)


@error_handler(fallback_value=None, label=('column', 'filename'))
@performance_tracker()
def plot_coefficient_map(
    regions: gpd.GeoDataFrame,
    column: str,
    title: Optional[str] = None,
    cmap: str = 'RdBu_r',
    diverging: bool = True,
    filename: Optional[str] = None,
    show: bool = False
) -> Optional[plt.Figure]:
    """
    Choropleth of one coefficient over region polygons.

    Regions without a fitted model are drawn hatched in light grey.

    Args:
        regions: Region polygons carrying coefficient columns
        column: Coefficient to map
        title: Optional plot title
        cmap: Matplotlib colormap name
        diverging: Centre the colour scale on zero
        filename: Optional filename for saving
        show: Whether to show the plot

    Returns:
        Figure object if successful, None otherwise
    """
    if column not in regions.columns:
        raise VisualizationError(f"Region table has no '{column}' column")

    plot_manager = get_plot_manager()
    fig, ax = plot_manager.create_figure()

    regions.plot(
        column=column,
        ax=ax,
        cmap=cmap,
        norm=_norm(regions[column].to_numpy(), diverging),
        legend=True,
        edgecolor='0.3',
        linewidth=0.4,
        missing_kwds={'color': '0.9', 'hatch': '///', 'label': 'not fitted'}
    )

    plot_manager.set_map_style(ax, title or f"{column} by region")
    plot_manager.finish(fig, filename, show)
    return fig


@error_handler(fallback_value=None, label=('label', 'filename'))
@performance_tracker()
def plot_raster(
    raster: np.ndarray,
    extent: Tuple[float, float, float, float],
    regions: Optional[gpd.GeoDataFrame] = None,
    crs=None,
    title: Optional[str] = None,
    cmap: str = 'RdBu_r',
    diverging: bool = True,
    label: Optional[str] = None,
    filename: Optional[str] = None,
    show: bool = False
) -> Optional[plt.Figure]:
    """
    Draw a grid surface (coefficient or interpolated values).

    Args:
        raster: rows x cols array, row 0 at the top; NaN cells are blank
        extent: (left, right, bottom, top) of the grid
        regions: Optional polygons drawn as outlines
        crs: CRS of the grid, used to reproject the outlines
        title: Optional plot title
        cmap: Matplotlib colormap name
        diverging: Centre the colour scale on zero
        label: Colour bar label
        filename: Optional filename for saving
        show: Whether to show the plot

    Returns:
        Figure object if successful, None otherwise
    """
    raster = np.asarray(raster, dtype=float)
    if raster.ndim != 2:
        raise VisualizationError(f"Raster must be two-dimensional, got shape {raster.shape}")

    plot_manager = get_plot_manager()
    fig, ax = plot_manager.create_figure()

    image = ax.imshow(
        np.ma.masked_invalid(raster),
        extent=extent,
        origin='upper',
        cmap=cmap,
        norm=_norm(raster, diverging),
        interpolation='nearest'
    )
    _outline(ax, regions, crs)

    cbar = fig.colorbar(image, ax=ax, shrink=0.7)
    if label:
        cbar.set_label(label)

    plot_manager.set_map_style(ax, title)
    plot_manager.finish(fig, filename, show)
    return fig


@error_handler(fallback_value=None, label=('column', 'filename'))
@performance_tracker()
def plot_observations(
    observations: gpd.GeoDataFrame,
    column: str,
    regions: Optional[gpd.GeoDataFrame] = None,
    title: Optional[str] = None,
    cmap: str = 'viridis',
    markersize: float = 8,
    filename: Optional[str] = None,
    show: bool = False
) -> Optional[plt.Figure]:
    """Observation points coloured by a variable, over optional region outlines."""
    if column not in observations.columns:
        raise VisualizationError(f"Observation table has no '{column}' column")

    plot_manager = get_plot_manager()
    fig, ax = plot_manager.create_figure()

    _outline(ax, regions, observations.crs)
    observations.plot(column=column, ax=ax, cmap=cmap, markersize=markersize, legend=True)

    plot_manager.set_map_style(ax, title or column)
    plot_manager.finish(fig, filename, show)
    return fig
