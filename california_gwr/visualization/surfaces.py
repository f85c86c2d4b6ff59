"""
Three-dimensional views of gridded surfaces.
"""
import logging
import numpy as np
import matplotlib.pyplot as plt
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401
from typing import Optional, Tuple

from ..core.decorators import error_handler
from ..core.exceptions import VisualizationError
from .plot_manager import get_plot_manager

logger = logging.getLogger(__name__)


@error_handler(fallback_value=None, label=('zlabel', 'filename'))
def plot_surface_3d(
    raster: np.ndarray,
    extent: Tuple[float, float, float, float],
    title: Optional[str] = None,
    zlabel: Optional[str] = None,
    cmap: str = 'terrain',
    elevation: float = 35,
    azimuth: float = -60,
    filename: Optional[str] = None,
    show: bool = False
) -> Optional[plt.Figure]:
    """
    Perspective surface of a raster; NaN cells leave holes.

    Args:
        raster: rows x cols array, row 0 at the top
        extent: (left, right, bottom, top) of the grid
        title: Optional plot title
        zlabel: Label of the vertical axis
        cmap: Matplotlib colormap name
        elevation: Viewing elevation in degrees
        azimuth: Viewing azimuth in degrees
        filename: Optional filename for saving
        show: Whether to show the plot

    Returns:
        Figure object if successful, None otherwise
    """
    raster = np.asarray(raster, dtype=float)
    if raster.ndim != 2:
        raise VisualizationError(f"Raster must be two-dimensional, got shape {raster.shape}")
    if not np.isfinite(raster).any():
        logger.warning("Surface has no finite values")
        return None

    n_rows, n_cols = raster.shape
    left, right, bottom, top = extent
    dx = (right - left) / n_cols
    dy = (top - bottom) / n_rows
    x = left + (np.arange(n_cols) + 0.5) * dx
    y = top - (np.arange(n_rows) + 0.5) * dy
    xx, yy = np.meshgrid(x, y)

    plot_manager = get_plot_manager()
    fig, ax = plot_manager.create_figure(figsize=(9, 7), constrained_layout=False,
                                         subplot_kw={'projection': '3d'})

    surface = ax.plot_surface(
        xx, yy, raster,
        cmap=cmap,
        linewidth=0,
        antialiased=False,
        vmin=np.nanmin(raster),
        vmax=np.nanmax(raster)
    )
    fig.colorbar(surface, ax=ax, shrink=0.6)
    ax.view_init(elev=elevation, azim=azimuth)
    ax.set_xticks([])
    ax.set_yticks([])
    if zlabel:
        ax.set_zlabel(zlabel)
    if title:
        ax.set_title(title)

    plot_manager.finish(fig, filename, show)
    return fig
