"""
Plot styling and management for California local regression analysis.
"""
import os
import logging
import numpy as np
import matplotlib.pyplot as plt
from typing import List, Optional, Tuple, Any, Union

from ..core.decorators import error_handler
from ..core.exceptions import VisualizationError

logger = logging.getLogger(__name__)


class PlotManager:
    """Manager for consistent map and chart styling."""

    def __init__(
        self,
        style: str = 'seaborn-v0_8-white',
        figsize: Tuple[int, int] = (8, 9),
        dpi: int = 100,
        font_scale: float = 1.0,
        output_dir: Optional[str] = None,
        formats: Optional[List[str]] = None
    ):
        """Initialize the plot manager with styling options."""
        self.style = style
        self.figsize = figsize
        self.dpi = dpi
        self.font_scale = font_scale
        self.output_dir = output_dir
        self.formats = formats or ['png']

        self._setup_style()

    def _setup_style(self) -> None:
        """Set up plot styling."""
        try:
            plt.style.use(self.style)
        except (OSError, ValueError) as e:
            logger.warning(f"Plot style '{self.style}' unavailable, using defaults: {e}")

        plt.rcParams['font.size'] = 10 * self.font_scale
        plt.rcParams['axes.titlesize'] = 12 * self.font_scale
        plt.rcParams['axes.labelsize'] = 10 * self.font_scale
        plt.rcParams['xtick.labelsize'] = 8 * self.font_scale
        plt.rcParams['ytick.labelsize'] = 8 * self.font_scale
        plt.rcParams['legend.fontsize'] = 9 * self.font_scale

        plt.rcParams['figure.figsize'] = self.figsize
        plt.rcParams['figure.dpi'] = self.dpi

        plt.rcParams['axes.grid'] = False
        plt.rcParams['image.cmap'] = 'viridis'

        if self.output_dir:
            os.makedirs(self.output_dir, exist_ok=True)

    @error_handler(fallback_value=(None, None))
    def create_figure(
        self,
        nrows: int = 1,
        ncols: int = 1,
        figsize: Optional[Tuple[int, int]] = None,
        constrained_layout: bool = True,
        subplot_kw: Optional[dict] = None
    ) -> Tuple[plt.Figure, Union[plt.Axes, np.ndarray]]:
        """
        Create a new figure with consistent styling.

        Args:
            nrows: Number of rows in subplot grid
            ncols: Number of columns in subplot grid
            figsize: Optional figure size (defaults to class setting)
            constrained_layout: Whether to use constrained layout
            subplot_kw: Passed to ``add_subplot`` (e.g. a 3-D projection)

        Returns:
            Tuple of (figure, axes)
        """
        fig, axes = plt.subplots(
            nrows=nrows,
            ncols=ncols,
            figsize=figsize or self.figsize,
            dpi=self.dpi,
            constrained_layout=constrained_layout,
            subplot_kw=subplot_kw
        )
        return fig, axes

    @error_handler(fallback_value=None, label=('filename',))
    def save_figure(
        self,
        fig: plt.Figure,
        filename: str,
        subdirectory: Optional[str] = None,
        formats: Optional[List[str]] = None,
        dpi: Optional[int] = None
    ) -> str:
        """
        Save figure to file in each configured format.

        Returns:
            Path to the first saved file
        """
        if not self.output_dir:
            raise VisualizationError("No output directory specified for saving figures")

        formats = formats or self.formats

        target_dir = self.output_dir
        if subdirectory:
            target_dir = os.path.join(target_dir, subdirectory)
            os.makedirs(target_dir, exist_ok=True)

        base_filename = os.path.splitext(filename)[0]

        paths = []
        for fmt in formats:
            output_path = os.path.join(target_dir, f"{base_filename}.{fmt}")
            fig.savefig(output_path, dpi=dpi or self.dpi, bbox_inches='tight')
            paths.append(output_path)
            logger.debug(f"Saved figure to {output_path}")

        return paths[0]

    @staticmethod
    def set_map_style(
        ax: plt.Axes,
        title: Optional[str] = None,
        axis_off: bool = True
    ) -> plt.Axes:
        """Equal aspect, optional title, no axis frame."""
        ax.set_aspect('equal')
        if title:
            ax.set_title(title)
        if axis_off:
            ax.set_axis_off()
        return ax

    def finish(self, fig: plt.Figure, filename: Optional[str] = None,
               show: bool = False) -> Optional[str]:
        """Save (if a filename is given), show and release a figure."""
        path = self.save_figure(fig, filename) if filename else None
        if show:
            plt.show()
        elif filename:
            plt.close(fig)
        return path


plot_manager = PlotManager()


def set_plot_manager(
    style: str = 'seaborn-v0_8-white',
    figsize: Tuple[int, int] = (8, 9),
    dpi: int = 100,
    font_scale: float = 1.0,
    output_dir: Optional[str] = None,
    formats: Optional[List[str]] = None
) -> PlotManager:
    """Set the global plot manager with new settings."""
    global plot_manager
    plot_manager = PlotManager(
        style=style,
        figsize=figsize,
        dpi=dpi,
        font_scale=font_scale,
        output_dir=output_dir,
        formats=formats
    )
    return plot_manager


def get_plot_manager() -> PlotManager:
    """Get the global plot manager instance."""
    return plot_manager
