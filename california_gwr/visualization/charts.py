"""
Charts of local regression coefficients.
"""
import logging
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from typing import Optional

from ..core.decorators import error_handler
from ..core.exceptions import VisualizationError
from .plot_manager import get_plot_manager

logger = logging.getLogger(__name__)


@error_handler(fallback_value=None, label=('column', 'filename'))
def plot_coefficient_dotchart(
    coefficients: pd.DataFrame,
    column: str,
    global_value: Optional[float] = None,
    title: Optional[str] = None,
    filename: Optional[str] = None,
    show: bool = False
) -> Optional[plt.Figure]:
    """
    Sorted dot chart of one coefficient across partitions.

    Unfitted partitions are left out. A vertical line marks the global
    estimate when given.

    Args:
        coefficients: Partition table (index = partition id)
        column: Coefficient to chart
        global_value: Global OLS estimate of the same coefficient
        title: Optional plot title
        filename: Optional filename for saving
        show: Whether to show the plot

    Returns:
        Figure object if successful, None otherwise
    """
    if column not in coefficients.columns:
        raise VisualizationError(f"Coefficient table has no '{column}' column")

    values = coefficients[column].dropna().sort_values()
    if values.empty:
        logger.warning(f"No fitted partitions to chart for {column}")
        return None

    plot_manager = get_plot_manager()
    height = max(4, 0.18 * len(values) + 1)
    fig, ax = plot_manager.create_figure(figsize=(7, height))

    positions = np.arange(len(values))
    ax.scatter(values.to_numpy(), positions, s=18, color='#1f77b4', zorder=3)
    ax.set_yticks(positions)
    ax.set_yticklabels([str(label) for label in values.index])
    ax.axvline(0.0, color='0.6', linewidth=0.8)

    if global_value is not None:
        ax.axvline(global_value, color='#d62728', linestyle='--', linewidth=1.0, label='global OLS')
        ax.legend(loc='lower right')

    ax.grid(axis='x', linestyle='--', alpha=0.5)
    ax.set_xlabel(column)
    ax.set_title(title or f"{column} by partition")

    plot_manager.finish(fig, filename, show)
    return fig
