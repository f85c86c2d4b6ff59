"""
Result table generators for California local regression analysis.
"""
import logging
import numpy as np
import pandas as pd
from typing import Any, Dict, List, Optional

from ..core.decorators import error_handler

logger = logging.getLogger(__name__)


@error_handler(fallback_value=pd.DataFrame())
def create_ols_table(ols_results: Dict[str, Any]) -> pd.DataFrame:
    """
    Coefficient table of a global OLS fit.

    Args:
        ols_results: Results dictionary from ``GlobalOLS.fit``

    Returns:
        DataFrame indexed by coefficient with estimate, standard error,
        t value and p value
    """
    if not ols_results or 'coefficients' not in ols_results:
        logger.warning("No OLS results provided for coefficient table")
        return pd.DataFrame()

    table = pd.DataFrame({
        'estimate': pd.Series(ols_results['coefficients']),
        'std_error': pd.Series(ols_results.get('std_errors', {})),
        't_value': pd.Series(ols_results.get('t_values', {})),
        'p_value': pd.Series(ols_results.get('p_values', {})),
    })
    table = table.reindex(list(ols_results['coefficients']))
    table.index.name = 'coefficient'
    return table


def _median(values: pd.DataFrame, names: List[str]) -> Dict[str, float]:
    return {name: float(values[name].median()) if name in values else np.nan for name in names}


@error_handler(fallback_value=pd.DataFrame())
def create_model_comparison_table(
    results: Dict[str, Any],
    names: Optional[List[str]] = None
) -> pd.DataFrame:
    """
    Compare the global estimate of each coefficient with the median of its
    local estimates (per region, per grid cell and by GWR).

    Args:
        results: Workflow results dictionary
        names: Coefficients to compare (defaults to the global OLS ones)

    Returns:
        DataFrame indexed by coefficient with one column per model, plus a
        row of goodness-of-fit values where available
    """
    ols = results.get('ols') or {}
    names = names or list(ols.get('coefficients', {}))
    if not names:
        logger.warning("No coefficients to compare")
        return pd.DataFrame()

    columns: Dict[str, Dict[str, float]] = {}
    fit: Dict[str, float] = {}

    if ols:
        columns['global_ols'] = {name: ols['coefficients'].get(name, np.nan) for name in names}
        fit['global_ols'] = ols.get('r_squared', np.nan)

    regional = results.get('regional')
    if regional:
        columns['regional_median'] = _median(regional['coefficients'], names)

    grid_ols = results.get('grid_ols')
    if grid_ols:
        columns['grid_median'] = _median(grid_ols['coefficients'], names)

    gwr = results.get('gwr')
    if gwr:
        columns['gwr_median'] = _median(gwr['params'], names)
        fit['gwr_median'] = gwr.get('r_squared', np.nan)

    table = pd.DataFrame(columns).reindex(names)
    table.loc['r_squared'] = [fit.get(column, np.nan) for column in table.columns]
    table.index.name = 'coefficient'
    return table
