"""
Spatial autocorrelation tests for California local regression analysis.
"""
import logging
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
import geopandas as gpd
import libpysal.weights as weights
from esda.moran import Moran

from ..core.config import get_config
from ..core.exceptions import ModelError, ValidationError

logger = logging.getLogger(__name__)


def build_weights(gdf: gpd.GeoDataFrame, k: Optional[int] = None) -> weights.W:
    """
    Create row-standardised k-nearest-neighbour weights.

    Args:
        gdf: Point observations
        k: Number of neighbours (config ``autocorrelation.k_neighbors``)

    Returns:
        libpysal weights object
    """
    k = k or get_config().get('autocorrelation.k_neighbors', 8)

    if len(gdf) <= k:
        raise ValidationError(f"Need more than {k} observations for {k}-nearest-neighbour weights")

    logger.info(f"Creating k-nearest neighbor weights with k={k}")
    coords = np.column_stack([gdf.geometry.x.to_numpy(), gdf.geometry.y.to_numpy()])
    w = weights.KNN.from_array(coords, k=k)
    w.transform = 'r'
    return w


def moran_test(
    values: pd.Series,
    w: weights.W,
    permutations: Optional[int] = None,
    alpha: Optional[float] = None
) -> Dict[str, Any]:
    """
    Moran's I test for spatial autocorrelation.

    Args:
        values: Variable (e.g. OLS residuals), ordered like the weights
        w: Spatial weights
        permutations: Permutations for the pseudo p-value
        alpha: Significance level

    Returns:
        Dictionary with I, its expectation, z-score and p-values
    """
    cfg = get_config()
    permutations = cfg.get('autocorrelation.permutations', 999) if permutations is None else permutations
    alpha = alpha or cfg.get('autocorrelation.alpha', 0.05)

    y = np.asarray(values, dtype=float)
    if len(y) != w.n:
        raise ValidationError(f"Values ({len(y)}) and weights ({w.n}) differ in length")
    if not np.isfinite(y).all():
        raise ValidationError("Moran's I needs finite values")

    try:
        moran = Moran(y, w, permutations=permutations)
    except Exception as e:
        logger.error(f"Error performing Moran's I test: {e}")
        raise ModelError(f"Error performing Moran's I test: {e}") from e

    p_value = float(moran.p_sim) if permutations else float(moran.p_norm)
    result = {
        'test': 'Moran I',
        'I': float(moran.I),
        'E[I]': float(moran.EI),
        'z_norm': float(moran.z_norm),
        'p_norm': float(moran.p_norm),
        'p_value': p_value,
        'permutations': permutations,
        'significant': p_value < alpha,
    }

    logger.info(f"Moran's I test results: I={moran.I:.4f}, p_value={p_value:.4f}")
    return result


def residual_autocorrelation(
    gdf: gpd.GeoDataFrame,
    residuals: pd.Series,
    k: Optional[int] = None,
    permutations: Optional[int] = None
) -> Dict[str, Any]:
    """Moran's I of model residuals at the observations they belong to."""
    located = gdf.loc[residuals.index]
    w = build_weights(located, k)
    return moran_test(residuals, w, permutations=permutations)
