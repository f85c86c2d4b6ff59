"""
Spatial interpolation for California local regression analysis.

Point observations are interpolated onto target locations (usually grid cell
centres) with inverse distance weighting, ordinary kriging (pykrige) or a
thin-plate spline (scipy).
"""
import logging
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
from pydantic import ValidationError as PydanticValidationError
from scipy.interpolate import RBFInterpolator
from scipy.spatial import cKDTree
from pykrige.ok import OrdinaryKriging

from ..core.exceptions import InterpolationError, ValidationError
from ..core.decorators import performance_tracker, validate_inputs
from .schemas import InterpolationConfig

logger = logging.getLogger(__name__)


def _check_inputs(points, values, targets) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    points = np.asarray(points, dtype=float)
    values = np.asarray(values, dtype=float).ravel()
    targets = np.asarray(targets, dtype=float)

    if points.ndim != 2 or points.shape[1] != 2:
        raise ValidationError(f"Points must be an (n, 2) array, got shape {points.shape}")
    if targets.ndim != 2 or targets.shape[1] != 2:
        raise ValidationError(f"Targets must be an (m, 2) array, got shape {targets.shape}")
    if len(points) != len(values):
        raise ValidationError("Points and values differ in length")

    keep = np.isfinite(values) & np.isfinite(points).all(axis=1)
    if not keep.all():
        logger.warning(f"Ignoring {int((~keep).sum())} points with missing values")
        points, values = points[keep], values[keep]

    if len(points) < 2:
        raise InterpolationError("Interpolation needs at least two observations")

    return points, values, targets


@performance_tracker()
@validate_inputs(power=lambda p: p > 0)
def interpolate_idw(
    points: np.ndarray,
    values: np.ndarray,
    targets: np.ndarray,
    power: float = 2.0,
    neighbors: Optional[int] = 12
) -> np.ndarray:
    """
    Inverse distance weighted interpolation.

    Args:
        points: (n, 2) observation coordinates
        values: (n,) observed values
        targets: (m, 2) coordinates to estimate
        power: Distance decay exponent
        neighbors: Nearest observations used per target; all if None

    Returns:
        (m,) estimates; targets on an observation take its value
    """
    points, values, targets = _check_inputs(points, values, targets)

    k = len(points) if neighbors is None else min(int(neighbors), len(points))
    tree = cKDTree(points)
    distances, idx = tree.query(targets, k=k)
    if k == 1:
        distances, idx = distances[:, None], idx[:, None]

    with np.errstate(divide='ignore'):
        w = 1.0 / distances ** power

    exact = distances == 0
    on_point = exact.any(axis=1)
    w[on_point] = exact[on_point].astype(float)

    return (w * values[idx]).sum(axis=1) / w.sum(axis=1)


@performance_tracker()
def interpolate_kriging(
    points: np.ndarray,
    values: np.ndarray,
    targets: np.ndarray,
    variogram_model: str = 'spherical',
    nlags: int = 12
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Ordinary kriging with a fitted variogram.

    Returns:
        (m,) estimates and (m,) kriging variances
    """
    points, values, targets = _check_inputs(points, values, targets)

    try:
        ok = OrdinaryKriging(
            points[:, 0], points[:, 1], values,
            variogram_model=variogram_model,
            nlags=nlags,
            enable_plotting=False,
            verbose=False
        )
        estimates, variance = ok.execute('points', targets[:, 0], targets[:, 1])
    except Exception as e:
        logger.error(f"Error in ordinary kriging: {e}")
        raise InterpolationError(f"Error in ordinary kriging: {e}") from e

    logger.debug(f"Kriging variogram parameters: {list(ok.variogram_model_parameters)}")
    return np.asarray(estimates, dtype=float), np.asarray(variance, dtype=float)


@performance_tracker()
def interpolate_tps(
    points: np.ndarray,
    values: np.ndarray,
    targets: np.ndarray,
    smoothing: float = 0.0
) -> np.ndarray:
    """Thin-plate spline interpolation; ``smoothing=0`` honours every observation."""
    points, values, targets = _check_inputs(points, values, targets)

    # the spline is fitted on centred, scaled coordinates for conditioning
    center = points.mean(axis=0)
    scale = points.std(axis=0).max() or 1.0

    try:
        spline = RBFInterpolator(
            (points - center) / scale, values,
            kernel='thin_plate_spline',
            smoothing=smoothing
        )
        return spline((targets - center) / scale)
    except Exception as e:
        logger.error(f"Error in thin-plate spline interpolation: {e}")
        raise InterpolationError(f"Error in thin-plate spline interpolation: {e}") from e


def interpolate(
    points: np.ndarray,
    values: np.ndarray,
    targets: np.ndarray,
    settings: Optional[Union[InterpolationConfig, Dict[str, Any]]] = None
) -> Dict[str, Any]:
    """
    Interpolate with the configured method.

    Returns:
        Dictionary with ``method``, ``estimate`` and ``variance`` (kriging only)
    """
    if isinstance(settings, dict):
        try:
            settings = InterpolationConfig(**settings)
        except PydanticValidationError as e:
            raise InterpolationError(f"Invalid interpolation settings: {e}") from e
    settings = settings or InterpolationConfig()

    logger.info(f"Interpolating {len(points)} observations to {len(targets)} targets by {settings.method}")

    variance = None
    if settings.method == 'idw':
        estimate = interpolate_idw(points, values, targets, settings.power, settings.neighbors)
    elif settings.method == 'kriging':
        estimate, variance = interpolate_kriging(
            points, values, targets, settings.variogram_model, settings.nlags
        )
    elif settings.method == 'tps':
        estimate = interpolate_tps(points, values, targets, settings.smoothing)
    else:
        raise InterpolationError(f"Unknown interpolation method: {settings.method}")

    return {'method': settings.method, 'estimate': estimate, 'variance': variance}
