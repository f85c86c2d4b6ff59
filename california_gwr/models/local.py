"""
Partition-wise OLS for California local regression analysis.

The observation table is split by a partition rule (administrative region, or
the fixed-radius neighbourhood of a grid cell centre) and an unweighted OLS
model with a fixed formula is fitted to each partition. Partitions with fewer
observations than the minimum are not fitted; their coefficients are NaN.
"""
import logging
from typing import Any, Dict, Hashable, Iterable, List, Optional, Union

import numpy as np
import pandas as pd
import geopandas as gpd
from scipy.spatial import cKDTree

from ..core.exceptions import ModelError, ValidationError
from ..core.decorators import performance_tracker
from ..data.spatial import Grid, grid_for
from ..data.validators import check_minimum_observations
from .base import BaseModel, complete_cases
from .ols import coefficient_vector, fit_ols
from .schemas import LocalFitConfig, RegressionSpec

logger = logging.getLogger(__name__)


def _empty_row(spec: RegressionSpec, n_obs: int) -> Dict[str, Any]:
    row = {name: np.nan for name in spec.coefficient_names}
    row['n_obs'] = n_obs
    row['fitted'] = False
    return row


def _fit_row(subset: pd.DataFrame, spec: RegressionSpec) -> Dict[str, Any]:
    results = fit_ols(subset, spec)
    row = coefficient_vector(results, spec).to_dict()
    row['n_obs'] = len(subset)
    row['fitted'] = True
    return row


def _coefficient_frame(rows: Dict[Hashable, Dict[str, Any]], spec: RegressionSpec,
                       index_name: str) -> pd.DataFrame:
    columns = spec.coefficient_names + ['n_obs', 'fitted']
    table = pd.DataFrame.from_dict(rows, orient='index', columns=columns)
    table.index.name = index_name
    table['n_obs'] = table['n_obs'].astype(int)
    table['fitted'] = table['fitted'].astype(bool)
    return table


@performance_tracker()
def fit_partitions(
    data: pd.DataFrame,
    partition_col: str,
    spec: RegressionSpec,
    min_observations: int,
    partitions: Optional[Iterable[Hashable]] = None
) -> pd.DataFrame:
    """
    Fit one OLS model per partition.

    Args:
        data: Observations with the formula columns and a partition column
        partition_col: Column holding the partition id of each row
        spec: Regression formula shared by every partition
        min_observations: Partitions below this count are recorded as NaN
        partitions: Ids to report even if no row falls in them

    Returns:
        DataFrame indexed by partition id with one column per coefficient
        (intercept first), ``n_obs`` and ``fitted``
    """
    if partition_col not in data.columns:
        raise ValidationError(f"Partition column '{partition_col}' not found")

    keyed = data[data[partition_col].notna()]
    groups = {key: group for key, group in keyed.groupby(partition_col, sort=True)}

    keys: List[Hashable] = sorted(groups)
    if partitions is not None:
        keys = sorted(set(keys) | set(partitions))

    rows: Dict[Hashable, Dict[str, Any]] = {}
    for key in keys:
        subset = groups.get(key)
        n_obs = 0 if subset is None else len(subset)
        if check_minimum_observations(n_obs, min_observations, label=key):
            rows[key] = _fit_row(subset, spec)
        else:
            rows[key] = _empty_row(spec, n_obs)

    return _coefficient_frame(rows, spec, partition_col)


class RegionalOLS(BaseModel):
    """One OLS model per administrative region."""

    def __init__(
        self,
        spec: RegressionSpec,
        region_col: str = 'NAME',
        min_observations: Optional[int] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        super().__init__(spec, config)
        self.region_col = region_col
        # fewer rows than coefficients leaves the OLS solution undetermined
        self.min_observations = min_observations or spec.n_params
        self.coefficients: Optional[pd.DataFrame] = None

    def fit(self, data: pd.DataFrame, regions: Optional[Iterable[Hashable]] = None) -> Dict[str, Any]:
        """
        Fit per-region models.

        Args:
            data: Observations with a region column from the spatial joiner
            regions: All region names, so regions without data appear as NaN

        Returns:
            Dictionary with the coefficient table and partition counts
        """
        logger.info(f"Estimating per-region OLS models: {self.spec.formula()}")

        if self.region_col not in data.columns:
            raise ValidationError(f"Region column '{self.region_col}' not found; assign regions first")

        data = complete_cases(data, self.spec)
        self.validate_inputs(data)

        unassigned = int(data[self.region_col].isna().sum())
        if unassigned:
            logger.warning(f"{unassigned} observations have no region and are excluded")

        self.coefficients = fit_partitions(
            data, self.region_col, self.spec, self.min_observations, partitions=regions
        )

        n_fitted = int(self.coefficients['fitted'].sum())
        self.results = {
            'model_type': 'regional_ols',
            'formula': self.spec.formula(),
            'coefficients': self.coefficients,
            'min_observations': self.min_observations,
            'n_partitions': len(self.coefficients),
            'n_fitted': n_fitted,
            'n_missing': len(self.coefficients) - n_fitted,
            'unassigned': unassigned,
        }
        self.is_fitted = True

        logger.info(f"Fitted {n_fitted} of {len(self.coefficients)} regions")
        return self.results


class GridOLS(BaseModel):
    """
    One OLS model per grid cell, using every observation within a fixed
    radius of the cell centre. Observations are not weighted by distance.
    """

    def __init__(
        self,
        spec: RegressionSpec,
        local_config: Optional[Union[LocalFitConfig, Dict[str, Any]]] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        super().__init__(spec, config)
        if isinstance(local_config, dict):
            local_config = LocalFitConfig(**local_config)
        self.local_config = local_config or LocalFitConfig()
        self.grid: Optional[Grid] = None
        self.coefficients: Optional[pd.DataFrame] = None

    @performance_tracker()
    def fit(self, data: gpd.GeoDataFrame, grid: Optional[Grid] = None) -> Dict[str, Any]:
        """
        Fit per-cell models.

        Args:
            data: Observations in a projected CRS
            grid: Analysis grid; built over the data extent if omitted. Cells
                flagged as outside (see ``mask_grid``) are not fitted.

        Returns:
            Dictionary with the coefficient table (indexed by cell id) and counts
        """
        cfg = self.local_config
        logger.info(
            f"Estimating per-cell OLS models: {self.spec.formula()} "
            f"(radius={cfg.radius}, min_observations={cfg.min_observations})"
        )

        if not isinstance(data, gpd.GeoDataFrame):
            raise ValidationError("Grid fitting needs a GeoDataFrame of observations")

        data = complete_cases(data, self.spec)
        self.validate_inputs(data)

        if data.crs is not None and data.crs.is_geographic:
            logger.warning("Observations are in geographic coordinates; radius is in degrees")

        self.grid = grid if grid is not None else grid_for(data, cfg.cell_size)

        coords = np.column_stack([data.geometry.x.to_numpy(), data.geometry.y.to_numpy()])
        tree = cKDTree(coords)

        rows: Dict[Hashable, Dict[str, Any]] = {}
        for cell in self.grid.cells.itertuples(index=False):
            if not cell.inside:
                rows[cell.cell_id] = _empty_row(self.spec, 0)
                continue

            center = np.array([cell.x, cell.y])
            candidates = np.asarray(tree.query_ball_point(center, r=cfg.radius), dtype=int)
            if candidates.size:
                distances = np.hypot(coords[candidates, 0] - cell.x, coords[candidates, 1] - cell.y)
                candidates = np.sort(candidates[distances < cfg.radius])

            if check_minimum_observations(candidates.size, cfg.min_observations, label=cell.cell_id):
                rows[cell.cell_id] = _fit_row(data.iloc[candidates], self.spec)
            else:
                rows[cell.cell_id] = _empty_row(self.spec, int(candidates.size))

        self.coefficients = _coefficient_frame(rows, self.spec, 'cell_id')

        n_active = int(self.grid.cells['inside'].sum())
        n_fitted = int(self.coefficients['fitted'].sum())
        self.results = {
            'model_type': 'grid_ols',
            'formula': self.spec.formula(),
            'coefficients': self.coefficients,
            'grid_shape': self.grid.shape,
            'cell_size': self.grid.cell_size,
            'radius': cfg.radius,
            'min_observations': cfg.min_observations,
            'n_partitions': n_active,
            'n_fitted': n_fitted,
            'n_missing': n_active - n_fitted,
        }
        self.is_fitted = True

        logger.info(f"Fitted {n_fitted} of {n_active} grid cells")
        return self.results

    def to_raster(self, name: str) -> np.ndarray:
        """Coefficient ``name`` as a rows x cols array aligned with the grid."""
        if not self.is_fitted:
            raise ModelError("Model has not been fitted yet")
        if name not in self.coefficients.columns:
            raise ValidationError(f"Unknown coefficient '{name}'")
        return self.grid.to_raster(self.coefficients[name])
