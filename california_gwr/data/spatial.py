"""
Spatial joins and analysis grids for California local regression analysis.

Observations are associated with regions (counties) by point-in-polygon
lookup, and with grid cells by cell-centre distance. Region polygon sets are
dissolved by name first so each region name maps to exactly one geometry.
"""
import math
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import geopandas as gpd

from ..core.exceptions import SpatialJoinError, ValidationError
from ..core.decorators import performance_tracker

logger = logging.getLogger(__name__)


@performance_tracker()
def dissolve_regions(regions: gpd.GeoDataFrame, name_col: str = 'NAME') -> gpd.GeoDataFrame:
    """
    Merge same-named polygon fragments into one (multi)polygon per name.

    Args:
        regions: Region polygons, possibly with several rows per name
        name_col: Column holding the region name

    Returns:
        GeoDataFrame with exactly one row per region name, sorted by name
    """
    if name_col not in regions.columns:
        raise SpatialJoinError(f"Region table has no '{name_col}' column")

    regions = regions[regions[name_col].notna()].copy()
    if regions.empty:
        raise SpatialJoinError("Region table has no named polygons")

    invalid = ~regions.geometry.is_valid
    if invalid.any():
        logger.warning(f"Repairing {int(invalid.sum())} invalid region geometries")
        regions.loc[invalid, 'geometry'] = regions.loc[invalid].geometry.make_valid()

    n_fragments = len(regions)
    dissolved = (
        regions[[name_col, 'geometry']]
        .dissolve(by=name_col, as_index=False)
        .sort_values(name_col)
        .reset_index(drop=True)
    )

    if n_fragments != len(dissolved):
        logger.info(f"Dissolved {n_fragments} region fragments into {len(dissolved)} regions")

    return dissolved


@performance_tracker()
def assign_regions(
    points: gpd.GeoDataFrame,
    regions: gpd.GeoDataFrame,
    name_col: str = 'NAME',
    target_col: Optional[str] = None
) -> gpd.GeoDataFrame:
    """
    Attach the enclosing region name to each observation.

    Every input row is kept exactly once. Points on a region boundary belong
    to that region; points outside all regions get a missing name. A point
    matched by several polygons (a shared border) keeps the one listed first
    in ``regions``.

    Args:
        points: Observation points
        regions: Dissolved region polygons
        name_col: Region name column in ``regions``
        target_col: Output column in ``points`` (defaults to ``name_col``)

    Returns:
        Copy of ``points`` with the region name column added

    Raises:
        SpatialJoinError: If regions contain duplicate names
    """
    target_col = target_col or name_col

    if name_col not in regions.columns:
        raise SpatialJoinError(f"Region table has no '{name_col}' column")

    duplicated = regions[name_col].dropna().duplicated()
    if duplicated.any():
        names = sorted(regions[name_col].dropna()[duplicated].unique())
        raise SpatialJoinError(
            f"Regions must be dissolved by name before joining; duplicated: {names[:5]}"
        )

    if points.crs is None or regions.crs is None:
        raise SpatialJoinError("Both points and regions need a coordinate reference system")

    if regions.crs != points.crs:
        regions = regions.to_crs(points.crs)

    left = points.copy()
    if target_col in left.columns:
        logger.warning(f"Overwriting existing '{target_col}' column on observations")
        left = left.drop(columns=[target_col])

    right = (
        regions[[name_col, 'geometry']]
        .rename(columns={name_col: '_region_name'})
        .reset_index(drop=True)
    )
    joined = gpd.sjoin(left, right, how='left', predicate='intersects')
    joined = joined.sort_values('index_right', kind='stable')

    multi = joined.index.duplicated(keep='first')
    if multi.any():
        logger.warning(f"{int(joined.index[multi].nunique())} observations touch more than one region; keeping first match")
        joined = joined[~multi]

    result = left.copy()
    result[target_col] = joined['_region_name'].reindex(left.index)

    unmatched = int(result[target_col].isna().sum())
    if unmatched:
        logger.warning(f"{unmatched} of {len(result)} observations fall outside every region")

    logger.info(f"Assigned {len(result) - unmatched} observations to {result[target_col].nunique()} regions")
    return result


@dataclass
class Grid:
    """Regular analysis grid of square cells, laid out row-major from the top-left."""
    x_min: float
    y_max: float
    cell_size: float
    n_rows: int
    n_cols: int
    crs: Optional[str] = None
    cells: Optional[pd.DataFrame] = None

    def __post_init__(self):
        if self.cells is None:
            rows, cols = np.divmod(np.arange(self.n_rows * self.n_cols), self.n_cols)
            self.cells = pd.DataFrame({
                'cell_id': rows * self.n_cols + cols,
                'row': rows,
                'col': cols,
                'x': self.x_min + (cols + 0.5) * self.cell_size,
                'y': self.y_max - (rows + 0.5) * self.cell_size,
                'inside': True
            }).set_index('cell_id', drop=False).rename_axis(None)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.n_rows, self.n_cols

    @property
    def extent(self) -> Tuple[float, float, float, float]:
        """(left, right, bottom, top), as matplotlib's ``imshow`` expects."""
        return (
            self.x_min,
            self.x_min + self.n_cols * self.cell_size,
            self.y_max - self.n_rows * self.cell_size,
            self.y_max
        )

    def centers(self, only_inside: bool = False) -> np.ndarray:
        """Cell centre coordinates as an (n, 2) array."""
        cells = self.active_cells() if only_inside else self.cells
        return cells[['x', 'y']].to_numpy(dtype=float)

    def active_cells(self) -> pd.DataFrame:
        return self.cells[self.cells['inside']]

    def to_raster(self, values: pd.Series) -> np.ndarray:
        """
        Arrange per-cell values as a rows x cols array.

        ``values`` is indexed by cell id; cells without a value are NaN.
        """
        if values.index.has_duplicates:
            raise ValidationError("Cell values must have unique cell ids")

        unknown = values.index.difference(self.cells.index)
        if len(unknown):
            raise ValidationError(f"{len(unknown)} values refer to cells outside the grid")

        raster = np.full(self.n_rows * self.n_cols, np.nan, dtype=float)
        raster[values.index.to_numpy(dtype=int)] = values.to_numpy(dtype=float)
        return raster.reshape(self.n_rows, self.n_cols)

    def to_geodataframe(self, only_inside: bool = False) -> gpd.GeoDataFrame:
        cells = self.active_cells() if only_inside else self.cells
        return gpd.GeoDataFrame(
            cells.copy(),
            geometry=gpd.points_from_xy(cells['x'], cells['y']),
            crs=self.crs
        )


def make_grid(
    bounds: Sequence[float],
    cell_size: float,
    crs: Optional[str] = None
) -> Grid:
    """
    Build a grid covering a bounding box.

    Args:
        bounds: (minx, miny, maxx, maxy) in projected units
        cell_size: Cell width and height in the same units
        crs: CRS of the bounds

    Returns:
        Grid whose cells cover the bounds completely
    """
    if cell_size <= 0:
        raise ValidationError(f"Cell size must be positive, got {cell_size}")

    minx, miny, maxx, maxy = (float(b) for b in bounds)
    if not (maxx > minx and maxy > miny):
        raise ValidationError(f"Degenerate bounds: {tuple(bounds)}")

    n_cols = max(1, math.ceil((maxx - minx) / cell_size))
    n_rows = max(1, math.ceil((maxy - miny) / cell_size))

    grid = Grid(x_min=minx, y_max=maxy, cell_size=float(cell_size),
                n_rows=n_rows, n_cols=n_cols, crs=crs)
    logger.debug(f"Created {n_rows}x{n_cols} grid with {cell_size} cell size")
    return grid


def grid_for(gdf: gpd.GeoDataFrame, cell_size: float) -> Grid:
    """Build a grid over the extent of a GeoDataFrame, in its CRS."""
    crs = gdf.crs.to_string() if gdf.crs is not None else None
    if gdf.crs is not None and gdf.crs.is_geographic:
        logger.warning("Building a grid in geographic coordinates; cell size is in degrees")
    return make_grid(gdf.total_bounds, cell_size, crs=crs)


def mask_grid(grid: Grid, regions: gpd.GeoDataFrame) -> Grid:
    """Flag cells whose centre lies inside, or on the boundary of, any region polygon."""
    centers = grid.to_geodataframe()
    if regions.crs is not None and centers.crs is not None and regions.crs != centers.crs:
        regions = regions.to_crs(centers.crs)

    joined = gpd.sjoin(centers[['cell_id', 'geometry']], regions[['geometry']],
                       how='inner', predicate='intersects')
    inside_ids = set(joined['cell_id'].unique())

    grid.cells['inside'] = grid.cells['cell_id'].isin(inside_ids)
    logger.info(f"{len(inside_ids)} of {len(grid.cells)} grid cells fall inside the regions")
    return grid
