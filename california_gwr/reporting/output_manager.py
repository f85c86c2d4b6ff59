"""
Output file management for California local regression analysis.
"""
import os
import json
import logging
import numpy as np
import pandas as pd
import geopandas as gpd
from typing import Dict, Optional, Any
from datetime import datetime

from ..core.decorators import error_handler
from ..core.exceptions import ReportingError
from ..core.config import get_config

logger = logging.getLogger(__name__)


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles NumPy and pandas types."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.bool_):
            return bool(obj)
        elif isinstance(obj, (datetime, pd.Timestamp)):
            return obj.isoformat()
        elif isinstance(obj, pd.Series):
            return obj.to_dict()
        elif isinstance(obj, pd.DataFrame):
            return obj.to_dict(orient='index')
        return super(NumpyEncoder, self).default(obj)


class OutputManager:
    """Manager for organizing and saving analysis outputs."""

    def __init__(
        self,
        output_dir: Optional[str] = None,
        analysis_name: str = 'analysis',
        version: Optional[str] = None
    ):
        """Initialize output manager with directory structure."""
        cfg = get_config()
        self.base_dir = output_dir or cfg.get('directories.results_dir', 'results')

        self.version = str(version or cfg.get('output.analysis_version', '1.0'))
        if not self.version.startswith('v'):
            self.version = f"v{self.version}"

        self.analysis_name = analysis_name
        self.timestamp = datetime.now().strftime("%Y%m%d")

        self.setup_directories()

        self.manifest = {
            "timestamp": self.timestamp,
            "version": self.version,
            "analysis": self.analysis_name,
            "files": []
        }

    def setup_directories(self) -> None:
        """Create directory structure for outputs."""
        self.analysis_dir = os.path.join(self.base_dir, self.version, self.analysis_name)
        os.makedirs(self.analysis_dir, exist_ok=True)

        self.viz_dir = os.path.join(self.analysis_dir, "visualizations")
        os.makedirs(self.viz_dir, exist_ok=True)

        logger.info(f"Set up output directories at {self.analysis_dir}")

    def _record(self, file_path: str, file_type: str) -> None:
        self.manifest["files"].append({
            "path": os.path.relpath(file_path, self.analysis_dir),
            "type": file_type,
            "timestamp": self.timestamp
        })

    @error_handler(fallback_value=False, label=('filename',))
    def save_json(self, data: Dict[str, Any], filename: str) -> bool:
        """Save data as JSON file."""
        file_path = os.path.join(self.analysis_dir, filename)
        with open(file_path, 'w') as f:
            json.dump(data, f, cls=NumpyEncoder, indent=2)

        self._record(file_path, "json")
        logger.info(f"Saved JSON to {file_path}")
        return True

    @error_handler(fallback_value=False, label=('filename',))
    def save_csv(self, df: pd.DataFrame, filename: str, index: bool = True) -> bool:
        """Save DataFrame as CSV file."""
        file_path = os.path.join(self.analysis_dir, filename)
        if isinstance(df, gpd.GeoDataFrame):
            df = pd.DataFrame(df.drop(columns=df.geometry.name))
        df.to_csv(file_path, index=index)

        self._record(file_path, "csv")
        logger.info(f"Saved CSV to {file_path}")
        return True

    @error_handler(fallback_value=False, label=('filename',))
    def save_geojson(self, gdf: gpd.GeoDataFrame, filename: str) -> bool:
        """Save GeoDataFrame as GeoJSON in geographic coordinates."""
        if not isinstance(gdf, gpd.GeoDataFrame):
            raise ReportingError("GeoJSON export needs a GeoDataFrame")

        file_path = os.path.join(self.analysis_dir, filename)
        if gdf.crs is not None and not gdf.crs.is_geographic:
            gdf = gdf.to_crs(get_config().get('crs.geographic', 'EPSG:4326'))
        gdf.to_file(file_path, driver='GeoJSON')

        self._record(file_path, "geojson")
        logger.info(f"Saved GeoJSON to {file_path}")
        return True

    @error_handler(fallback_value=False, label=('filename',))
    def save_raster_npz(
        self,
        rasters: Dict[str, np.ndarray],
        filename: str,
        extent: Optional[tuple] = None,
        crs: Optional[str] = None
    ) -> bool:
        """Save named rasters with their grid extent as a compressed NumPy archive."""
        if not rasters:
            raise ReportingError("No rasters to save")

        file_path = os.path.join(self.analysis_dir, filename)
        arrays = {name: np.asarray(raster, dtype=float) for name, raster in rasters.items()}
        if extent is not None:
            arrays['_extent'] = np.asarray(extent, dtype=float)
        if crs is not None:
            arrays['_crs'] = np.asarray(str(crs))
        np.savez_compressed(file_path, **arrays)

        self._record(file_path, "npz")
        logger.info(f"Saved {len(rasters)} rasters to {file_path}")
        return True

    def record_figure(self, file_path: Optional[str]) -> None:
        """Add a saved figure to the manifest."""
        if file_path:
            self._record(file_path, "figure")

    @error_handler(fallback_value=False)
    def save_manifest(self) -> bool:
        """Save manifest file with listing of all outputs."""
        file_path = os.path.join(self.analysis_dir, "manifest.json")
        with open(file_path, 'w') as f:
            json.dump(self.manifest, f, cls=NumpyEncoder, indent=2)

        logger.info(f"Saved manifest to {file_path}")
        return True
