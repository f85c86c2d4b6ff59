"""
Export of workflow results for California local regression analysis.
"""
import os
import logging
from typing import Any, Dict, List, Optional

from ..core.config import get_config
from ..core.decorators import error_handler, performance_tracker
from ..analysis.assembler import grid_coefficients_frame
from ..visualization import (
    plot_coefficient_dotchart, plot_coefficient_map, plot_observations,
    plot_raster, plot_surface_3d, set_plot_manager
)
from .output_manager import OutputManager
from .tables import create_model_comparison_table, create_ols_table

logger = logging.getLogger(__name__)

SUMMARY_KEYS = {
    'ols': ['formula', 'coefficients', 'std_errors', 'p_values', 'r_squared',
            'adj_r_squared', 'aic', 'bic', 'n_obs', 'moran'],
    'gwr': ['formula', 'bandwidth', 'kernel', 'fixed', 'criterion',
            'r_squared', 'adj_r_squared', 'aicc', 'n_obs'],
    'regional': ['formula', 'min_observations', 'n_partitions', 'n_fitted',
                 'n_missing', 'unassigned'],
    'grid_ols': ['formula', 'grid_shape', 'cell_size', 'radius', 'min_observations',
                 'n_partitions', 'n_fitted', 'n_missing'],
}


def summarize_results(results: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-ready scalars and small tables from a workflow results dictionary."""
    summary: Dict[str, Any] = {
        'analysis': results.get('analysis'),
        'formula': results.get('formula'),
        'validation': results.get('validation'),
    }
    for section, keys in SUMMARY_KEYS.items():
        if results.get(section):
            summary[section] = {key: results[section].get(key) for key in keys if key in results[section]}

    for key in ('variable', 'method', 'settings'):
        if key in results:
            summary[key] = results[key]

    grid = results.get('grid')
    if grid is not None:
        summary['grid'] = {
            'shape': grid.shape,
            'cell_size': grid.cell_size,
            'extent': grid.extent,
            'crs': grid.crs,
            'active_cells': int(grid.cells['inside'].sum()),
        }
    return summary


@performance_tracker()
def export_analysis(results: Dict[str, Any], output: OutputManager) -> Dict[str, bool]:
    """
    Write tables, geometries and rasters of a workflow run.

    Returns:
        Mapping of written file name to success flag
    """
    written: Dict[str, bool] = {}
    written['summary.json'] = output.save_json(summarize_results(results), 'summary.json')

    if results.get('ols'):
        written['global_ols.csv'] = output.save_csv(create_ols_table(results['ols']), 'global_ols.csv')
        comparison = create_model_comparison_table(results)
        if not comparison.empty:
            written['model_comparison.csv'] = output.save_csv(comparison, 'model_comparison.csv')

    if results.get('regional'):
        written['regional_coefficients.csv'] = output.save_csv(
            results['regional']['coefficients'], 'regional_coefficients.csv'
        )
        written['regional_summary.csv'] = output.save_csv(
            results['regional_summary'], 'regional_summary.csv'
        )

    if results.get('county_coefficients') is not None:
        written['county_coefficients.geojson'] = output.save_geojson(
            results['county_coefficients'], 'county_coefficients.geojson'
        )

    grid = results.get('grid')
    if results.get('grid_ols'):
        cells = grid_coefficients_frame(grid, results['grid_ols']['coefficients'])
        written['grid_coefficients.csv'] = output.save_csv(cells, 'grid_coefficients.csv', index=False)

    if results.get('gwr'):
        params = results['gwr']['params'].join(results['gwr']['local_r2'])
        written['gwr_observations.csv'] = output.save_csv(params, 'gwr_observations.csv')

    gwr_surface = results.get('gwr_surface')
    if gwr_surface is not None and not gwr_surface.empty:
        gwr_grid = results.get('gwr_grid', grid)
        cells = grid_coefficients_frame(gwr_grid, gwr_surface)
        written['gwr_grid.csv'] = output.save_csv(cells, 'gwr_grid.csv', index=False)
        if 'gwr_rasters' in results:
            written['gwr_rasters.npz'] = output.save_raster_npz(
                results['gwr_rasters'], 'gwr_rasters.npz', gwr_grid.extent, gwr_grid.crs
            )

    if results.get('rasters') and grid is not None:
        written['rasters.npz'] = output.save_raster_npz(
            results['rasters'], 'rasters.npz', grid.extent, grid.crs
        )

    output.save_manifest()
    failed = [name for name, ok in written.items() if not ok]
    if failed:
        logger.warning(f"Failed to write: {', '.join(failed)}")
    return written


@error_handler(fallback_value=[])
@performance_tracker()
def export_figures(
    results: Dict[str, Any],
    output: OutputManager,
    coefficient_names: Optional[List[str]] = None
) -> List[str]:
    """
    Draw the standard maps and charts of a workflow run into the output's
    visualization directory.

    Returns:
        Paths of the saved figures
    """
    cfg = get_config()
    plot_manager = set_plot_manager(
        dpi=cfg.get('output.dpi', 150),
        output_dir=output.viz_dir,
        formats=[cfg.get('output.figure_format', 'png')]
    )
    regions = results.get('regions')
    grid = results.get('grid')
    observations = results.get('observations')
    saved: List[str] = []

    def keep(fig, name):
        if fig is not None:
            path = os.path.join(plot_manager.output_dir, f"{name}.{plot_manager.formats[0]}")
            output.record_figure(path)
            saved.append(path)

    response = results.get('variable') or (results.get('ols') or {}).get('formula', '').split(' ~ ')[0]
    if observations is not None and response in observations.columns:
        keep(plot_observations(observations, response, regions, title=f"Observed {response}",
                               filename='observations'), 'observations')

    names = coefficient_names or list(results.get('rasters', {}))
    global_coefficients = (results.get('ols') or {}).get('coefficients', {})

    for name in names:
        raster = results.get('rasters', {}).get(name)
        if raster is not None and grid is not None:
            diverging = results.get('analysis') != 'interpolation'
            title = f"{name} ({results.get('method')})" if not diverging else f"Local {name}"
            keep(plot_raster(raster, grid.extent, regions, crs=grid.crs, title=title,
                             cmap='RdBu_r' if diverging else 'viridis', diverging=diverging,
                             label=name, filename=f"raster_{name}"), f"raster_{name}")

        county = results.get('county_coefficients')
        if county is not None and name in county.columns:
            keep(plot_coefficient_map(county, name, title=f"County {name}",
                                      filename=f"county_{name}"), f"county_{name}")
            keep(plot_coefficient_dotchart(results['regional']['coefficients'], name,
                                           global_value=global_coefficients.get(name),
                                           title=f"County {name}",
                                           filename=f"dotchart_{name}"), f"dotchart_{name}")

    gwr_grid = results.get('gwr_grid')
    for name, raster in (results.get('gwr_rasters') or {}).items():
        keep(plot_raster(raster, gwr_grid.extent, regions, crs=gwr_grid.crs, title=f"GWR {name}",
                         label=name, filename=f"gwr_{name}"), f"gwr_{name}")

    if results.get('analysis') == 'interpolation' and grid is not None:
        variable = results['variable']
        keep(plot_surface_3d(results['rasters'][variable], grid.extent,
                             title=f"Interpolated {variable}", zlabel=variable,
                             filename=f"surface_{variable}"), f"surface_{variable}")

    output.save_manifest()
    logger.info(f"Saved {len(saved)} figures to {output.viz_dir}")
    return saved
