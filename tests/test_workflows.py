"""
Integration tests for the analysis workflows, exports and command line.
"""
import json
import os
import shutil
import tempfile
import unittest

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.geometry import box
from typer.testing import CliRunner

from california_gwr.analysis import (
    run_house_price_analysis, run_interpolation, run_precipitation_analysis, settings_from_config
)
from california_gwr.cli.app import app
from california_gwr.core.config import MONTH_COLUMNS, initialize_config
from california_gwr.core.exceptions import ConfigurationError, DataProcessingError, ValidationError
from california_gwr.models.schemas import GWRConfig
from california_gwr.reporting import (
    OutputManager, create_model_comparison_table, export_analysis, export_figures
)


def write_inputs(directory, n_stations=80, n_houses=300, seed=42):
    """Station, block-group and county files in geographic coordinates."""
    rng = np.random.RandomState(seed)

    lon = rng.uniform(-122.3, -117.7, n_stations)
    lat = rng.uniform(34.7, 39.3, n_stations)
    alt = rng.uniform(0, 2500, n_stations)
    annual = 200 + 0.4 * alt * (1 + (lon + 122.3) / 4.6) + rng.normal(0, 20, n_stations)
    stations = pd.DataFrame({
        'ID': [f"ID{i:04d}" for i in range(n_stations)],
        'NAME': [f"STATION {i}" for i in range(n_stations)],
        'LAT': lat, 'LONG': lon, 'ALT': alt,
    })
    for month in MONTH_COLUMNS:
        stations[month] = annual / 12.0 + rng.uniform(0, 1, n_stations)
    stations_path = os.path.join(directory, 'precipitation.csv')
    stations.to_csv(stations_path, index=False)

    income = rng.uniform(1, 12, n_houses)
    population = rng.uniform(300, 3000, n_houses)
    households = population / rng.uniform(2, 4, n_houses)
    rooms = population * rng.uniform(1.5, 3, n_houses)
    bedrooms = rooms * rng.uniform(0.15, 0.3, n_houses)
    house_age = rng.uniform(1, 52, n_houses)
    house_lon = rng.uniform(-122.3, -117.7, n_houses)
    houses = pd.DataFrame({
        'houseValue': 40000 + 35000 * income + 500 * house_age + rng.normal(0, 10000, n_houses)
                      + 5000 * (house_lon + 122.3),
        'income': income,
        'houseAge': house_age,
        'rooms': rooms,
        'bedrooms': bedrooms,
        'population': population,
        'households': households,
        'latitude': rng.uniform(34.7, 39.3, n_houses),
        'longitude': house_lon,
    })
    houses_path = os.path.join(directory, 'houses.csv')
    houses.to_csv(houses_path, index=False)

    counties = gpd.GeoDataFrame(
        {'NAME': ['West', 'West', 'East'],
         'geometry': [box(-122.5, 34.5, -120.0, 37.0), box(-122.5, 37.0, -120.0, 39.5),
                      box(-120.0, 34.5, -117.5, 39.5)]},
        crs='EPSG:4326'
    )
    regions_path = os.path.join(directory, 'counties.geojson')
    counties.to_file(regions_path, driver='GeoJSON')

    return stations_path, houses_path, regions_path


class WorkflowTestCase(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures."""
        self.tmp_dir = tempfile.mkdtemp()
        self.stations_path, self.houses_path, self.regions_path = write_inputs(self.tmp_dir)
        self.config_path = os.path.join(self.tmp_dir, 'config.yaml')
        with open(self.config_path, 'w') as f:
            f.write(
                "directories:\n"
                f"  results_dir: {self.tmp_dir}/results\n"
                f"  logs_dir: {self.tmp_dir}/logs\n"
                "data:\n"
                f"  precipitation_file: {self.stations_path}\n"
                f"  houses_file: {self.houses_path}\n"
                f"  regions_file: {self.regions_path}\n"
                "gwr:\n"
                "  bandwidth: 150000\n"
                "  grid_cell_size: 50000\n"
                "local_fit:\n"
                "  cell_size: 100000\n"
                "  radius: 100000\n"
                "  min_observations: 30\n"
                "interpolation:\n"
                "  cell_size: 50000\n"
                "autocorrelation:\n"
                "  permutations: 99\n"
            )
        initialize_config(self.config_path)

    def tearDown(self):
        initialize_config(None)
        shutil.rmtree(self.tmp_dir, ignore_errors=True)


class TestPrecipitationWorkflow(WorkflowTestCase):
    """Tests for the precipitation analysis."""

    def test_run(self):
        """Test global OLS, residual Moran's I and the GWR surface."""
        results = run_precipitation_analysis()

        self.assertEqual(results['formula'], 'pan ~ ALT')
        self.assertEqual(list(results['ols']['coefficients']), ['const', 'ALT'])
        self.assertIn('I', results['ols']['moran'])
        self.assertEqual(results['gwr']['bandwidth'], 150000)
        self.assertEqual(results['observations'].crs.to_epsg(), 3310)

        grid = results['grid']
        active = grid.active_cells()
        self.assertGreater(len(active), 0)
        self.assertTrue(results['gwr_surface'].index.equals(active.index))
        self.assertEqual(sorted(results['rasters']), ['ALT', 'const'])
        for raster in results['rasters'].values():
            self.assertEqual(raster.shape, grid.shape)
            self.assertEqual(int(np.isfinite(raster).sum()), len(active))

    def test_without_regions(self):
        results = run_precipitation_analysis(regions_path=os.path.join(self.tmp_dir, 'absent.gpkg'))
        self.assertIsNone(results['regions'])
        self.assertTrue(results['grid'].cells['inside'].all())

    def test_missing_data(self):
        with self.assertRaises(DataProcessingError):
            run_precipitation_analysis(data_path=os.path.join(self.tmp_dir, 'absent.csv'))

    def test_invalid_settings(self):
        with self.assertRaises(ConfigurationError):
            run_precipitation_analysis(gwr_overrides={'kernel': 'triangular'})
        with self.assertRaises(ConfigurationError):
            settings_from_config(GWRConfig, 'gwr', {'sample_size': 1})


class TestHousePriceWorkflow(WorkflowTestCase):
    """Tests for the house price analysis."""

    def test_run_without_gwr(self):
        """Test county and grid partitions line up with their geometries."""
        results = run_house_price_analysis(include_gwr=False)

        counties = results['county_coefficients']
        self.assertEqual(sorted(counties['NAME']), ['East', 'West'])
        self.assertFalse(counties['NAME'].duplicated().any())
        self.assertTrue(counties['fitted'].all())
        self.assertEqual(counties['n_obs'].sum(), len(results['observations']))

        names = ['const', 'income', 'houseAge', 'roomhead', 'bedroomhead', 'population']
        table = results['grid_ols']['coefficients']
        self.assertEqual(list(table.columns[:6]), names)
        self.assertTrue(table.loc[~table['fitted'], names].isna().all().all())
        self.assertTrue((table.loc[table['fitted'], 'n_obs'] >= 30).all())
        self.assertEqual(results['rasters']['income'].shape, results['grid'].shape)
        self.assertIsNone(results['gwr'])

    def test_run_with_gwr(self):
        results = run_house_price_analysis(gwr_overrides={'sample_size': 120})
        self.assertEqual(results['gwr']['n_obs'], 120)
        self.assertEqual(len(results['gwr_surface']), len(results['gwr_grid'].active_cells()))

        comparison = create_model_comparison_table(results)
        self.assertEqual(list(comparison.columns), ['global_ols', 'regional_median', 'grid_median', 'gwr_median'])
        self.assertIn('r_squared', comparison.index)

    def test_deterministic(self):
        first = run_house_price_analysis(include_gwr=False)
        second = run_house_price_analysis(include_gwr=False)
        pd.testing.assert_frame_equal(first['regional']['coefficients'], second['regional']['coefficients'])
        pd.testing.assert_frame_equal(first['grid_ols']['coefficients'], second['grid_ols']['coefficients'])


class TestInterpolationWorkflow(WorkflowTestCase):
    """Tests for station interpolation."""

    def test_idw(self):
        results = run_interpolation()
        estimate = results['rasters']['pan']
        self.assertEqual(estimate.shape, results['grid'].shape)
        self.assertEqual(int(np.isfinite(estimate).sum()), len(results['grid'].active_cells()))
        self.assertNotIn('variance', results['rasters'])

    def test_kriging_variance(self):
        results = run_interpolation(variable='ALT', overrides={'method': 'kriging', 'variogram_model': 'linear'})
        self.assertEqual(results['method'], 'kriging')
        self.assertIn('variance', results['rasters'])

    def test_unknown_variable(self):
        with self.assertRaises(ValidationError):
            run_interpolation(variable='SNOW')


class TestExport(WorkflowTestCase):
    """Tests for writing results and figures."""

    def test_export_house_results(self):
        results = run_house_price_analysis(include_gwr=False)
        output = OutputManager(output_dir=os.path.join(self.tmp_dir, 'out'), analysis_name='houses')

        written = export_analysis(results, output)
        self.assertTrue(all(written.values()))
        self.assertIn('county_coefficients.geojson', written)

        with open(os.path.join(output.analysis_dir, 'summary.json')) as f:
            summary = json.load(f)
        self.assertEqual(summary['analysis'], 'houses')
        self.assertEqual(summary['regional']['n_fitted'], 2)

        archive = np.load(os.path.join(output.analysis_dir, 'rasters.npz'))
        self.assertEqual(archive['income'].shape, results['grid'].shape)

        figures = export_figures(results, output)
        self.assertGreater(len(figures), 0)
        for path in figures:
            self.assertTrue(os.path.exists(path))

        with open(os.path.join(output.analysis_dir, 'manifest.json')) as f:
            manifest = json.load(f)
        self.assertIn('summary.json', [entry['path'] for entry in manifest['files']])


class TestCommandLine(WorkflowTestCase):
    """Tests for the typer application."""

    def setUp(self):
        super().setUp()
        self.runner = CliRunner()

    def test_interpolate_command(self):
        output = os.path.join(self.tmp_dir, 'cli')
        result = self.runner.invoke(app, ['interpolate', '--config', self.config_path,
                                          '--output', output, '--no-figures'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue(os.path.exists(os.path.join(output, 'v1.0', 'interpolation', 'summary.json')))

    def test_failure_exit_code(self):
        result = self.runner.invoke(app, ['precipitation', '--config', self.config_path,
                                          '--data', os.path.join(self.tmp_dir, 'absent.csv'),
                                          '--output', os.path.join(self.tmp_dir, 'cli')])
        self.assertEqual(result.exit_code, 1)

    def test_show_config(self):
        result = self.runner.invoke(app, ['show-config', '--config', self.config_path])
        self.assertEqual(result.exit_code, 0)
        self.assertIn('radius: 100000', result.output)


if __name__ == '__main__':
    unittest.main()
