"""
Unit tests for data loading and validation.
"""
import os
import shutil
import tempfile
import unittest

import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.geometry import Polygon

from california_gwr.core.config import MONTH_COLUMNS
from california_gwr.core.exceptions import DataProcessingError, ValidationError
from california_gwr.data.loaders import (
    add_annual_total, add_household_ratios, load_house_prices, load_observations,
    load_precipitation, load_regions, project, to_geodataframe
)
from california_gwr.data.validators import check_minimum_observations, validate_observation_table


class TestLoaders(unittest.TestCase):
    """Tests for the CSV and polygon loaders."""

    def setUp(self):
        """Set up test fixtures."""
        np.random.seed(42)
        self.tmp_dir = tempfile.mkdtemp()

        n = 10
        stations = pd.DataFrame({
            'ID': [f"ID{i}" for i in range(n)],
            'NAME': [f"STATION {i}" for i in range(n)],
            'LAT': np.random.uniform(33, 41, n),
            'LONG': np.random.uniform(-123, -115, n),
            'ALT': np.random.uniform(0, 2000, n),
        })
        for month in MONTH_COLUMNS:
            stations[month] = np.random.uniform(0, 100, n)
        self.stations = stations
        self.stations_path = os.path.join(self.tmp_dir, 'precipitation.csv')
        stations.to_csv(self.stations_path, index=False)

        houses = pd.DataFrame({
            'houseValue': [452600.0, 358500.0, 352100.0, 341300.0],
            'income': [8.3252, 8.3014, 7.2574, 5.6431],
            'houseAge': [41, 21, 52, 52],
            'rooms': [880, 7099, 1467, 1274],
            'bedrooms': [129, 1106, 190, 235],
            'population': [322, 2401, 0, 558],
            'households': [126, 1138, 177, 219],
            'latitude': [37.88, 37.86, 37.85, 37.85],
            'longitude': [-122.23, -122.22, -122.24, -122.25],
        })
        self.houses_path = os.path.join(self.tmp_dir, 'houses.csv')
        houses.to_csv(self.houses_path, index=False)

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_load_precipitation(self):
        """Test that stations load as points with an annual total."""
        gdf = load_precipitation(self.stations_path)

        self.assertIsInstance(gdf, gpd.GeoDataFrame)
        self.assertEqual(len(gdf), len(self.stations))
        self.assertEqual(gdf.crs.to_epsg(), 4326)
        np.testing.assert_allclose(gdf.geometry.x, self.stations['LONG'])
        np.testing.assert_allclose(gdf['pan'], self.stations[MONTH_COLUMNS].sum(axis=1))

    def test_missing_file(self):
        with self.assertRaises(DataProcessingError):
            load_precipitation(os.path.join(self.tmp_dir, 'absent.csv'))

    def test_missing_coordinate_columns(self):
        with self.assertRaises(DataProcessingError):
            load_observations(self.stations_path, 'lon', 'lat')

    def test_rows_without_coordinates_dropped(self):
        df = self.stations.copy()
        df.loc[0, 'LAT'] = np.nan
        path = os.path.join(self.tmp_dir, 'partial.csv')
        df.to_csv(path, index=False)

        gdf = load_observations(path, 'LONG', 'LAT')
        self.assertEqual(len(gdf), len(df) - 1)

    def test_annual_total_requires_all_months(self):
        with self.assertRaises(DataProcessingError):
            add_annual_total(self.stations.drop(columns=['DEC']))

        df = self.stations.copy()
        df.loc[0, 'JAN'] = np.nan
        self.assertTrue(np.isnan(add_annual_total(df)['pan'].iloc[0]))

    def test_load_house_prices(self):
        """Test derived ratios and removal of zero-population block groups."""
        gdf = load_house_prices(self.houses_path)

        self.assertEqual(len(gdf), 3)
        first = gdf.iloc[0]
        self.assertAlmostEqual(first['roomhead'], 880 / 322)
        self.assertAlmostEqual(first['bedroomhead'], 129 / 322)
        self.assertAlmostEqual(first['hhsize'], 322 / 126)

    def test_household_ratios_zero_division(self):
        df = pd.DataFrame({'rooms': [10], 'bedrooms': [2], 'population': [0], 'households': [0]})
        ratios = add_household_ratios(df)
        self.assertTrue(ratios[['roomhead', 'bedroomhead', 'hhsize']].isna().all().all())

        with self.assertRaises(DataProcessingError):
            add_household_ratios(df.drop(columns=['rooms']))

    def test_load_regions(self):
        """Test polygon loading and the name column check."""
        regions = gpd.GeoDataFrame(
            {'NAME': ['Alpine'], 'geometry': [Polygon([(0, 0), (1, 0), (1, 1), (0, 1)])]},
            crs='EPSG:4326'
        )
        path = os.path.join(self.tmp_dir, 'regions.geojson')
        regions.to_file(path, driver='GeoJSON')

        loaded = load_regions(path, 'NAME')
        self.assertEqual(list(loaded['NAME']), ['Alpine'])

        with self.assertRaises(DataProcessingError):
            load_regions(path, 'COUNTY')

    def test_project(self):
        gdf = to_geodataframe(self.stations, 'LONG', 'LAT', 'EPSG:4326')
        projected = project(gdf, 'EPSG:3310')
        self.assertEqual(projected.crs.to_epsg(), 3310)
        self.assertTrue((projected.geometry.x.abs() < 1e6).all())

        no_crs = gpd.GeoDataFrame(self.stations, geometry=gpd.points_from_xy(self.stations['LONG'], self.stations['LAT']))
        with self.assertRaises(DataProcessingError):
            project(no_crs)


class TestValidators(unittest.TestCase):
    """Tests for observation table validation."""

    def setUp(self):
        """Set up test fixtures."""
        self.gdf = gpd.GeoDataFrame(
            {'value': [1.0, 2.0, 3.0], 'label': ['a', 'b', 'c']},
            geometry=gpd.points_from_xy([0, 1, 2], [0, 1, 2]),
            crs='EPSG:3310'
        )

    def _without_crs(self):
        return gpd.GeoDataFrame(
            {'value': [1.0, 2.0, 3.0]}, geometry=gpd.points_from_xy([0, 1, 2], [0, 1, 2])
        )

    def test_valid_table(self):
        stats = validate_observation_table(self.gdf, ['value'])
        self.assertEqual(stats['n_observations'], 3)
        self.assertEqual(stats['duplicate_locations'], 0)

    def test_missing_and_non_numeric_columns(self):
        with self.assertRaises(ValidationError):
            validate_observation_table(self.gdf, ['other'])
        with self.assertRaises(ValidationError):
            validate_observation_table(self.gdf, ['label'])

    def test_duplicate_locations(self):
        """Test that repeated coordinate pairs raise unless allowed."""
        duplicated = self.gdf.copy()
        duplicated.loc[2, 'geometry'] = duplicated.geometry.iloc[0]

        with self.assertRaises(ValidationError):
            validate_observation_table(duplicated, ['value'])

        stats = validate_observation_table(duplicated, ['value'], allow_duplicate_locations=True)
        self.assertEqual(stats['duplicate_locations'], 1)

    def test_empty_and_crs(self):
        with self.assertRaises(ValidationError):
            validate_observation_table(self.gdf.iloc[0:0], ['value'])
        with self.assertRaises(ValidationError):
            validate_observation_table(self._without_crs(), ['value'])
        with self.assertRaises(ValidationError):
            validate_observation_table(self.gdf.drop(columns='geometry').copy(), ['value'])

    def test_check_minimum_observations(self):
        self.assertTrue(check_minimum_observations(50, 50))
        self.assertFalse(check_minimum_observations(49, 50, label='cell 3'))


if __name__ == '__main__':
    unittest.main()
