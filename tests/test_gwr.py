"""
Unit tests for geographically weighted regression.
"""
import unittest

import numpy as np
import pandas as pd

from california_gwr.core.exceptions import ModelError, ValidationError
from california_gwr.models.gwr import GeographicallyWeightedRegression, point_coordinates
from california_gwr.models.schemas import GWRConfig
from tests.synthetic import SPEC, make_observations


class TestGWR(unittest.TestCase):
    """Tests for the GeographicallyWeightedRegression model."""

    def setUp(self):
        """Set up test fixtures."""
        self.data = make_observations(n=150)
        self.config = GWRConfig(bandwidth=60000.0)

    def test_fit_with_fixed_bandwidth(self):
        """Test local coefficients at every observation."""
        model = GeographicallyWeightedRegression(SPEC, self.config)
        results = model.fit(self.data)

        params = results['params']
        self.assertEqual(list(params.columns), SPEC.coefficient_names)
        self.assertEqual(len(params), len(self.data))
        self.assertTrue(params.index.equals(self.data.index))
        self.assertEqual(results['bandwidth'], 60000.0)
        self.assertGreater(results['r_squared'], 0.8)
        self.assertTrue(np.isfinite(results['aicc']))

    def test_local_slopes_follow_surface(self):
        model = GeographicallyWeightedRegression(SPEC, self.config)
        params = model.fit(self.data)['params']
        west = params.loc[self.data['x'] < 50000, 'income'].mean()
        east = params.loc[self.data['x'] > 150000, 'income'].mean()
        self.assertLess(west, east)

    def test_cross_validated_bandwidth(self):
        data = make_observations(n=60)
        model = GeographicallyWeightedRegression(SPEC, GWRConfig(criterion='CV'))
        results = model.fit(data)
        self.assertGreater(results['bandwidth'], 0)
        self.assertEqual(model.bandwidth, results['bandwidth'])

    def test_refit_selects_new_bandwidth(self):
        """Test that a second fit searches again instead of reusing the first bandwidth."""
        small = make_observations(n=60)
        large = make_observations(n=60, extent=(0.0, 0.0, 2000000.0, 1000000.0))

        model = GeographicallyWeightedRegression(SPEC, GWRConfig(criterion='CV'))
        first = model.fit(small)['bandwidth']
        refit = model.fit(large)['bandwidth']
        fresh = GeographicallyWeightedRegression(SPEC, GWRConfig(criterion='CV')).fit(large)['bandwidth']

        self.assertAlmostEqual(refit, fresh)
        self.assertGreater(refit, first)

    def test_refit_keeps_configured_bandwidth(self):
        model = GeographicallyWeightedRegression(SPEC, self.config)
        model.fit(self.data)
        results = model.fit(make_observations(n=150, seed=3))
        self.assertEqual(results['bandwidth'], 60000.0)

    def test_sample_is_seeded(self):
        """Test that subsampling is reproducible for a fixed seed."""
        config = GWRConfig(bandwidth=60000.0, sample_size=80, random_state=7)
        first = GeographicallyWeightedRegression(SPEC, config).fit(self.data)
        second = GeographicallyWeightedRegression(SPEC, config).fit(self.data)

        self.assertEqual(first['n_obs'], 80)
        self.assertTrue(first['params'].index.equals(second['params'].index))
        pd.testing.assert_frame_equal(first['params'], second['params'])

    def test_predict_at_points(self):
        """Test coefficients at new points match the fit at observation points."""
        model = GeographicallyWeightedRegression(SPEC, self.config)
        results = model.fit(self.data)

        points = point_coordinates(self.data.iloc[:5])
        surface = model.predict_at(points)
        self.assertEqual(list(surface.columns), SPEC.coefficient_names)
        np.testing.assert_allclose(surface.to_numpy(), results['params'].iloc[:5].to_numpy(), rtol=1e-6)

        predicted = model.predict_at(points, self.data.iloc[:5])
        self.assertIn('prediction', predicted.columns)
        self.assertTrue(predicted.index.equals(self.data.index[:5]))

    def test_predict_errors(self):
        model = GeographicallyWeightedRegression(SPEC, self.config)
        with self.assertRaises(ModelError):
            model.predict_at(np.zeros((2, 2)))

        model.fit(self.data)
        with self.assertRaises(ValidationError):
            model.predict_at(np.zeros((2, 3)))
        with self.assertRaises(ValidationError):
            model.predict_at(np.zeros((2, 2)), self.data.iloc[:3])

    def test_invalid_inputs(self):
        model = GeographicallyWeightedRegression(SPEC, self.config)
        with self.assertRaises(ValidationError):
            model.fit(pd.DataFrame(self.data.drop(columns='geometry')))
        with self.assertRaises(ModelError):
            model.fit(self.data.iloc[:3])

    def test_config_from_dict(self):
        model = GeographicallyWeightedRegression(SPEC, {'kernel': 'bisquare', 'bandwidth': 80000})
        self.assertEqual(model.gwr_config.kernel, 'bisquare')
        self.assertEqual(model.bandwidth, 80000)


if __name__ == '__main__':
    unittest.main()
