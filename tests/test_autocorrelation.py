"""
Unit tests for spatial weights and Moran's I.
"""
import unittest

import numpy as np
import pandas as pd

from california_gwr.core.exceptions import ValidationError
from california_gwr.models.autocorrelation import (
    build_weights, moran_test, residual_autocorrelation
)
from tests.synthetic import make_observations


class TestAutocorrelation(unittest.TestCase):
    """Tests for k-nearest-neighbour weights and Moran's I."""

    def setUp(self):
        """Set up test fixtures."""
        np.random.seed(42)
        self.gdf = make_observations(n=100)

    def test_knn_weights_row_standardised(self):
        w = build_weights(self.gdf, k=4)
        self.assertEqual(w.n, len(self.gdf))
        self.assertEqual(w.transform, 'R')
        for neighbours in w.neighbors.values():
            self.assertEqual(len(neighbours), 4)
        for row in w.weights.values():
            self.assertAlmostEqual(sum(row), 1.0)

    def test_too_few_points(self):
        with self.assertRaises(ValidationError):
            build_weights(self.gdf.iloc[:4], k=4)

    def test_spatial_trend_is_autocorrelated(self):
        """Test that a smooth east-west trend gives a strongly positive I."""
        w = build_weights(self.gdf, k=6)
        result = moran_test(self.gdf['x'], w, permutations=99)

        self.assertGreater(result['I'], 0.5)
        self.assertTrue(result['significant'])
        self.assertAlmostEqual(result['E[I]'], -1.0 / (len(self.gdf) - 1))

    def test_noise_is_not_autocorrelated(self):
        w = build_weights(self.gdf, k=6)
        result = moran_test(pd.Series(np.random.normal(size=len(self.gdf))), w, permutations=0)
        self.assertLess(abs(result['I']), 0.2)
        self.assertEqual(result['p_value'], result['p_norm'])

    def test_invalid_values(self):
        w = build_weights(self.gdf, k=6)
        with self.assertRaises(ValidationError):
            moran_test(self.gdf['x'].iloc[:10], w)
        values = self.gdf['x'].copy()
        values.iloc[0] = np.nan
        with self.assertRaises(ValidationError):
            moran_test(values, w)

    def test_residual_autocorrelation_uses_residual_rows(self):
        residuals = pd.Series(np.random.normal(size=50), index=self.gdf.index[::2])
        result = residual_autocorrelation(self.gdf, residuals, k=5, permutations=0)
        self.assertIn('I', result)


if __name__ == '__main__':
    unittest.main()
