"""
Unit tests for global OLS and the regression schemas.
"""
import unittest

import numpy as np
import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from california_gwr.core.exceptions import ModelError, ValidationError
from california_gwr.models.ols import GlobalOLS, coefficient_vector, design_matrix, fit_ols
from california_gwr.models.schemas import GWRConfig, LocalFitConfig, RegressionSpec
from tests.synthetic import SPEC, make_observations


class TestRegressionSpec(unittest.TestCase):
    """Tests for the regression formula schema."""

    def test_coefficient_names(self):
        self.assertEqual(SPEC.coefficient_names, ['const', 'income', 'age'])
        self.assertEqual(SPEC.n_params, 3)
        self.assertEqual(SPEC.columns, ['value', 'income', 'age'])
        self.assertEqual(SPEC.formula(), 'value ~ income + age')

    def test_invalid_specs(self):
        with self.assertRaises(PydanticValidationError):
            RegressionSpec(response='y', covariates=[])
        with self.assertRaises(PydanticValidationError):
            RegressionSpec(response='y', covariates=['a', 'a'])
        with self.assertRaises(PydanticValidationError):
            RegressionSpec(response='y', covariates=['const'])
        with self.assertRaises(PydanticValidationError):
            RegressionSpec(response='y', covariates=['y', 'x'])

    def test_from_config(self):
        spec = RegressionSpec.from_config({'response': 'pan', 'covariates': ['ALT']})
        self.assertEqual(spec.coefficient_names, ['const', 'ALT'])

    def test_parameter_schemas(self):
        self.assertEqual(LocalFitConfig().min_observations, 50)
        with self.assertRaises(PydanticValidationError):
            LocalFitConfig(radius=0)
        with self.assertRaises(PydanticValidationError):
            GWRConfig(kernel='triangular')
        with self.assertRaises(PydanticValidationError):
            GWRConfig(fixed=False, bandwidth=10.5)
        self.assertEqual(GWRConfig(fixed=False, bandwidth=30).bandwidth, 30)


class TestGlobalOLS(unittest.TestCase):
    """Tests for the GlobalOLS model."""

    def setUp(self):
        """Set up test fixtures."""
        np.random.seed(42)
        n = 300
        self.data = pd.DataFrame({
            'income': np.random.uniform(1, 10, n),
            'age': np.random.uniform(0, 50, n),
        })
        self.data['value'] = 3.0 + 2.0 * self.data['income'] - 0.1 * self.data['age'] + np.random.normal(0, 0.1, n)

    def test_design_matrix_always_has_intercept(self):
        """Test that a constant covariate does not suppress the intercept."""
        data = self.data.copy()
        data['income'] = 1.0
        X = design_matrix(data, SPEC)
        self.assertEqual(list(X.columns), ['const', 'income', 'age'])

    def test_fit_recovers_coefficients(self):
        results = GlobalOLS(SPEC).fit(self.data)

        self.assertAlmostEqual(results['coefficients']['const'], 3.0, delta=0.1)
        self.assertAlmostEqual(results['coefficients']['income'], 2.0, delta=0.02)
        self.assertAlmostEqual(results['coefficients']['age'], -0.1, delta=0.01)
        self.assertGreater(results['r_squared'], 0.99)
        self.assertEqual(results['n_obs'], 300)
        self.assertEqual(list(results['coefficients']), SPEC.coefficient_names)

    def test_residuals_keep_index(self):
        data = self.data.copy()
        data.loc[5, 'income'] = np.nan
        model = GlobalOLS(SPEC)
        model.fit(data)

        self.assertEqual(len(model.residuals), len(data) - 1)
        self.assertNotIn(5, model.residuals.index)

    def test_coefficient_vector_order(self):
        results = fit_ols(self.data, SPEC)
        vector = coefficient_vector(results, SPEC)
        self.assertEqual(list(vector.index), ['const', 'income', 'age'])

    def test_errors(self):
        """Test unfitted access and invalid inputs."""
        model = GlobalOLS(SPEC)
        with self.assertRaises(ModelError):
            model.get_results()
        with self.assertRaises(ModelError):
            model.predict(self.data)
        with self.assertRaises(ModelError):
            model.fit(self.data.iloc[:3])
        with self.assertRaises(ValidationError):
            model.validate_inputs(self.data.drop(columns=['age']))

    def test_set_config_changes_standard_errors(self):
        """Test that a robust covariance changes standard errors but not coefficients."""
        model = GlobalOLS(SPEC)
        plain = model.fit(self.data)

        model.set_config({'cov_type': 'HC3'})
        self.assertEqual(model.config['cov_type'], 'HC3')
        robust = model.fit(self.data)

        self.assertEqual(plain['cov_type'], 'nonrobust')
        self.assertEqual(robust['cov_type'], 'HC3')
        for name in SPEC.coefficient_names:
            self.assertAlmostEqual(robust['coefficients'][name], plain['coefficients'][name])
        self.assertNotAlmostEqual(robust['std_errors']['income'], plain['std_errors']['income'], places=8)

    def test_predict(self):
        model = GlobalOLS(SPEC)
        model.fit(self.data)
        predictions = model.predict(self.data.iloc[:5])
        np.testing.assert_allclose(predictions, self.data['value'].iloc[:5], atol=0.5)
        self.assertIn('OLS Regression Results', model.summary())

    def test_works_on_geodataframe(self):
        gdf = make_observations(n=80)
        results = GlobalOLS(SPEC).fit(gdf)
        self.assertEqual(results['n_obs'], 80)


if __name__ == '__main__':
    unittest.main()
