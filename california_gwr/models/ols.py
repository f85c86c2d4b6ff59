"""
Ordinary least squares fitting for California local regression analysis.
"""
import logging
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.regression.linear_model import OLS, RegressionResultsWrapper

from ..core.exceptions import ModelError
from ..core.decorators import performance_tracker
from .base import BaseModel, complete_cases
from .schemas import RegressionSpec

logger = logging.getLogger(__name__)


def design_matrix(data: pd.DataFrame, spec: RegressionSpec) -> pd.DataFrame:
    """Covariates with an intercept column, always added so the width is fixed."""
    X = data[list(spec.covariates)].astype(float)
    return sm.add_constant(X, prepend=True, has_constant='add')


def fit_ols(data: pd.DataFrame, spec: RegressionSpec,
            cov_type: str = 'nonrobust') -> RegressionResultsWrapper:
    """
    Fit ``spec.response ~ spec.covariates`` by ordinary least squares.

    Args:
        data: Observations holding every formula column
        spec: Regression formula
        cov_type: statsmodels covariance estimator for the standard errors
            (e.g. ``HC3``); coefficients do not depend on it

    Returns:
        statsmodels results; ``params`` is indexed by ``spec.coefficient_names``
    """
    y = data[spec.response].astype(float)
    X = design_matrix(data, spec)
    return OLS(y, X).fit(cov_type=cov_type)


def coefficient_vector(results: RegressionResultsWrapper, spec: RegressionSpec) -> pd.Series:
    """Coefficients in formula order, intercept first."""
    return results.params.reindex(spec.coefficient_names)


class GlobalOLS(BaseModel):
    """A single OLS model fitted to every observation."""

    def __init__(self, spec: RegressionSpec, config: Optional[Dict[str, Any]] = None):
        super().__init__(spec, config)
        self.model_results: Optional[RegressionResultsWrapper] = None
        self.residuals: Optional[pd.Series] = None

    @performance_tracker()
    def fit(self, data: pd.DataFrame) -> Dict[str, Any]:
        """
        Fit the global model.

        Rows with missing formula values are dropped; residuals keep the
        index of the remaining rows so they can be mapped back to locations.

        Returns:
            Dictionary of coefficients and fit statistics
        """
        logger.info(f"Estimating global OLS model: {self.spec.formula()}")

        data = complete_cases(data, self.spec)
        self.validate_inputs(data)

        if len(data) <= self.spec.n_params:
            raise ModelError(
                f"Global OLS needs more than {self.spec.n_params} observations, got {len(data)}"
            )

        cov_type = self.config.get('cov_type', 'nonrobust')
        results = fit_ols(data, self.spec, cov_type=cov_type)
        self.model_results = results
        self.residuals = results.resid

        self.results = {
            'model_type': 'OLS',
            'formula': self.spec.formula(),
            'cov_type': cov_type,
            'coefficients': coefficient_vector(results, self.spec).to_dict(),
            'std_errors': results.bse.to_dict(),
            'p_values': results.pvalues.to_dict(),
            't_values': results.tvalues.to_dict(),
            'r_squared': float(results.rsquared),
            'adj_r_squared': float(results.rsquared_adj),
            'aic': float(results.aic),
            'bic': float(results.bic),
            'f_statistic': float(results.fvalue) if np.isfinite(results.fvalue) else None,
            'f_p_value': float(results.f_pvalue) if np.isfinite(results.f_pvalue) else None,
            'n_obs': int(results.nobs),
            'df_model': float(results.df_model),
            'df_resid': float(results.df_resid),
        }
        self.is_fitted = True

        logger.info(f"Estimated global OLS with R-squared={results.rsquared:.4f} on {int(results.nobs)} observations")
        return self.results

    def predict(self, data: pd.DataFrame) -> pd.Series:
        """Predict the response for new observations."""
        if not self.is_fitted:
            raise ModelError("Model has not been fitted yet")
        return self.model_results.predict(design_matrix(data, self.spec))

    def summary(self) -> str:
        if not self.is_fitted:
            raise ModelError("Model has not been fitted yet")
        return str(self.model_results.summary())
