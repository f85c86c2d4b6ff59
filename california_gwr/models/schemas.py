"""
Pydantic schemas for model parameters in California local regression analysis.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class RegressionSpec(BaseModel):
    """Schema for a fixed regression formula: response ~ covariates."""
    model_config = ConfigDict(frozen=True)

    response: str
    covariates: List[str] = Field(..., min_length=1)

    @field_validator('covariates')
    @classmethod
    def check_covariates(cls, v):
        """Validate covariate names."""
        if len(set(v)) != len(v):
            raise ValueError("Duplicate covariates")
        if 'const' in v:
            raise ValueError("'const' is reserved for the intercept")
        return v

    @model_validator(mode='after')
    def check_response_not_covariate(self):
        """Validate that the response is not also a covariate."""
        if self.response in self.covariates:
            raise ValueError(f"Response '{self.response}' is also listed as a covariate")
        return self

    @property
    def columns(self) -> List[str]:
        """All data columns the formula uses."""
        return [self.response] + list(self.covariates)

    @property
    def coefficient_names(self) -> List[str]:
        """Coefficient vector labels, intercept first."""
        return ['const'] + list(self.covariates)

    @property
    def n_params(self) -> int:
        return len(self.covariates) + 1

    def formula(self) -> str:
        return f"{self.response} ~ {' + '.join(self.covariates)}"

    @classmethod
    def from_config(cls, section: Dict[str, Any]) -> 'RegressionSpec':
        return cls(response=section['response'], covariates=list(section['covariates']))


class LocalFitConfig(BaseModel):
    """Schema for partition-wise OLS parameters."""
    model_config = ConfigDict(validate_assignment=True)

    cell_size: float = Field(50000.0, gt=0)
    radius: float = Field(50000.0, gt=0)
    min_observations: int = Field(50, ge=1)


class GWRConfig(BaseModel):
    """Schema for geographically weighted regression parameters."""
    model_config = ConfigDict(validate_assignment=True)

    kernel: Literal['gaussian', 'bisquare', 'exponential'] = 'gaussian'
    fixed: bool = True
    criterion: Literal['CV', 'AICc', 'AIC', 'BIC'] = 'CV'
    bandwidth: Optional[float] = Field(None, gt=0)
    sample_size: Optional[int] = Field(None, ge=10)
    random_state: int = 42
    grid_cell_size: float = Field(10000.0, gt=0)

    @model_validator(mode='after')
    def check_adaptive_bandwidth(self):
        """An adaptive bandwidth is a neighbour count and must be whole."""
        if not self.fixed and self.bandwidth is not None and float(self.bandwidth) != int(self.bandwidth):
            raise ValueError("Adaptive bandwidth must be an integer number of neighbours")
        return self


class InterpolationConfig(BaseModel):
    """Schema for spatial interpolation parameters."""
    model_config = ConfigDict(validate_assignment=True)

    method: Literal['idw', 'kriging', 'tps'] = 'idw'
    power: float = Field(2.0, gt=0)
    neighbors: Optional[int] = Field(12, ge=1)
    variogram_model: Literal['linear', 'power', 'gaussian', 'spherical', 'exponential'] = 'spherical'
    nlags: int = Field(12, ge=2)
    smoothing: float = Field(0.0, ge=0)
    cell_size: float = Field(10000.0, gt=0)
