"""
Model Handles
=============
Closed set of fitted-model variants the scoring engine knows how to read.
Handles only hold a reference to the fitted object and never mutate it.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from sklearn import linear_model
from statsmodels.discrete.discrete_model import LogitResults, PoissonResults, ProbitResults
from statsmodels.genmod.generalized_linear_model import GLMResults
from statsmodels.regression.linear_model import RegressionResults

from .exceptions import UnsupportedModelError

logger = logging.getLogger(__name__)

STATSMODELS_RESULTS = (GLMResults, RegressionResults, LogitResults, ProbitResults, PoissonResults)

SKLEARN_ESTIMATORS = (
    linear_model.LinearRegression,
    linear_model.Ridge,
    linear_model.Lasso,
    linear_model.ElasticNet,
    linear_model.LogisticRegression,
    linear_model.PoissonRegressor,
    linear_model.GammaRegressor,
    linear_model.TweedieRegressor,
)

BOOSTED_FAMILIES = ("gaussian", "binomial", "poisson", "gamma")


@dataclass(frozen=True)
class PlainGLM:
    """A fitted statsmodels GLM, least-squares or discrete-choice result."""
    results: Any

    @property
    def unwrapped(self) -> Any:
        return getattr(self.results, "_results", self.results)

    def coefficients(self) -> List[Tuple[str, float]]:
        """Ordered (term name, coefficient) pairs as stored by the model."""
        params = self.results.params
        if isinstance(params, pd.Series):
            return [(str(name), float(value)) for name, value in params.items()]
        names = self.results.model.exog_names
        return [(str(name), float(value)) for name, value in zip(names, np.ravel(params))]

    def factor_levels(self) -> Dict[str, Tuple[Any, ...]]:
        """
        Categories of each categorical factor in the model formula.

        Returns:
            Mapping of factor code (e.g. 'C(region)') to its categories, empty
            when the model was not fitted from a formula
        """
        design_info = getattr(getattr(self.results.model, "data", None), "design_info", None)
        factor_infos = getattr(design_info, "factor_infos", None)
        if not factor_infos:
            return {}
        return {
            factor.name(): tuple(info.categories)
            for factor, info in factor_infos.items()
            if info.type == "categorical"
        }


@dataclass(frozen=True)
class PenalizedGLM:
    """A fitted scikit-learn (optionally penalized) linear model."""
    estimator: Any

    def coefficients(self) -> Tuple[List[Tuple[str, float]], Optional[float]]:
        """
        Read feature coefficients and the intercept from the estimator.

        Returns:
            Tuple of ((feature name, coefficient) pairs, intercept or None)

        Raises:
            UnsupportedModelError: If feature names are unavailable or the
                estimator has more than one set of coefficients
        """
        est = self.estimator
        names = getattr(est, "feature_names_in_", None)
        if names is None:
            raise UnsupportedModelError(
                f"{type(est).__name__} was fitted without column names; "
                f"fit it on a DataFrame so feature_names_in_ is available"
            )

        coef = np.asarray(est.coef_, dtype=float)
        if coef.ndim == 2:
            if coef.shape[0] != 1:
                raise UnsupportedModelError(
                    f"{type(est).__name__} has {coef.shape[0]} coefficient sets; "
                    f"only single-output models can be scored"
                )
            coef = coef[0]

        intercept = None
        if getattr(est, "fit_intercept", True):
            values = np.ravel(est.intercept_)
            intercept = float(values[0]) if values.size else 0.0

        return [(str(name), float(value)) for name, value in zip(names, coef)], intercept


@dataclass(frozen=True)
class BoostedGLM:
    """
    Coefficients of a component-wise boosted GLM.

    Boosting libraries for binomial responses recode the outcome to -1/+1,
    which halves the coefficients relative to a plain GLM fit, and keep a
    separate offset that is not part of the coefficient vector.

    Attributes:
        coefficients: Ordered mapping of formula term name to coefficient
        family: Response family name (gaussian, binomial, poisson, gamma)
        offset: Stored offset, added into the intercept
        recoded: Whether the response was internally recoded to -1/+1
        link: Explicit link tag overriding the family default
    """
    coefficients: Dict[str, float] = field(default_factory=dict)
    family: str = "gaussian"
    offset: float = 0.0
    recoded: bool = False
    link: Optional[str] = None

    def __post_init__(self):
        family = str(self.family).lower()
        if family not in BOOSTED_FAMILIES:
            raise UnsupportedModelError(f"Unsupported boosted family: {self.family}")
        object.__setattr__(self, "family", family)
        object.__setattr__(self, "coefficients", {
            str(name): float(value) for name, value in dict(self.coefficients).items()
        })
        object.__setattr__(self, "offset", float(self.offset))

    @classmethod
    def binomial(cls, coefficients: Dict[str, float], offset: float = 0.0) -> 'BoostedGLM':
        """Boosted binomial model with the -1/+1 response recoding."""
        return cls(coefficients=coefficients, family="binomial", offset=offset, recoded=True)


ModelHandle = Union[PlainGLM, PenalizedGLM, BoostedGLM]


def wrap_model(model: Any) -> ModelHandle:
    """
    Map a fitted model object onto its handle variant.

    Args:
        model: statsmodels results, scikit-learn estimator or existing handle

    Returns:
        Model handle

    Raises:
        UnsupportedModelError: If the model type is not recognized
    """
    if isinstance(model, (PlainGLM, PenalizedGLM, BoostedGLM)):
        return model

    if isinstance(getattr(model, "_results", model), STATSMODELS_RESULTS):
        logger.debug(f"Wrapping {type(model).__name__} as PlainGLM")
        return PlainGLM(model)

    if isinstance(model, SKLEARN_ESTIMATORS):
        if not hasattr(model, "coef_"):
            raise UnsupportedModelError(f"{type(model).__name__} has not been fitted")
        logger.debug(f"Wrapping {type(model).__name__} as PenalizedGLM")
        return PenalizedGLM(model)

    raise UnsupportedModelError(f"Unsupported model type: {type(model).__name__}")
