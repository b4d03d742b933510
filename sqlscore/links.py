"""
Link / Response Resolution
==========================
Maps a model's link function onto the SQL expression of its inverse (the
response function). Links whose inverse has no closed elementary form, such
as probit or complementary log-log, are rejected: the caller names an
equivalent SQL function instead.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from sklearn import linear_model
from statsmodels.discrete.discrete_model import LogitResults, PoissonResults, ProbitResults
from statsmodels.genmod.families import links
from statsmodels.genmod.generalized_linear_model import GLMResults
from statsmodels.regression.linear_model import RegressionResults

from .exceptions import InvalidIdentifierError, UnsupportedLinkError, UnsupportedModelError
from .expression import BinaryOp, Call, Expression, Literal
from .models import BoostedGLM, ModelHandle, PenalizedGLM, PlainGLM, wrap_model

logger = logging.getLogger(__name__)


def _identity(lp: Expression, power: Optional[float]) -> Expression:
    return lp


def _logistic(lp: Expression, power: Optional[float]) -> Expression:
    return BinaryOp(
        "/",
        Literal(1.0),
        BinaryOp("+", Literal(1.0), Call("EXP", (BinaryOp("*", Literal(-1.0), lp),)))
    )


def _exponential(lp: Expression, power: Optional[float]) -> Expression:
    return Call("EXP", (lp,))


def _reciprocal(lp: Expression, power: Optional[float]) -> Expression:
    return BinaryOp("/", Literal(1.0), lp)


def _inverse_squared(lp: Expression, power: Optional[float]) -> Expression:
    return Call("POWER", (lp, Literal(-0.5)))


def _squared(lp: Expression, power: Optional[float]) -> Expression:
    return Call("POWER", (lp, Literal(2.0)))


def _power(lp: Expression, power: Optional[float]) -> Expression:
    if not power:
        raise UnsupportedLinkError(f"power({power})")
    return Call("POWER", (lp, Literal(1.0 / power)))


RESPONSE_GENERATORS: Dict[str, Callable[[Expression, Optional[float]], Expression]] = {
    "identity": _identity,
    "logit": _logistic,
    "log": _exponential,
    "inverse": _reciprocal,
    "inverse_squared": _inverse_squared,
    "sqrt": _squared,
    "power": _power,
}

# Family defaults for boosted models
FAMILY_LINKS = {
    "gaussian": "identity",
    "binomial": "logit",
    "poisson": "log",
    "gamma": "inverse",
}


@dataclass(frozen=True)
class ClosedForm:
    """Response function expressible with elementary SQL functions."""
    link: str
    power: Optional[float] = None

    def apply(self, lp: Expression) -> Expression:
        return RESPONSE_GENERATORS[self.link](lp, self.power)


@dataclass(frozen=True)
class Named:
    """Response function supplied by name, applied as a single-argument call."""
    function_name: str

    def apply(self, lp: Expression) -> Expression:
        return Call(self.function_name, (lp,))


ResponseSpec = Union[ClosedForm, Named]

_NON_ELEMENTARY_LINKS = (links.CDFLink, links.CLogLog, links.LogLog, links.LogC, links.NegativeBinomial)


def _closed_form(tag: str, power: Optional[float] = None) -> ClosedForm:
    if tag not in RESPONSE_GENERATORS:
        raise UnsupportedLinkError(tag)
    return ClosedForm(tag, power)


def _statsmodels_link(link: Any) -> ClosedForm:
    # CDF-based links and the log-log family subclass Logit, so they are
    # excluded before the closed-form checks
    if isinstance(link, _NON_ELEMENTARY_LINKS):
        raise UnsupportedLinkError(type(link).__name__.lower())
    # Identity, InversePower, InverseSquared and Sqrt subclass Power
    if isinstance(link, links.Identity):
        return _closed_form("identity")
    if isinstance(link, links.InversePower):
        return _closed_form("inverse")
    if isinstance(link, links.InverseSquared):
        return _closed_form("inverse_squared")
    if isinstance(link, links.Sqrt):
        return _closed_form("sqrt")
    if isinstance(link, links.Power):
        if link.power == 1:
            return _closed_form("identity")
        return _closed_form("power", float(link.power))
    if isinstance(link, links.Logit):
        return _closed_form("logit")
    if isinstance(link, links.Log):
        return _closed_form("log")
    raise UnsupportedLinkError(type(link).__name__.lower())


def _plain_response(model: PlainGLM) -> ClosedForm:
    results = model.unwrapped
    if isinstance(results, GLMResults):
        return _statsmodels_link(results.model.family.link)
    if isinstance(results, RegressionResults):
        return _closed_form("identity")
    if isinstance(results, LogitResults):
        return _closed_form("logit")
    if isinstance(results, ProbitResults):
        raise UnsupportedLinkError("probit")
    if isinstance(results, PoissonResults):
        return _closed_form("log")
    raise UnsupportedModelError(f"Unsupported statsmodels result: {type(results).__name__}")


def _penalized_response(model: PenalizedGLM) -> ClosedForm:
    est = model.estimator
    if isinstance(est, linear_model.LogisticRegression):
        return _closed_form("logit")
    if isinstance(est, linear_model.TweedieRegressor):
        link = est.link
        if link == "auto":
            link = "identity" if est.power <= 0 else "log"
        return _closed_form(link)
    if isinstance(est, (linear_model.PoissonRegressor, linear_model.GammaRegressor)):
        return _closed_form("log")
    return _closed_form("identity")


def _boosted_response(model: BoostedGLM) -> ClosedForm:
    return _closed_form(model.link or FAMILY_LINKS[model.family])


# Closed dispatch table: one resolver per model variant
_RESOLVERS = {
    PlainGLM: _plain_response,
    PenalizedGLM: _penalized_response,
    BoostedGLM: _boosted_response,
}


def resolve_response(
    model: Union[ModelHandle, Any],
    override_name: Optional[str] = None
) -> ResponseSpec:
    """
    Resolve the response function to apply to a model's linear predictor.

    Args:
        model: Fitted model or model handle
        override_name: Name of a SQL function to use instead of introspecting
            the model's link

    Returns:
        Named(override_name) when an override is given, else ClosedForm

    Raises:
        InvalidIdentifierError: If override_name is not a non-empty string
        UnsupportedLinkError: If the link has no closed-form expression
        UnsupportedModelError: If the model variant is not recognized
    """
    if override_name is not None:
        if not isinstance(override_name, str) or not override_name:
            raise InvalidIdentifierError(
                f"Response function name must be a non-empty string, got {override_name!r}"
            )
        return Named(override_name)

    handle = wrap_model(model)
    resolver = _RESOLVERS.get(type(handle))
    if resolver is None:
        raise UnsupportedModelError(f"No response resolver for {type(handle).__name__}")

    spec = resolver(handle)
    logger.debug(f"Resolved {type(handle).__name__} response as {spec}")
    return spec
