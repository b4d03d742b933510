"""
Linear Predictor Extraction
===========================
Builds the expression sum(coefficient_i * feature_i) + intercept for each
supported model variant. Formula term names (statsmodels/patsy style) are
translated back into expressions over the raw input columns:

    x1                      -> x1
    Q("Sepal.Length")       -> "Sepal.Length"
    C(region)[T.b]          -> (CASE WHEN region = 'b' THEN 1 ELSE 0 END)
    x1:x2                   -> (x1 * x2)

Only treatment-coded factors have such an indicator form; factors coded with
sum, Helmert, difference or polynomial contrasts are rejected.
"""
import logging
import re
from functools import reduce
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from .config import ScoringConfig
from .exceptions import UnsupportedModelError, UnsupportedTermError
from .expression import BinaryOp, Column, Comparison, Expression, Literal
from .models import BoostedGLM, ModelHandle, PenalizedGLM, PlainGLM, wrap_model

logger = logging.getLogger(__name__)

_LEVEL_TERM = re.compile(r"^(?P<factor>.+?)\[(?P<level>[^\[\]]*)\]$")
_CATEGORICAL = re.compile(r"^C\(\s*(?P<inner>[^,]+?)\s*(?:,(?P<args>.*))?\)$")
_KEYWORD_ARG = re.compile(r"^(?P<key>[A-Za-z_]\w*)\s*=(?!=)\s*(?P<value>.*)$", re.DOTALL)
_TREATMENT = re.compile(r"^Treatment\b")
_QUOTED = re.compile(r"""^Q\(\s*(?P<quote>['"])(?P<name>.*)(?P=quote)\s*\)$""")
_NAME = re.compile(r"^[A-Za-z_.][A-Za-z0-9_.]*$")
_INTEGER = re.compile(r"^-?\d+$")
_DECIMAL = re.compile(r"^-?(\d+\.\d*|\.\d+)([eE]-?\d+)?$")
_WHITESPACE = re.compile(r"\s+")

Levels = Mapping[str, Sequence[Any]]


def _split_top_level(text: str, separator: str) -> List[str]:
    """Split on a separator outside brackets, parentheses and quotes."""
    parts = []
    depth = 0
    quote = None
    current = ""
    for char in text:
        if quote:
            if char == quote:
                quote = None
        elif char in "'\"":
            quote = char
        elif char in "([":
            depth += 1
        elif char in ")]":
            depth -= 1
        elif char == separator and depth == 0:
            parts.append(current)
            current = ""
            continue
        current += char
    parts.append(current)
    return [part.strip() for part in parts]


def _parse_level(text: str) -> Union[bool, int, float, str]:
    # Only text that prints back unchanged is numeric: '007' stays a string
    if text in ("True", "False"):
        return text == "True"
    if _INTEGER.match(text) and str(int(text)) == text:
        return int(text)
    if _DECIMAL.match(text) and repr(float(text)) == text:
        return float(text)
    return text


def _column_name(factor: str, term: str) -> str:
    quoted = _QUOTED.match(factor)
    if quoted:
        return quoted.group("name")
    if _NAME.match(factor):
        return factor
    raise UnsupportedTermError(term)


def _check_treatment_coding(args: str, term: str) -> None:
    """Reject C(x, ...) factors coded with anything but treatment dummies."""
    for position, arg in enumerate(_split_top_level(args, ",")):
        keyword = _KEYWORD_ARG.match(arg)
        if keyword:
            if keyword.group("key") != "contrast":
                continue
            contrast = keyword.group("value").strip()
        elif position == 0:
            contrast = arg
        else:
            continue
        if not _TREATMENT.match(contrast):
            raise UnsupportedTermError(term)


def _level_value(text: str, categories: Optional[Sequence[Any]], term: str) -> Any:
    # Reduced-rank treatment columns are named [T.level], full-rank ones [level]
    candidates = [text[2:], text] if text.startswith("T.") else [text]
    if categories is None:
        return _parse_level(candidates[0])
    for candidate in candidates:
        for category in categories:
            if str(category) == candidate:
                return category
    raise UnsupportedTermError(term)


def _factor_expression(factor: str, term: str, levels: Levels) -> Expression:
    """Expression for one component of a (possibly interacted) term."""
    level_match = _LEVEL_TERM.match(factor)
    if not level_match:
        return Column(_column_name(factor, term))

    code = level_match.group("factor").strip()
    variable = code
    categorical = _CATEGORICAL.match(code)
    if categorical:
        variable = categorical.group("inner")
        if categorical.group("args") is not None:
            _check_treatment_coding(categorical.group("args"), term)

    categories = levels.get(_WHITESPACE.sub("", code))
    return Comparison(
        "=",
        Column(_column_name(variable, term)),
        Literal(_level_value(level_match.group("level"), categories, term))
    )


def term_expression(term: str, levels: Optional[Levels] = None) -> Expression:
    """
    Translate a formula term name into an expression over raw columns.

    Args:
        term: Coefficient name, e.g. 'x1', 'C(region)[T.b]' or 'x1:x2'
        levels: Optional categories of each categorical factor, keyed by its
            formula code. When given, level values keep the type of the
            fitted data instead of being read back from the term name

    Returns:
        Feature expression

    Raises:
        UnsupportedTermError: If the term uses a transformation that has no
            column-level translation (e.g. np.log(x), I(x ** 2)) or a factor
            coded with a non-treatment contrast (e.g. C(x, Sum))
    """
    normalized = {_WHITESPACE.sub("", code): values for code, values in (levels or {}).items()}
    factors = [_factor_expression(factor, term, normalized) for factor in _split_top_level(term, ":")]
    return reduce(lambda left, right: BinaryOp("*", left, right), factors)


def _weighted(coefficient: float, feature: Expression) -> Expression:
    return BinaryOp("*", Literal(coefficient), feature)


def _sum(parts: List[Expression]) -> Expression:
    if not parts:
        return Literal(0.0)
    return reduce(lambda left, right: BinaryOp("+", left, right), parts)


def _formula_parts(
    coefficients: List[Tuple[str, float]],
    config: ScoringConfig,
    levels: Optional[Levels] = None
) -> List[Expression]:
    parts: List[Expression] = []
    for name, coefficient in coefficients:
        if name in config.intercept_names:
            parts.append(Literal(coefficient))
        else:
            parts.append(_weighted(coefficient, term_expression(name, levels)))
    return parts


def _plain_parts(model: PlainGLM, config: ScoringConfig) -> List[Expression]:
    return _formula_parts(model.coefficients(), config, model.factor_levels())


def _penalized_parts(model: PenalizedGLM, config: ScoringConfig) -> List[Expression]:
    coefficients, intercept = model.coefficients()
    parts: List[Expression] = []
    if intercept is not None:
        parts.append(Literal(intercept))
    parts.extend(_weighted(coefficient, Column(name)) for name, coefficient in coefficients)
    return parts


def _boosted_parts(model: BoostedGLM, config: ScoringConfig) -> List[Expression]:
    scale = 2.0 if model.recoded else 1.0
    if model.recoded and model.family != "binomial":
        logger.warning(f"Applying -1/+1 recoding correction to a {model.family} boosted model")

    coefficients = list(model.coefficients.items())
    intercept_found = False
    adjusted = []
    for name, coefficient in coefficients:
        if name in config.intercept_names and not intercept_found:
            intercept_found = True
            coefficient += model.offset
        adjusted.append((name, coefficient * scale))

    if not intercept_found and model.offset != 0.0:
        adjusted.insert(0, (config.intercept_names[0], model.offset * scale))

    logger.debug(f"Boosted coefficients rescaled by {scale} with offset {model.offset}")
    return _formula_parts(adjusted, config)


# Closed dispatch table: one extractor per model variant
_EXTRACTORS = {
    PlainGLM: _plain_parts,
    PenalizedGLM: _penalized_parts,
    BoostedGLM: _boosted_parts,
}


def extract_linear_predictor(
    model: Union[ModelHandle, Any],
    config: Optional[ScoringConfig] = None
) -> Expression:
    """
    Extract the linear predictor of a fitted model as an expression tree.

    Terms are combined in the order the model stores them.

    Args:
        model: Fitted model or model handle
        config: Optional scoring configuration

    Returns:
        Expression for the linear predictor

    Raises:
        UnsupportedModelError: If the model variant is not recognized
        UnsupportedTermError: If a term cannot be expressed over raw columns
    """
    config = config or ScoringConfig()
    config.validate()
    handle = wrap_model(model)

    extractor = _EXTRACTORS.get(type(handle))
    if extractor is None:
        raise UnsupportedModelError(f"No linear predictor extractor for {type(handle).__name__}")

    parts = extractor(handle, config)
    logger.debug(f"Extracted linear predictor from {type(handle).__name__} with {len(parts)} terms")
    return _sum(parts)
