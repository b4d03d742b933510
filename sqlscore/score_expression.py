"""
Score Expression Synthesis
==========================
Composes a model's linear predictor with its response function into a single
unevaluated expression, and wraps it into SELECT / CREATE TABLE statements
so that scoring can run inside the database.
"""
import logging
from typing import Any, Optional, Sequence, Union

from .config import ScoringConfig
from .expression import Expression
from .identifiers import quote_component, quote_identifier
from .linear_predictor import extract_linear_predictor
from .links import resolve_response

logger = logging.getLogger(__name__)


def synthesize(
    model: Any,
    override_name: Optional[str] = None,
    config: Optional[ScoringConfig] = None
) -> Expression:
    """
    Build the prediction expression of a fitted model.

    The expression is the response function applied to the linear predictor,
    written in terms of elementary functions of the underlying columns.

    Binomial boosted models are scored on the same scale as a plain GLM: their
    coefficients are doubled and the stored offset added to the intercept to
    undo the internal -1/+1 response recoding.

    Args:
        model: Fitted statsmodels / scikit-learn model or model handle
        override_name: Name of a SQL function to apply to the linear predictor
            instead of the model's own link inverse (e.g. 'probit')
        config: Optional scoring configuration

    Returns:
        Expression tree of the model's prediction

    Raises:
        UnsupportedModelError: If the model variant is not recognized
        UnsupportedLinkError: If the link has no closed form and no override
            was given
    """
    lp = extract_linear_predictor(model, config)

    # A named response skips link introspection entirely, so it also covers
    # SQL functions with no closed form (probit, cloglog, ...)
    return resolve_response(model, override_name).apply(lp)


def _score_sql(model: Any, response: Optional[str], config: ScoringConfig) -> str:
    expr = synthesize(model, response, config)
    return expr.to_sql(quote_columns=config.quote_columns)


def select_statement(
    model: Any,
    src_table: str,
    src_schema: Optional[str] = None,
    src_catalog: Optional[str] = None,
    pk: Union[str, Sequence[str]] = ("id",),
    response: Optional[str] = None,
    config: Optional[ScoringConfig] = None
) -> str:
    """
    Generate a SELECT statement scoring every row of a source table.

    Args:
        model: Fitted model or model handle
        src_table: Source table name
        src_schema: Optional source schema
        src_catalog: Optional source catalog
        pk: Key column name, or names, copied through to the output
        response: Optional response function name override
        config: Optional scoring configuration

    Returns:
        SQL text of the form SELECT <pk>, <score> AS <score column> FROM <src>
    """
    config = config or ScoringConfig()
    config.validate()

    if isinstance(pk, str):
        pk = (pk,)

    src = quote_identifier(src_table, schema=src_schema, catalog=src_catalog)
    columns = [quote_component(col) for col in pk]
    columns.append(f"{_score_sql(model, response, config)} AS {quote_component(config.score_column)}")

    return f"SELECT {', '.join(columns)} FROM {src}"


def create_statement(
    model: Any,
    dest_table: str,
    src_table: str,
    dest_schema: Optional[str] = None,
    dest_catalog: Optional[str] = None,
    src_schema: Optional[str] = None,
    src_catalog: Optional[str] = None,
    pk: Union[str, Sequence[str]] = ("id",),
    response: Optional[str] = None,
    drop: bool = False,
    temporary: bool = False,
    config: Optional[ScoringConfig] = None
) -> str:
    """
    Generate a CREATE TABLE ... AS SELECT statement persisting model scores.

    Args:
        model: Fitted model or model handle
        dest_table: Destination table name
        src_table: Source table name
        dest_schema: Optional destination schema
        dest_catalog: Optional destination catalog
        src_schema: Optional source schema
        src_catalog: Optional source catalog
        pk: Key column name, or names, copied through to the output
        response: Optional response function name override
        drop: Whether to drop the destination table first
        temporary: Whether to create a temporary table
        config: Optional scoring configuration

    Returns:
        SQL text; when drop is set, a DROP TABLE IF EXISTS statement precedes
        the CREATE TABLE, separated by a semicolon
    """
    dest = quote_identifier(dest_table, schema=dest_schema, catalog=dest_catalog)
    select = select_statement(
        model, src_table, src_schema=src_schema, src_catalog=src_catalog,
        pk=pk, response=response, config=config
    )

    table_kind = "TEMPORARY TABLE" if temporary else "TABLE"
    statement = f"CREATE {table_kind} {dest} AS {select}"
    if drop:
        statement = f"DROP TABLE IF EXISTS {dest}; {statement}"

    logger.info(f"Generated scoring statement for {dest} from {src_table}")
    return statement
