"""
SQL Scoring for Fitted GLMs
===========================
Translates fitted generalized linear models into closed-form SQL expressions
so that scoring can run inside a database.
"""

from .config import ScoringConfig
from .exceptions import (
    SQLScoreError,
    InvalidIdentifierError,
    UnsupportedModelError,
    UnsupportedTermError,
    UnsupportedLinkError
)
from .expression import (
    Expression,
    Column,
    Literal,
    BinaryOp,
    Comparison,
    Call,
    from_dict,
    render_sql,
    to_sqlalchemy
)
from .identifiers import quote_identifier
from .linear_predictor import extract_linear_predictor, term_expression
from .links import ClosedForm, Named, resolve_response
from .models import BoostedGLM, PenalizedGLM, PlainGLM, wrap_model
from .score_expression import create_statement, select_statement, synthesize

__version__ = "1.0.0"
__all__ = [
    "ScoringConfig",
    "SQLScoreError",
    "InvalidIdentifierError",
    "UnsupportedModelError",
    "UnsupportedTermError",
    "UnsupportedLinkError",
    "Expression",
    "Column",
    "Literal",
    "BinaryOp",
    "Comparison",
    "Call",
    "from_dict",
    "render_sql",
    "to_sqlalchemy",
    "quote_identifier",
    "extract_linear_predictor",
    "term_expression",
    "ClosedForm",
    "Named",
    "resolve_response",
    "BoostedGLM",
    "PenalizedGLM",
    "PlainGLM",
    "wrap_model",
    "create_statement",
    "select_statement",
    "synthesize"
]
