"""
Expression Trees
================
Unevaluated scalar expressions over raw column names, with renderers for SQL
text, SQLAlchemy column expressions and direct numeric evaluation.

Core classes:
  - Expression: base class for all nodes
  - Column: column reference (e.g. age)
  - Literal: constant value (e.g. 0.25, 'versicolor')
  - BinaryOp: arithmetic operation (+, -, *, /)
  - Comparison: indicator comparison, rendered as a 0/1 CASE expression
  - Call: named function call (e.g. EXP(...), probit(...))
"""
import math
import operator
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Set, Tuple, Union

import numpy as np
import pandas as pd
import sqlalchemy as sa
from sqlalchemy.sql.compiler import RESERVED_WORDS

from .identifiers import quote_component

ARITHMETIC_OPS = ("+", "-", "*", "/")
COMPARISON_OPS = ("=", "<>", "<", "<=", ">", ">=")

_PLAIN_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _needs_quoting(name: str) -> bool:
    # keywords such as group or order are only valid as quoted identifiers
    return not _PLAIN_IDENTIFIER.match(name) or name.lower() in RESERVED_WORDS


# Functions available to evaluate() without being passed in explicitly
DEFAULT_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "EXP": np.exp,
    "LN": np.log,
    "LOG": np.log,
    "SQRT": np.sqrt,
    "POWER": np.power,
    "ABS": np.abs,
}

_COMPARATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "=": operator.eq,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


class Expression:
    """Base class for expression tree nodes."""

    def to_sql(self, quote_columns: bool = False) -> str:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError

    def columns(self) -> Set[str]:
        """Names of the raw columns referenced anywhere in the tree."""
        return set()

    def evaluate(
        self,
        data: Union[pd.DataFrame, Mapping[str, Any]],
        functions: Optional[Mapping[str, Callable[..., Any]]] = None
    ) -> Any:
        raise NotImplementedError

    def to_sqlalchemy(self) -> Any:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.to_sql()


@dataclass(frozen=True)
class Column(Expression):
    """Reference to a raw input column."""
    name: str

    def to_sql(self, quote_columns: bool = False) -> str:
        if quote_columns or _needs_quoting(self.name):
            return quote_component(self.name)
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "Column", "name": self.name}

    def columns(self) -> Set[str]:
        return {self.name}

    def evaluate(self, data, functions=None):
        if self.name not in data:
            raise KeyError(f"Column '{self.name}' not found in data")
        values = data[self.name]
        if isinstance(values, pd.Series):
            return values.to_numpy()
        return np.asarray(values)

    def to_sqlalchemy(self):
        return sa.column(self.name)


@dataclass(frozen=True)
class Literal(Expression):
    """Constant numeric, string or boolean value."""
    value: Union[int, float, str, bool]

    def __post_init__(self):
        # numpy scalars are normalized so rendering and hashing stay predictable
        if isinstance(self.value, np.generic):
            object.__setattr__(self, "value", self.value.item())
        if isinstance(self.value, float) and not math.isfinite(self.value):
            raise ValueError(f"Literal must be finite, got {self.value}")

    def to_sql(self, quote_columns: bool = False) -> str:
        value = self.value
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, str):
            return "'" + value.replace("'", "''") + "'"
        text = repr(value)
        return f"({text})" if value < 0 else text

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "Literal", "value": self.value}

    def evaluate(self, data, functions=None):
        return self.value

    def to_sqlalchemy(self):
        return sa.literal(self.value)


@dataclass(frozen=True)
class BinaryOp(Expression):
    """Arithmetic operation on two sub-expressions."""
    op: str
    left: Expression
    right: Expression

    def __post_init__(self):
        if self.op not in ARITHMETIC_OPS:
            raise ValueError(f"Unsupported arithmetic operator: {self.op}")

    def to_sql(self, quote_columns: bool = False) -> str:
        return f"({self.left.to_sql(quote_columns)} {self.op} {self.right.to_sql(quote_columns)})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "BinaryOp",
            "op": self.op,
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
        }

    def columns(self) -> Set[str]:
        return self.left.columns() | self.right.columns()

    def evaluate(self, data, functions=None):
        left = self.left.evaluate(data, functions)
        right = self.right.evaluate(data, functions)
        if self.op == "+":
            return np.add(left, right)
        if self.op == "-":
            return np.subtract(left, right)
        if self.op == "*":
            return np.multiply(left, right)
        return np.true_divide(left, right)

    def to_sqlalchemy(self):
        left = self.left.to_sqlalchemy()
        right = self.right.to_sqlalchemy()
        if self.op == "+":
            return left + right
        if self.op == "-":
            return left - right
        if self.op == "*":
            return left * right
        return left / right


@dataclass(frozen=True)
class Comparison(Expression):
    """Comparison used as a 0/1 indicator, e.g. for factor dummy variables."""
    op: str
    left: Expression
    right: Expression

    def __post_init__(self):
        if self.op not in COMPARISON_OPS:
            raise ValueError(f"Unsupported comparison operator: {self.op}")

    def to_sql(self, quote_columns: bool = False) -> str:
        condition = f"{self.left.to_sql(quote_columns)} {self.op} {self.right.to_sql(quote_columns)}"
        return f"(CASE WHEN {condition} THEN 1 ELSE 0 END)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "Comparison",
            "op": self.op,
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
        }

    def columns(self) -> Set[str]:
        return self.left.columns() | self.right.columns()

    def evaluate(self, data, functions=None):
        left = np.asarray(self.left.evaluate(data, functions))
        right = self.right.evaluate(data, functions)
        result = _COMPARATORS[self.op](left, right)
        return np.asarray(result).astype(float)

    def to_sqlalchemy(self):
        left = self.left.to_sqlalchemy()
        right = self.right.to_sqlalchemy()
        condition = _COMPARATORS[self.op](left, right)
        return sa.case((condition, 1), else_=0)


@dataclass(frozen=True)
class Call(Expression):
    """Named function applied to one or more arguments."""
    name: str
    args: Tuple[Expression, ...]

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("Function name must be a non-empty string")
        object.__setattr__(self, "args", tuple(self.args))

    def to_sql(self, quote_columns: bool = False) -> str:
        rendered = ", ".join(arg.to_sql(quote_columns) for arg in self.args)
        return f"{self.name}({rendered})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "Call",
            "name": self.name,
            "args": [arg.to_dict() for arg in self.args],
        }

    def columns(self) -> Set[str]:
        names: Set[str] = set()
        for arg in self.args:
            names |= arg.columns()
        return names

    def evaluate(self, data, functions=None):
        func = _lookup_function(self.name, functions)
        return func(*[arg.evaluate(data, functions) for arg in self.args])

    def to_sqlalchemy(self):
        return getattr(sa.func, self.name)(*[arg.to_sqlalchemy() for arg in self.args])


def _lookup_function(
    name: str,
    functions: Optional[Mapping[str, Callable[..., Any]]]
) -> Callable[..., Any]:
    if functions:
        if name in functions:
            return functions[name]
        upper = {key.upper(): func for key, func in functions.items()}
        if name.upper() in upper:
            return upper[name.upper()]
    if name.upper() in DEFAULT_FUNCTIONS:
        return DEFAULT_FUNCTIONS[name.upper()]
    raise ValueError(
        f"No implementation for function '{name}'; pass it through the functions argument"
    )


def from_dict(data: Mapping[str, Any]) -> Expression:
    """
    Rebuild an expression tree from its to_dict() form.

    Args:
        data: Serialized expression node

    Returns:
        Expression tree

    Raises:
        ValueError: If the node type is unknown
    """
    node_type = data.get("type")
    if node_type == "Column":
        return Column(data["name"])
    if node_type == "Literal":
        return Literal(data["value"])
    if node_type == "BinaryOp":
        return BinaryOp(data["op"], from_dict(data["left"]), from_dict(data["right"]))
    if node_type == "Comparison":
        return Comparison(data["op"], from_dict(data["left"]), from_dict(data["right"]))
    if node_type == "Call":
        return Call(data["name"], tuple(from_dict(arg) for arg in data["args"]))
    raise ValueError(f"Unknown expression node type: {node_type!r}")


def render_sql(expr: Expression, quote_columns: bool = False) -> str:
    """Render an expression tree as SQL text."""
    return expr.to_sql(quote_columns=quote_columns)


def to_sqlalchemy(expr: Expression) -> Any:
    """
    Convert an expression tree into a SQLAlchemy column expression.

    The result can be compiled against any SQLAlchemy dialect, e.g.
    ``to_sqlalchemy(expr).compile(dialect=postgresql.dialect())``.
    """
    return expr.to_sqlalchemy()
