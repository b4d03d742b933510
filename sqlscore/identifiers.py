"""
Identifier Quoting
==================
ANSI double-quoted, fully-qualified table names.
"""
from typing import Any, Optional

from .exceptions import InvalidIdentifierError


def _is_name(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def quote_component(name: str) -> str:
    """Wrap a single name in double quotes, doubling any embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


def quote_identifier(
    table: Optional[str] = None,
    schema: Optional[str] = None,
    catalog: Optional[str] = None
) -> str:
    """
    Build a fully-qualified, quoted table identifier.

    Args:
        table: Table name (required)
        schema: Optional schema qualifying the table
        catalog: Optional catalog qualifying the schema

    Returns:
        Quoted identifier in catalog.schema.table order, e.g. '"baz"."bar"."foo"'

    Raises:
        InvalidIdentifierError: If the table is missing or not a non-empty string,
            if a catalog is given without a schema, or if a qualifier is invalid
    """
    if not _is_name(table):
        raise InvalidIdentifierError(f"Table name must be a non-empty string, got {table!r}")

    if catalog is not None and schema is None:
        raise InvalidIdentifierError(f"Catalog {catalog!r} requires a schema")

    parts = [table]
    for label, value in (("schema", schema), ("catalog", catalog)):
        if value is None:
            continue
        if not _is_name(value):
            raise InvalidIdentifierError(f"{label.capitalize()} must be a non-empty string, got {value!r}")
        parts.append(value)

    return ".".join(quote_component(part) for part in reversed(parts))
