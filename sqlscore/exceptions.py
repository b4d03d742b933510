"""
Error Taxonomy
==============
Exceptions raised while quoting identifiers and synthesizing score expressions.
"""


class SQLScoreError(Exception):
    """Base class for all sqlscore errors."""
    pass


class InvalidIdentifierError(SQLScoreError, ValueError):
    """Exception raised when an identifier component is missing or malformed."""
    pass


class UnsupportedModelError(SQLScoreError, TypeError):
    """Exception raised when a model variant is not recognized."""
    pass


class UnsupportedTermError(UnsupportedModelError):
    """Exception raised when a model term cannot be expressed over raw columns."""

    def __init__(self, term: str):
        self.term = term
        super().__init__(
            f"Term '{term}' cannot be translated into an expression over input columns"
        )


class UnsupportedLinkError(SQLScoreError, ValueError):
    """Exception raised when a link function has no closed-form expression."""

    def __init__(self, link: str):
        self.link = link
        super().__init__(
            f"Link function '{link}' has no closed-form expression; "
            f"pass the name of an equivalent SQL function as the response override"
        )
