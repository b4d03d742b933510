"""
Scoring Configuration
=====================
"""
from dataclasses import dataclass
from typing import Tuple


@dataclass
class ScoringConfig:
    """Configuration for expression synthesis and statement generation."""
    score_column: str = "score"
    quote_columns: bool = False
    intercept_names: Tuple[str, ...] = ("Intercept", "(Intercept)", "const")

    def validate(self) -> None:
        """Validate configuration parameters."""
        if not self.score_column:
            raise ValueError("score_column must be a non-empty string")
        if not self.intercept_names:
            raise ValueError("intercept_names must contain at least one name")
