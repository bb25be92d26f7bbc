"""Input validation package."""

from financewise.validation.validator import (
    InputValidator,
    ValidationError,
    parse_amount,
)

__all__ = ["InputValidator", "ValidationError", "parse_amount"]
