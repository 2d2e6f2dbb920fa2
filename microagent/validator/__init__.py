"""Finding collection, conformance rules and the validation runner."""

from .errors import (
    ConfigError,
    Finding,
    NotFoundError,
    Severity,
    ValidationResult,
)

__all__ = [
    "ConfigError",
    "Finding",
    "NotFoundError",
    "Severity",
    "ValidationResult",
]
