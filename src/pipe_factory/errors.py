"""
Exception types raised by the pipe factory.

Tool precondition failures are never raised; they travel back to the
acting agent as ToolResult errors. These exceptions cover the cases where
the caller itself misused the API.
"""

from typing import Sequence


class FactoryError(Exception):
    """Base class for pipe factory errors."""


class SpecificationError(FactoryError):
    """A product specification failed validation."""

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid specification")


class ProviderConfigurationError(FactoryError):
    """No reasoning service could be configured."""
