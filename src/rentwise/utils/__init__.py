"""Utility modules for Rentwise."""

from rentwise.utils.exceptions import ConfigurationError, RentwiseError

__all__ = [
    "RentwiseError",
    "ConfigurationError",
]
