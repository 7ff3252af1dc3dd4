"""Custom exceptions for Rentwise."""


class RentwiseError(Exception):
    """Base exception for all Rentwise errors."""

    pass


class ConfigurationError(RentwiseError):
    """Error in configuration or settings."""

    pass
