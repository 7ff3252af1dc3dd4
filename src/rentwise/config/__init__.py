"""Configuration module for Rentwise."""

from rentwise.config.settings import PaymentProvider, Settings, get_settings

__all__ = ["Settings", "get_settings", "PaymentProvider"]
