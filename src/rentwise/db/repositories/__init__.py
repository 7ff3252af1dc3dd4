"""Database repositories for clean data access."""

from .base import BaseRepository
from .checkout import CheckoutSessionRepository
from .customer import CustomerRepository
from .hold import HoldRepository
from .product import ProductRepository
from .rental import RentalRepository

__all__ = [
    "BaseRepository",
    "CheckoutSessionRepository",
    "CustomerRepository",
    "HoldRepository",
    "ProductRepository",
    "RentalRepository",
]
