"""API v1 routers."""

from fastapi import APIRouter

from .checkout import router as checkout_router
from .inventory import router as inventory_router
from .quotes import router as quotes_router
from .rentals import router as rentals_router
from .webhooks import router as webhooks_router

# Create v1 router that includes all v1 endpoints
router = APIRouter(prefix="/v1")

router.include_router(quotes_router)
router.include_router(inventory_router)
router.include_router(checkout_router)
router.include_router(webhooks_router)
router.include_router(rentals_router)

__all__ = [
    "router",
    "quotes_router",
    "inventory_router",
    "checkout_router",
    "webhooks_router",
    "rentals_router",
]
