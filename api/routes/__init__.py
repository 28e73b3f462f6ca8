"""
API Routes Package

This module consolidates the checkout routes of the service.
"""

from fastapi import APIRouter

from . import checkout
from . import paypal

# Create main router
router = APIRouter()

router.include_router(paypal.router, prefix="/paypal", tags=["paypal"])
router.include_router(checkout.router, prefix="/checkout", tags=["checkout"])
router.include_router(checkout.orders_router, prefix="/orders", tags=["orders"])

# Export for use in main application
__all__ = ["router"]
