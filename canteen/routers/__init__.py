"""HTTP surface: every APIRouter mounted under one api_router."""

from fastapi import APIRouter

from canteen.routers.catalog import (
    canteen_router,
    category_router,
    item_router,
    menu_router,
    menuconfig_router,
)
from canteen.routers.orders import cart_router, order_router, paymentsdk_router, webhook_router

api_router = APIRouter()
api_router.include_router(canteen_router)
api_router.include_router(category_router)
api_router.include_router(item_router)
api_router.include_router(menuconfig_router)
api_router.include_router(menu_router)
api_router.include_router(cart_router)
api_router.include_router(order_router)
api_router.include_router(paymentsdk_router)
api_router.include_router(webhook_router)

__all__ = ["api_router"]
