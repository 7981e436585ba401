"""Store service routers package."""

from services.store_service.routers.admin_analytics import (
    router as admin_analytics_router,
)
from services.store_service.routers.admin_banners import router as admin_banners_router
from services.store_service.routers.admin_catalog import router as admin_catalog_router
from services.store_service.routers.admin_orders import router as admin_orders_router
from services.store_service.routers.admin_promotions import (
    router as admin_promotions_router,
)
from services.store_service.routers.banners import router as banners_router
from services.store_service.routers.cart import router as cart_router
from services.store_service.routers.catalog import router as catalog_router
from services.store_service.routers.orders import router as orders_router
from services.store_service.routers.payments import router as payments_router
from services.store_service.routers.promotions import router as promotions_router
from services.store_service.routers.reviews import router as reviews_router
from services.store_service.routers.wishlist import router as wishlist_router

PUBLIC_ROUTERS = [
    catalog_router,
    banners_router,
    cart_router,
    orders_router,
    promotions_router,
    payments_router,
    reviews_router,
    wishlist_router,
]

ADMIN_ROUTERS = [
    admin_catalog_router,
    admin_banners_router,
    admin_orders_router,
    admin_promotions_router,
    admin_analytics_router,
]

__all__ = [
    "ADMIN_ROUTERS",
    "PUBLIC_ROUTERS",
    "admin_analytics_router",
    "admin_banners_router",
    "admin_catalog_router",
    "admin_orders_router",
    "admin_promotions_router",
    "banners_router",
    "cart_router",
    "catalog_router",
    "orders_router",
    "payments_router",
    "promotions_router",
    "reviews_router",
    "wishlist_router",
]
