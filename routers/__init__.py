"""
API routers, one per resource.
"""

from routers.auth import router as auth_router
from routers.messages import router as messages_router
from routers.notifications import router as notifications_router
from routers.products import router as products_router
from routers.reviews import router as reviews_router
from routers.sellers import router as sellers_router
from routers.services import router as services_router
from routers.users import router as users_router

__all__ = [
    "auth_router",
    "messages_router",
    "notifications_router",
    "products_router",
    "reviews_router",
    "sellers_router",
    "services_router",
    "users_router",
]
