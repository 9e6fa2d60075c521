"""API Routers package

Routers are organized by feature domain.
"""

from . import rooms_router, users_router, videos_router

__all__ = [
    "rooms_router",
    "users_router",
    "videos_router",
]
