"""API routers"""

from . import hero_points_router

__all__ = ["hero_points_router"]
