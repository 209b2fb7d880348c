"""Services layer"""

from .auth_service import AuthService
from .hero_point_service import HeroPointService

__all__ = ["AuthService", "HeroPointService"]
