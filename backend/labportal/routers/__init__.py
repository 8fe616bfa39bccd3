from .profile import router as profile_router
from .recommendations import router as recommendations_router

__all__ = ["profile_router", "recommendations_router"]
