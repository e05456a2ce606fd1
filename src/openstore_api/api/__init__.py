from .apps import router as apps_router
from .manage import router as manage_router
from .revisions import router as revisions_router

__all__ = ["apps_router", "manage_router", "revisions_router"]
