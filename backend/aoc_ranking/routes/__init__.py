from .wines import router as wines_router
from .admin import router as admin_router

__all__ = ["wines_router", "admin_router"]
