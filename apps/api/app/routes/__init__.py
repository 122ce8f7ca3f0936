"""Route modules."""

from .auth import router as auth_router
from .internal import router as internal_router
from .ownership import router as ownership_router

__all__ = ["auth_router", "internal_router", "ownership_router"]
