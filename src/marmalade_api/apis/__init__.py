"""HTTP routers."""

from .elpa_api import router as elpa_router
from .packages_api import router as packages_router
from .users_api import router as users_router

__all__ = ["elpa_router", "packages_router", "users_router"]
