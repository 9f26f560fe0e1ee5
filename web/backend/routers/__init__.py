"""API route handlers."""

from .requests import router as requests_router
from .matches import router as matches_router
from .admin import router as admin_router
from .profiles import router as profiles_router
