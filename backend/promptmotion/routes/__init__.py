"""
Routes module - contains all API route handlers
"""

from .generation import router as generation_router, get_session
from .assets import router as assets_router

__all__ = [
    "generation_router",
    "assets_router",
    "get_session",
]
