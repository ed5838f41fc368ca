"""
Route registry: the probe routes live at the root, the API under /api/v1.
"""

from fastapi import APIRouter

from inkwell.routes import articles, auth, health, users

API_PREFIX = "/api/v1"

api_router = APIRouter(prefix=API_PREFIX)
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(articles.router)

__all__ = ["api_router", "health"]
