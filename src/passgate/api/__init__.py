"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Unlike a blanket router-level auth dependency, the auth router
mixes open routes (register, login, forgetPassword) and protected ones
(submitCode, resetPassword, me), so each protected handler declares
get_authorization_context itself.
"""

from fastapi import APIRouter

from passgate.api.auth import router as auth_router
from passgate.api.health import router as health_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
