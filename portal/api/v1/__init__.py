"""
API v1 routes.
"""

from fastapi import APIRouter

from portal.api.v1 import auth, content, public, users

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(public.router, prefix="/public", tags=["Public"])
router.include_router(content.router, tags=["Content"])
router.include_router(users.router, prefix="/users", tags=["Accounts"])
