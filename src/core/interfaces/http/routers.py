"""API router configuration."""

from fastapi import APIRouter

from src.modules.magic_auth.interfaces.router import router as magic_auth_router

api_router = APIRouter()

# Magic link authentication
api_router.include_router(magic_auth_router)
