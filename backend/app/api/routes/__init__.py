"""API route registration."""

from fastapi import APIRouter

from app.api.routes import auth, files, health, storage

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
api_router.include_router(storage.router, prefix="/storage", tags=["storage"])
