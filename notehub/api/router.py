"""Agregador de routers de la API."""
from fastapi import APIRouter

from notehub.api.routers import auth, categories, files, health, notes

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(notes.router)
api_router.include_router(files.router)
api_router.include_router(categories.router)
