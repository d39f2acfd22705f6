"""API router aggregation."""

from fastapi import APIRouter

from src.api.health import router as health_router
from src.api.search import search_router

api_router = APIRouter()
api_router.include_router(health_router)
# Federated search, suggestions, history and saved searches
api_router.include_router(search_router)
