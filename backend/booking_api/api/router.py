"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from booking_api.api.routes import graph

api_router = APIRouter()
api_router.include_router(graph.router)
