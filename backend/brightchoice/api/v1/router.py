"""API v1 router -- aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from brightchoice.api.v1 import health, ingest

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["health"])
api_v1_router.include_router(ingest.router, prefix="/ingest", tags=["ingest"])
