"""
API router setup.
Collects the feature routers under one router mounted at /api/v1.
"""

from fastapi import APIRouter

from proposal_engine.api.endpoints import proposals

# Main API router
api_router = APIRouter()

# Proposal endpoints: pricing, preview and full generation (/proposals)
api_router.include_router(
    proposals.router,
    prefix="/proposals",
    tags=["proposals"]
)
