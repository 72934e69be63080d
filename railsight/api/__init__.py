"""
RailSight API package initialization.

This package contains FastAPI router modules for the RailSight backend:
- campaigns: Campaign upload, listing, metadata, segments and raw export
- analysis: Multi-campaign analysis, report figures, merged export and limits
"""

from fastapi import APIRouter

# Import router modules
from railsight.api.campaigns import router as campaigns_router
from railsight.api.analysis import router as analysis_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(campaigns_router, prefix="/campaigns", tags=["campaigns"])
api_router.include_router(analysis_router, prefix="/analysis", tags=["analysis"])

# Export all routers for selective imports
__all__ = [
    "api_router",
    "campaigns_router",
    "analysis_router",
]
