"""
FastAPI dependency injection module for the RailSight backend.

This module provides reusable FastAPI dependencies for configuration, the
campaign store and the normative limit table, so endpoint handlers stay
decoupled from how those are built.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- get_campaign_store: Returns the campaign store singleton
- get_limits_dependency: Returns the limit table configured in Settings
- SettingsDep / CampaignStoreDep / LimitTableDep: Annotated aliases

Usage Examples:
    @router.get("/campaigns")
    async def list_campaigns(store: CampaignStoreDep) -> CampaignListResponse:
        return CampaignListResponse(campaigns=store.list_ids())

Testing:
    app.dependency_overrides[get_campaign_store] = lambda: CampaignStore(tmp_path)
"""

from typing import Annotated

from fastapi import Depends

from railsight.core.config import Settings, get_settings
from railsight.core.storage import CampaignStore, get_store
from railsight.models.schemas import LimitTable
from railsight.services.alarms import get_limit_table


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can swap configuration with
    FastAPI's dependency override mechanism:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    """
    return get_settings()


# =============================================================================
# Campaign Store Dependency
# =============================================================================

def get_campaign_store() -> CampaignStore:
    """Return the campaign store singleton."""
    return get_store()


# =============================================================================
# Limit Table Dependency
# =============================================================================

def get_limits_dependency(
    settings: Annotated[Settings, Depends(get_settings_dependency)]
) -> LimitTable:
    """
    Return the limit table for the current settings.

    The table is immutable and cached per source file, so every request shares
    the same read-only instance.
    """
    return get_limit_table(settings.limits_file)


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

CampaignStoreDep = Annotated[CampaignStore, Depends(get_campaign_store)]

LimitTableDep = Annotated[LimitTable, Depends(get_limits_dependency)]
