"""
Core infrastructure package for the RailSight backend.

Provides:
- Configuration management via pydantic-settings
- File-backed campaign storage
- FastAPI dependency injection utilities

Re-exports key components so other modules can write:

    from railsight.core import get_settings, get_store, CampaignStoreDep

Usage Examples:
    # Store lifecycle (in FastAPI lifespan)
    from railsight.core import init_store, close_store

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_store()
        yield
        close_store()
"""

# =============================================================================
# Re-exports from railsight.core.config
# =============================================================================
from railsight.core.config import Settings, get_settings

# =============================================================================
# Re-exports from railsight.core.storage
# =============================================================================
from railsight.core.storage import CampaignStore, init_store, get_store, close_store

# =============================================================================
# Re-exports from railsight.core.dependencies
# =============================================================================
from railsight.core.dependencies import (
    get_settings_dependency,
    get_campaign_store,
    get_limits_dependency,
    SettingsDep,
    CampaignStoreDep,
    LimitTableDep,
)


__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Campaign storage (from storage.py)
    'CampaignStore',
    'init_store',
    'get_store',
    'close_store',
    # FastAPI dependency injection (from dependencies.py)
    'get_settings_dependency',
    'get_campaign_store',
    'get_limits_dependency',
    'SettingsDep',
    'CampaignStoreDep',
    'LimitTableDep',
]
