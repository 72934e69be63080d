"""
File-backed campaign store for the RailSight backend.

Uploaded campaigns are kept as one JSON document per campaign:

    <data_dir>/<campaign_id>/data.json

The document is a serialized StoredCampaign (the campaign samples plus upload
metadata and the quality report produced at ingestion).

Key Components:
- CampaignStore: save/load/list/delete operations over a data directory
- Global store singleton (_store)
- init_store(): Create the store at application startup
- get_store(): Get the store instance (initializes if needed)
- close_store(): Drop the store at application shutdown

The store offers no durability guarantees beyond a plain file write; it exists
so campaigns survive between analysis requests during a session.

Usage:
    # At application startup (in FastAPI lifespan)
    init_store()

    # In services or endpoints
    store = get_store()
    stored = store.load("linha-1")

    # At application shutdown
    close_store()
"""

import logging
from pathlib import Path
from typing import List, Optional

from railsight.core.config import get_settings
from railsight.models.schemas import Campaign, CampaignMeta, StoredCampaign
from railsight.services.errors import CampaignNotFound

logger = logging.getLogger(__name__)

DOCUMENT_NAME = "data.json"


class CampaignStore:
    """Persist campaigns as JSON documents under a data directory."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _document_path(self, campaign_id: str) -> Path:
        return self.data_dir / campaign_id / DOCUMENT_NAME

    def exists(self, campaign_id: str) -> bool:
        return self._document_path(campaign_id).is_file()

    def save(self, campaign: Campaign, meta: CampaignMeta) -> StoredCampaign:
        """
        Write a campaign document, replacing any previous upload with the same id.

        Args:
            campaign: The parsed campaign
            meta: Upload metadata and quality report

        Returns:
            The stored document
        """
        stored = StoredCampaign(campaign=campaign, meta=meta)
        path = self._document_path(campaign.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(stored.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Stored campaign {campaign.id} ({len(campaign.samples)} samples)")
        return stored

    def load(self, campaign_id: str) -> StoredCampaign:
        """
        Read a stored campaign document.

        Raises:
            CampaignNotFound: If no document exists for the id
        """
        path = self._document_path(campaign_id)
        if not path.is_file():
            raise CampaignNotFound(campaign_id)
        return StoredCampaign.model_validate_json(path.read_text(encoding="utf-8"))

    def load_many(self, campaign_ids: List[str]) -> List[Campaign]:
        return [self.load(campaign_id).campaign for campaign_id in campaign_ids]

    def list_ids(self) -> List[str]:
        """Ids of every stored campaign, sorted."""
        if not self.data_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.data_dir.iterdir()
            if (entry / DOCUMENT_NAME).is_file()
        )

    def delete(self, campaign_id: str) -> None:
        path = self._document_path(campaign_id)
        if not path.is_file():
            raise CampaignNotFound(campaign_id)
        path.unlink()
        try:
            path.parent.rmdir()
        except OSError:
            # Directory holds other files; leave it in place
            logger.warning(f"Left non-empty directory for deleted campaign {campaign_id}")
        logger.info(f"Deleted campaign {campaign_id}")


# =============================================================================
# Global Store Singleton
# =============================================================================

# None until init_store() is called
_store: Optional[CampaignStore] = None


def init_store(data_dir: Optional[Path] = None) -> CampaignStore:
    """
    Initialize the campaign store.

    Idempotent: returns the existing store if one was already created.

    Args:
        data_dir: Directory override; defaults to settings.data_dir

    Returns:
        CampaignStore: The store instance
    """
    global _store

    if _store is None:
        directory = data_dir if data_dir is not None else get_settings().data_dir
        _store = CampaignStore(directory)
        logger.info(f"Campaign store ready at {_store.data_dir}")

    return _store


def get_store() -> CampaignStore:
    """Get the campaign store, initializing it if needed."""
    if _store is None:
        return init_store()
    return _store


def close_store() -> None:
    """Drop the store singleton. Subsequent get_store() calls create a new one."""
    global _store
    _store = None
