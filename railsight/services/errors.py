"""
Domain exceptions raised by the RailSight services.

Stages raise these for failures that are fatal to one campaign or one request
only; callers decide whether to skip the offending item or report it.
"""

from typing import Optional


class RailSightError(Exception):
    """Base class for RailSight domain errors."""


class EmptyCampaign(RailSightError):
    """A campaign with zero samples cannot be resampled."""

    def __init__(self, campaign_id: str):
        self.campaign_id = campaign_id
        super().__init__(f"Campaign '{campaign_id}' has no samples to resample")


class InvalidCampaignFile(RailSightError):
    """A raw campaign file could not be parsed into records."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Invalid campaign file '{filename}': {reason}")


class CampaignNotFound(RailSightError):
    """No stored campaign exists under the requested id."""

    def __init__(self, campaign_id: str):
        self.campaign_id = campaign_id
        super().__init__(f"Campaign '{campaign_id}' not found")


class SegmentFetchError(RailSightError):
    """A remote segment fetch failed on every attempt."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException] = None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Fetching {url} failed after {attempts} attempts: {last_error}"
        )
