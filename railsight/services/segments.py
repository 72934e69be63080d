"""
Segment Service

Track segments are windows of a campaign over absolute position, exchanged as
parallel arrays:

    {"km_abs_m": [...], "curv": [...], "xlev": [...], ..., "gage": [...]}

`km_abs_m` is the absolute position in metres; every channel list has the same
length, with null for unknown values.

Segments are either sliced from a stored campaign or fetched from the remote
segment service. The remote host may be asleep (free-tier hosting), so the
fetch retries with increasing delays before giving up.

Dependencies:
    - httpx: async HTTP client for the remote segment service
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from railsight.core.config import Settings
from railsight.models.enums import CHANNEL_ORDER, Channel
from railsight.models.schemas import Campaign, Sample, position_key
from railsight.services.errors import SegmentFetchError

logger = logging.getLogger(__name__)

POSITION_FIELD = "km_abs_m"

SegmentColumns = Dict[str, List[Optional[float]]]


# =============================================================================
# Slicing and Conversion
# =============================================================================


def slice_segment(campaign: Campaign, ref_m: float, len_m: float) -> Campaign:
    """
    Samples of a campaign with ref_m <= position (m) <= ref_m + len_m.

    Bounds are compared as millimetre keys so that window edges given in metres
    match sample positions stored in km exactly.
    """
    if len_m < 0:
        raise ValueError(f"len_m must not be negative, got {len_m}")

    low = position_key(ref_m / 1000.0)
    high = position_key((ref_m + len_m) / 1000.0)
    samples = [s for s in campaign.samples if low <= position_key(s.position) <= high]
    return Campaign(id=campaign.id, samples=samples)


def segment_to_columns(campaign: Campaign) -> SegmentColumns:
    columns: SegmentColumns = {
        POSITION_FIELD: [round(s.position * 1000.0, 3) for s in campaign.samples]
    }
    for channel in CHANNEL_ORDER:
        columns[channel.value] = [s.value(channel) for s in campaign.samples]
    return columns


def campaign_from_columns(campaign_id: str, payload: Dict[str, Any]) -> Campaign:
    """
    Build a Campaign from a parallel-array segment.

    Missing channel lists are treated as absent channels; entries with a null
    position are dropped.

    Raises:
        ValueError: If the position list is missing or a channel list has a
            different length
    """
    positions = payload.get(POSITION_FIELD)
    if not isinstance(positions, list):
        raise ValueError(f"Segment payload has no '{POSITION_FIELD}' list")

    columns: Dict[Channel, List[Optional[float]]] = {}
    for channel in CHANNEL_ORDER:
        column = payload.get(channel.value)
        if column is None:
            continue
        if not isinstance(column, list) or len(column) != len(positions):
            raise ValueError(
                f"Segment column '{channel.value}' does not match '{POSITION_FIELD}'"
            )
        columns[channel] = column

    samples = []
    for i, metres in enumerate(positions):
        if metres is None:
            continue
        values = {channel: column[i] for channel, column in columns.items()}
        samples.append(Sample(position=float(metres) / 1000.0, values=values))

    return Campaign(id=campaign_id, samples=samples)


# =============================================================================
# Remote Fetch
# =============================================================================


async def fetch_segment(
    campaign_id: str,
    ref_m: float,
    len_m: float,
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> Campaign:
    """
    Fetch a segment from the remote segment service.

    Makes len(settings.segment_retry_delays_s) + 1 attempts, sleeping the
    configured delay between consecutive attempts. Any non-2xx response,
    transport error or malformed payload counts as a failed attempt.

    Args:
        campaign_id: Campaign to fetch
        ref_m: Window start, absolute metres
        len_m: Window length in metres
        settings: Settings with the service URL, timeout and delays
        client: Optional client to reuse; one is created and closed otherwise

    Returns:
        Campaign holding the segment samples

    Raises:
        SegmentFetchError: If every attempt failed
    """
    url = f"{settings.segment_api_base.rstrip('/')}/segment"
    params = {"campaign": campaign_id, "ref_m": ref_m, "len_m": len_m}
    delays = list(settings.segment_retry_delays_s)
    attempts = len(delays) + 1

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=settings.segment_timeout_s)

    last_error: Optional[Exception] = None
    try:
        for attempt in range(attempts):
            try:
                response = await client.get(url, params=params)
                response.raise_for_status()
                segment = campaign_from_columns(campaign_id, response.json())
                logger.info(
                    f"Fetched segment of {campaign_id} ({len(segment.samples)} samples) "
                    f"on attempt {attempt + 1}"
                )
                return segment
            except (httpx.HTTPError, ValueError) as e:
                last_error = e
                logger.warning(
                    f"Segment fetch attempt {attempt + 1}/{attempts} for {campaign_id} failed: {e}"
                )

            if attempt < len(delays):
                await asyncio.sleep(delays[attempt])
    finally:
        if owns_client:
            await client.aclose()

    logger.error(f"Giving up on segment of {campaign_id} after {attempts} attempts")
    raise SegmentFetchError(url, attempts, last_error) from last_error
