"""
Export Service

Renders the merged multi-campaign table and single stored campaigns as CSV.

Merged Table Layout:
    km, curv_<A>, xlev_<A>, ..., gage_<A>, curv_<B>, ...
    Campaigns are the outer loop and channels the inner loop. Unknown values
    are written as empty fields, never as a text placeholder, so reading the
    file back with table_from_csv yields the same cell values.

Column names join channel and campaign with "_". Channel ids contain no "_",
so a column is split back at its first "_" even when the campaign id has one.

Dependencies:
    - pandas: DataFrame construction and CSV writing/reading
"""

import io
import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from railsight.models.enums import CHANNEL_ORDER, Channel
from railsight.models.schemas import (
    Campaign,
    MergedRow,
    MergedTable,
    key_to_position,
    position_key,
)

logger = logging.getLogger(__name__)

POSITION_COLUMN = "km"
RAW_POSITION_COLUMN = "km_abs_m"
COLUMN_SEPARATOR = "_"


# =============================================================================
# Merged Table Export
# =============================================================================


def column_name(channel: Channel, campaign_id: str) -> str:
    return f"{channel.value}{COLUMN_SEPARATOR}{campaign_id}"


def split_column_name(name: str) -> Tuple[Channel, str]:
    """
    Split a `channel_campaign` column name.

    Raises:
        ValueError: If the prefix is not a channel id
    """
    channel_id, separator, campaign_id = name.partition(COLUMN_SEPARATOR)
    if not separator or not campaign_id:
        raise ValueError(f"Column '{name}' is not of the form channel_campaign")
    return Channel(channel_id), campaign_id


def table_columns(
    campaign_ids: Sequence[str],
    channels: Sequence[Channel] = CHANNEL_ORDER,
) -> List[str]:
    """Header of a merged export: km, then channel_campaign per campaign and channel."""
    return [POSITION_COLUMN] + [
        column_name(channel, campaign_id)
        for campaign_id in campaign_ids
        for channel in channels
    ]


def _window(length: int, start: Optional[int], end: Optional[int]) -> range:
    """Inclusive row window clamped to the table."""
    first = max(0, start if start is not None else 0)
    last = min(length - 1, end if end is not None else length - 1)
    return range(first, last + 1)


def table_to_frame(
    table: MergedTable,
    campaign_ids: Optional[Sequence[str]] = None,
    start: Optional[int] = None,
    end: Optional[int] = None,
    channels: Sequence[Channel] = CHANNEL_ORDER,
) -> pd.DataFrame:
    """
    Merged table as a DataFrame in export layout.

    Args:
        table: Merged table
        campaign_ids: Campaigns to include (default: all campaigns of the table)
        start: First row index, inclusive
        end: Last row index, inclusive
        channels: Channels to include, in column order

    Returns:
        DataFrame with one row per table row in the window
    """
    ids = list(campaign_ids) if campaign_ids is not None else list(table.campaign_ids)
    columns = table_columns(ids, channels)

    records = []
    for index in _window(len(table), start, end):
        row = table.rows[index]
        record: Dict[str, Optional[float]] = {POSITION_COLUMN: row.position}
        for campaign_id in ids:
            for channel in channels:
                record[column_name(channel, campaign_id)] = row.value(channel, campaign_id)
        records.append(record)

    return pd.DataFrame.from_records(records, columns=columns)


def table_to_csv(
    table: MergedTable,
    campaign_ids: Optional[Sequence[str]] = None,
    start: Optional[int] = None,
    end: Optional[int] = None,
) -> str:
    """Merged table as CSV text; unknown values are empty fields."""
    frame = table_to_frame(table, campaign_ids, start, end)
    logger.debug(f"Exporting {len(frame)} rows x {len(frame.columns)} columns")
    return frame.to_csv(index=False, na_rep="", lineterminator="\n")


def table_from_csv(text: str) -> MergedTable:
    """
    Read a merged export back into a MergedTable.

    Empty fields are unknown values and are left out of the rows; reading any
    cell with MergedRow.value() gives back what was exported.

    Raises:
        ValueError: If the km column is missing or a column is not channel_campaign
    """
    frame = pd.read_csv(io.StringIO(text), float_precision="round_trip")
    if POSITION_COLUMN not in frame.columns:
        raise ValueError(f"Export has no '{POSITION_COLUMN}' column")

    cells = [
        (name, *split_column_name(name))
        for name in frame.columns
        if name != POSITION_COLUMN
    ]
    campaign_ids = sorted({campaign_id for _, _, campaign_id in cells})

    rows: List[MergedRow] = []
    for record in frame.to_dict(orient="records"):
        key = position_key(float(record[POSITION_COLUMN]))
        values: Dict[Channel, Dict[str, Optional[float]]] = {}
        for name, channel, campaign_id in cells:
            value = record[name]
            if value is None or (isinstance(value, float) and math.isnan(value)):
                continue
            values.setdefault(channel, {})[campaign_id] = float(value)
        rows.append(MergedRow(key=key, position=key_to_position(key), values=values))

    rows.sort(key=lambda row: row.key)
    return MergedTable(rows=rows, campaign_ids=campaign_ids)


# =============================================================================
# Single Campaign Export
# =============================================================================


def campaign_to_csv(campaign: Campaign) -> str:
    """Raw export of one campaign: km_abs_m (metres) then one column per channel."""
    records = []
    for sample in campaign.samples:
        record: Dict[str, Optional[float]] = {
            RAW_POSITION_COLUMN: round(sample.position * 1000.0, 3)
        }
        for channel in CHANNEL_ORDER:
            record[channel.value] = sample.value(channel)
        records.append(record)

    columns = [RAW_POSITION_COLUMN] + [channel.value for channel in CHANNEL_ORDER]
    frame = pd.DataFrame.from_records(records, columns=columns)
    return frame.to_csv(index=False, na_rep="", lineterminator="\n")
