"""
Merge Service

Combines several campaigns' resampled series into one position-keyed table.

Position Keys:
    Positions computed independently by each campaign's resampler rarely
    compare equal as floats. Every position is therefore quantised to an
    integer millimetre key (railsight.models.schemas.position_key) and rows are
    joined on that key. Each output row carries the canonical position of its
    key.

Properties:
    - Union: one row per key seen in any input; a campaign with no reading at a
      key has no entry there (read as None).
    - Commutative and associative: the result does not depend on input order or
      on how inputs are grouped, so merge([merge([A, B]), C]) == merge([A, B, C]).
    - Idempotent: merging a table with itself, or re-merging a merged table,
      returns the same table.

Collision Policy:
    Two inputs may supply the same (key, channel, campaign) cell, e.g. when a
    campaign is loaded twice or two raw positions round to the same key. The
    winner is chosen by a rule that ignores load order:
      1. a known value beats None;
      2. between two different known values the larger absolute value wins,
         ties going to the larger signed value (the worst reading is kept, so a
         conflict can never hide an exceedance).
    Conflicts between different known values are logged at WARNING.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set, Union

from railsight.models.enums import Channel
from railsight.models.schemas import (
    MergedRow,
    MergedTable,
    key_to_position,
    position_key,
)
from railsight.services.resampling import ResampledSeries

logger = logging.getLogger(__name__)

MergeInput = Union[ResampledSeries, MergedTable]

# key -> channel -> campaign id -> value
_Cells = Dict[int, Dict[Channel, Dict[str, Optional[float]]]]


def resolve_collision(
    current: Optional[float],
    incoming: Optional[float],
) -> Optional[float]:
    """
    Pick the value kept for a cell supplied twice.

    Symmetric in its arguments, so the outcome never depends on load order.
    """
    if current is None:
        return incoming
    if incoming is None or incoming == current:
        return current
    return max(current, incoming, key=lambda v: (abs(v), v))


def _put(
    cells: _Cells,
    key: int,
    channel: Channel,
    campaign_id: str,
    value: Optional[float],
) -> None:
    by_campaign = cells.setdefault(key, {}).setdefault(channel, {})
    if campaign_id not in by_campaign:
        by_campaign[campaign_id] = value
        return

    current = by_campaign[campaign_id]
    resolved = resolve_collision(current, value)
    if current is not None and value is not None and current != value:
        logger.warning(
            f"Merge collision at {key_to_position(key):.6f} km for "
            f"{channel.value}/{campaign_id}: {current} vs {value}, kept {resolved}"
        )
    by_campaign[campaign_id] = resolved


def _add_series(cells: _Cells, series: ResampledSeries) -> None:
    for i, position in enumerate(series.positions):
        key = position_key(position)
        cells.setdefault(key, {})
        for channel, column in series.values.items():
            _put(cells, key, channel, series.campaign_id, column[i])


def _add_table(cells: _Cells, table: MergedTable) -> None:
    for row in table.rows:
        cells.setdefault(row.key, {})
        for channel, by_campaign in row.values.items():
            for campaign_id, value in by_campaign.items():
                _put(cells, row.key, channel, campaign_id, value)


def merge(inputs: Iterable[MergeInput]) -> MergedTable:
    """
    Merge resampled series (and/or previously merged tables) by position key.

    Args:
        inputs: ResampledSeries or MergedTable items, in any order

    Returns:
        MergedTable with rows ascending by position and sorted campaign ids

    Example:
        >>> table = merge([resample(a, 1.0), resample(b, 1.0)])
        >>> table == merge([resample(b, 1.0), resample(a, 1.0)])
        True
    """
    cells: _Cells = {}
    campaign_ids: Set[str] = set()

    for item in inputs:
        if isinstance(item, MergedTable):
            _add_table(cells, item)
            campaign_ids.update(item.campaign_ids)
        else:
            _add_series(cells, item)
            campaign_ids.add(item.campaign_id)

    rows: List[MergedRow] = []
    for key in sorted(cells):
        by_channel = cells[key]
        values = {
            channel: {cid: by_channel[channel][cid] for cid in sorted(by_channel[channel])}
            for channel in Channel
            if channel in by_channel
        }
        rows.append(MergedRow(key=key, position=key_to_position(key), values=values))

    logger.debug(f"Merged {len(campaign_ids)} campaigns into {len(rows)} rows")
    return MergedTable(rows=rows, campaign_ids=sorted(campaign_ids))
