"""
Campaign File Ingestion Service

This module turns uploaded measurement files into Campaign objects and a
QualityReport, the only place where raw text becomes numbers.

Accepted Formats:
- JSON: an array of records, or an object holding the array under "data" or "rows"
- CSV: header row plus one record per line (parsed with pandas, all as text)
  Anything that is not one of the JSON shapes above is read as CSV.

Position Columns (first match wins):
- km: "333+946" (km + metres) or a plain kilometre number
- km_abs_m: absolute position in metres
- km_float: kilometre number

Channel Columns:
    Column names are matched by substring (case-insensitive) so that exports
    from different measuring cars load unchanged: "curvature" -> curv,
    "crosslevel" -> xlev, "gradient" -> rate, "gauge" -> gage, and so on.

Values:
    Empty, unparseable or non-finite values become None ("value unknown").
    A decimal comma is accepted. Records without a usable position are dropped.

Quality Checks (per file, reported with the stored campaign):
- Blocking (ok=False): empty file, missing required columns, fewer than two
  positions, positions not increasing in file order
- Informational: mean sampling step outside the expected range, gauge values
  outside the sanity range

Dependencies:
    - pandas: CSV parsing
"""

import io
import json
import logging
import math
import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from railsight.core.config import Settings
from railsight.models.enums import Channel, FileFormat
from railsight.models.schemas import Campaign, QualityReport, Sample
from railsight.services.errors import InvalidCampaignFile

# Configure module logger
logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

POSITION_COLUMNS: List[str] = ['km', 'km_abs_m', 'km_float']

REQUIRED_CHANNELS: List[Channel] = [Channel.CURVATURE, Channel.CROSSLEVEL, Channel.GAUGE]

# Substring -> channel, checked in this order
FIELD_NAME_PATTERNS: List[Tuple[Tuple[str, ...], Channel]] = [
    (('curv',), Channel.CURVATURE),
    (('xlev', 'cross'), Channel.CROSSLEVEL),
    (('rate', 'gradient'), Channel.RATE),
    (('twist',), Channel.TWIST),
    (('warp',), Channel.WARP),
    (('gage', 'gauge'), Channel.GAUGE),
]

DEFAULT_CAMPAIGN_ID: str = 'Campanha'

POSITION_DECIMALS: int = 6

_UNSAFE_ID_CHARS = re.compile(r'[^a-zA-Z0-9_\-.]')


@dataclass
class IngestionOutcome:
    """
    Result of ingesting one uploaded file.

    Attributes:
        campaign: Campaign built from the records that carry a position.
        quality: Quality report of the raw records.
        record_count: Number of records read from the file.
    """
    campaign: Campaign
    quality: QualityReport
    record_count: int = 0


# =============================================================================
# VALUE PARSING
# =============================================================================

def to_number(value: Any) -> Optional[float]:
    """
    Parse a raw cell into a finite float.

    Args:
        value: Raw cell (str, int, float or None)

    Returns:
        Float value, or None when empty, unparseable or non-finite
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text.replace(',', '.', 1))
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def parse_position(record: Dict[str, Any]) -> Optional[float]:
    """
    Extract the track position (km) of a raw record.

    Tries `km` ("333+946" or a number), then `km_abs_m` (metres), then
    `km_float`. Returns None when no column yields a position.
    """
    raw_km = record.get('km')
    if raw_km is not None and raw_km != '':
        text = str(raw_km).strip()
        if '+' in text:
            km_part, _, metre_part = text.partition('+')
            km = to_number(km_part)
            metres = to_number(metre_part)
            if km is not None and metres is not None:
                return round(km + metres / 1000.0, POSITION_DECIMALS)
        km = to_number(text)
        if km is not None:
            return round(km, POSITION_DECIMALS)

    metres = to_number(record.get('km_abs_m'))
    if metres is not None:
        return round(metres / 1000.0, POSITION_DECIMALS)

    km = to_number(record.get('km_float'))
    if km is not None:
        return round(km, POSITION_DECIMALS)

    return None


def normalize_field_name(name: str) -> Optional[Channel]:
    """Map a raw column name to a channel, or None for non-channel columns."""
    lowered = str(name).lower().strip()
    for needles, channel in FIELD_NAME_PATTERNS:
        if any(needle in lowered for needle in needles):
            return channel
    return None


# =============================================================================
# CAMPAIGN IDS
# =============================================================================

def safe_campaign_id(name: Optional[str]) -> str:
    """
    Replace characters outside [A-Za-z0-9_.-] with '_'.

    Empty names and names made only of dots (which would resolve to a parent
    directory in the store) fall back to DEFAULT_CAMPAIGN_ID.
    """
    cleaned = _UNSAFE_ID_CHARS.sub('_', str(name or ''))
    if not cleaned.strip('.'):
        return DEFAULT_CAMPAIGN_ID
    return cleaned


def campaign_id_from_filename(filename: str) -> str:
    """Campaign id derived from a file name without its extension."""
    return safe_campaign_id(PurePath(filename or '').stem)


# =============================================================================
# FILE READING
# =============================================================================

def _records_from_json(text: str) -> Optional[List[Dict[str, Any]]]:
    """Records of a JSON document, or None when the text is not a known JSON shape."""
    try:
        document = json.loads(text)
    except ValueError:
        return None

    if isinstance(document, list):
        rows = document
    elif isinstance(document, dict) and isinstance(document.get('data'), list):
        rows = document['data']
    elif isinstance(document, dict) and isinstance(document.get('rows'), list):
        rows = document['rows']
    else:
        return None

    return [row for row in rows if isinstance(row, dict)]


def _records_from_csv(text: str, filename: str) -> List[Dict[str, Any]]:
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as e:
        raise InvalidCampaignFile(filename, f"CSV could not be parsed: {e}") from e

    df.columns = [str(column).strip() for column in df.columns]
    return df.to_dict(orient='records')


def read_records(content: bytes, filename: str) -> List[Dict[str, Any]]:
    """
    Read the raw records of an uploaded file.

    Args:
        content: Raw file bytes
        filename: Original file name (used for error messages)

    Returns:
        List of dicts, one per record, keyed by column name

    Raises:
        InvalidCampaignFile: If the file is not UTF-8 or the CSV is malformed
    """
    try:
        text = content.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        raise InvalidCampaignFile(filename, "file is not UTF-8 text") from e

    records = _records_from_json(text)
    if records is not None:
        logger.info(f"Parsed {filename} as {FileFormat.JSON.value}: {len(records)} records")
        return records

    records = _records_from_csv(text, filename)
    logger.info(f"Parsed {filename} as {FileFormat.CSV.value}: {len(records)} records")
    return records


# =============================================================================
# CAMPAIGN CONSTRUCTION
# =============================================================================

def build_campaign(records: List[Dict[str, Any]], campaign_id: str) -> Campaign:
    """
    Build a Campaign from raw records.

    Records without a position are dropped; the Campaign model sorts the
    remaining samples and de-duplicates repeated positions.
    """
    samples: List[Sample] = []
    dropped = 0
    for record in records:
        position = parse_position(record)
        if position is None:
            dropped += 1
            continue

        values: Dict[Channel, Optional[float]] = {}
        for column, raw in record.items():
            channel = normalize_field_name(column)
            if channel is not None:
                values[channel] = to_number(raw)
        samples.append(Sample(position=position, values=values))

    if dropped:
        logger.warning(f"Campaign {campaign_id}: dropped {dropped} records without a position")

    return Campaign(id=campaign_id, samples=samples)


# =============================================================================
# QUALITY CHECKS
# =============================================================================

def check_quality(records: List[Dict[str, Any]], settings: Settings) -> QualityReport:
    """
    Run the upload sanity checks on raw records.

    Args:
        records: Raw records from read_records()
        settings: Settings holding the expected step and gauge ranges

    Returns:
        QualityReport; `ok` is False only for blocking problems
    """
    report = QualityReport()
    if not records:
        report.ok = False
        report.issues.append("Empty file.")
        return report

    columns = list(records[0].keys())
    if not any(column in POSITION_COLUMNS for column in columns):
        report.ok = False
        report.issues.append(
            f"Missing required position column (one of {', '.join(POSITION_COLUMNS)})."
        )
    present = {normalize_field_name(column) for column in columns}
    for channel in REQUIRED_CHANNELS:
        if channel not in present:
            report.ok = False
            report.issues.append(f"Missing required column: {channel.value}")

    # Sampling step, in metres
    positions_m = [p * 1000.0 for p in (parse_position(r) for r in records) if p is not None]
    if len(positions_m) < 2:
        report.ok = False
        report.issues.append("Too few points with a position.")
    else:
        if any(b < a for a, b in zip(positions_m, positions_m[1:])):
            report.ok = False
            report.issues.append("Positions are not monotonic.")

        ordered = sorted(positions_m)
        mean_step = (ordered[-1] - ordered[0]) / (len(ordered) - 1)
        report.stats['sample_step_m'] = round(mean_step, 3)
        if mean_step < settings.expected_step_min_m or mean_step > settings.expected_step_max_m:
            report.issues.append(f"Mean step outside the expected range: {mean_step:.3f} m")

    # Gauge sanity
    gauge_columns = [c for c in columns if normalize_field_name(c) == Channel.GAUGE]
    gauges: List[float] = []
    for record in records:
        for column in gauge_columns:
            value = to_number(record.get(column))
            if value is not None:
                gauges.append(value)
    if gauges:
        gage_min, gage_max = min(gauges), max(gauges)
        report.stats['gage_min'] = gage_min
        report.stats['gage_max'] = gage_max
        if gage_min < settings.gauge_sanity_min_mm or gage_max > settings.gauge_sanity_max_mm:
            report.issues.append(f"Atypical gauge values (min={gage_min}, max={gage_max})")

    return report


# =============================================================================
# ENTRY POINT
# =============================================================================

def ingest_file(content: bytes, filename: str, settings: Settings) -> IngestionOutcome:
    """
    Parse, check and convert one uploaded file.

    Args:
        content: Raw file bytes
        filename: Original file name; its stem becomes the campaign id
        settings: Application settings

    Returns:
        IngestionOutcome with the campaign and its quality report

    Raises:
        InvalidCampaignFile: If the file cannot be read into records
    """
    records = read_records(content, filename)
    quality = check_quality(records, settings)
    campaign = build_campaign(records, campaign_id_from_filename(filename))

    logger.info(
        f"Ingested {filename} as campaign {campaign.id}: {len(campaign.samples)} samples, "
        f"quality ok={quality.ok}, {len(quality.issues)} issues"
    )
    return IngestionOutcome(campaign=campaign, quality=quality, record_count=len(records))
