"""
Test Module for Campaign File Ingestion.

This module tests the ingestion service validating:
- Numeric parsing (decimal comma, empty and non-finite values -> None)
- Position parsing from km ("333+946"), km_abs_m and km_float columns
- Column name normalisation onto channels
- JSON (array, {"data": [...]}, {"rows": [...]}) and CSV record reading
- Upload quality checks: blocking problems vs informational issues
- Campaign id sanitisation

Dependency References:
- railsight/services/ingestion.py: Ingestion service functions and constants
- railsight/tests/conftest.py: settings and campaign_csv_bytes fixtures
"""

import json
import math

import pandas as pd
import pytest

from railsight.models.enums import Channel
from railsight.services.errors import InvalidCampaignFile
from railsight.services.ingestion import (
    DEFAULT_CAMPAIGN_ID,
    build_campaign,
    campaign_id_from_filename,
    check_quality,
    ingest_file,
    normalize_field_name,
    parse_position,
    read_records,
    safe_campaign_id,
    to_number,
)


def _records(**columns):
    """Raw text records from column lists, as read_records would return them."""
    frame = pd.DataFrame(columns).astype(str)
    return frame.to_dict(orient='records')


# =============================================================================
# Value Parsing Tests
# =============================================================================

class TestToNumber:
    """Tests for to_number."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ('1.5', 1.5),
            ('1,5', 1.5),
            (' -2 ', -2.0),
            (3, 3.0),
            (2.25, 2.25),
        ],
    )
    def test_parses_numbers(self, raw, expected):
        assert to_number(raw) == expected

    @pytest.mark.parametrize("raw", [None, '', '   ', 'abc', 'nan', 'inf', '-inf', True, math.nan])
    def test_unknown_values_become_none(self, raw):
        assert to_number(raw) is None


class TestParsePosition:
    """Tests for parse_position."""

    def test_km_plus_metres(self):
        assert parse_position({'km': '333+946'}) == 333.946

    def test_plain_km(self):
        assert parse_position({'km': '333.5'}) == 333.5

    def test_absolute_metres(self):
        assert parse_position({'km_abs_m': '333800'}) == 333.8

    def test_km_float(self):
        assert parse_position({'km_float': '12.25'}) == 12.25

    def test_empty_km_falls_back_to_metres(self):
        assert parse_position({'km': '', 'km_abs_m': '1000'}) == 1.0

    def test_no_position(self):
        assert parse_position({'xlev': '1.0'}) is None

    def test_rounded_to_millimetres(self):
        assert parse_position({'km_abs_m': '1000.0004'}) == 1.0


class TestNormalizeFieldName:
    """Tests for normalize_field_name."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ('curv', Channel.CURVATURE),
            ('Curvature', Channel.CURVATURE),
            ('CrossLevel_mm', Channel.CROSSLEVEL),
            ('xlev', Channel.CROSSLEVEL),
            ('gradient', Channel.RATE),
            ('rate', Channel.RATE),
            ('Twist', Channel.TWIST),
            ('warp', Channel.WARP),
            ('Gauge', Channel.GAUGE),
            ('gage', Channel.GAUGE),
        ],
    )
    def test_channel_columns(self, name, expected):
        assert normalize_field_name(name) == expected

    @pytest.mark.parametrize("name", ['km', 'km_abs_m', 'speed', ''])
    def test_other_columns(self, name):
        assert normalize_field_name(name) is None


# =============================================================================
# Campaign Id Tests
# =============================================================================

class TestCampaignIds:
    """Tests for safe_campaign_id and campaign_id_from_filename."""

    def test_unsafe_characters_replaced(self):
        assert safe_campaign_id('linha 1/2024') == 'linha_1_2024'

    def test_safe_characters_kept(self):
        assert safe_campaign_id('2024-03_linha.1') == '2024-03_linha.1'

    @pytest.mark.parametrize("name", [None, '', '.', '..'])
    def test_fallback_id(self, name):
        assert safe_campaign_id(name) == DEFAULT_CAMPAIGN_ID

    def test_id_from_filename(self):
        assert campaign_id_from_filename('Linha 1.csv') == 'Linha_1'

    def test_id_from_path(self):
        assert campaign_id_from_filename('uploads/2024-03.json') == '2024-03'


# =============================================================================
# File Reading Tests
# =============================================================================

class TestReadRecords:
    """Tests for read_records."""

    def test_json_array(self):
        content = json.dumps([{'km': '1+000', 'xlev': 1.5}]).encode('utf-8')

        assert read_records(content, 'a.json') == [{'km': '1+000', 'xlev': 1.5}]

    @pytest.mark.parametrize("key", ['data', 'rows'])
    def test_json_wrapped_array(self, key):
        content = json.dumps({key: [{'km_float': 1.0}, {'km_float': 1.001}]}).encode('utf-8')

        assert len(read_records(content, 'a.json')) == 2

    def test_csv(self, campaign_csv_bytes):
        records = read_records(campaign_csv_bytes, 'a.csv')

        assert len(records) == 5
        assert records[0]['km_abs_m'] == '333800'
        assert records[2]['xlev'] == '30.0'

    def test_csv_with_bom_and_blank_cells(self):
        content = '\ufeffkm_abs_m,xlev\n0,1.0\n1,\n'.encode('utf-8')

        records = read_records(content, 'a.csv')

        assert list(records[0]) == ['km_abs_m', 'xlev']
        assert records[1]['xlev'] == ''

    def test_empty_file(self):
        assert read_records(b'', 'empty.csv') == []

    def test_non_utf8_rejected(self):
        with pytest.raises(InvalidCampaignFile) as exc_info:
            read_records(b'km,xlev\n\xff\xfe,1\n', 'bad.csv')

        assert exc_info.value.filename == 'bad.csv'


# =============================================================================
# Campaign Construction Tests
# =============================================================================

class TestBuildCampaign:
    """Tests for build_campaign."""

    def test_records_become_sorted_samples(self):
        records = _records(km_abs_m=['2', '0', '1'], xlev=['2.0', '0.0', '1.0'])

        campaign = build_campaign(records, 'A')

        assert campaign.id == 'A'
        assert campaign.positions == [0.0, 0.001, 0.002]
        assert [s.value(Channel.CROSSLEVEL) for s in campaign.samples] == [0.0, 1.0, 2.0]

    def test_records_without_position_are_dropped(self, caplog):
        records = [{'km_abs_m': '0', 'xlev': '1'}, {'km_abs_m': '', 'xlev': '2'}]

        campaign = build_campaign(records, 'A')

        assert len(campaign.samples) == 1
        assert 'dropped 1 records' in caplog.text

    def test_unparseable_values_are_unknown(self):
        records = [{'km_abs_m': '0', 'xlev': 'n/a', 'Gauge': '1600,5'}]

        sample = build_campaign(records, 'A').samples[0]

        assert sample.value(Channel.CROSSLEVEL) is None
        assert sample.value(Channel.GAUGE) == 1600.5


# =============================================================================
# Quality Check Tests
# =============================================================================

class TestCheckQuality:
    """Tests for check_quality."""

    def test_clean_file(self, campaign_csv_bytes, settings):
        report = check_quality(read_records(campaign_csv_bytes, 'a.csv'), settings)

        assert report.ok is True
        assert report.issues == []
        assert report.stats['sample_step_m'] == pytest.approx(1.0)
        assert report.stats['gage_min'] == 1600.0
        assert report.stats['gage_max'] == 1625.0

    def test_empty_file(self, settings):
        report = check_quality([], settings)

        assert report.ok is False
        assert report.issues == ['Empty file.']

    def test_missing_columns(self, settings):
        records = _records(distance=['0', '1'], xlev=['1', '2'])

        report = check_quality(records, settings)

        assert report.ok is False
        assert any('position column' in issue for issue in report.issues)
        assert 'Missing required column: curv' in report.issues
        assert 'Missing required column: gage' in report.issues
        assert 'Missing required column: xlev' not in report.issues

    def test_too_few_points(self, settings):
        records = _records(km_abs_m=['0'], curv=['0'], xlev=['0'], gage=['1600'])

        report = check_quality(records, settings)

        assert report.ok is False
        assert 'Too few points with a position.' in report.issues

    def test_positions_not_monotonic(self, settings):
        records = _records(
            km_abs_m=['0', '2', '1'],
            curv=['0', '0', '0'],
            xlev=['0', '0', '0'],
            gage=['1600', '1600', '1600'],
        )

        report = check_quality(records, settings)

        assert report.ok is False
        assert 'Positions are not monotonic.' in report.issues

    def test_atypical_step_is_informational(self, settings):
        records = _records(
            km_abs_m=['0', '10', '20'],
            curv=['0', '0', '0'],
            xlev=['0', '0', '0'],
            gage=['1600', '1600', '1600'],
        )

        report = check_quality(records, settings)

        assert report.ok is True
        assert report.stats['sample_step_m'] == 10.0
        assert any(issue.startswith('Mean step outside') for issue in report.issues)

    def test_atypical_gauge_is_informational(self, settings):
        records = _records(
            km_abs_m=['0', '1'],
            curv=['0', '0'],
            xlev=['0', '0'],
            gage=['1300', '1600'],
        )

        report = check_quality(records, settings)

        assert report.ok is True
        assert any(issue.startswith('Atypical gauge') for issue in report.issues)


# =============================================================================
# Entry Point Tests
# =============================================================================

class TestIngestFile:
    """Tests for ingest_file."""

    def test_csv_upload(self, campaign_csv_bytes, settings):
        outcome = ingest_file(campaign_csv_bytes, 'Linha 1.csv', settings)

        assert outcome.campaign.id == 'Linha_1'
        assert outcome.record_count == 5
        assert len(outcome.campaign.samples) == 5
        assert outcome.campaign.samples[0].position == 333.8
        assert outcome.campaign.samples[2].value(Channel.CROSSLEVEL) == 30.0
        assert outcome.quality.ok is True

    def test_json_upload(self, settings):
        content = json.dumps({
            'data': [
                {'km': '333+946', 'curv': 0.1, 'xlev': 1.5, 'gage': None},
                {'km': '333+947', 'curv': 0.2, 'xlev': 2.5, 'gage': 1601},
            ]
        }).encode('utf-8')

        outcome = ingest_file(content, 'campaign.json', settings)

        assert outcome.campaign.positions == [333.946, 333.947]
        assert outcome.campaign.samples[0].value(Channel.GAUGE) is None
        assert outcome.quality.ok is True

    def test_invalid_file_raises(self, settings):
        with pytest.raises(InvalidCampaignFile):
            ingest_file(b'\xff\xff\xff', 'broken.csv', settings)
