"""
Tests for the trend aggregator and report figures.
"""

import pytest

from railsight.models.enums import Channel, Severity
from railsight.models.schemas import AlarmEvent
from railsight.services.merging import merge
from railsight.services.resampling import ResampledSeries
from railsight.services.trend import (
    CONCLUSION_CLEAN,
    CONCLUSION_EXCEEDANCES,
    aggregate,
    build_summary,
    channel_stats,
    critical_points,
)


def _event(campaign_id: str, severity: Severity) -> AlarmEvent:
    return AlarmEvent(
        position=1.0,
        channel=Channel.CROSSLEVEL,
        campaign_id=campaign_id,
        value=40.0,
        unit='mm',
        severity=severity,
        distance=15.0,
    )


@pytest.fixture
def table():
    a = ResampledSeries(
        campaign_id='A',
        step_m=1.0,
        positions=[0.0, 0.001, 0.002, 0.003],
        values={Channel.CROSSLEVEL: [2.0, 4.0, 30.0, None]},
    )
    b = ResampledSeries(
        campaign_id='B',
        step_m=1.0,
        positions=[0.0, 0.001],
        values={Channel.CROSSLEVEL: [-30.0, 0.0], Channel.GAUGE: [1600.0, 1600.0]},
    )
    return merge([a, b])


class TestAggregate:
    """Tests for aggregate."""

    def test_no_events_gives_zero_counts(self):
        assert aggregate([], ['A', 'B']) == {
            'A': {'WARN': 0, 'ALARM': 0},
            'B': {'WARN': 0, 'ALARM': 0},
        }

    def test_counts_by_severity(self):
        events = [
            _event('A', Severity.ALARM),
            _event('A', Severity.WARN),
            _event('A', Severity.WARN),
            _event('B', Severity.ALARM),
        ]

        assert aggregate(events, ['A', 'B']) == {
            'A': {'WARN': 2, 'ALARM': 1},
            'B': {'WARN': 0, 'ALARM': 1},
        }

    def test_unknown_campaigns_are_ignored(self):
        events = [_event('Z', Severity.ALARM), _event('A', Severity.WARN)]

        result = aggregate(events, ['A'])

        assert result == {'A': {'WARN': 1, 'ALARM': 0}}
        assert 'Z' not in result

    def test_no_requested_campaigns(self):
        assert aggregate([_event('A', Severity.ALARM)], []) == {}


class TestChannelStats:
    """Tests for channel_stats."""

    def test_statistics_ignore_nulls(self, table):
        stats = channel_stats(table, Channel.CROSSLEVEL, ['A', 'B'])

        assert stats['A'].count == 3
        assert stats['A'].mean == pytest.approx(12.0)
        assert stats['A'].min == 2.0
        assert stats['A'].max == 30.0
        assert stats['B'].sd == pytest.approx(15.0)

    def test_campaign_without_values_is_omitted(self, table):
        stats = channel_stats(table, Channel.GAUGE, ['A', 'B'])

        assert list(stats) == ['B']
        assert stats['B'].sd == 0.0


class TestCriticalPoints:
    """Tests for critical_points."""

    def test_points_outside_range(self, table, crosslevel_limits):
        limit = crosslevel_limits.limits[Channel.CROSSLEVEL]

        points = critical_points(table, Channel.CROSSLEVEL, ['A', 'B'], limit)

        assert points == {'A': [(0.002, 30.0)], 'B': [(0.0, -30.0)]}

    def test_every_campaign_is_listed(self, table, crosslevel_limits):
        limit = crosslevel_limits.limits[Channel.CROSSLEVEL]

        points = critical_points(table, Channel.CROSSLEVEL, ['A', 'B', 'C'], limit)

        assert points['C'] == []


class TestBuildSummary:
    """Tests for build_summary."""

    def test_summary_with_exceedances(self):
        events = [_event('A', Severity.ALARM), _event('B', Severity.WARN)]

        summary = build_summary(events, ['A', 'B'], [Channel.CROSSLEVEL])

        assert summary.campaign_count == 2
        assert summary.alarm_count == 1
        assert summary.warn_count == 1
        assert summary.channels == [Channel.CROSSLEVEL]
        assert summary.conclusion == CONCLUSION_EXCEEDANCES

    def test_clean_summary(self):
        summary = build_summary([], ['A'], [])

        assert summary.alarm_count == 0
        assert summary.conclusion == CONCLUSION_CLEAN
