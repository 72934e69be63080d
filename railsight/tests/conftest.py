"""
Pytest Configuration and Shared Fixtures for RailSight Backend Tests.

This module provides fixtures and configuration for all backend tests, supporting:
- Async test execution with pytest-asyncio (remote segment fetch)
- Settings and a campaign store isolated under pytest's tmp_path
- Campaign factories for hand-written and synthetic (numpy) measurement data
- Limit tables for the default normative set and single-channel scenarios
- A FastAPI TestClient with storage and settings dependencies overridden

Dependencies:
- pytest
- pytest-asyncio
- numpy
- pandas
- httpx (FastAPI TestClient, MockTransport)
"""

from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional, Sequence

import numpy as np
import pandas as pd
import pytest
from fastapi.testclient import TestClient

from railsight.core.config import Settings
from railsight.core.dependencies import get_campaign_store, get_settings_dependency
from railsight.core.storage import CampaignStore
from railsight.models.enums import Channel
from railsight.models.schemas import (
    Campaign,
    CampaignMeta,
    ChannelLimit,
    LimitTable,
    Sample,
    ThresholdLine,
)
from railsight.services.alarms import DEFAULT_LIMIT_TABLE


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Configure custom pytest markers for test organization.

    Custom markers defined:
    - slow: Marks tests as slow (deselect with -m "not slow")
    - api: Marks tests that go through the FastAPI application
    """
    config.addinivalue_line(
        'markers',
        'slow: marks tests as slow (deselect with -m "not slow")'
    )
    config.addinivalue_line(
        'markers',
        'api: marks tests exercising the HTTP layer'
    )


# ============================================================
# SETTINGS AND STORAGE FIXTURES
# ============================================================

@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """
    Settings pointing the data directory at a per-test temporary folder.

    The .env file is ignored so local developer configuration cannot leak
    into tests.
    """
    return Settings(
        _env_file=None,
        data_dir=tmp_path / 'data',
        default_step_m=1.0,
        segment_api_base='http://segments.test',
        segment_retry_delays_s=[2.0, 5.0, 10.0],
    )


@pytest.fixture
def store(settings: Settings) -> CampaignStore:
    """Empty campaign store under the test data directory."""
    return CampaignStore(settings.data_dir)


# ============================================================
# CAMPAIGN FIXTURES
# ============================================================

CampaignFactory = Callable[..., Campaign]


@pytest.fixture
def make_campaign() -> CampaignFactory:
    """
    Factory building a Campaign from positions and per-channel value lists.

    Usage:
        campaign = make_campaign('A', [0.0, 0.001], xlev=[1.0, None])
    """
    def _make(
        campaign_id: str,
        positions: Sequence[float],
        **channels: Sequence[Optional[float]],
    ) -> Campaign:
        samples = []
        for i, position in enumerate(positions):
            values: Dict[Channel, Optional[float]] = {
                Channel(name): column[i] for name, column in channels.items()
            }
            samples.append(Sample(position=position, values=values))
        return Campaign(id=campaign_id, samples=samples)

    return _make


@pytest.fixture
def campaign_a(make_campaign: CampaignFactory) -> Campaign:
    """Crosslevel 0, 10, 40 mm at km 0, 1, 2."""
    return make_campaign('A', [0.0, 1.0, 2.0], xlev=[0.0, 10.0, 40.0])


@pytest.fixture
def campaign_b(make_campaign: CampaignFactory) -> Campaign:
    """Crosslevel 0, 5, 20 mm at km 0, 1, 2."""
    return make_campaign('B', [0.0, 1.0, 2.0], xlev=[0.0, 5.0, 20.0])


@pytest.fixture
def synthetic_campaign() -> Campaign:
    """
    Synthetic 200 m campaign sampled every ~1 m from km 333.800.

    Crosslevel is a sine wave of 12 mm amplitude, gauge hovers around
    1600 mm and curvature is small; values are reproducible (seeded rng).
    """
    rng = np.random.default_rng(42)
    count = 200
    positions = 333.8 + np.arange(count) * 0.001 + rng.uniform(-0.0001, 0.0001, count)
    positions[0] = 333.8
    xlev = 12.0 * np.sin(np.linspace(0.0, 4.0 * np.pi, count))
    gage = 1600.0 + rng.normal(0.0, 1.5, count)
    curv = rng.normal(0.0, 0.5, count)

    samples = [
        Sample(
            position=float(positions[i]),
            values={
                Channel.CROSSLEVEL: float(xlev[i]),
                Channel.GAUGE: float(gage[i]),
                Channel.CURVATURE: float(curv[i]),
            },
        )
        for i in range(count)
    ]
    return Campaign(id='synthetic', samples=samples)


@pytest.fixture
def campaign_csv_bytes() -> bytes:
    """CSV upload with km_abs_m positions every metre and an out-of-limit gauge."""
    frame = pd.DataFrame({
        'km_abs_m': [333800, 333801, 333802, 333803, 333804],
        'curv': [0.1, 0.2, 0.3, 0.2, 0.1],
        'xlev': [1.0, 2.0, 30.0, 2.0, 1.0],
        'twist': [0.5, 0.4, 0.3, 0.2, 0.1],
        'warp': [0.1, 0.1, 0.1, 0.1, 0.1],
        'gage': [1600, 1601, 1625, 1600, 1600],
    })
    return frame.to_csv(index=False).encode('utf-8')


# ============================================================
# LIMIT TABLE FIXTURES
# ============================================================

@pytest.fixture
def limits() -> LimitTable:
    """The built-in normative limit table."""
    return DEFAULT_LIMIT_TABLE


@pytest.fixture
def crosslevel_limits() -> LimitTable:
    """Crosslevel-only table: lines at +/-25 mm and an ALARM cutoff of 5 mm."""
    return LimitTable(
        name='crosslevel-only',
        limits={
            Channel.CROSSLEVEL: ChannelLimit(
                channel=Channel.CROSSLEVEL,
                unit='mm',
                standard='ANTT',
                lines=[ThresholdLine(value=25), ThresholdLine(value=-25)],
            ),
        },
        cutoffs={Channel.CROSSLEVEL: 5.0},
    )


# ============================================================
# HTTP CLIENT FIXTURES
# ============================================================

@pytest.fixture
def client(settings: Settings, store: CampaignStore) -> Generator[TestClient, None, None]:
    """
    TestClient for the application with settings and storage overridden.

    The lifespan is not entered, so the global store singleton is never
    created; every request uses the per-test store.
    """
    from railsight.main import app

    app.dependency_overrides[get_settings_dependency] = lambda: settings
    app.dependency_overrides[get_campaign_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def stored_ids(store: CampaignStore, campaign_a: Campaign, campaign_b: Campaign) -> List[str]:
    """Store campaigns A and B and return their ids."""
    for campaign in (campaign_a, campaign_b):
        store.save(campaign, CampaignMeta(uploaded_at=0.0, filename=f'{campaign.id}.csv'))
    return [campaign_a.id, campaign_b.id]
