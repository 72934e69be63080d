'''
RailSight Backend Test Suite

Test Modules:
-------------
- test_resampling.py: Uniform grid, interpolation, clamping, EmptyCampaign
- test_derivation.py: Crosslevel-rate derivation and measured-rate precedence
- test_merging.py: Position-key merge, commutativity/associativity/idempotence,
  collision policy
- test_alarms.py: Allowed ranges, severity cutoffs, event ordering, limit tables
- test_trend.py: Per-campaign counts, channel statistics, critical points
- test_pipeline.py: End-to-end runs over campaign sets
- test_ingestion.py: CSV/JSON parsing, positions, quality checks
- test_export.py: Merged and raw CSV exports
- test_segments.py: Segment slicing and remote fetch with retry
- test_storage.py: File-backed campaign store
- test_api.py: FastAPI routers through TestClient

Running Tests:
--------------
    pip install -e .[test]
    pytest -v
    pytest -m "not slow"

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

__all__ = []
