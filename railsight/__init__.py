"""
RailSight Backend Package.

FastAPI service layer for RailSight track-geometry analytics. Ingests
measurement campaigns, aligns them on a common position grid and flags samples
that fall outside the normative limits.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, campaign storage, and dependencies
    - models: Pydantic schemas and enums
    - services: Analytics engine and I/O services
"""

__version__ = "1.0.0"
