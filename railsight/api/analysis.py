"""
FastAPI router module for multi-campaign analysis.

Implements GET /analysis/limits (active limit table), POST /analysis (run the
analytics pipeline over stored campaigns), POST /analysis/report (summary,
channel statistics and critical points) and POST /analysis/export (merged
table as CSV).

Every request runs the pipeline from scratch over the requested campaigns; no
merged table or event list is cached between requests. The pipeline is CPU
bound and runs in the threadpool so concurrent requests do not block the event
loop.
"""

import logging
from typing import Dict, List, Optional, Tuple

from fastapi import APIRouter, Body, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import BaseModel, Field

from railsight.core.config import Settings
from railsight.core.dependencies import CampaignStoreDep, LimitTableDep, SettingsDep
from railsight.core.storage import CampaignStore
from railsight.models.enums import Channel
from railsight.models.schemas import (
    ChannelStats,
    LimitTable,
    PipelineResult,
    ReportSummary,
)
from railsight.services.errors import CampaignNotFound
from railsight.services.export import table_to_csv
from railsight.services.ingestion import safe_campaign_id
from railsight.services.pipeline import run_pipeline
from railsight.services.trend import channel_stats, critical_points


# Configure logging
logger = logging.getLogger(__name__)


# =============================================================================
# Local Pydantic Models for API Requests and Responses
# =============================================================================

class AnalysisRequest(BaseModel):
    """Request model for running the analysis pipeline."""
    campaign_ids: List[str] = Field(
        ...,
        min_length=1,
        description="Stored campaigns to analyse"
    )
    step_m: Optional[float] = Field(
        default=None,
        gt=0,
        description="Resampling step in metres (default: settings.default_step_m)"
    )


class AnalysisExportRequest(AnalysisRequest):
    """Request model for exporting the merged table."""
    start: Optional[int] = Field(default=None, ge=0, description="First row index, inclusive")
    end: Optional[int] = Field(default=None, ge=0, description="Last row index, inclusive")


class ReportResponse(BaseModel):
    """Response model for the report endpoint."""
    summary: ReportSummary
    trend: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    stats: Dict[Channel, Dict[str, ChannelStats]] = Field(default_factory=dict)
    critical_points: Dict[Channel, Dict[str, List[Tuple[float, float]]]] = Field(
        default_factory=dict,
        description="Out-of-range (position, value) points per channel and campaign"
    )
    skipped: List[str] = Field(default_factory=list)


# =============================================================================
# Router Definition
# =============================================================================

router = APIRouter()


# =============================================================================
# Helpers
# =============================================================================


def _requested_ids(campaign_ids: List[str]) -> List[str]:
    """Sanitised ids, duplicates removed, request order kept."""
    return list(dict.fromkeys(safe_campaign_id(cid) for cid in campaign_ids))


async def _run(
    request: AnalysisRequest,
    store: CampaignStore,
    settings: Settings,
    limits: LimitTable,
) -> PipelineResult:
    campaigns = store.load_many(_requested_ids(request.campaign_ids))
    step_m = request.step_m if request.step_m is not None else settings.default_step_m
    return await run_in_threadpool(run_pipeline, campaigns, limits, step_m)


# =============================================================================
# Endpoint Implementations
# =============================================================================


@router.get("/limits", response_model=LimitTable)
async def get_limits(limits: LimitTableDep) -> LimitTable:
    """Return the limit table used for classification."""
    return limits


@router.post("", response_model=PipelineResult)
async def run_analysis(
    store: CampaignStoreDep,
    settings: SettingsDep,
    limits: LimitTableDep,
    request: AnalysisRequest = Body(...),
) -> PipelineResult:
    """
    Run the analytics pipeline over stored campaigns.

    Returns:
        PipelineResult: merged table, ordered events, per-campaign counts,
        skipped campaigns and summary

    Raises:
        HTTPException(404) if a requested campaign does not exist
    """
    try:
        return await _run(request, store, settings, limits)
    except CampaignNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Error running analysis for {request.campaign_ids}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to run analysis: {str(e)}"
        )


@router.post("/report", response_model=ReportResponse)
async def build_report(
    store: CampaignStoreDep,
    settings: SettingsDep,
    limits: LimitTableDep,
    request: AnalysisRequest = Body(...),
) -> ReportResponse:
    """
    Figures for the technical report of a campaign set.

    Statistics and critical points are computed on the merged table for
    every channel that has data.
    """
    try:
        result = await _run(request, store, settings, limits)
        campaign_ids = result.table.campaign_ids

        stats: Dict[Channel, Dict[str, ChannelStats]] = {}
        points: Dict[Channel, Dict[str, List[Tuple[float, float]]]] = {}
        for channel in result.table.channels():
            stats[channel] = channel_stats(result.table, channel, campaign_ids)
            limit = limits.limits.get(channel)
            if limit is not None:
                points[channel] = critical_points(result.table, channel, campaign_ids, limit)

        return ReportResponse(
            summary=result.summary,
            trend=result.trend,
            stats=stats,
            critical_points=points,
            skipped=result.skipped,
        )
    except CampaignNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Error building report for {request.campaign_ids}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to build report: {str(e)}"
        )


@router.post("/export")
async def export_analysis(
    store: CampaignStoreDep,
    settings: SettingsDep,
    limits: LimitTableDep,
    request: AnalysisExportRequest = Body(...),
) -> Response:
    """
    Download the merged table as CSV.

    Columns are km followed by channel_campaign pairs; unknown values are
    empty fields.
    """
    try:
        result = await _run(request, store, settings, limits)
        csv_text = table_to_csv(
            result.table,
            _requested_ids(request.campaign_ids),
            start=request.start,
            end=request.end,
        )
        return Response(
            content=csv_text,
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": 'attachment; filename="railsight_export.csv"'},
        )
    except CampaignNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Error exporting analysis for {request.campaign_ids}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to export analysis: {str(e)}"
        )
