"""
FastAPI router module for campaign management.

Implements GET /campaigns (list stored campaigns), POST /campaigns/upload
(ingest one or more measurement files), GET /campaigns/{id} (metadata),
GET /campaigns/{id}/segment (parallel-array window), GET /campaigns/{id}/export
(raw CSV download) and DELETE /campaigns/{id}.

Campaign ids in paths are sanitised the same way uploaded file names are, so a
path id always names a directory inside the data directory.

Upload Contract:
- Each uploaded file is handled on its own: a file that cannot be parsed is
  reported with ok=false and an error message, and the remaining files are
  still stored.
- A file whose quality report is not ok is stored anyway; the report is
  returned and kept with the campaign.
"""

import logging
import time
from typing import List, Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import BaseModel, Field

from railsight.core.dependencies import CampaignStoreDep, SettingsDep
from railsight.models.enums import Channel
from railsight.models.schemas import CampaignMeta, QualityReport
from railsight.services.errors import (
    CampaignNotFound,
    InvalidCampaignFile,
    SegmentFetchError,
)
from railsight.services.export import campaign_to_csv
from railsight.services.ingestion import ingest_file, safe_campaign_id
from railsight.services.segments import (
    SegmentColumns,
    fetch_segment,
    segment_to_columns,
    slice_segment,
)


# Configure logging
logger = logging.getLogger(__name__)


# =============================================================================
# Local Pydantic Models for API Responses
# =============================================================================

class CampaignListResponse(BaseModel):
    """Response model for list campaigns endpoint."""
    campaigns: List[str] = Field(
        default_factory=list,
        description="Ids of stored campaigns, sorted"
    )


class UploadResult(BaseModel):
    """Outcome of one uploaded file."""
    filename: str
    ok: bool = Field(..., description="False when the file failed to parse or its quality check")
    campaign: Optional[str] = Field(default=None, description="Stored campaign id")
    record_count: int = Field(default=0, ge=0, description="Records read from the file")
    sample_count: int = Field(default=0, ge=0)
    quality: Optional[QualityReport] = None
    error: Optional[str] = None


class UploadResponse(BaseModel):
    """Response model for the upload endpoint."""
    results: List[UploadResult] = Field(default_factory=list)


class CampaignDetailResponse(BaseModel):
    """Response model for campaign details endpoint."""
    id: str
    meta: CampaignMeta
    sample_count: int = Field(..., ge=0)
    channels: List[Channel] = Field(default_factory=list)
    first_position: Optional[float] = Field(default=None, description="First position in km")
    last_position: Optional[float] = Field(default=None, description="Last position in km")


# =============================================================================
# Router Definition
# =============================================================================

router = APIRouter()


# =============================================================================
# Endpoint Implementations
# =============================================================================


@router.get("", response_model=CampaignListResponse)
async def list_campaigns(store: CampaignStoreDep) -> CampaignListResponse:
    """
    List stored campaigns.

    Returns:
        CampaignListResponse: { campaigns: [...] }
    """
    try:
        campaigns = store.list_ids()
        logger.info(f"Listed {len(campaigns)} campaigns")
        return CampaignListResponse(campaigns=campaigns)
    except Exception as e:
        logger.exception("Error listing campaigns")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to list campaigns: {str(e)}"
        )


@router.post("/upload", response_model=UploadResponse)
async def upload_campaigns(
    store: CampaignStoreDep,
    settings: SettingsDep,
    file: List[UploadFile] = File(..., description="One or more CSV/JSON campaign files"),
) -> UploadResponse:
    """
    Ingest and store uploaded campaign files.

    The campaign id is the file name without its extension, sanitised.
    Uploading a file with the same name replaces the stored campaign.

    Returns:
        UploadResponse with one result per file, in upload order
    """
    results: List[UploadResult] = []

    for upload in file:
        filename = upload.filename or ""
        try:
            content = await upload.read()
            outcome = await run_in_threadpool(ingest_file, content, filename, settings)
            meta = CampaignMeta(
                uploaded_at=time.time() * 1000.0,
                filename=filename,
                quality=outcome.quality,
            )
            store.save(outcome.campaign, meta)
            results.append(UploadResult(
                filename=filename,
                ok=outcome.quality.ok,
                campaign=outcome.campaign.id,
                record_count=outcome.record_count,
                sample_count=len(outcome.campaign.samples),
                quality=outcome.quality,
            ))
        except InvalidCampaignFile as e:
            logger.warning(f"Rejected upload {filename}: {e.reason}")
            results.append(UploadResult(filename=filename, ok=False, error=e.reason))
        except Exception as e:
            logger.exception(f"Error ingesting upload {filename}")
            results.append(UploadResult(filename=filename, ok=False, error=str(e)))
        finally:
            await upload.close()

    logger.info(
        f"Processed {len(results)} uploads, {sum(1 for r in results if r.ok)} ok"
    )
    return UploadResponse(results=results)


@router.get("/{campaign_id}", response_model=CampaignDetailResponse)
async def get_campaign(campaign_id: str, store: CampaignStoreDep) -> CampaignDetailResponse:
    """
    Get stored campaign metadata.

    Raises:
        HTTPException(404) if the campaign does not exist
    """
    try:
        stored = store.load(safe_campaign_id(campaign_id))
        campaign = stored.campaign
        positions = campaign.positions
        return CampaignDetailResponse(
            id=campaign.id,
            meta=stored.meta,
            sample_count=len(campaign.samples),
            channels=campaign.channels(),
            first_position=positions[0] if positions else None,
            last_position=positions[-1] if positions else None,
        )
    except CampaignNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Error retrieving campaign {campaign_id}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve campaign: {str(e)}"
        )


@router.delete("/{campaign_id}", status_code=204)
async def delete_campaign(campaign_id: str, store: CampaignStoreDep) -> Response:
    """Delete a stored campaign."""
    try:
        store.delete(safe_campaign_id(campaign_id))
        return Response(status_code=204)
    except CampaignNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Error deleting campaign {campaign_id}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to delete campaign: {str(e)}"
        )


@router.get("/{campaign_id}/segment")
async def get_segment(
    campaign_id: str,
    store: CampaignStoreDep,
    settings: SettingsDep,
    ref_m: float = Query(default=0.0, description="Window start, absolute metres"),
    len_m: Optional[float] = Query(default=None, gt=0, description="Window length in metres"),
    remote: bool = Query(default=False, description="Fetch from the remote segment service"),
) -> SegmentColumns:
    """
    Get a window of a campaign as parallel arrays.

    Args:
        campaign_id: Campaign id
        ref_m: Window start in absolute metres (e.g. 333800)
        len_m: Window length in metres (default: settings.default_segment_len_m)
        remote: Fetch from the remote segment service instead of the local store

    Returns:
        { km_abs_m: [...], curv: [...], ..., gage: [...] }

    Raises:
        HTTPException(404) if the campaign does not exist locally
        HTTPException(502) if the remote service fails on every attempt
    """
    cid = safe_campaign_id(campaign_id)
    length = len_m if len_m is not None else settings.default_segment_len_m
    try:
        if remote:
            segment = await fetch_segment(cid, ref_m, length, settings)
        else:
            segment = slice_segment(store.load(cid).campaign, ref_m, length)
        return segment_to_columns(segment)
    except CampaignNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SegmentFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.exception(f"Error building segment for campaign {campaign_id}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to build segment: {str(e)}"
        )


@router.get("/{campaign_id}/export")
async def export_campaign(campaign_id: str, store: CampaignStoreDep) -> Response:
    """Download a stored campaign as CSV (km_abs_m plus one column per channel)."""
    try:
        campaign = store.load(safe_campaign_id(campaign_id)).campaign
        return Response(
            content=campaign_to_csv(campaign),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{campaign.id}.csv"'},
        )
    except CampaignNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Error exporting campaign {campaign_id}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to export campaign: {str(e)}"
        )
