"""Admin statistics API."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_services, require_admin
from ..models import SummaryResponse, TimeseriesResponse
from .store import parse_days

router = APIRouter(
    prefix="/api/admin/stats/v1",
    tags=["admin-stats"],
    dependencies=[Depends(require_admin)],
)


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    days: Optional[str] = Query(None, description="Window length: 1, 7, 30, 90 or 365"),
    services=Depends(get_services),
) -> SummaryResponse:
    """Total and average page views and unique visitors over the window."""
    summary = await services.analytics.get_summary(parse_days(days))
    return SummaryResponse(**summary)


@router.get("/timeseries", response_model=TimeseriesResponse)
async def get_timeseries(
    days: Optional[str] = Query(None, description="Window length: 1, 7, 30, 90 or 365"),
    sample: str = Query("auto", description="auto, daily or weekly"),
    services=Depends(get_services),
) -> TimeseriesResponse:
    """Per-day series, summed into 7-day buckets for weekly sampling."""
    timeseries = await services.analytics.get_timeseries(parse_days(days), sample)
    return TimeseriesResponse(**timeseries)
