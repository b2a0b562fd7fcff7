from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from core.config import ALL, DEFAULT_HISTORICAL_TIME_RANGE, TERRITORY_REGIONS
from core.dashboard import WildfireDashboard
from core.errors import GatewayError
from core.historical import HistoricalService
from core.models import FilterSpecification, FireStats, HistoricalReport, Region, ViewState
from .validation import validate_time_range

router = APIRouter()


def get_dashboard(request: Request) -> WildfireDashboard:
    return request.app.state.dashboard


def get_historical(request: Request) -> HistoricalService:
    return request.app.state.historical


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/state", response_model=ViewState)
async def state(dashboard: WildfireDashboard = Depends(get_dashboard)):
    return dashboard.state()


@router.get("/stats", response_model=FireStats)
async def stats(dashboard: WildfireDashboard = Depends(get_dashboard)):
    return dashboard.stats


@router.get("/regions", response_model=List[Region])
def regions():
    return [
        Region(id=region_id, name=name, latitude=lat, longitude=lon)
        for region_id, name, lat, lon in TERRITORY_REGIONS
    ]


@router.post("/filters", response_model=ViewState)
async def apply_filters(filters: FilterSpecification, dashboard: WildfireDashboard = Depends(get_dashboard)):
    dashboard.apply_filters(filters)
    return dashboard.state()


@router.post("/region", status_code=202)
async def select_region(
    region: Optional[Region] = Body(None),
    dashboard: WildfireDashboard = Depends(get_dashboard),
):
    dashboard.select_region(region)
    return {"status": "accepted"}


@router.post("/refresh", status_code=202)
async def refresh(dashboard: WildfireDashboard = Depends(get_dashboard)):
    dashboard.refresh()
    return {"status": "accepted"}


@router.get("/historical", response_model=HistoricalReport)
async def historical(
    region: str = ALL,
    time_range: str = DEFAULT_HISTORICAL_TIME_RANGE,
    service: HistoricalService = Depends(get_historical),
):
    validate_time_range(time_range)
    try:
        return await service.load(region, time_range)
    except GatewayError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
