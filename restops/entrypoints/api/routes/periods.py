"""時間帯 API ルート

GET /api/periods              → 200 [Period...]
GET /api/periods/current?at=  → 200 { current, next }
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from restops.entrypoints.api.deps import (
    StaffContext,
    get_dashboard_service,
    get_staff_context,
)
from restops.entrypoints.api.schemas import PeriodResponse, period_response
from restops.services.dashboard import DashboardService

router = APIRouter(prefix="/periods", tags=["periods"])


class CurrentPeriodResponse(BaseModel):
    current: PeriodResponse | None
    next: PeriodResponse | None


@router.get("", response_model=list[PeriodResponse])
async def list_periods(
    ctx: StaffContext = Depends(get_staff_context),
    service: DashboardService = Depends(get_dashboard_service),
) -> list[PeriodResponse]:
    """店舗の時間帯を display_order 順で返す"""
    return [period_response(p) for p in service.periods(ctx.restaurant_id)]


@router.get("/current", response_model=CurrentPeriodResponse)
async def current_period(
    at: datetime | None = None,
    ctx: StaffContext = Depends(get_staff_context),
    service: DashboardService = Depends(get_dashboard_service),
) -> CurrentPeriodResponse:
    """
    現在の時間帯と次の時間帯を返す。

    クエリパラメータ:
        at: 基準時刻（ISO 8601、省略時は現在時刻）
    """
    current, upcoming = service.current_and_next_period(ctx.restaurant_id, at)
    return CurrentPeriodResponse(
        current=period_response(current), next=period_response(upcoming)
    )
