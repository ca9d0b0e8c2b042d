"""経営ダッシュボード API ルート

GET /api/executive/summary?at=  → 200 ExecutiveSummaryResponse（ceo / manager のみ）
"""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from restops.domain.models import Role
from restops.entrypoints.api.deps import (
    StaffContext,
    get_dashboard_service,
    require_roles,
)
from restops.entrypoints.api.schemas import SnapshotResponse, snapshot_response
from restops.services.business_cycle import can_close
from restops.services.dashboard import DashboardService

router = APIRouter(prefix="/executive", tags=["executive"])


class LatenessResponse(BaseModel):
    total: int
    late: int
    on_time: int
    late_rate: int


class BusinessCycleResponse(BaseModel):
    business_date: date
    start: datetime
    end: datetime | None
    is_open: bool


class ExecutiveSummaryResponse(BaseModel):
    business_date: date
    roles: list[SnapshotResponse]
    lateness: LatenessResponse
    business_cycle: BusinessCycleResponse | None
    can_close: bool
    close_blocked_reason: str | None


@router.get("/summary", response_model=ExecutiveSummaryResponse)
async def executive_summary(
    at: datetime | None = None,
    ctx: StaffContext = Depends(require_roles(Role.CEO, Role.MANAGER)),
    service: DashboardService = Depends(get_dashboard_service),
) -> ExecutiveSummaryResponse:
    """全ロールの完了率・遅延提出・営業サイクルを返す"""
    summary = service.executive_summary(ctx.restaurant_id, at)
    ok, reason = can_close(summary.close_gate)
    cycle = summary.business_cycle

    return ExecutiveSummaryResponse(
        business_date=summary.business_date,
        roles=[
            snapshot_response(role.value, snapshot)
            for role, snapshot in summary.snapshots.items()
        ],
        lateness=LatenessResponse(
            total=summary.lateness.total,
            late=summary.lateness.late,
            on_time=summary.lateness.on_time,
            late_rate=summary.lateness.late_rate,
        ),
        business_cycle=(
            BusinessCycleResponse(
                business_date=cycle.business_date,
                start=cycle.start,
                end=cycle.end,
                is_open=cycle.is_open,
            )
            if cycle is not None
            else None
        ),
        can_close=ok,
        close_blocked_reason=reason,
    )
