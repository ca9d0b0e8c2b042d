"""営業サイクル・時間帯遷移 API ルート

GET  /api/business-cycle?date=   → 200 { business_date, start, end, is_open }
POST /api/period-transitions     → 201 { id }
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from restops.adapters.firestore_repository import FirestorePeriodTransitionRepository
from restops.config import AppConfig
from restops.domain.models import PeriodTransition, Role, TransitionAction
from restops.entrypoints.api.deps import (
    StaffContext,
    get_config,
    get_dashboard_service,
    get_staff_context,
    get_transition_repo,
    require_roles,
)
from restops.services.business_cycle import business_cycle_range
from restops.services.dashboard import DashboardService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["business-cycle"])


class BusinessCycleRangeResponse(BaseModel):
    business_date: date
    start: datetime
    end: datetime
    is_open: bool
    recorded: bool  # 実際の開店記録に基づくか（False はデフォルトの営業時間）


class TransitionRequest(BaseModel):
    period_id: str
    action: TransitionAction = TransitionAction.ENTER


class TransitionResponse(BaseModel):
    id: str
    business_date: date


@router.get("/business-cycle", response_model=BusinessCycleRangeResponse)
async def get_business_cycle(
    business_date: date | None = Query(None, alias="date"),
    ctx: StaffContext = Depends(get_staff_context),
    service: DashboardService = Depends(get_dashboard_service),
    config: AppConfig = Depends(get_config),
) -> BusinessCycleRangeResponse:
    """
    営業日の開始・終了時刻を返す。

    開店記録がない場合はデフォルトの営業時間（開店〜翌日切り替え時刻）を返す。
    """
    business_date = business_date or service.business_date()
    cycle = service.business_cycle(ctx.restaurant_id, business_date)
    start, end = business_cycle_range(
        cycle,
        business_date,
        rollover=config.business_day_rollover,
        tzinfo=service.local_now().tzinfo,
    )
    return BusinessCycleRangeResponse(
        business_date=business_date,
        start=start,
        end=end,
        is_open=cycle.is_open if cycle is not None else False,
        recorded=cycle is not None,
    )


@router.post(
    "/period-transitions",
    status_code=status.HTTP_201_CREATED,
    response_model=TransitionResponse,
)
async def record_transition(
    body: TransitionRequest,
    ctx: StaffContext = Depends(require_roles(Role.MANAGER, Role.DUTY_MANAGER)),
    service: DashboardService = Depends(get_dashboard_service),
    repo: FirestorePeriodTransitionRepository = Depends(get_transition_repo),
) -> TransitionResponse:
    """時間帯の切り替え（開店・閉店など）を記録する"""
    now = service.local_now()
    business_date = service.business_date(now)
    transition_id = repo.record(
        PeriodTransition(
            id=str(uuid.uuid4()),
            restaurant_id=ctx.restaurant_id,
            user_id=ctx.uid,
            business_date=business_date,
            period_id=body.period_id,
            action=body.action,
            timestamp=now,
        )
    )
    logger.info(
        "Period transition recorded: restaurant_id=%s, period_id=%s, action=%s",
        ctx.restaurant_id,
        body.period_id,
        body.action.value,
    )
    return TransitionResponse(id=transition_id, business_date=business_date)
