"""完了率 API ルート

GET /api/summary?role=&at=  → 200 SnapshotResponse
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from restops.domain.models import TASK_ROLES, Role
from restops.entrypoints.api.deps import (
    StaffContext,
    get_dashboard_service,
    get_staff_context,
)
from restops.entrypoints.api.schemas import SnapshotResponse, snapshot_response
from restops.services.dashboard import DashboardService

router = APIRouter(prefix="/summary", tags=["summary"])


@router.get("", response_model=SnapshotResponse)
async def get_summary(
    role: Role | None = None,
    at: datetime | None = None,
    ctx: StaffContext = Depends(get_staff_context),
    service: DashboardService = Depends(get_dashboard_service),
) -> SnapshotResponse:
    """
    ロールの完了率スナップショットを返す。

    クエリパラメータ:
        role: 集計対象のロール（省略時は自分のロール）
        at: 基準時刻（ISO 8601、省略時は現在時刻）

    他ロールの集計を見られるのは店長のみ。
    """
    target = role or ctx.role
    if target not in TASK_ROLES:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Role has no tasks: {target.value}",
        )
    if target is not ctx.role and ctx.role not in (Role.MANAGER, Role.CEO):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="この操作の権限がありません。",
        )

    snapshot = service.role_summary(ctx.restaurant_id, target, at)
    return snapshot_response(target.value, snapshot)
