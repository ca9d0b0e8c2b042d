"""API レスポンススキーマ（複数ルートで共有するもの）"""

from __future__ import annotations

from pydantic import BaseModel

from restops.domain.models import CompletionSnapshot, Period
from restops.services.workflow_config import format_time_of_day


class PeriodResponse(BaseModel):
    id: str
    display_name: str
    start_time: str
    end_time: str
    display_order: int
    is_event_driven: bool


class MissingTaskResponse(BaseModel):
    task_id: str
    title: str
    period_id: str
    period_name: str


class SnapshotResponse(BaseModel):
    role: str
    current_period: PeriodResponse | None
    total_tasks_due: int
    total_tasks_completed: int
    completion_rate: int
    missing_tasks: list[MissingTaskResponse]


def period_response(period: Period | None) -> PeriodResponse | None:
    if period is None:
        return None
    return PeriodResponse(
        id=period.id,
        display_name=period.display_name,
        start_time=format_time_of_day(period.start),
        end_time=format_time_of_day(period.end),
        display_order=period.display_order,
        is_event_driven=period.is_event_driven,
    )


def snapshot_response(role: str, snapshot: CompletionSnapshot) -> SnapshotResponse:
    return SnapshotResponse(
        role=role,
        current_period=period_response(snapshot.current_period),
        total_tasks_due=snapshot.total_tasks_due,
        total_tasks_completed=snapshot.total_tasks_completed,
        completion_rate=snapshot.completion_rate,
        missing_tasks=[
            MissingTaskResponse(
                task_id=m.task_id,
                title=m.task.title,
                period_id=m.period_id,
                period_name=m.period_name,
            )
            for m in snapshot.missing_tasks
        ],
    )
