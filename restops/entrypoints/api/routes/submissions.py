"""タスク提出 API ルート

GET  /api/submissions?date=           → 200 [Submission...]
POST /api/submissions                 → 201 Submission（multipart/form-data）
POST /api/submissions/{id}/review     → 200 Submission（manager のみ）
POST /api/submissions/{id}/resubmit   → 201 Submission（multipart/form-data）
DELETE /api/submissions/{id}          → 204（manager のみ）
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    UploadFile,
    status,
)
from pydantic import BaseModel

from restops.domain.models import ReviewStatus, Role, TaskSubmissionRecord
from restops.entrypoints.api.deps import (
    StaffContext,
    get_dashboard_service,
    get_staff_context,
    get_submission_service,
    require_roles,
)
from restops.services.dashboard import DashboardService
from restops.services.submission_service import MediaUpload, SubmissionService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/submissions", tags=["submissions"])


class SubmissionResponse(BaseModel):
    id: str
    task_id: str
    user_id: str
    business_date: date
    period_id: str | None
    status: str
    submission_type: str
    text_content: str
    photo_urls: list[str]
    audio_url: str | None
    metadata: dict
    is_late: bool
    review_status: str | None
    reviewed_by: str | None
    reject_reason: str | None
    created_at: datetime | None


class ReviewRequest(BaseModel):
    decision: ReviewStatus
    reject_reason: str | None = None


def _to_response(record: TaskSubmissionRecord) -> SubmissionResponse:
    return SubmissionResponse(
        id=record.id,
        task_id=record.task_id,
        user_id=record.user_id,
        business_date=record.business_date,
        period_id=record.period_id,
        status=record.status.value,
        submission_type=record.submission_kind.value,
        text_content=record.text_content,
        photo_urls=list(record.photo_urls),
        audio_url=record.audio_url,
        metadata=record.metadata,
        is_late=record.is_late,
        review_status=record.review_status.value if record.review_status else None,
        reviewed_by=record.reviewed_by,
        reject_reason=record.reject_reason,
        created_at=record.created_at,
    )


def _parse_metadata(raw: str | None) -> dict | None:
    """フォームの metadata（JSON文字列）を dict に変換する"""
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Invalid metadata JSON: %s", e)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="metadata must be a JSON object",
        ) from e
    if not isinstance(value, dict):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="metadata must be a JSON object",
        )
    return value


async def _read_uploads(files: list[UploadFile]) -> list[MediaUpload]:
    return [
        MediaUpload(
            filename=f.filename or "upload",
            content=await f.read(),
            content_type=f.content_type or "application/octet-stream",
        )
        for f in files
    ]


@router.get("", response_model=list[SubmissionResponse])
async def list_submissions(
    business_date: date | None = Query(None, alias="date"),
    ctx: StaffContext = Depends(get_staff_context),
    service: SubmissionService = Depends(get_submission_service),
    dashboard: DashboardService = Depends(get_dashboard_service),
) -> list[SubmissionResponse]:
    """
    営業日の提出一覧を返す。

    クエリパラメータ:
        date: 営業日（省略時は現在の営業日）

    店長・経営者は全員分、それ以外は自分の提出のみ。
    """
    business_date = business_date or dashboard.business_date()
    user_id = None if ctx.role in (Role.MANAGER, Role.CEO) else ctx.uid
    records = service.list_for_date(ctx.restaurant_id, business_date, user_id)
    return [_to_response(r) for r in records]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SubmissionResponse)
async def submit(
    task_id: str = Form(...),
    text_content: str = Form(""),
    metadata: str | None = Form(None),
    files: list[UploadFile] = File(default=[]),
    ctx: StaffContext = Depends(get_staff_context),
    service: SubmissionService = Depends(get_submission_service),
) -> SubmissionResponse:
    """タスクを提出する（写真・音声は files で添付）"""
    record = service.submit(
        ctx.restaurant_id,
        ctx.uid,
        ctx.role,
        task_id,
        text_content=text_content,
        metadata=_parse_metadata(metadata),
        media=await _read_uploads(files),
    )
    return _to_response(record)


@router.post("/{record_id}/review", response_model=SubmissionResponse)
async def review(
    record_id: str,
    body: ReviewRequest,
    ctx: StaffContext = Depends(require_roles(Role.MANAGER)),
    service: SubmissionService = Depends(get_submission_service),
) -> SubmissionResponse:
    """値班マネージャーの提出を承認・却下する"""
    record = service.review(
        ctx.restaurant_id,
        record_id,
        body.decision,
        reviewer_id=ctx.uid,
        reject_reason=body.reject_reason,
    )
    return _to_response(record)


@router.post(
    "/{record_id}/resubmit",
    status_code=status.HTTP_201_CREATED,
    response_model=SubmissionResponse,
)
async def resubmit(
    record_id: str,
    text_content: str | None = Form(None),
    metadata: str | None = Form(None),
    files: list[UploadFile] = File(default=[]),
    ctx: StaffContext = Depends(get_staff_context),
    service: SubmissionService = Depends(get_submission_service),
) -> SubmissionResponse:
    """却下された提出を再提出する"""
    record = service.resubmit(
        ctx.restaurant_id,
        record_id,
        ctx.uid,
        ctx.role,
        text_content=text_content,
        metadata=_parse_metadata(metadata),
        media=await _read_uploads(files),
    )
    return _to_response(record)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_submission(
    record_id: str,
    ctx: StaffContext = Depends(require_roles(Role.MANAGER)),
    service: SubmissionService = Depends(get_submission_service),
) -> None:
    """提出レコードと添付ファイルを削除する"""
    service.delete(ctx.restaurant_id, record_id)
