"""SubmissionService - タスク提出・審査・再提出

Ports（ABC）にのみ依存し、Firestore / GCS の実装詳細からは独立。

審査ルール:
- 店長（manager）のタスクは提出と同時に approved（審査者＝提出者）
- 値班マネージャー（duty_manager）のタスクは pending で作成し、店長が審査する
- その他（chef）は審査なし
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime, time

from restops.domain.errors import NotFoundError, RepositoryError, SubmissionError
from restops.domain.models import (
    RecordStatus,
    ReviewStatus,
    Role,
    TaskDefinition,
    TaskSubmissionRecord,
)
from restops.domain.ports import MediaStorage, SubmissionRepository, WorkflowConfigSource
from restops.services.business_cycle import DEFAULT_ROLLOVER, business_date_for
from restops.services.lateness import is_late

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MediaUpload:
    """提出に添付するファイル"""

    filename: str
    content: bytes
    content_type: str


def media_folder(content_type: str) -> str:
    if content_type.startswith("image/"):
        return "photos"
    if content_type.startswith("audio/"):
        return "audio"
    return "documents"


def media_path(
    restaurant_id: str,
    upload: MediaUpload,
    task_id: str,
    submitted_at: datetime,
    index: int = 0,
) -> str:
    """
    ストレージ上のパスを生成する。

    パス規約: {restaurant_id}/{photos|audio|documents}/{YYYY-MM-DD}/{task_id}_{epoch_ms}_{index}{ext}
    """
    ext = os.path.splitext(upload.filename)[1].lower()
    stamp = int(submitted_at.timestamp() * 1000)
    return (
        f"{restaurant_id}/{media_folder(upload.content_type)}/"
        f"{submitted_at.date().isoformat()}/{task_id}_{stamp}_{index}{ext}"
    )


class SubmissionService:
    """タスク提出レコードのライフサイクルを管理する"""

    def __init__(
        self,
        repository: SubmissionRepository,
        config_source: WorkflowConfigSource,
        media_storage: MediaStorage | None = None,
        clock: Callable[[], datetime] | None = None,
        rollover: time = DEFAULT_ROLLOVER,
    ) -> None:
        """
        Args:
            repository: 提出レコードの永続化（Firestore等）
            config_source: 時間帯・タスク定義の読み込み
            media_storage: 写真・音声のアップロード先（None の場合は添付不可）
            clock: 現在時刻を返す関数（テスト用に差し替え可能）
            rollover: 営業日の切り替え時刻
        """
        self._repo = repository
        self._config = config_source
        self._media = media_storage
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._rollover = rollover

    def submit(
        self,
        restaurant_id: str,
        user_id: str,
        role: Role,
        task_id: str,
        text_content: str = "",
        metadata: dict | None = None,
        media: Sequence[MediaUpload] = (),
    ) -> TaskSubmissionRecord:
        """
        タスクを提出する。

        Raises:
            NotFoundError: タスク定義が存在しない場合
            SubmissionError: 通知タスク・他ロールのタスクに提出しようとした場合、添付先がない場合
        """
        task = self._find_task(restaurant_id, task_id)
        if task.role is not role:
            raise SubmissionError(
                f"Task {task_id} belongs to role {task.role.value}, not {role.value}"
            )
        if task.is_notice:
            raise SubmissionError(f"Notice task does not accept submissions: {task_id}")

        now = self._clock()
        business_date = business_date_for(now, self._rollover)
        period = self._find_period(restaurant_id, task.period_id)

        photo_urls, audio_url = self._upload_media(restaurant_id, task_id, now, media)

        review_status, reviewed_by, reviewed_at = self._initial_review(task, user_id, now)
        record = TaskSubmissionRecord(
            id=str(uuid.uuid4()),
            restaurant_id=restaurant_id,
            task_id=task.id,
            user_id=user_id,
            business_date=business_date,
            period_id=task.period_id,
            status=RecordStatus.SUBMITTED,
            submission_kind=task.submission_kind,
            text_content=text_content,
            photo_urls=photo_urls,
            audio_url=audio_url,
            metadata=dict(metadata or {}),
            is_late=is_late(period, business_date, now),
            review_status=review_status,
            reviewed_by=reviewed_by,
            reviewed_at=reviewed_at,
            created_at=now,
        )
        record = replace(record, id=self._repo.create(record))
        logger.info(
            "Task submitted: restaurant_id=%s, task_id=%s, record_id=%s, late=%s",
            restaurant_id,
            task_id,
            record.id,
            record.is_late,
        )
        return record

    def list_for_date(
        self,
        restaurant_id: str,
        business_date: date,
        user_id: str | None = None,
    ) -> list[TaskSubmissionRecord]:
        return self._repo.list_for_date(restaurant_id, business_date, user_id)

    def review(
        self,
        restaurant_id: str,
        record_id: str,
        decision: ReviewStatus,
        reviewer_id: str,
        reject_reason: str | None = None,
    ) -> TaskSubmissionRecord:
        """
        値班マネージャーの提出を審査する（approved / rejected）。

        Raises:
            NotFoundError: レコードが存在しない場合
            SubmissionError: 審査待ちでないレコード、または decision が pending の場合
        """
        if decision is ReviewStatus.PENDING:
            raise SubmissionError("Review decision must be approved or rejected")

        record = self._get_record(restaurant_id, record_id)
        if record.review_status is not ReviewStatus.PENDING:
            raise SubmissionError(f"Record is not pending review: {record_id}")

        self._repo.update_review(
            restaurant_id,
            record_id,
            decision,
            reviewed_by=reviewer_id,
            reject_reason=reject_reason if decision is ReviewStatus.REJECTED else None,
        )
        logger.info(
            "Record reviewed: record_id=%s, decision=%s, reviewer=%s",
            record_id,
            decision.value,
            reviewer_id,
        )
        return self._get_record(restaurant_id, record_id)

    def resubmit(
        self,
        restaurant_id: str,
        record_id: str,
        user_id: str,
        role: Role,
        text_content: str | None = None,
        metadata: dict | None = None,
        media: Sequence[MediaUpload] = (),
    ) -> TaskSubmissionRecord:
        """
        却下された提出を再提出する。元のレコードは残し、新しいレコードを作成する。

        Raises:
            NotFoundError: レコードが存在しない場合
            SubmissionError: 却下されていないレコード、または本人・店長以外の場合
        """
        original = self._get_record(restaurant_id, record_id)
        if user_id != original.user_id and role is not Role.MANAGER:
            raise SubmissionError(
                f"Only the submitter or a manager can resubmit: {record_id}"
            )
        if original.review_status is not ReviewStatus.REJECTED:
            raise SubmissionError(f"Only rejected records can be resubmitted: {record_id}")

        now = self._clock()
        period = self._find_period(restaurant_id, original.period_id)
        photo_urls, audio_url = self._upload_media(
            restaurant_id, original.task_id, now, media
        )

        record = replace(
            original,
            id=str(uuid.uuid4()),
            user_id=user_id,
            status=RecordStatus.SUBMITTED,
            text_content=original.text_content if text_content is None else text_content,
            photo_urls=photo_urls or original.photo_urls,
            audio_url=audio_url or original.audio_url,
            metadata=dict(original.metadata if metadata is None else metadata),
            is_late=is_late(period, original.business_date, now),
            review_status=ReviewStatus.PENDING,
            reviewed_by=None,
            reviewed_at=None,
            reject_reason=None,
            created_at=now,
        )
        record = replace(record, id=self._repo.create(record))
        logger.info(
            "Record resubmitted: original=%s, new=%s", record_id, record.id
        )
        return record

    def delete(self, restaurant_id: str, record_id: str) -> list[str]:
        """
        提出レコードと添付ファイルを削除する。

        ファイル削除の失敗はログに残して続行し、レコードは必ず削除する。

        Returns:
            削除した添付ファイルのパス

        Raises:
            NotFoundError: レコードが存在しない場合
        """
        record = self._get_record(restaurant_id, record_id)

        paths = list(record.photo_urls)
        if record.audio_url:
            paths.append(record.audio_url)

        deleted: list[str] = []
        if paths and self._media is None:
            logger.warning(
                "Media storage is not configured, files kept: record_id=%s", record_id
            )
        elif self._media is not None:
            for path in paths:
                try:
                    self._media.delete(path)
                except RepositoryError as e:
                    logger.error("Failed to delete media: path=%s, error=%s", path, e)
                    continue
                deleted.append(path)

        self._repo.delete(restaurant_id, record_id)
        logger.info(
            "Record deleted: record_id=%s, files=%d/%d", record_id, len(deleted), len(paths)
        )
        return deleted

    # ── 内部ヘルパー ──────────────────────────────────────────────────────────

    @staticmethod
    def _initial_review(
        task: TaskDefinition, user_id: str, now: datetime
    ) -> tuple[ReviewStatus | None, str | None, datetime | None]:
        if task.role is Role.MANAGER:
            return ReviewStatus.APPROVED, user_id, now
        if task.role is Role.DUTY_MANAGER:
            return ReviewStatus.PENDING, None, None
        return None, None, None

    def _find_task(self, restaurant_id: str, task_id: str) -> TaskDefinition:
        for task in self._config.load_task_definitions(restaurant_id):
            if task.id == task_id:
                return task
        raise NotFoundError(f"Task not found: {task_id}")

    def _find_period(self, restaurant_id: str, period_id: str | None):
        if period_id is None:
            return None
        for period in self._config.load_periods(restaurant_id):
            if period.id == period_id:
                return period
        logger.warning(
            "Period not found for lateness check: restaurant_id=%s, period_id=%s",
            restaurant_id,
            period_id,
        )
        return None

    def _get_record(self, restaurant_id: str, record_id: str) -> TaskSubmissionRecord:
        record = self._repo.get(restaurant_id, record_id)
        if record is None:
            raise NotFoundError(f"Record not found: {record_id}")
        return record

    def _upload_media(
        self,
        restaurant_id: str,
        task_id: str,
        now: datetime,
        media: Sequence[MediaUpload],
    ) -> tuple[tuple[str, ...], str | None]:
        if not media:
            return (), None
        if self._media is None:
            raise SubmissionError("Media storage is not configured")

        photos: list[str] = []
        audio_url: str | None = None
        for index, upload in enumerate(media):
            path = self._media.upload(
                media_path(restaurant_id, upload, task_id, now, index),
                upload.content,
                upload.content_type,
            )
            if upload.content_type.startswith("audio/"):
                audio_url = path
            else:
                photos.append(path)
        return tuple(photos), audio_url
