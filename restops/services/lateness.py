"""遅延提出の判定と集計"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta

from restops.domain.models import LatenessSummary, Period, TaskSubmissionRecord


def period_deadline(period: Period, business_date: date, tzinfo=None) -> datetime:
    """営業日における period の締め切り日時（日付またぎは翌日）"""
    day = business_date + timedelta(days=1) if period.wraps_midnight else business_date
    return datetime.combine(day, period.end, tzinfo=tzinfo)


def is_late(period: Period | None, business_date: date, submitted_at: datetime) -> bool:
    """
    締め切り後の提出かを判定する。

    時間帯に属さないタスク（フローティング）とイベント駆動の時間帯は遅延にならない。
    """
    if period is None or period.is_event_driven:
        return False
    return submitted_at > period_deadline(period, business_date, submitted_at.tzinfo)


def summarize_lateness(records: Iterable[TaskSubmissionRecord]) -> LatenessSummary:
    records = list(records)
    return LatenessSummary(total=len(records), late=sum(1 for r in records if r.is_late))
