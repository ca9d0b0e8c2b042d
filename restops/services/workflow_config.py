"""ワークフロー設定の読み込みと検証

Firestore 等から取得した生の行データを Period / TaskDefinition に変換し、
不正な設定は読み込み時点で ConfigurationError として弾く。
完了率計算（period_resolver）は検証済みの入力だけを受け取る。
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import time

from restops.domain.errors import ConfigurationError
from restops.domain.models import Period, Role, SubmissionKind, TaskDefinition


# "HH:MM"。DBの time 型は秒付き（"HH:MM:SS"）で返るため秒も許容する
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


def parse_time_of_day(value: str) -> time:
    """
    "HH:MM" 形式の文字列を time に変換する。

    Raises:
        ConfigurationError: 形式が不正な場合
    """
    if not isinstance(value, str):
        raise ConfigurationError(f"Time must be a string in HH:MM format: {value!r}")
    match = _TIME_RE.match(value.strip())
    if not match:
        raise ConfigurationError(f"Invalid time of day (expected HH:MM): {value!r}")
    return time(int(match.group(1)), int(match.group(2)))


def format_time_of_day(value: time) -> str:
    return value.strftime("%H:%M")


def build_period(period_id: str, data: dict) -> Period:
    """生データから Period を生成する"""
    try:
        start = data["start_time"]
        end = data["end_time"]
    except KeyError as e:
        raise ConfigurationError(f"Period {period_id!r} is missing {e.args[0]}") from e

    return Period(
        id=period_id,
        display_name=data.get("display_name") or data.get("name") or period_id,
        start=parse_time_of_day(start),
        end=parse_time_of_day(end),
        display_order=int(data.get("display_order") or 0),
        is_event_driven=bool(data.get("is_event_driven") or False),
    )


def parse_role(value: str) -> Role:
    try:
        return Role((value or "").strip().lower())
    except ValueError as e:
        raise ConfigurationError(f"Unknown role: {value!r}") from e


def parse_submission_kind(value: str | None) -> SubmissionKind:
    if not value:
        return SubmissionKind.NONE
    try:
        return SubmissionKind(value.strip().lower())
    except ValueError as e:
        raise ConfigurationError(f"Unknown submission type: {value!r}") from e


def build_task_definition(task_id: str, data: dict) -> TaskDefinition:
    """生データから TaskDefinition を生成する"""
    title = data.get("title")
    if not title:
        raise ConfigurationError(f"Task {task_id!r} has no title")

    role = parse_role(data.get("role_code") or data.get("role") or "")
    is_floating = bool(data.get("is_floating") or False)
    period_id = data.get("period_id") or None

    if not is_floating and period_id is None:
        raise ConfigurationError(
            f"Task {task_id!r} is neither floating nor bound to a period"
        )

    return TaskDefinition(
        id=task_id,
        title=title,
        role=role,
        description=data.get("description") or "",
        submission_kind=parse_submission_kind(data.get("submission_type")),
        is_notice=bool(data.get("is_notice") or False),
        is_floating=is_floating,
        period_id=None if is_floating else period_id,
        linked_task_ids=tuple(data.get("linked_tasks") or ()),
        sort_order=int(data.get("sort_order") or 0),
    )


def _windows(period: Period) -> list[tuple[int, int]]:
    """時間枠を [start, end) の分区間に分解する（日付またぎは2区間）"""
    start = period.start.hour * 60 + period.start.minute
    end = period.end.hour * 60 + period.end.minute
    if end < start:
        return [(start, 24 * 60), (0, end)]
    return [(start, end)]


def _overlaps(a: Period, b: Period) -> bool:
    return any(
        s1 < e2 and s2 < e1 for s1, e1 in _windows(a) for s2, e2 in _windows(b)
    )


def validate_periods(periods: Iterable[Period]) -> list[Period]:
    """
    時間帯設定を検証し、display_order 順に並べて返す。

    - id の重複
    - display_order の重複
    - 時刻で終わる時間帯どうしの重なり（イベント駆動の時間帯は対象外）

    Raises:
        ConfigurationError: 上記いずれかに該当する場合
    """
    ordered = sorted(periods, key=lambda p: p.display_order)

    ids = [p.id for p in ordered]
    duplicated_ids = sorted({i for i in ids if ids.count(i) > 1})
    if duplicated_ids:
        raise ConfigurationError(f"Duplicate period ids: {', '.join(duplicated_ids)}")

    orders = [p.display_order for p in ordered]
    if len(set(orders)) != len(orders):
        raise ConfigurationError("Duplicate display_order in periods")

    clocked = [p for p in ordered if not p.is_event_driven]
    for i, a in enumerate(clocked):
        for b in clocked[i + 1 :]:
            if _overlaps(a, b):
                raise ConfigurationError(
                    f"Periods overlap: {a.id} "
                    f"({format_time_of_day(a.start)}-{format_time_of_day(a.end)}) and "
                    f"{b.id} ({format_time_of_day(b.start)}-{format_time_of_day(b.end)})"
                )

    return ordered


def group_tasks_by_role(
    task_definitions: Iterable[TaskDefinition],
) -> dict[Role, list[TaskDefinition]]:
    """タスク定義をロールごとに sort_order 順でまとめる"""
    grouped: dict[Role, list[TaskDefinition]] = {}
    for task in sorted(task_definitions, key=lambda t: t.sort_order):
        grouped.setdefault(task.role, []).append(task)
    return grouped
