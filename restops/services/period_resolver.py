"""Period Resolver & Completion Calculator

時間帯の判定と完了率の計算を行う純粋関数群。
I/O なし・時計の読み取りなし（now は必ず引数で受け取る）。
同じ入力には常に同じ結果を返す。
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from datetime import datetime, time

from restops.domain.models import (
    CompletionSnapshot,
    MissingTask,
    Period,
    Role,
    TaskDefinition,
)

# 后厨のシフトは前厅の閉店時間帯より先に終わる
CHEF_EXCLUDED_PERIOD_ID = "closing"


def minutes_since_midnight(value: datetime | time) -> int:
    """時刻を 0:00 からの経過分に変換する"""
    return value.hour * 60 + value.minute


def is_period_active(period: Period, now: datetime | time) -> bool:
    """now が period の時間枠に含まれるか（日付またぎ対応）"""
    current = minutes_since_midnight(now)
    start = minutes_since_midnight(period.start)
    end = minutes_since_midnight(period.end)

    if end < start:
        return current >= start or current < end
    return start <= current < end


def resolve_current_period(periods: Iterable[Period], now: datetime) -> Period | None:
    """
    現在の時間帯を返す。

    時間帯が重なっている場合（設定ミス）はリスト順で最初のものを採用する。

    Returns:
        Period | None: どの時間枠にも入らない場合（閉店中）は None
    """
    for period in periods:
        if is_period_active(period, now):
            return period
    return None


def resolve_next_period(periods: Iterable[Period], now: datetime) -> Period | None:
    """
    次に始まる時間帯を返す。

    全時間帯を過ぎている場合は翌日の最初の時間帯を返す。
    """
    periods = list(periods)
    if not periods:
        return None

    current = minutes_since_midnight(now)
    for period in periods:
        if current < minutes_since_midnight(period.start):
            return period
    return periods[0]


def period_start_on(period: Period, now: datetime) -> datetime:
    """now と同じ日付での period の開始日時"""
    return now.replace(
        hour=period.start.hour, minute=period.start.minute, second=0, microsecond=0
    )


def has_period_started(period: Period, now: datetime) -> bool:
    return now >= period_start_on(period, now)


def completion_rate(completed: int, due: int) -> int:
    """
    完了率（%）を四捨五入で返す。分母が 0 の場合は 100。

    整数演算で丸める。
    """
    if due <= 0:
        return 100
    return (200 * completed + due) // (2 * due)


def _counted_tasks(
    tasks: Iterable[TaskDefinition], period_id: str
) -> list[TaskDefinition]:
    return [
        t for t in tasks if t.period_id == period_id and t.counts_toward_completion
    ]


def compute_completion_snapshot(
    periods: Iterable[Period],
    task_defs_by_role: Mapping[Role, Iterable[TaskDefinition]],
    completed_task_ids: Collection[str],
    role: Role,
    now: datetime,
) -> CompletionSnapshot:
    """
    ロールの完了率スナップショットを計算する。

    - 分母: 開始済みの時間帯＋現在の時間帯のタスク（通知・フローティングを除く）
    - 未提出タスク: 開始済みかつ現在でない時間帯のうち、完了していないもの
    - chef は "closing" 時間帯を分母・未提出タスクの両方から除外

    Args:
        periods: 時間帯（display_order 順）
        task_defs_by_role: ロール -> タスク定義
        completed_task_ids: 完了扱いのタスクID（呼び出し側で審査リンクを解決済み）
        role: 集計対象のロール
        now: 基準時刻

    Returns:
        CompletionSnapshot
    """
    periods = list(periods)
    role_tasks = list(task_defs_by_role.get(role, ()))
    current_period = resolve_current_period(periods, now)
    current_id = current_period.id if current_period else None

    total_due = 0
    total_completed = 0
    missing: list[MissingTask] = []
    seen_missing: set[str] = set()

    for period in periods:
        if role is Role.CHEF and period.id == CHEF_EXCLUDED_PERIOD_ID:
            continue

        started = has_period_started(period, now)
        if not started and period.id != current_id:
            continue

        tasks = _counted_tasks(role_tasks, period.id)
        done = [t for t in tasks if t.id in completed_task_ids]
        total_due += len(tasks)
        total_completed += len(done)

        if period.id == current_id:
            continue

        for task in tasks:
            if task.id in completed_task_ids or task.id in seen_missing:
                continue
            seen_missing.add(task.id)
            missing.append(
                MissingTask(task=task, period_id=period.id, period_name=period.display_name)
            )

    return CompletionSnapshot(
        current_period=current_period,
        total_tasks_due=total_due,
        total_tasks_completed=total_completed,
        completion_rate=completion_rate(total_completed, total_due),
        missing_tasks=tuple(missing),
    )
