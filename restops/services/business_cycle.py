"""営業サイクル - 日付をまたぐ営業日の解決

開店（opening 時間帯への enter）から閉店（manual_close、または waiting 時間帯への
enter）までを1営業日として扱う。閉店は翌日未明（デフォルト 04:00 まで）に
なることがある。
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from datetime import date, datetime, time, timedelta

from restops.domain.models import (
    BusinessCycle,
    CompletionSnapshot,
    MissingTask,
    Period,
    PeriodTransition,
    Role,
    TaskDefinition,
    TransitionAction,
)
from restops.services.period_resolver import completion_rate

OPENING_PERIOD_ID = "opening"
WAITING_PERIOD_ID = "waiting"

DEFAULT_OPENING_TIME = time(10, 0)
DEFAULT_ROLLOVER = time(4, 0)

# 閉店判定の対象ロール（后厨は対象外）
CLOSE_GATE_ROLES: tuple[Role, ...] = (Role.MANAGER, Role.DUTY_MANAGER)


def business_date_for(now: datetime, rollover: time = DEFAULT_ROLLOVER) -> date:
    """
    now が属する営業日を返す。

    rollover より前の時刻（深夜の閉店作業）は前日の営業日に属する。
    """
    if now.time() < rollover:
        return now.date() - timedelta(days=1)
    return now.date()


def _is_closing(transition: PeriodTransition) -> bool:
    return transition.action is TransitionAction.MANUAL_CLOSE or (
        transition.action is TransitionAction.ENTER
        and transition.period_id == WAITING_PERIOD_ID
    )


def resolve_business_cycle(
    transitions: Iterable[PeriodTransition],
    business_date: date,
    rollover: time = DEFAULT_ROLLOVER,
) -> BusinessCycle | None:
    """
    時間帯遷移の記録から営業サイクルを求める。

    Args:
        transitions: 遷移の記録（営業日の前後を含んでいてもよい）
        business_date: 対象の営業日
        rollover: 翌日のこの時刻までの閉店記録を同じ営業日に含める

    Returns:
        BusinessCycle | None: 開店記録がない場合は None
    """
    transitions = sorted(transitions, key=lambda t: t.timestamp)

    openings = [
        t
        for t in transitions
        if t.business_date == business_date
        and t.period_id == OPENING_PERIOD_ID
        and t.action is TransitionAction.ENTER
    ]
    if not openings:
        return None
    opened = openings[0]

    limit = _at(opened.timestamp, business_date + timedelta(days=1), rollover)
    closings = [
        t
        for t in transitions
        if _is_closing(t) and opened.timestamp <= t.timestamp <= limit
    ]
    closed = closings[-1] if closings else None

    return BusinessCycle(
        business_date=business_date,
        start=opened.timestamp,
        end=closed.timestamp if closed else None,
        is_open=closed is None,
    )


def _at(reference: datetime, day: date, clock: time) -> datetime:
    """reference と同じタイムゾーンで day の clock 時刻を作る"""
    return datetime.combine(day, clock, tzinfo=reference.tzinfo)


def business_cycle_range(
    cycle: BusinessCycle | None,
    business_date: date,
    opening: time = DEFAULT_OPENING_TIME,
    rollover: time = DEFAULT_ROLLOVER,
    tzinfo=None,
) -> tuple[datetime, datetime]:
    """
    営業サイクルの範囲を返す。

    実際の開店・閉店記録があればそれを使い、なければデフォルトの
    開店時刻〜翌日 rollover 時刻を使う。
    """
    if cycle is not None:
        tzinfo = cycle.start.tzinfo
    start = (
        cycle.start
        if cycle is not None
        else datetime.combine(business_date, opening, tzinfo=tzinfo)
    )
    end = (
        cycle.end
        if cycle is not None and cycle.end is not None
        else datetime.combine(business_date + timedelta(days=1), rollover, tzinfo=tzinfo)
    )
    return start, end


def can_close(snapshot: CompletionSnapshot) -> tuple[bool, str | None]:
    """
    閉店可能かを判定する。全タスクが完了している場合のみ閉店できる。

    Returns:
        (閉店可能か, 不可の場合の理由)
    """
    if (
        snapshot.total_tasks_completed >= snapshot.total_tasks_due
        and not snapshot.missing_tasks
    ):
        return True, None

    pending = snapshot.total_tasks_due - snapshot.total_tasks_completed
    titles = ", ".join(m.task.title for m in snapshot.missing_tasks)
    reason = f"{pending} task(s) not completed"
    if titles:
        reason += f": {titles}"
    return False, reason


def business_day_snapshot(
    periods: Iterable[Period],
    task_defs_by_role: Mapping[Role, Iterable[TaskDefinition]],
    completed_task_ids: Collection[str],
    roles: Iterable[Role] = CLOSE_GATE_ROLES,
) -> CompletionSnapshot:
    """
    営業日全体のスナップショットを計算する（閉店判定用）。

    現在時刻に関係なく、全時間帯の対象ロールのタスクを分母に含める。
    深夜（日付またぎ後）でも昼間の未提出タスクが残る。

    Args:
        periods: 時間帯（display_order 順）
        task_defs_by_role: ロール -> タスク定義
        completed_task_ids: 完了扱いのタスクID（対象ロール分の和集合）
        roles: 集計対象のロール
    """
    tasks = [t for role in roles for t in task_defs_by_role.get(role, ())]

    total_due = 0
    total_completed = 0
    missing: list[MissingTask] = []
    seen: set[str] = set()

    for period in periods:
        for task in tasks:
            if task.period_id != period.id or not task.counts_toward_completion:
                continue
            if task.id in seen:
                continue
            seen.add(task.id)
            total_due += 1
            if task.id in completed_task_ids:
                total_completed += 1
                continue
            missing.append(
                MissingTask(task=task, period_id=period.id, period_name=period.display_name)
            )

    return CompletionSnapshot(
        current_period=None,
        total_tasks_due=total_due,
        total_tasks_completed=total_completed,
        completion_rate=completion_rate(total_completed, total_due),
        missing_tasks=tuple(missing),
    )
