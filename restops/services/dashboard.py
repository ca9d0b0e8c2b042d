"""DashboardService - 完了率ダッシュボードの組み立て

設定・提出レコードの取得（I/O）と、純粋関数による完了率計算をつなぐ。
状態はモジュールに持たず、DashboardContext として明示的に受け渡す。
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from restops.domain.models import (
    BusinessCycle,
    CompletionSnapshot,
    LatenessSummary,
    Period,
    Role,
    TASK_ROLES,
    TaskDefinition,
    TaskSubmissionRecord,
)
from restops.domain.ports import (
    PeriodTransitionRepository,
    SubmissionRepository,
    Subscription,
    WorkflowConfigSource,
)
from restops.services.business_cycle import (
    CLOSE_GATE_ROLES,
    DEFAULT_ROLLOVER,
    business_date_for,
    business_day_snapshot,
    resolve_business_cycle,
)
from restops.services.completion_set import build_completed_task_ids
from restops.services.lateness import summarize_lateness
from restops.services.period_resolver import (
    compute_completion_snapshot,
    resolve_current_period,
    resolve_next_period,
)
from restops.services.workflow_config import group_tasks_by_role, validate_periods

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardContext:
    """1営業日分の入力データ（完了率計算に渡す）"""

    restaurant_id: str
    business_date: date
    periods: tuple[Period, ...]
    task_definitions: tuple[TaskDefinition, ...]
    records: tuple[TaskSubmissionRecord, ...] = ()
    task_defs_by_role: dict[Role, list[TaskDefinition]] = field(default_factory=dict)

    def with_records(self, records: list[TaskSubmissionRecord]) -> DashboardContext:
        """提出レコードだけを差し替えたコンテキストを返す（リアルタイム更新用）"""
        return DashboardContext(
            restaurant_id=self.restaurant_id,
            business_date=self.business_date,
            periods=self.periods,
            task_definitions=self.task_definitions,
            records=tuple(records),
            task_defs_by_role=self.task_defs_by_role,
        )


@dataclass(frozen=True)
class ExecutiveSummary:
    """経営ダッシュボード用の集計"""

    restaurant_id: str
    business_date: date
    snapshots: dict[Role, CompletionSnapshot]
    lateness: LatenessSummary
    business_cycle: BusinessCycle | None
    close_gate: CompletionSnapshot  # 営業日全体（閉店判定用）


class DashboardService:
    """
    ロール別の完了率スナップショットを提供する。

    処理フロー:
    1. 時間帯・タスク定義を読み込み、検証する
    2. 営業日の提出レコードを取得する
    3. 完了タスクID集合を組み立てる（審査リンクの解決）
    4. compute_completion_snapshot で計算する
    """

    def __init__(
        self,
        config_source: WorkflowConfigSource,
        submissions: SubmissionRepository,
        transitions: PeriodTransitionRepository | None = None,
        timezone: str = "Asia/Shanghai",
        rollover: time = DEFAULT_ROLLOVER,
    ) -> None:
        """
        Args:
            config_source: 時間帯・タスク定義の読み込み
            submissions: 提出レコードの取得・購読
            transitions: 時間帯遷移（営業サイクルの解決に使用）
            timezone: 店舗のタイムゾーン（IANA名）
            rollover: 営業日の切り替え時刻
        """
        self._config = config_source
        self._submissions = submissions
        self._transitions = transitions
        self._tz = ZoneInfo(timezone)
        self._rollover = rollover

    def local_now(self) -> datetime:
        return datetime.now(self._tz)

    def to_local(self, value: datetime) -> datetime:
        """店舗のタイムゾーンに変換する（naive は店舗時刻とみなす）"""
        if value.tzinfo is None:
            return value.replace(tzinfo=self._tz)
        return value.astimezone(self._tz)

    def business_date(self, now: datetime | None = None) -> date:
        return business_date_for(self.to_local(now or self.local_now()), self._rollover)

    def periods(self, restaurant_id: str) -> list[Period]:
        """検証済みの時間帯一覧（display_order 順）"""
        return validate_periods(self._config.load_periods(restaurant_id))

    def current_and_next_period(
        self, restaurant_id: str, now: datetime | None = None
    ) -> tuple[Period | None, Period | None]:
        now = self.to_local(now or self.local_now())
        periods = self.periods(restaurant_id)
        return resolve_current_period(periods, now), resolve_next_period(periods, now)

    def load_context(self, restaurant_id: str, now: datetime) -> DashboardContext:
        """
        営業日の入力データを取得する。

        Raises:
            ConfigurationError: 時間帯・タスク定義が不正な場合
        """
        now = self.to_local(now)
        business_date = business_date_for(now, self._rollover)

        periods = self.periods(restaurant_id)
        task_defs = self._config.load_task_definitions(restaurant_id)
        records = self._submissions.list_for_date(restaurant_id, business_date)

        logger.info(
            "Loaded dashboard context: restaurant_id=%s, date=%s, periods=%d, tasks=%d, records=%d",
            restaurant_id,
            business_date,
            len(periods),
            len(task_defs),
            len(records),
        )
        return DashboardContext(
            restaurant_id=restaurant_id,
            business_date=business_date,
            periods=tuple(periods),
            task_definitions=tuple(task_defs),
            records=tuple(records),
            task_defs_by_role=group_tasks_by_role(task_defs),
        )

    def snapshot(
        self, context: DashboardContext, role: Role, now: datetime
    ) -> CompletionSnapshot:
        """コンテキストからロールのスナップショットを計算する（I/O なし）"""
        completed = build_completed_task_ids(
            context.records, context.task_definitions, role, context.business_date
        )
        return compute_completion_snapshot(
            context.periods,
            context.task_defs_by_role,
            completed,
            role,
            self.to_local(now),
        )

    def role_summary(
        self, restaurant_id: str, role: Role, now: datetime | None = None
    ) -> CompletionSnapshot:
        now = self.to_local(now or self.local_now())
        context = self.load_context(restaurant_id, now)
        return self.snapshot(context, role, now)

    def executive_summary(
        self, restaurant_id: str, now: datetime | None = None
    ) -> ExecutiveSummary:
        """全ロールの完了率と遅延提出の集計"""
        now = self.to_local(now or self.local_now())
        context = self.load_context(restaurant_id, now)
        snapshots = {role: self.snapshot(context, role, now) for role in TASK_ROLES}
        return ExecutiveSummary(
            restaurant_id=restaurant_id,
            business_date=context.business_date,
            snapshots=snapshots,
            lateness=summarize_lateness(context.records),
            business_cycle=self.business_cycle(restaurant_id, context.business_date),
            close_gate=self.close_gate(context),
        )

    def close_gate(self, context: DashboardContext) -> CompletionSnapshot:
        """
        閉店判定用に営業日全体の完了状況を計算する（I/O なし）。

        深夜の閉店時も昼間の時間帯のタスクを含める。
        """
        completed: set[str] = set()
        for role in CLOSE_GATE_ROLES:
            completed |= build_completed_task_ids(
                context.records, context.task_definitions, role, context.business_date
            )
        return business_day_snapshot(
            context.periods, context.task_defs_by_role, completed, CLOSE_GATE_ROLES
        )

    def business_cycle(
        self, restaurant_id: str, business_date: date
    ) -> BusinessCycle | None:
        """時間帯遷移の記録から営業サイクルを求める"""
        if self._transitions is None:
            return None
        start = datetime.combine(business_date, time(0, 0), tzinfo=self._tz)
        end = start + timedelta(days=1, hours=self._rollover.hour, minutes=self._rollover.minute)
        transitions = self._transitions.list_between(restaurant_id, start, end)
        return resolve_business_cycle(transitions, business_date, self._rollover)

    def watch(
        self,
        restaurant_id: str,
        role: Role,
        callback: Callable[[CompletionSnapshot], None],
        now_fn: Callable[[], datetime] | None = None,
    ) -> Subscription:
        """
        提出レコードの変更を購読し、変更のたびにスナップショットを再計算する。

        計算自体は同期・純粋のまま。購読は営業日単位で、日付が変わったら
        呼び出し側で再購読すること。
        """
        now_fn = now_fn or self.local_now
        context = self.load_context(restaurant_id, now_fn())

        def _on_change(records: list[TaskSubmissionRecord]) -> None:
            updated = context.with_records(records)
            snapshot = self.snapshot(updated, role, now_fn())
            logger.debug(
                "Snapshot refreshed: restaurant_id=%s, role=%s, rate=%d",
                restaurant_id,
                role.value,
                snapshot.completion_rate,
            )
            callback(snapshot)

        return self._submissions.watch(restaurant_id, context.business_date, _on_change)

