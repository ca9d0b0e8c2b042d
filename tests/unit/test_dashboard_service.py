"""DashboardService のユニットテスト"""

from datetime import date
from unittest.mock import MagicMock

import pytest
from restops.domain.errors import ConfigurationError
from restops.domain.models import (
    Period,
    PeriodTransition,
    RecordStatus,
    ReviewStatus,
    Role,
    TransitionAction,
)
from restops.domain.ports import Subscription
from restops.services.business_cycle import can_close
from restops.services.dashboard import DashboardService

from tests.conftest import BUSINESS_DATE, RESTAURANT_ID, at, make_record


@pytest.fixture
def service(mock_config_source, mock_submission_repo, mock_transition_repo):
    return DashboardService(
        config_source=mock_config_source,
        submissions=mock_submission_repo,
        transitions=mock_transition_repo,
        timezone="Asia/Shanghai",
    )


class TestLoadContext:
    """load_context のテスト"""

    def test_loads_business_day(self, service, mock_submission_repo):
        """営業日の提出レコードをまとめて取得する"""
        # Arrange
        mock_submission_repo.list_for_date.return_value = [make_record("t1")]

        # Act
        context = service.load_context(RESTAURANT_ID, at(13, 0))

        # Assert
        mock_submission_repo.list_for_date.assert_called_once_with(RESTAURANT_ID, BUSINESS_DATE)
        assert context.business_date == BUSINESS_DATE
        assert [p.id for p in context.periods] == ["opening", "lunch-prep", "lunch", "closing"]
        assert len(context.records) == 1
        assert Role.CHEF in context.task_defs_by_role

    def test_after_midnight_loads_previous_day(self, service, mock_submission_repo):
        service.load_context(RESTAURANT_ID, at(1, 0, date(2026, 10, 18)))
        mock_submission_repo.list_for_date.assert_called_once_with(RESTAURANT_ID, BUSINESS_DATE)

    def test_invalid_periods(self, service, mock_config_source, sample_periods):
        """時間帯の設定が不正なら ConfigurationError"""
        mock_config_source.load_periods.return_value = sample_periods + [sample_periods[0]]
        with pytest.raises(ConfigurationError):
            service.load_context(RESTAURANT_ID, at(13, 0))


class TestRoleSummary:
    """role_summary / snapshot のテスト"""

    def test_manager_summary(self, service, mock_submission_repo):
        """13:00: lunch が現在、lunch-prep の t2 が未提出"""
        # Arrange
        mock_submission_repo.list_for_date.return_value = [make_record("t1")]

        # Act
        snapshot = service.role_summary(RESTAURANT_ID, Role.MANAGER, at(13, 0))

        # Assert
        assert snapshot.current_period.id == "lunch"
        assert snapshot.total_tasks_due == 3  # t1, t2, r1
        assert snapshot.total_tasks_completed == 1
        assert snapshot.completion_rate == 33
        assert [m.task_id for m in snapshot.missing_tasks] == ["t2"]

    def test_review_linkage_counts_for_manager(self, service, mock_submission_repo):
        """値班タスクの承認で店長の審査タスクが完了になる"""
        mock_submission_repo.list_for_date.return_value = [
            make_record("t1"),
            make_record("t2"),
            make_record("d1", review_status=ReviewStatus.APPROVED),
        ]

        snapshot = service.role_summary(RESTAURANT_ID, Role.MANAGER, at(13, 0))

        assert snapshot.total_tasks_completed == 3
        assert snapshot.completion_rate == 100

    def test_snapshot_uses_explicit_context(self, service):
        """snapshot は I/O なしでコンテキストから計算する"""
        context = service.load_context(RESTAURANT_ID, at(13, 0))
        updated = context.with_records([make_record("c1")])

        snapshot = service.snapshot(updated, Role.CHEF, at(23, 0))

        assert snapshot.total_tasks_due == 1  # closing は后厨の集計対象外
        assert snapshot.completion_rate == 100


class TestExecutiveSummary:
    """executive_summary のテスト"""

    def test_all_roles(self, service, mock_submission_repo, mock_transition_repo):
        # Arrange
        mock_submission_repo.list_for_date.return_value = [
            make_record("t1", is_late=True),
            make_record("c1"),
        ]
        mock_transition_repo.list_between.return_value = [
            PeriodTransition(
                id="tr-1",
                restaurant_id=RESTAURANT_ID,
                user_id="manager-1",
                business_date=BUSINESS_DATE,
                period_id="opening",
                action=TransitionAction.ENTER,
                timestamp=at(10, 0),
            )
        ]

        # Act
        summary = service.executive_summary(RESTAURANT_ID, at(13, 0))

        # Assert
        assert set(summary.snapshots) == {Role.MANAGER, Role.CHEF, Role.DUTY_MANAGER}
        assert summary.snapshots[Role.CHEF].completion_rate == 100
        assert summary.lateness.late == 1
        assert summary.business_cycle.is_open
        assert summary.business_date == BUSINESS_DATE

    def test_without_transitions_repo(self, mock_config_source, mock_submission_repo):
        service = DashboardService(mock_config_source, mock_submission_repo)
        summary = service.executive_summary(RESTAURANT_ID, at(13, 0))
        assert summary.business_cycle is None


class TestCloseGate:
    """閉店判定（営業日全体の完了状況）のテスト"""

    def test_after_midnight_keeps_daytime_tasks(self, service, mock_submission_repo):
        """日付またぎ後（01:00）でも昼間の未提出タスクで閉店がブロックされる"""
        # Arrange: 闭店の t3 だけ完了
        mock_submission_repo.list_for_date.return_value = [
            make_record("t3", period_id="closing", status=RecordStatus.COMPLETED)
        ]

        # Act
        summary = service.executive_summary(RESTAURANT_ID, at(1, 0, day=date(2026, 10, 18)))
        ok, reason = can_close(summary.close_gate)

        # Assert
        assert summary.business_date == BUSINESS_DATE
        assert summary.close_gate.total_tasks_due == 5
        assert summary.close_gate.total_tasks_completed == 1
        assert {m.task_id for m in summary.close_gate.missing_tasks} == {"t1", "t2", "d1", "r1"}
        assert not ok
        assert "检查餐具" in reason
        assert "审核：巡视大厅" in reason

    def test_closable_when_everything_done(self, service, mock_submission_repo):
        """値班タスクが承認されれば審査タスクも完了扱いになり閉店できる"""
        mock_submission_repo.list_for_date.return_value = [
            make_record("t1"),
            make_record("t2"),
            make_record("t3", period_id="closing"),
            make_record("d1", review_status=ReviewStatus.APPROVED, status=RecordStatus.COMPLETED),
        ]

        summary = service.executive_summary(RESTAURANT_ID, at(1, 0, day=date(2026, 10, 18)))

        assert can_close(summary.close_gate) == (True, None)

    def test_chef_tasks_do_not_block(self, service, mock_submission_repo):
        """后厨のタスクは閉店判定に含めない"""
        context = service.load_context(RESTAURANT_ID, at(23, 0))

        gate = service.close_gate(context)

        assert not {"c1", "c2"} & {m.task_id for m in gate.missing_tasks}


class TestCurrentAndNextPeriod:
    def test_gap_between_periods(self, service):
        """12:00-12:30 はどの時間帯にも入らず、次は lunch"""
        current, upcoming = service.current_and_next_period(RESTAURANT_ID, at(12, 10))
        assert current is None
        assert upcoming.id == "lunch"

    def test_naive_time_treated_as_local(self, service):
        current, _ = service.current_and_next_period(
            RESTAURANT_ID, at(11, 15).replace(tzinfo=None)
        )
        assert isinstance(current, Period)
        assert current.id == "lunch-prep"


class TestWatch:
    """watch のテスト"""

    def test_recomputes_on_push(self, service, mock_submission_repo):
        """変更通知のたびにスナップショットを再計算する"""
        # Arrange
        subscription = MagicMock(spec=Subscription)
        mock_submission_repo.watch.return_value = subscription
        received = []

        # Act
        result = service.watch(
            RESTAURANT_ID, Role.MANAGER, received.append, now_fn=lambda: at(13, 0)
        )
        on_change = mock_submission_repo.watch.call_args.args[2]
        on_change([])
        on_change([make_record("t1"), make_record("t2")])

        # Assert
        assert result is subscription
        assert mock_submission_repo.watch.call_args.args[:2] == (RESTAURANT_ID, BUSINESS_DATE)
        assert [s.total_tasks_completed for s in received] == [0, 2]
        assert received[1].missing_tasks == ()
