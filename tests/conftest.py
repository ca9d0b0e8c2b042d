"""共通テストフィクスチャ

全テストから利用可能なモックオブジェクトとサンプルデータを提供。

モックの作成:
- MagicMock(spec=ABC) でABCのメソッドシグネチャを保持

サンプルの時間帯:
  opening     10:00-11:00
  lunch-prep  11:00-12:00
  lunch       12:30-14:00   ← 12:00-12:30 はどの時間帯にも入らない
  closing     22:00-02:00   ← 日付またぎ
"""

from datetime import date, datetime, time
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest
from restops.domain.models import (
    Period,
    Role,
    SubmissionKind,
    TaskDefinition,
    TaskSubmissionRecord,
)
from restops.domain.ports import (
    InventoryRepository,
    MediaStorage,
    PeriodTransitionRepository,
    SubmissionRepository,
    WorkflowConfigSource,
)

TZ = ZoneInfo("Asia/Shanghai")
RESTAURANT_ID = "rest-001"
BUSINESS_DATE = date(2026, 10, 17)


def at(hour: int, minute: int = 0, day: date = BUSINESS_DATE) -> datetime:
    """店舗タイムゾーンの日時を作る"""
    return datetime.combine(day, time(hour, minute), tzinfo=TZ)


# ========== サンプルデータ ==========


@pytest.fixture
def opening_period() -> Period:
    return Period(
        id="opening",
        display_name="开店",
        start=time(10, 0),
        end=time(11, 0),
        display_order=1,
    )


@pytest.fixture
def lunch_prep_period() -> Period:
    return Period(
        id="lunch-prep",
        display_name="午餐准备",
        start=time(11, 0),
        end=time(12, 0),
        display_order=2,
    )


@pytest.fixture
def lunch_period() -> Period:
    return Period(
        id="lunch",
        display_name="午餐",
        start=time(12, 30),
        end=time(14, 0),
        display_order=3,
    )


@pytest.fixture
def closing_period() -> Period:
    """日付をまたぐ閉店時間帯"""
    return Period(
        id="closing",
        display_name="闭店",
        start=time(22, 0),
        end=time(2, 0),
        display_order=4,
    )


@pytest.fixture
def sample_periods(
    opening_period, lunch_prep_period, lunch_period, closing_period
) -> list[Period]:
    return [opening_period, lunch_prep_period, lunch_period, closing_period]


@pytest.fixture
def sample_task_definitions() -> list[TaskDefinition]:
    """
    サンプルタスク定義

    - t1, t2: 店長 / lunch-prep
    - t3: 店長 / closing
    - c1: 后厨 / lunch-prep
    - c2: 后厨 / closing（后厨は closing を集計しない）
    - d1: 値班マネージャー / lunch-prep
    - r1: 店長の審査タスク（d1 にリンク）
    - n1: 通知（分母に含めない）
    - f1: フローティング（分母に含めない）
    """
    return [
        TaskDefinition(id="t1", title="检查餐具", role=Role.MANAGER, period_id="lunch-prep"),
        TaskDefinition(id="t2", title="确认预订", role=Role.MANAGER, period_id="lunch-prep", sort_order=1),
        TaskDefinition(id="t3", title="关闭电源", role=Role.MANAGER, period_id="closing"),
        TaskDefinition(id="c1", title="备菜", role=Role.CHEF, period_id="lunch-prep"),
        TaskDefinition(id="c2", title="清洁灶台", role=Role.CHEF, period_id="closing"),
        TaskDefinition(
            id="d1",
            title="巡视大厅",
            role=Role.DUTY_MANAGER,
            period_id="lunch-prep",
            submission_kind=SubmissionKind.PHOTO,
        ),
        TaskDefinition(
            id="r1",
            title="审核：巡视大厅",
            role=Role.MANAGER,
            period_id="lunch",
            linked_task_ids=("d1",),
        ),
        TaskDefinition(
            id="n1", title="今日特价", role=Role.MANAGER, period_id="lunch-prep", is_notice=True
        ),
        TaskDefinition(id="f1", title="补充纸巾", role=Role.MANAGER, is_floating=True),
    ]


def make_record(task_id: str, **overrides) -> TaskSubmissionRecord:
    """提出レコードを作るヘルパー"""
    values = {
        "id": f"rec-{task_id}",
        "restaurant_id": RESTAURANT_ID,
        "task_id": task_id,
        "user_id": "user-1",
        "business_date": BUSINESS_DATE,
        "period_id": "lunch-prep",
        "created_at": at(11, 30),
    }
    values.update(overrides)
    return TaskSubmissionRecord(**values)


# ========== モックフィクスチャ ==========


@pytest.fixture
def mock_config_source(sample_periods, sample_task_definitions) -> MagicMock:
    """WorkflowConfigSource のモック"""
    mock = MagicMock(spec=WorkflowConfigSource)
    mock.load_periods.return_value = sample_periods
    mock.load_task_definitions.return_value = sample_task_definitions
    return mock


@pytest.fixture
def mock_submission_repo() -> MagicMock:
    """SubmissionRepository のモック"""
    mock = MagicMock(spec=SubmissionRepository)
    mock.create.side_effect = lambda record: record.id
    mock.list_for_date.return_value = []
    return mock


@pytest.fixture
def mock_transition_repo() -> MagicMock:
    """PeriodTransitionRepository のモック"""
    mock = MagicMock(spec=PeriodTransitionRepository)
    mock.list_between.return_value = []
    return mock


@pytest.fixture
def mock_inventory_repo() -> MagicMock:
    """InventoryRepository のモック"""
    mock = MagicMock(spec=InventoryRepository)
    mock.list_purchase_batches.return_value = []
    return mock


@pytest.fixture
def mock_media_storage() -> MagicMock:
    """MediaStorage のモック（アップロード先パスをそのまま返す）"""
    mock = MagicMock(spec=MediaStorage)
    mock.upload.side_effect = lambda path, content, content_type: path
    return mock
