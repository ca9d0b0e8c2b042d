"""ドメインモデル - 外部依存なしのデータ構造"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum


class Role(Enum):
    """スタッフのロール"""

    MANAGER = "manager"  # 前厅（店長）
    CHEF = "chef"  # 后厨
    DUTY_MANAGER = "duty_manager"  # 値班マネージャー
    CEO = "ceo"  # 経営ダッシュボード（タスクは持たない）


# タスクを持つロール
TASK_ROLES: tuple[Role, ...] = (Role.MANAGER, Role.CHEF, Role.DUTY_MANAGER)


class SubmissionKind(Enum):
    """提出物の種類"""

    NONE = "none"
    PHOTO = "photo"
    AUDIO = "audio"
    TEXT = "text"
    LIST = "list"  # 構造化リスト（収貨・損耗盤点など）


class ReviewStatus(Enum):
    """審査ステータス"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RecordStatus(Enum):
    """提出レコードのステータス"""

    SUBMITTED = "submitted"
    COMPLETED = "completed"
    REJECTED = "rejected"


class TransitionAction(Enum):
    """時間帯遷移のアクション"""

    ENTER = "enter"
    EXIT = "exit"
    MANUAL_CLOSE = "manual_close"


@dataclass(frozen=True)
class Period:
    """営業日の中の名前付き時間帯"""

    id: str  # 例: "opening", "lunch-prep"
    display_name: str  # 例: "开店"
    start: time
    end: time  # start より前なら日付をまたぐ
    display_order: int = 0
    is_event_driven: bool = False  # 手動閉店待ちなど、外部トリガーで終わる時間帯

    @property
    def wraps_midnight(self) -> bool:
        return self.end < self.start


@dataclass(frozen=True)
class TaskDefinition:
    """ロール×時間帯に割り当てられたタスク定義"""

    id: str
    title: str
    role: Role
    description: str = ""
    submission_kind: SubmissionKind = SubmissionKind.NONE
    is_notice: bool = False
    is_floating: bool = False
    period_id: str | None = None
    linked_task_ids: tuple[str, ...] = ()  # 審査タスクが参照する値班マネージャータスク
    sort_order: int = 0

    @property
    def counts_toward_completion(self) -> bool:
        """完了率の分母に含まれるか"""
        return not self.is_notice and not self.is_floating and self.period_id is not None


@dataclass(frozen=True)
class TaskSubmissionRecord:
    """タスク提出レコード（Firestoreに永続化）"""

    id: str
    restaurant_id: str
    task_id: str
    user_id: str
    business_date: date
    period_id: str | None
    status: RecordStatus = RecordStatus.SUBMITTED
    submission_kind: SubmissionKind = SubmissionKind.NONE
    text_content: str = ""
    photo_urls: tuple[str, ...] = ()
    audio_url: str | None = None
    metadata: dict = field(default_factory=dict)  # 構造化リストのペイロード
    is_late: bool = False
    review_status: ReviewStatus | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    reject_reason: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class MissingTask:
    """経過済み時間帯で未提出のタスク"""

    task: TaskDefinition
    period_id: str
    period_name: str

    @property
    def task_id(self) -> str:
        return self.task.id


@dataclass(frozen=True)
class CompletionSnapshot:
    """完了率スナップショット（都度再計算、永続化しない）"""

    current_period: Period | None
    total_tasks_due: int
    total_tasks_completed: int
    completion_rate: int  # 0〜100
    missing_tasks: tuple[MissingTask, ...] = ()


@dataclass(frozen=True)
class PeriodTransition:
    """時間帯遷移の記録"""

    id: str
    restaurant_id: str
    user_id: str
    business_date: date
    period_id: str
    action: TransitionAction
    timestamp: datetime


@dataclass(frozen=True)
class BusinessCycle:
    """開店から閉店までの営業サイクル（日付をまたぐことがある）"""

    business_date: date
    start: datetime
    end: datetime | None
    is_open: bool


@dataclass(frozen=True)
class LatenessSummary:
    """遅延提出の集計"""

    total: int
    late: int

    @property
    def on_time(self) -> int:
        return self.total - self.late

    @property
    def late_rate(self) -> int:
        if self.total == 0:
            return 0
        return int(self.late / self.total * 100 + 0.5)


@dataclass(frozen=True)
class PriceBatch:
    """仕入れ価格の履歴（FIFO計算用の1ロット）"""

    id: str
    unit_price: float
    remaining_quantity: float
    created_at: datetime


@dataclass(frozen=True)
class FifoBatchUsage:
    """FIFO計算で消費したロット"""

    quantity: float
    unit_price: float


@dataclass(frozen=True)
class FifoResult:
    """FIFO原価計算の結果"""

    unit_price: float
    total_price: float
    batches: tuple[FifoBatchUsage, ...] = ()
    shortfall: float = 0.0  # 在庫不足分
