"""Ports - サービスのインターフェース定義（ABC）

各Port（抽象基底クラス）はホスト型バックエンドとの契約を定義します。
実装クラス（Adapter）はこれらのABCを継承し、全ての抽象メソッドを実装する必要があります。
実装漏れはインスタンス化時に即座に検出されます。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import date, datetime

from restops.domain.models import (
    Period,
    PeriodTransition,
    PriceBatch,
    ReviewStatus,
    TaskDefinition,
    TaskSubmissionRecord,
)


class Subscription(ABC):
    """リアルタイム購読のハンドル"""

    @abstractmethod
    def unsubscribe(self) -> None:
        """購読を解除する"""
        pass


class WorkflowConfigSource(ABC):
    """時間帯・タスク定義の読み込み（Firestore等）"""

    @abstractmethod
    def load_periods(self, restaurant_id: str) -> list[Period]:
        """時間帯一覧を display_order 順で読み込む"""
        pass

    @abstractmethod
    def load_task_definitions(self, restaurant_id: str) -> list[TaskDefinition]:
        """有効なタスク定義を読み込む"""
        pass


class SubmissionRepository(ABC):
    """タスク提出レコードの永続化"""

    @abstractmethod
    def create(self, record: TaskSubmissionRecord) -> str:
        """提出レコードを作成。生成されたIDを返す"""
        pass

    @abstractmethod
    def get(self, restaurant_id: str, record_id: str) -> TaskSubmissionRecord | None:
        """提出レコードを取得。存在しない場合はNoneを返す"""
        pass

    @abstractmethod
    def list_for_date(
        self,
        restaurant_id: str,
        business_date: date,
        user_id: str | None = None,
    ) -> list[TaskSubmissionRecord]:
        """営業日の提出レコード一覧を取得"""
        pass

    @abstractmethod
    def update_review(
        self,
        restaurant_id: str,
        record_id: str,
        review_status: ReviewStatus,
        reviewed_by: str,
        reject_reason: str | None = None,
    ) -> None:
        """審査結果を書き込む"""
        pass

    @abstractmethod
    def delete(self, restaurant_id: str, record_id: str) -> None:
        """提出レコードを削除"""
        pass

    @abstractmethod
    def watch(
        self,
        restaurant_id: str,
        business_date: date,
        callback: Callable[[list[TaskSubmissionRecord]], None],
    ) -> Subscription:
        """営業日の提出レコードの変更を購読する"""
        pass


class PeriodTransitionRepository(ABC):
    """時間帯遷移（開店・閉店など）の永続化"""

    @abstractmethod
    def record(self, transition: PeriodTransition) -> str:
        """遷移を記録。生成されたIDを返す"""
        pass

    @abstractmethod
    def list_between(
        self, restaurant_id: str, start: datetime, end: datetime
    ) -> list[PeriodTransition]:
        """期間内の遷移を時刻順で取得"""
        pass


class InventoryRepository(ABC):
    """在庫・仕入れ価格履歴"""

    @abstractmethod
    def list_purchase_batches(
        self, restaurant_id: str, item_name: str
    ) -> list[PriceBatch]:
        """残量のある仕入れロットを古い順で取得"""
        pass


class MediaStorage(ABC):
    """提出物（写真・音声）のアップロード（GCS等）"""

    @abstractmethod
    def upload(self, blob_path: str, content: bytes, content_type: str) -> str:
        """ファイルをアップロード。ストレージパスを返す"""
        pass

    @abstractmethod
    def delete(self, blob_path: str) -> None:
        """ファイルを削除"""
        pass
