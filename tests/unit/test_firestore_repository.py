"""Firestore Repository のユニットテスト

Firestore クライアントをモックし、行データの変換・None 値のフォールバック・
エラーのラップを検証する。
"""

from datetime import date, datetime, time
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import GoogleAPICallError
from restops.adapters.firestore_repository import (
    FirestoreInventoryRepository,
    FirestorePeriodTransitionRepository,
    FirestoreSubmissionRepository,
    FirestoreWorkflowConfigSource,
)
from restops.domain.errors import ConfigurationError, RepositoryError
from restops.domain.models import (
    PeriodTransition,
    RecordStatus,
    ReviewStatus,
    Role,
    SubmissionKind,
    TransitionAction,
)

from tests.conftest import BUSINESS_DATE, RESTAURANT_ID, at, make_record


def _make_snap(doc_id: str, data: dict) -> MagicMock:
    """Firestore DocumentSnapshot のモックを生成する"""
    snap = MagicMock()
    snap.id = doc_id
    snap.to_dict.return_value = data
    return snap


def _sub_collection(mock_db: MagicMock) -> MagicMock:
    """restaurants/{rid}/{sub} のコレクションモック"""
    return mock_db.collection.return_value.document.return_value.collection.return_value


class TestFirestoreWorkflowConfigSource:
    """時間帯・タスク定義の読み込み"""

    def test_load_periods(self):
        # Arrange
        mock_db = MagicMock()
        _sub_collection(mock_db).order_by.return_value.stream.return_value = [
            _make_snap(
                "opening",
                {"display_name": "开店", "start_time": "10:00:00", "end_time": "11:00:00", "display_order": 1},
            ),
            _make_snap(
                "old",
                {"start_time": "09:00", "end_time": "10:00", "display_order": 0, "is_active": False},
            ),
        ]

        # Act
        periods = FirestoreWorkflowConfigSource(mock_db).load_periods(RESTAURANT_ID)

        # Assert
        assert [p.id for p in periods] == ["opening"]
        assert periods[0].start == time(10, 0)
        mock_db.collection.assert_called_with("restaurants")

    def test_load_task_definitions(self):
        mock_db = MagicMock()
        _sub_collection(mock_db).stream.return_value = [
            _make_snap(
                "t1",
                {
                    "title": "检查餐具",
                    "role_code": "manager",
                    "period_id": "lunch-prep",
                    "submission_type": None,
                    "description": None,
                },
            ),
        ]

        tasks = FirestoreWorkflowConfigSource(mock_db).load_task_definitions(RESTAURANT_ID)

        assert tasks[0].role is Role.MANAGER
        assert tasks[0].submission_kind is SubmissionKind.NONE
        assert tasks[0].description == ""

    def test_malformed_row_raises_configuration_error(self):
        """不正な設定は読み込み時に ConfigurationError"""
        mock_db = MagicMock()
        _sub_collection(mock_db).stream.return_value = [
            _make_snap("t1", {"title": "x", "role_code": "waiter", "period_id": "lunch"}),
        ]

        with pytest.raises(ConfigurationError):
            FirestoreWorkflowConfigSource(mock_db).load_task_definitions(RESTAURANT_ID)

    def test_api_error_wrapped(self):
        mock_db = MagicMock()
        _sub_collection(mock_db).order_by.return_value.stream.side_effect = GoogleAPICallError(
            "unavailable"
        )

        with pytest.raises(RepositoryError):
            FirestoreWorkflowConfigSource(mock_db).load_periods(RESTAURANT_ID)


class TestFirestoreSubmissionRepository:
    """提出レコードの永続化"""

    def test_create_serializes_record(self):
        # Arrange
        mock_db = MagicMock()
        record = make_record(
            "d1",
            review_status=ReviewStatus.PENDING,
            submission_kind=SubmissionKind.PHOTO,
            photo_urls=("a.jpg",),
        )

        # Act
        record_id = FirestoreSubmissionRepository(mock_db).create(record)

        # Assert
        assert record_id == record.id
        doc = _sub_collection(mock_db).document
        doc.assert_called_with(record.id)
        written = doc.return_value.set.call_args.args[0]
        assert written["business_date"] == "2026-10-17"
        assert written["review_status"] == "pending"
        assert written["submission_type"] == "photo"
        assert written["photo_urls"] == ["a.jpg"]

    def test_list_for_date_null_fallback(self):
        """None 値はデフォルトにフォールバックする"""
        mock_db = MagicMock()
        _sub_collection(mock_db).where.return_value.stream.return_value = [
            _make_snap(
                "rec-1",
                {
                    "task_id": "t1",
                    "user_id": "user-1",
                    "business_date": "2026-10-17",
                    "status": None,
                    "submission_type": None,
                    "text_content": None,
                    "photo_urls": None,
                    "metadata": None,
                    "review_status": None,
                },
            )
        ]

        records = FirestoreSubmissionRepository(mock_db).list_for_date(
            RESTAURANT_ID, BUSINESS_DATE
        )

        assert len(records) == 1
        record = records[0]
        assert record.business_date == BUSINESS_DATE
        assert record.status is RecordStatus.SUBMITTED
        assert record.text_content == ""
        assert record.photo_urls == ()
        assert record.metadata == {}
        assert record.review_status is None
        _sub_collection(mock_db).where.assert_called_once_with(
            "business_date", "==", "2026-10-17"
        )

    def test_list_for_date_filters_user(self):
        mock_db = MagicMock()
        query = _sub_collection(mock_db).where.return_value
        query.where.return_value.stream.return_value = []

        FirestoreSubmissionRepository(mock_db).list_for_date(
            RESTAURANT_ID, BUSINESS_DATE, user_id="user-1"
        )

        query.where.assert_called_once_with("user_id", "==", "user-1")

    def test_get_missing(self):
        mock_db = MagicMock()
        _sub_collection(mock_db).document.return_value.get.return_value.exists = False

        assert FirestoreSubmissionRepository(mock_db).get(RESTAURANT_ID, "missing") is None

    @pytest.mark.parametrize(
        "decision,status",
        [
            (ReviewStatus.APPROVED, "completed"),
            (ReviewStatus.REJECTED, "rejected"),
        ],
    )
    def test_update_review_sets_status(self, decision, status):
        """承認は completed、却下は rejected"""
        mock_db = MagicMock()

        FirestoreSubmissionRepository(mock_db).update_review(
            RESTAURANT_ID, "rec-1", decision, reviewed_by="manager-1"
        )

        update = _sub_collection(mock_db).document.return_value.update.call_args.args[0]
        assert update["status"] == status
        assert update["review_status"] == decision.value
        assert update["reviewed_by"] == "manager-1"

    def test_delete(self):
        mock_db = MagicMock()

        FirestoreSubmissionRepository(mock_db).delete(RESTAURANT_ID, "rec-1")

        _sub_collection(mock_db).document.assert_called_with("rec-1")
        _sub_collection(mock_db).document.return_value.delete.assert_called_once()

    def test_delete_api_error_wrapped(self):
        mock_db = MagicMock()
        _sub_collection(mock_db).document.return_value.delete.side_effect = GoogleAPICallError(
            "unavailable"
        )

        with pytest.raises(RepositoryError):
            FirestoreSubmissionRepository(mock_db).delete(RESTAURANT_ID, "rec-1")

    def test_watch_converts_snapshots(self):
        """on_snapshot のコールバックでレコードに変換して通知する"""
        # Arrange
        mock_db = MagicMock()
        query = _sub_collection(mock_db).where.return_value
        received = []

        # Act
        subscription = FirestoreSubmissionRepository(mock_db).watch(
            RESTAURANT_ID, BUSINESS_DATE, received.append
        )
        on_snapshot = query.on_snapshot.call_args.args[0]
        on_snapshot(
            [_make_snap("rec-1", {"task_id": "t1", "business_date": "2026-10-17"})],
            [],
            datetime(2026, 10, 17, 11, 0),
        )
        subscription.unsubscribe()

        # Assert
        assert [r.task_id for r in received[0]] == ["t1"]
        query.on_snapshot.return_value.unsubscribe.assert_called_once()


class TestFirestorePeriodTransitionRepository:
    """時間帯遷移の永続化"""

    def test_record(self):
        mock_db = MagicMock()
        transition = PeriodTransition(
            id="tr-1",
            restaurant_id=RESTAURANT_ID,
            user_id="manager-1",
            business_date=BUSINESS_DATE,
            period_id="opening",
            action=TransitionAction.ENTER,
            timestamp=at(10, 0),
        )

        assert FirestorePeriodTransitionRepository(mock_db).record(transition) == "tr-1"

        written = _sub_collection(mock_db).document.return_value.set.call_args.args[0]
        assert written["action"] == "enter"
        assert written["business_date"] == "2026-10-17"

    def test_list_between(self):
        mock_db = MagicMock()
        query = _sub_collection(mock_db).where.return_value.where.return_value.order_by.return_value
        query.stream.return_value = [
            _make_snap(
                "tr-1",
                {
                    "user_id": "manager-1",
                    "business_date": "2026-10-17",
                    "period_id": "closing",
                    "action": "manual_close",
                    "timestamp": at(23, 0),
                },
            )
        ]

        transitions = FirestorePeriodTransitionRepository(mock_db).list_between(
            RESTAURANT_ID, at(0, 0), at(23, 59)
        )

        assert transitions[0].action is TransitionAction.MANUAL_CLOSE
        assert transitions[0].business_date == date(2026, 10, 17)


class TestFirestoreInventoryRepository:
    """仕入れロットの取得"""

    def test_returns_batches_with_remaining_oldest_first(self):
        # Arrange
        mock_db = MagicMock()
        item = MagicMock()
        item.reference.collection.return_value.stream.return_value = [
            _make_snap("b2", {"unit_price": 12, "remaining_quantity": 5, "created_at": at(9, 0)}),
            _make_snap("b0", {"unit_price": 9, "remaining_quantity": 0, "created_at": at(7, 0)}),
            _make_snap("b1", {"unit_price": 10, "remaining_quantity": None, "created_at": at(8, 0)}),
            _make_snap("b3", {"unit_price": 11, "remaining_quantity": 2, "created_at": at(8, 30)}),
        ]
        _sub_collection(mock_db).where.return_value.limit.return_value.stream.return_value = [item]

        # Act
        batches = FirestoreInventoryRepository(mock_db).list_purchase_batches(
            RESTAURANT_ID, "牛肉"
        )

        # Assert
        assert [b.id for b in batches] == ["b3", "b2"]
        assert batches[0].unit_price == 11.0

    def test_unknown_item(self):
        mock_db = MagicMock()
        _sub_collection(mock_db).where.return_value.limit.return_value.stream.return_value = []

        assert FirestoreInventoryRepository(mock_db).list_purchase_batches(RESTAURANT_ID, "x") == []
