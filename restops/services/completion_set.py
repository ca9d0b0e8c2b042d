"""完了タスクIDの組み立て

提出レコードとタスク定義を突き合わせて「完了扱い」のタスクID集合を作る。
完了率計算（period_resolver）に渡す前のデータ結合ステップ。

店長（manager）の審査タスク:
    タイトルが "审核：X" のタスク、または linked_task_ids を持つタスクは、
    リンク先の値班マネージャータスク（明示リンク、なければタイトルが X のもの）が
    同じ営業日に全て approved されていれば完了扱いとする。
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from restops.domain.models import (
    RecordStatus,
    ReviewStatus,
    Role,
    TaskDefinition,
    TaskSubmissionRecord,
)

REVIEW_TITLE_PREFIXES = ("审核：", "审核:")

_COUNTED_STATUSES = (RecordStatus.SUBMITTED, RecordStatus.COMPLETED)


def reviewed_title(title: str) -> str | None:
    """審査タスクのタイトルから審査対象のタイトルを取り出す"""
    for prefix in REVIEW_TITLE_PREFIXES:
        if title.startswith(prefix):
            return title[len(prefix) :].strip()
    return None


def linked_duty_task_ids(
    task: TaskDefinition, duty_tasks: Iterable[TaskDefinition]
) -> tuple[str, ...]:
    """審査タスクがリンクする値班マネージャータスクIDを解決する"""
    if task.linked_task_ids:
        return task.linked_task_ids
    target = reviewed_title(task.title)
    if target is None:
        return ()
    return tuple(t.id for t in duty_tasks if t.title == target)


def build_completed_task_ids(
    records: Iterable[TaskSubmissionRecord],
    task_definitions: Iterable[TaskDefinition],
    role: Role,
    business_date: date,
) -> frozenset[str]:
    """
    完了扱いのタスクID集合を返す。

    Args:
        records: 提出レコード（他の営業日のものが混ざっていてもよい）
        task_definitions: 全ロールのタスク定義
        role: 集計対象のロール
        business_date: 営業日

    Returns:
        frozenset[str]: 完了扱いのタスクID
    """
    todays = [r for r in records if r.business_date == business_date]

    completed = {
        r.task_id
        for r in todays
        if r.status in _COUNTED_STATUSES and r.review_status is not ReviewStatus.REJECTED
    }

    if role is not Role.MANAGER:
        return frozenset(completed)

    definitions = list(task_definitions)
    duty_tasks = [t for t in definitions if t.role is Role.DUTY_MANAGER]
    approved_duty = {
        r.task_id for r in todays if r.review_status is ReviewStatus.APPROVED
    }

    for task in definitions:
        if task.role is not Role.MANAGER or task.id in completed:
            continue
        linked = linked_duty_task_ids(task, duty_tasks)
        if linked and all(task_id in approved_duty for task_id in linked):
            completed.add(task.id)

    return frozenset(completed)
