#!/usr/bin/env python3
"""CLI Entrypoint - 完了率スナップショットをコマンドラインで表示

使い方:
    python -m restops.entrypoints.cli --role manager
    python -m restops.entrypoints.cli --role chef --at 2026-10-17T12:00
    python -m restops.entrypoints.cli --role ceo --watch

環境変数:
    PROJECT_ID / RESTAURANT_ID: 必須
    REFRESH_INTERVAL_SECONDS: --watch 時の再計算間隔（デフォルト 30）
    LOG_LEVEL: ログレベル (DEBUG, INFO, WARNING, ERROR) デフォルト: INFO
"""

import argparse
import logging
import sys
import time
from datetime import datetime

from restops.config import AppConfig
from restops.domain.models import CompletionSnapshot, Role
from restops.entrypoints.factory import create_dashboard_service
from restops.logging_config import setup_logging
from restops.services.business_cycle import can_close
from restops.services.dashboard import DashboardService, ExecutiveSummary

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restops", description="店舗オペレーションの完了率を表示する"
    )
    parser.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.MANAGER.value,
        help="集計対象のロール（ceo は全ロールの集計）",
    )
    parser.add_argument(
        "--at",
        type=datetime.fromisoformat,
        default=None,
        help="基準時刻（ISO 8601、省略時は現在時刻）",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="REFRESH_INTERVAL_SECONDS ごとに再計算して表示し続ける",
    )
    return parser


def format_snapshot(role: Role, snapshot: CompletionSnapshot) -> str:
    current = snapshot.current_period.display_name if snapshot.current_period else "-"
    lines = [
        f"[{role.value}] 現在: {current}  完了率: {snapshot.completion_rate}% "
        f"({snapshot.total_tasks_completed}/{snapshot.total_tasks_due})"
    ]
    for missing in snapshot.missing_tasks:
        lines.append(f"  未提出: {missing.period_name} / {missing.task.title}")
    return "\n".join(lines)


def format_executive(summary: ExecutiveSummary) -> str:
    lines = [f"営業日: {summary.business_date.isoformat()}"]
    for role, snapshot in summary.snapshots.items():
        lines.append(format_snapshot(role, snapshot))
    lines.append(
        f"遅延提出: {summary.lateness.late}/{summary.lateness.total} "
        f"({summary.lateness.late_rate}%)"
    )
    if summary.business_cycle is not None:
        state = "営業中" if summary.business_cycle.is_open else "閉店済み"
        lines.append(f"営業サイクル: {state}")
    ok, reason = can_close(summary.close_gate)
    lines.append("閉店可能" if ok else f"閉店不可: {reason}")
    return "\n".join(lines)


def render(
    service: DashboardService, restaurant_id: str, role: Role, at: datetime | None
) -> str:
    if role is Role.CEO:
        return format_executive(service.executive_summary(restaurant_id, at))
    return format_snapshot(role, service.role_summary(restaurant_id, role, at))


def main(argv: list[str] | None = None) -> None:
    """メインエントリーポイント"""
    args = build_parser().parse_args(argv)
    role = Role(args.role)

    try:
        config = AppConfig.from_env()
        setup_logging(config.restaurant_id)
        service = create_dashboard_service(config)

        print(render(service, config.restaurant_id, role, args.at))
        while args.watch:
            time.sleep(config.refresh_interval_seconds)
            print(render(service, config.restaurant_id, role, None))

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception:
        logger.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    main()
