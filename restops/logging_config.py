"""ロギング設定モジュール

Cloud Run 上ではCloud Logging向けのJSON、ローカルでは人が読むテキストで出力する。
店舗IDは全ログに付与し、複数店舗のログを Cloud Logging 上で絞り込めるようにする。

使い方:
    from restops.logging_config import setup_logging
    setup_logging(restaurant_id="rest-001")

環境変数:
    LOG_LEVEL: ログレベル (DEBUG, INFO, WARNING, ERROR, CRITICAL) デフォルト: INFO
    K_SERVICE / CLOUD_RUN_JOB: Cloud Run 環境判定（自動設定される）
"""

import json
import logging
import os

# Firestore / gRPC のクライアントは DEBUG で大量に出力する
NOISY_LOGGERS = ("google.auth", "google.api_core", "urllib3", "grpc")


class CloudLoggingFormatter(logging.Formatter):
    """Cloud Logging互換のJSONフォーマッタ

    `severity` を含めると Cloud Logging 側でログレベルが正しくマッピングされる。
    `labels` は logging.googleapis.com/labels として検索可能になる。
    """

    def __init__(self, labels: dict[str, str] | None = None) -> None:
        super().__init__()
        self._labels = dict(labels or {})

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict = {
            "severity": record.levelname if record.levelno else "DEFAULT",
            "message": record.getMessage(),
            "logger": record.name,
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
        }
        if self._labels:
            log_entry["logging.googleapis.com/labels"] = self._labels
        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)
        return json.dumps(log_entry, ensure_ascii=False, default=str)


def is_cloud_run() -> bool:
    """K_SERVICE: Cloud Run Services, CLOUD_RUN_JOB: Cloud Run Jobs"""
    return bool(os.getenv("K_SERVICE") or os.getenv("CLOUD_RUN_JOB"))


def setup_logging(restaurant_id: str | None = None) -> None:
    """ログ設定を初期化する

    Args:
        restaurant_id: 指定するとJSONログの labels とテキストログの接頭辞に付与する
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    handler = logging.StreamHandler()
    if is_cloud_run():
        labels = {"restaurant_id": restaurant_id} if restaurant_id else None
        handler.setFormatter(CloudLoggingFormatter(labels))
    else:
        prefix = f"[{restaurant_id}] " if restaurant_id else ""
        handler.setFormatter(
            logging.Formatter(
                f"%(asctime)s [%(levelname)s] {prefix}%(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if level <= logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.INFO)
