"""設定管理 - 環境変数の型安全な読み込み"""

import os
from dataclasses import dataclass, field
from datetime import time

from dotenv import load_dotenv

from restops.services.workflow_config import parse_time_of_day


@dataclass(frozen=True)
class AppConfig:
    """アプリケーション設定"""
    project_id: str
    restaurant_id: str
    gcs_bucket_name: str = ""
    timezone: str = "Asia/Shanghai"
    business_day_rollover: time = time(4, 0)
    refresh_interval_seconds: int = 30
    cors_origins: tuple[str, ...] = field(default=("http://localhost:5173",))

    @classmethod
    def from_env(cls) -> "AppConfig":
        """環境変数から設定を読み込む"""
        load_dotenv()

        project_id = os.getenv("PROJECT_ID")
        if not project_id:
            raise ValueError("PROJECT_ID is not set in environment")

        restaurant_id = os.getenv("RESTAURANT_ID")
        if not restaurant_id:
            raise ValueError("RESTAURANT_ID is not set in environment")

        cors_origins = tuple(
            o.strip()
            for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
            if o.strip()
        )

        return cls(
            project_id=project_id,
            restaurant_id=restaurant_id,
            gcs_bucket_name=os.getenv("GCS_BUCKET_NAME", ""),
            timezone=os.getenv("TIMEZONE", "Asia/Shanghai"),
            business_day_rollover=parse_time_of_day(
                os.getenv("BUSINESS_DAY_ROLLOVER", "04:00")
            ),
            refresh_interval_seconds=int(os.getenv("REFRESH_INTERVAL_SECONDS", "30")),
            cors_origins=cors_origins,
        )
