"""Cloud Storage Adapter

MediaStorage ABC の Google Cloud Storage 実装。
タスク提出の写真・音声を保存・削除する。
"""

from __future__ import annotations

import logging

from google.api_core.exceptions import GoogleAPICallError, NotFound
from google.cloud import storage

from restops.domain.errors import RepositoryError
from restops.domain.ports import MediaStorage

logger = logging.getLogger(__name__)


class GCSMediaStorage(MediaStorage):
    """
    Google Cloud Storage を使った MediaStorage 実装。

    パス規約: {restaurant_id}/{photos|audio|documents}/{YYYY-MM-DD}/{task_id}_{ts}_{n}{ext}
    """

    def __init__(self, bucket_name: str, client: storage.Client | None = None) -> None:
        """
        Args:
            bucket_name: GCS バケット名
            client: 初期化済みの GCS クライアント（省略時は ADC で自動初期化）
        """
        self._client = client or storage.Client()
        self._bucket = self._client.bucket(bucket_name)
        self._bucket_name = bucket_name

    def upload(self, blob_path: str, content: bytes, content_type: str) -> str:
        """
        提出物を GCS にアップロード。

        Returns:
            ストレージパス（blob_path と同一）

        Raises:
            RepositoryError: アップロードに失敗した場合
        """
        blob = self._bucket.blob(blob_path)
        try:
            blob.upload_from_string(content, content_type=content_type)
        except GoogleAPICallError as e:
            raise RepositoryError(f"Failed to upload {blob_path}: {e}") from e
        logger.info(
            "Uploaded: bucket=%s, path=%s, size=%d bytes",
            self._bucket_name,
            blob_path,
            len(content),
        )
        return blob_path

    def delete(self, blob_path: str) -> None:
        """存在しないファイルは警告ログを出力してスキップする"""
        try:
            self._bucket.blob(blob_path).delete()
        except NotFound:
            logger.warning(
                "Media not found on delete: bucket=%s, path=%s",
                self._bucket_name,
                blob_path,
            )
            return
        except GoogleAPICallError as e:
            raise RepositoryError(f"Failed to delete {blob_path}: {e}") from e
        logger.info("Deleted: bucket=%s, path=%s", self._bucket_name, blob_path)
