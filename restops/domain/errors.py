"""ドメイン固有の例外クラス"""


class RestaurantOpsError(Exception):
    """restops の基底例外"""

    pass


class ConfigurationError(RestaurantOpsError):
    """時間帯・タスク定義の設定エラー（読み込み時に検出）"""

    pass


class RepositoryError(RestaurantOpsError):
    """ホスト型バックエンド（Firestore等）の読み書きエラー"""

    pass


class NotFoundError(RestaurantOpsError):
    """タスク定義・提出レコードが見つからない"""

    pass


class SubmissionError(RestaurantOpsError):
    """提出・審査・再提出の不正な状態遷移"""

    pass
