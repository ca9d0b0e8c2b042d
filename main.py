"""Cloud Run デプロイ用エントリーポイント

起動コマンド:
    uvicorn main:app --host 0.0.0.0 --port $PORT

デプロイコマンド:
    gcloud run deploy restops-api \\
        --source=. \\
        --region=asia-east1 \\
        --set-env-vars PROJECT_ID=xxx,RESTAURANT_ID=xxx,GCS_BUCKET_NAME=xxx
"""

from restops.entrypoints.api.app import app

# uvicorn はこのモジュールから app をインポートする
__all__ = ["app"]
