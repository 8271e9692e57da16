import io
import threading
from typing import Any

from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError

from app.pipeline.exceptions import UploadError
from app.storage.base import BaseObjectStorage, ProgressCallback


class S3ObjectStorage(BaseObjectStorage):
    """Uploads objects to S3 with boto3's managed multipart transfer."""

    def __init__(
        self,
        client: Any,
        bucket: str,
        region: str,
        *,
        chunk_size: int = 8 * 1024 * 1024,
        public_base_url: str = "",
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._region = region
        self._public_base_url = public_base_url.rstrip("/")
        self._transfer_config = TransferConfig(
            multipart_threshold=chunk_size,
            multipart_chunksize=chunk_size,
        )

    def upload(
        self,
        path: str,
        payload: bytes,
        media_type: str,
        on_progress: ProgressCallback,
    ) -> str:
        total = len(payload)
        transferred = 0
        lock = threading.Lock()

        def _callback(bytes_amount: int) -> None:
            nonlocal transferred
            with lock:
                transferred += bytes_amount
                current = transferred
            on_progress(current, total)

        try:
            self._client.upload_fileobj(
                io.BytesIO(payload),
                self._bucket,
                path,
                ExtraArgs={"ContentType": media_type},
                Callback=_callback,
                Config=self._transfer_config,
            )
        except ClientError as exc:
            error_code = exc.response.get("Error", {}).get("Code", "Unknown")
            raise UploadError(f"Failed to upload {path} to S3: {error_code}") from exc
        except BotoCoreError as exc:
            raise UploadError(f"S3 transport error while uploading {path}: {exc}") from exc
        return self._reference_url(path)

    def _reference_url(self, path: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url}/{path}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{path}"
