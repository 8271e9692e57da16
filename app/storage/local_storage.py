import os
import tempfile
from pathlib import Path

from app.pipeline.exceptions import UploadError
from app.storage.base import BaseObjectStorage, ProgressCallback


class LocalObjectStorage(BaseObjectStorage):
    """Stores objects on the local filesystem under a root directory.

    Each write goes to its own temporary sibling file that is renamed into
    place once every chunk is flushed, so readers never see a partial object
    and overlapping writers never share a scratch file.
    """

    def __init__(self, root: Path, chunk_size: int = 1024 * 1024) -> None:
        self._root = root
        self._chunk_size = max(chunk_size, 1)

    def upload(
        self,
        path: str,
        payload: bytes,
        media_type: str,
        on_progress: ProgressCallback,
    ) -> str:
        target = self._resolve(path)
        total = len(payload)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            scratch = tempfile.NamedTemporaryFile(
                dir=target.parent,
                prefix=f".{target.name}.",
                suffix=".part",
                delete=False,
            )
        except OSError as exc:
            raise UploadError(f"Local storage write failed for {path}: {exc}") from exc

        partial = Path(scratch.name)
        try:
            with scratch:
                for offset in range(0, total, self._chunk_size):
                    chunk = payload[offset : offset + self._chunk_size]
                    scratch.write(chunk)
                    on_progress(offset + len(chunk), total)
                scratch.flush()
                os.fsync(scratch.fileno())
            partial.replace(target)
        except OSError as exc:
            raise UploadError(f"Local storage write failed for {path}: {exc}") from exc
        finally:
            partial.unlink(missing_ok=True)
        return target.as_uri()

    def _resolve(self, path: str) -> Path:
        root = self._root.resolve()
        target = (root / path).resolve()
        if not target.is_relative_to(root):
            raise UploadError(f"Storage path escapes the storage root: {path}")
        return target
