from abc import ABC, abstractmethod
from collections.abc import Callable

ProgressCallback = Callable[[int, int], None]


class BaseObjectStorage(ABC):
    """Contract for all object storage adapters."""

    @abstractmethod
    def upload(
        self,
        path: str,
        payload: bytes,
        media_type: str,
        on_progress: ProgressCallback,
    ) -> str:
        """Transfer payload to path and return the stored object's reference URL.

        Args:
            path: Object key relative to the storage root, e.g. "documentos/u1/rg.png".
            payload: Bytes to store.
            media_type: Content type recorded with the object.
            on_progress: Called with (bytes_transferred, total_bytes) as the
                transfer advances. May be invoked from a worker thread.

        Raises:
            UploadError: if the transfer fails for any reason.
        """
