"""Abstract object store protocol used by the APT S3 method."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class ObjectInfo:
    """Object metadata returned by a HEAD probe.

    Attributes:
        size: Content length in bytes.
        last_modified: Last modification time reported by the store.
    """

    size: int
    last_modified: datetime


class ObjectStore(Protocol):
    """Protocol defining the object store interface.

    The method engine only needs two operations from a store: a metadata
    probe and a streaming download into a local file.
    """

    async def init(self) -> None:
        """Open connections and resolve credentials."""
        ...

    async def close(self) -> None:
        """Release resources held by the store."""
        ...

    async def probe_object(self, bucket: str, key: str) -> ObjectInfo:
        """Fetch an object's size and modification time.

        Args:
            bucket: The bucket name.
            key: The object key.

        Returns:
            The object's metadata.

        Raises:
            NotFoundError: If the object does not exist.
            TransferError: On any other failure.
        """
        ...

    async def stream_object(self, bucket: str, key: str, path: str | Path) -> int:
        """Download an object into a local file.

        Args:
            bucket: The bucket name.
            key: The object key.
            path: Destination file; created or truncated.

        Returns:
            The number of bytes written.

        Raises:
            TransferError: If the download or the local write fails.
        """
        ...
