"""
Temporary resource handles for uploaded and generated videos.

A handle is the server-side stand-in for a browser object URL: an
opaque id that resolves to an in-memory blob until it is revoked.
Sessions create handles for the uploaded preview and the generated
result and revoke them on reset or teardown, so the store should be
empty whenever no session holds anything.

Blobs live in process memory only. Nothing survives a restart.
"""

import logging
import threading
from dataclasses import dataclass
from uuid import uuid4

from ...core.restoration.models import ResourceHandle

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a handle cannot be resolved."""
    pass


@dataclass
class StoredResource:
    """A blob and the handle that points at it."""
    handle: ResourceHandle
    data: bytes


class InMemoryResourceStore:
    """
    Dictionary-backed resource store.

    Guarded by a lock because FastAPI runs sync dependencies in a
    thread pool while routes run on the event loop.
    """

    def __init__(self) -> None:
        self._resources: dict[str, StoredResource] = {}
        self._lock = threading.Lock()
        logger.info("Initialized in-memory resource store")

    def create(self, data: bytes, mime_type: str, filename: str = "") -> ResourceHandle:
        """Store a blob and return a new handle for it."""
        handle = ResourceHandle(
            id=f"res_{uuid4().hex}",
            mime_type=mime_type,
            size_bytes=len(data),
            filename=filename,
        )
        with self._lock:
            self._resources[handle.id] = StoredResource(handle=handle, data=data)

        logger.debug(
            "Created resource handle",
            extra={"handle_id": handle.id, "mime_type": mime_type, "size_bytes": len(data)},
        )
        return handle

    def get(self, handle_id: str) -> StoredResource:
        with self._lock:
            resource = self._resources.get(handle_id)
        if resource is None:
            raise StorageError(f"Resource not found: {handle_id}")
        return resource

    def read(self, handle_id: str) -> bytes:
        return self.get(handle_id).data

    def revoke(self, handle_id: str) -> bool:
        """
        Release a handle.

        Returns False when the handle was already gone, so revoking twice
        is harmless.
        """
        with self._lock:
            removed = self._resources.pop(handle_id, None)

        if removed is not None:
            logger.debug("Revoked resource handle", extra={"handle_id": handle_id})
        return removed is not None

    def clear(self) -> int:
        """Revoke everything. Returns the number of handles released."""
        with self._lock:
            count = len(self._resources)
            self._resources.clear()
        return count

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._resources)

    @property
    def active_bytes(self) -> int:
        with self._lock:
            return sum(len(r.data) for r in self._resources.values())


def create_resource_store() -> InMemoryResourceStore:
    """Factory kept for symmetry with the other infrastructure clients."""
    return InMemoryResourceStore()
