"""
Blob store interface shared by every backend.

Backends translate their vendor faults at the edge: callers only ever see
`NotFound` or `StorageTransportError` (chained to the original exception).
"""

from __future__ import annotations

import abc
from typing import AsyncIterator, Awaitable, Callable

import anyio

# Probed by healthz_storage_error(). It need not exist.
HEALTHZ_KEY = "healthz"


class StorageError(RuntimeError):
    pass


class NotFound(StorageError):
    def __init__(self, key: str) -> None:
        super().__init__(f"NotFound: {key}")
        self.key = key


class StorageTransportError(StorageError):
    pass


def object_name(key: str) -> str:
    """Keys are written "/wf-1/datapackage.json"; buckets store "wf-1/datapackage.json"."""
    return key.lstrip("/")


class StorageReader:
    """
    An opened object: its exact length plus a byte stream that has not started.

    The stream is consumed once, through `iter_bytes()`. `aclose()` releases
    the upstream response and is safe to call more than once.
    """

    def __init__(
        self,
        chunks: AsyncIterator[bytes],
        content_length: int,
        close: Callable[[], Awaitable[None]],
    ) -> None:
        self.content_length = content_length
        self._chunks = chunks
        self._close = close
        self._closed = False

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._chunks:
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return None
        # Runs from a cancelled body iterator on client disconnect.
        with anyio.CancelScope(shield=True):
            await self._close()
        self._closed = True

    async def __aenter__(self) -> StorageReader:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class Storage(metaclass=abc.ABCMeta):
    """Read-only access to one bucket."""

    @abc.abstractmethod
    async def read_bytes(self, key: str) -> bytes:
        """Return the whole object. Raise NotFound if it does not exist."""
        raise NotImplementedError

    @abc.abstractmethod
    async def create_reader(self, key: str) -> StorageReader:
        """Open the object for streaming. Raise NotFound if it does not exist.

        Returns only after the backend has answered, so the content length is
        known and no bytes have been consumed yet.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def healthz_storage_error(self) -> str | None:
        """Probe the backend with a short timeout. Return None or an error message; never raise."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release backend clients (no-op by default)."""
        pass
