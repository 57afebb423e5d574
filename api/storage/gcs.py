"""
Google Cloud Storage backend over the GCS JSON API, using httpx.

Endpoints used:
- GET /storage/v1/b/{bucket}/o/{object}?alt=media  -> object bytes
- GET /storage/v1/b/{bucket}/o/{object}            -> object metadata (healthz)
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator
from urllib.parse import quote

import google.auth.exceptions
import google.auth.transport.requests
import httpx
from google.auth.credentials import Credentials
from starlette.concurrency import run_in_threadpool

from .base import HEALTHZ_KEY, NotFound, Storage, StorageReader, StorageTransportError, object_name

logger = logging.getLogger(__name__)


async def _relay(response: httpx.Response, key: str) -> AsyncIterator[bytes]:
    # Raw bytes: stored gzip objects must reach the caller still gzipped.
    try:
        async for chunk in response.aiter_raw():
            yield chunk
    except httpx.HTTPError as exc:
        raise StorageTransportError(f"GCS read failed for {key!r}: {exc}") from exc


class GCSStorage(Storage):
    def __init__(
        self,
        endpoint: str,
        bucket: str,
        *,
        access_token: str | None = None,
        credentials: Credentials | None = None,
        timeout_s: float = 30.0,
        healthz_timeout_s: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        endpoint = (endpoint or "").strip().rstrip("/") or "https://storage.googleapis.com"
        # Ask for stored bytes as-is; otherwise GCS decompresses gzip-encoded objects.
        headers = {"Accept-Encoding": "gzip"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        self.bucket = bucket
        self.healthz_timeout_s = healthz_timeout_s
        # A static access token wins; otherwise these are refreshed as they expire.
        self.credentials = None if access_token else credentials
        self._refresh_lock = asyncio.Lock()
        self.client = httpx.AsyncClient(
            base_url=endpoint,
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )

    def _object_url(self, key: str) -> str:
        return f"/storage/v1/b/{quote(self.bucket, safe='')}/o/{quote(object_name(key), safe='')}"

    async def _auth_headers(self) -> dict[str, str]:
        if self.credentials is None:
            return {}
        if not self.credentials.valid:
            async with self._refresh_lock:
                if not self.credentials.valid:
                    await run_in_threadpool(self.credentials.refresh, google.auth.transport.requests.Request())
        return {"Authorization": f"Bearer {self.credentials.token}"}

    async def _open(self, key: str) -> httpx.Response:
        """
        Send the media request and wait for status and headers only.
        """
        try:
            headers = await self._auth_headers()
        except google.auth.exceptions.GoogleAuthError as exc:
            raise StorageTransportError(f"GCS credentials refresh failed: {exc}") from exc

        request = self.client.build_request(
            "GET", self._object_url(key), params={"alt": "media"}, headers=headers
        )
        try:
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise StorageTransportError(f"GCS request failed for {key!r}: {exc}") from exc

        if response.is_success:
            return response

        try:
            if response.status_code == 404:
                raise NotFound(key)
            try:
                await response.aread()
                body = response.text[:500]
            except httpx.HTTPError:
                body = ""
            raise StorageTransportError(
                f"GCS request failed for {key!r}: {response.status_code} {body}"
            )
        finally:
            await response.aclose()

    async def read_bytes(self, key: str) -> bytes:
        response = await self._open(key)
        try:
            return await response.aread()
        except httpx.HTTPError as exc:
            raise StorageTransportError(f"GCS read failed for {key!r}: {exc}") from exc
        finally:
            await response.aclose()

    async def create_reader(self, key: str) -> StorageReader:
        response = await self._open(key)
        raw_length = response.headers.get("Content-Length")
        if raw_length is None or not raw_length.isdigit():
            await response.aclose()
            raise StorageTransportError(f"GCS response for {key!r} has no Content-Length")

        return StorageReader(_relay(response, key), int(raw_length), response.aclose)

    async def healthz_storage_error(self) -> str | None:
        try:
            resp = await self.client.get(
                self._object_url(HEALTHZ_KEY),
                headers=await self._auth_headers(),
                timeout=self.healthz_timeout_s,
            )
        except Exception as exc:
            logger.warning("healthz_storage_failed engine=gcs error=%r", exc)
            return f"{type(exc).__name__}: {exc}"

        # The bucket answered; a missing probe key is fine.
        if resp.status_code in (200, 404):
            return None
        logger.warning("healthz_storage_failed engine=gcs status=%s", resp.status_code)
        return f"GCS healthz request failed: {resp.status_code} {resp.text[:300]}"

    async def aclose(self) -> None:
        await self.client.aclose()
