"""
S3-compatible backend (AWS, MinIO) built on boto3.

boto3 is blocking, so every call runs in Starlette's threadpool. Path-style
addressing keeps MinIO endpoints working.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import iterate_in_threadpool, run_in_threadpool

from .base import HEALTHZ_KEY, NotFound, Storage, StorageReader, StorageTransportError, object_name

logger = logging.getLogger(__name__)

# GetObject says NoSuchKey; HeadObject has no body, so botocore reports "404"
# (some servers send "NotFound").
_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})

CHUNK_SIZE = 64 * 1024


def _client(endpoint: str | None, region: str, timeout_s: float) -> BaseClient:
    return boto3.client(
        "s3",
        endpoint_url=endpoint or None,
        region_name=region,
        config=Config(
            s3={"addressing_style": "path"},
            connect_timeout=timeout_s,
            read_timeout=timeout_s,
            retries={"total_max_attempts": 1},
        ),
    )


def _error_code(err: ClientError) -> str:
    return str(err.response.get("Error", {}).get("Code", ""))


def _iter_body(body: Any, key: str) -> Iterator[bytes]:
    try:
        yield from body.iter_chunks(CHUNK_SIZE)
    except BotoCoreError as err:
        raise StorageTransportError(f"S3 read failed for {key!r}: {err}") from err


class S3Storage(Storage):
    def __init__(
        self,
        endpoint: str | None,
        bucket: str,
        *,
        region: str = "us-east-1",
        timeout_s: float = 30.0,
        healthz_timeout_s: float = 2.0,
        client: BaseClient | None = None,
        healthz_client: BaseClient | None = None,
    ) -> None:
        self.bucket = bucket
        self.client = client or _client(endpoint, region, timeout_s)
        self.healthz_client = healthz_client or client or _client(endpoint, region, healthz_timeout_s)

    def _get_object(self, key: str) -> dict[str, Any]:
        try:
            return self.client.get_object(Bucket=self.bucket, Key=object_name(key))
        except ClientError as err:
            if _error_code(err) in _NOT_FOUND_CODES:
                raise NotFound(key) from err
            raise StorageTransportError(f"S3 GetObject failed for {key!r}: {err}") from err
        except BotoCoreError as err:
            raise StorageTransportError(f"S3 GetObject failed for {key!r}: {err}") from err

    async def read_bytes(self, key: str) -> bytes:
        response = await run_in_threadpool(self._get_object, key)
        body = response["Body"]
        try:
            return await run_in_threadpool(body.read)
        except BotoCoreError as err:
            raise StorageTransportError(f"S3 read failed for {key!r}: {err}") from err
        finally:
            body.close()

    async def create_reader(self, key: str) -> StorageReader:
        # GetObject returns once status and headers arrive; the body is still unread.
        response = await run_in_threadpool(self._get_object, key)
        body = response["Body"]

        async def close() -> None:
            await run_in_threadpool(body.close)

        return StorageReader(
            iterate_in_threadpool(_iter_body(body, key)),
            int(response["ContentLength"]),
            close,
        )

    async def healthz_storage_error(self) -> str | None:
        try:
            await run_in_threadpool(
                self.healthz_client.head_object, Bucket=self.bucket, Key=HEALTHZ_KEY
            )
        except ClientError as err:
            # The bucket answered; a missing probe key is fine.
            if _error_code(err) in _NOT_FOUND_CODES:
                return None
            logger.warning("healthz_storage_failed engine=s3 error=%r", err)
            return f"{type(err).__name__}: {err}"
        except Exception as err:
            logger.warning("healthz_storage_failed engine=s3 error=%r", err)
            return f"{type(err).__name__}: {err}"
        return None
