"""
Blob store backends behind one `Storage` interface.
"""

from __future__ import annotations

import google.auth

from core.settings import Settings

from .base import NotFound, Storage, StorageReader, StorageTransportError
from .gcs import GCSStorage
from .s3 import S3Storage

__all__ = [
    "GCSStorage",
    "NotFound",
    "S3Storage",
    "Storage",
    "StorageReader",
    "StorageTransportError",
    "create_storage",
]


GCS_READ_ONLY_SCOPE = "https://www.googleapis.com/auth/devstorage.read_only"


def _gcs_credentials(settings: Settings):
    """
    Application Default Credentials for Google's own endpoint.

    A custom endpoint (an emulator such as fake-gcs-server) is called
    anonymously unless CJW_STORAGE_ACCESS_TOKEN is set.
    """
    if settings.storage_access_token:
        return None
    endpoint = settings.storage_endpoint.strip().rstrip("/")
    if endpoint and endpoint != "https://storage.googleapis.com":
        return None
    credentials, _ = google.auth.default(scopes=[GCS_READ_ONLY_SCOPE])
    return credentials


def create_storage(settings: Settings) -> Storage:
    engine = settings.storage_engine
    if engine == "s3":
        return S3Storage(
            settings.storage_endpoint,
            settings.storage_bucket,
            region=settings.storage_region,
            timeout_s=settings.storage_timeout_s,
            healthz_timeout_s=settings.healthz_timeout_s,
        )
    if engine == "gcs":
        return GCSStorage(
            settings.storage_endpoint,
            settings.storage_bucket,
            access_token=settings.storage_access_token,
            credentials=_gcs_credentials(settings),
            timeout_s=settings.storage_timeout_s,
            healthz_timeout_s=settings.healthz_timeout_s,
        )
    raise ValueError(f'Unknown engine: "{engine}"')
