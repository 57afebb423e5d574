"""In-memory stand-ins for the workflow repository and blob store.

HTTP tests build the app with these injected, so no database or bucket is
needed. Workflow ids follow the scenarios they exercise: 9 redirects, 10 is
served, 11/12 are private, 15 is missing, 16 has no manifest, and so on.
"""

from __future__ import annotations

import json
from typing import AsyncIterator

import pytest
from fastapi.testclient import TestClient

from core.settings import Settings
from main import create_app
from storage.base import NotFound, Storage, StorageReader, object_name
from workflows.repository import WorkflowAccess

RIGHT_SECRET = "right-secret"


class FakeWorkflowRepository:
    def __init__(self, workflows: dict[int, WorkflowAccess], healthz_error: str | None = None) -> None:
        self.workflows = workflows
        self.healthz_error = healthz_error
        self.lookups: list[int] = []

    async def resolve_visibility(self, workflow_id: int) -> WorkflowAccess | None:
        self.lookups.append(workflow_id)
        return self.workflows.get(workflow_id)

    async def healthz_database_error(self) -> str | None:
        return self.healthz_error


class InMemoryStorage(Storage):
    def __init__(
        self,
        objects: dict[str, bytes],
        *,
        chunk_size: int = 7,
        healthz_error: str | None = None,
    ) -> None:
        self.objects = objects
        self.chunk_size = chunk_size
        self.healthz_error = healthz_error
        self.opened: list[str] = []
        self.closed: list[str] = []

    async def read_bytes(self, key: str) -> bytes:
        try:
            return self.objects[object_name(key)]
        except KeyError:
            raise NotFound(key) from None

    async def create_reader(self, key: str) -> StorageReader:
        data = await self.read_bytes(key)
        self.opened.append(key)

        async def chunks() -> AsyncIterator[bytes]:
            for start in range(0, len(data), self.chunk_size):
                yield data[start:start + self.chunk_size]

        async def close() -> None:
            self.closed.append(key)

        return StorageReader(chunks(), len(data), close)

    async def healthz_storage_error(self) -> str | None:
        return self.healthz_error


def datapackage(name: object, **extra: object) -> bytes:
    return json.dumps({"name": name, "resources": [{"data": []}], **extra}).encode("utf-8")


CSV_GZ_BYTES = b"\x1f\x8b\x08\x00" + bytes(range(34))  # 38 bytes
PARQUET_BYTES = b"PAR1\x00\x01PAR1"
README_BYTES = b"# Readme\n\n(please)\n"


def _public() -> WorkflowAccess:
    return WorkflowAccess(public=True, secret="")


def _private() -> WorkflowAccess:
    return WorkflowAccess(public=False, secret=RIGHT_SECRET)


@pytest.fixture
def repository() -> FakeWorkflowRepository:
    workflows = {i: _public() for i in (9, 10, 16, 17, 18, 19, 21, 23, 24, 26, 27, 28, 29, 30, 40, 41, 42, 43)}
    workflows.update({i: _private() for i in (11, 12, 13, 14, 20, 25)})
    return FakeWorkflowRepository(workflows)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage(
        {
            "wf-9/datapackage.json": datapackage("9-right-slug"),
            "wf-10/datapackage.json": datapackage("10-right-slug"),
            "wf-11/datapackage.json": datapackage("11-right-slug"),
            "wf-12/datapackage.json": datapackage("12-right-slug"),
            "wf-14/datapackage.json": datapackage("14-right-slug"),
            "wf-17/datapackage.json": datapackage("17-added-slug"),
            "wf-18/r1/datapackage.json": datapackage("18-slug-1"),
            "wf-18/r2/datapackage.json": datapackage("18-slug-2"),
            "wf-19/r1/datapackage.json": datapackage("19-right-slug"),
            "wf-20/r1/datapackage.json": datapackage("20-missing-secret"),
            "wf-21/r1/datapackage.json": datapackage("21-wrong-revision"),
            "wf-23/r1/datapackage.json": datapackage("23-right-slug"),
            "wf-23/r1/data/tab-1_csv.csv.gz": CSV_GZ_BYTES,
            "wf-24/r1/datapackage.json": datapackage("24-readme-md"),
            "wf-24/r1/README.md": README_BYTES,
            "wf-25/r1/datapackage.json": datapackage("25-missing-secret"),
            "wf-25/r1/README.md": README_BYTES,
            "wf-26/r1/datapackage.json": datapackage("26-wrong-subpath"),
            "wf-26/r1/data/tab-1_csv.csv.gz": CSV_GZ_BYTES,
            "wf-27/r1/datapackage.json": datapackage("27-missing-revision"),
            "wf-28/r1/datapackage.json": datapackage("28-csv"),
            "wf-28/r1/data/tab-1_csv.csv.gz": CSV_GZ_BYTES,
            "wf-29/r1/datapackage.json": datapackage("29-json"),
            "wf-29/r1/data/tab-1_json.json.gz": b"\x1f\x8b" + b"j" * 39,
            "wf-30/r1/datapackage.json": datapackage("30-parquet"),
            "wf-30/r1/data/tab-1_parquet.parquet": PARQUET_BYTES,
            "wf-40/datapackage.json": b"{not json",
            "wf-41/datapackage.json": b'{"resources": []}',
            "wf-42/datapackage.json": datapackage(42),
            "wf-43/datapackage.json": b'{"name": "43-\xff"}',
        }
    )


@pytest.fixture
def client(repository: FakeWorkflowRepository, storage: InMemoryStorage) -> TestClient:
    app = create_app(repository=repository, storage=storage)
    return TestClient(app, follow_redirects=False)


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = dict(
        database_url="postgresql://cjworkbench@db/cjworkbench",
        database_pool_max_size=3,
        database_acquire_timeout_s=1.0,
        database_command_timeout_s=30.0,
        storage_engine="s3",
        storage_endpoint="http://s3-server",
        storage_bucket="datasets.test",
        storage_region="us-east-1",
        storage_access_token=None,
        storage_timeout_s=30.0,
        healthz_timeout_s=2.0,
        log_level="INFO",
        host="0.0.0.0",
        port=8080,
    )
    values.update(overrides)
    return Settings(**values)
