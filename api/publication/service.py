"""
Dataset publication business logic.

Every route runs the same pipeline: resolve the slug, authorize, fetch the
manifest, then redirect to the canonical slug if the caller used another.
"""

from __future__ import annotations

import logging

from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from core.errors import ArtifactNotInDataset, DatasetNotPublished, InvalidManifest
from storage import NotFound, Storage, StorageReader
from workflows import access
from workflows.repository import WorkflowRepository

from .schemas import DataPackage

logger = logging.getLogger(__name__)

DATAPACKAGE = "datapackage.json"


async def access_workflow(
    slug: str,
    authorization: str | None,
    *,
    repository: WorkflowRepository,
) -> int:
    """
    Return the workflow id behind `slug` if the caller may read it.
    """
    # A malformed header is reported before anything else about the request.
    credential = access.extract_credential(authorization)
    workflow_id = access.parse_workflow_id(slug)
    await access.authorize(repository, workflow_id, credential)
    return workflow_id


def datapackage_key(workflow_id: int, revision: str | None = None) -> str:
    if revision is None:
        return f"/wf-{workflow_id}/{DATAPACKAGE}"
    return f"/wf-{workflow_id}/{revision}/{DATAPACKAGE}"


def artifact_key(workflow_id: int, subpath: str) -> str:
    return f"/wf-{workflow_id}/{subpath}"


async def read_datapackage(
    storage: Storage,
    workflow_id: int,
    revision: str | None = None,
) -> tuple[bytes, DataPackage]:
    """
    Fetch and validate the manifest. Returns (raw bytes, parsed manifest).
    """
    key = datapackage_key(workflow_id, revision)
    try:
        raw = await storage.read_bytes(key)
    except NotFound as exc:
        raise DatasetNotPublished() from exc

    try:
        datapackage = DataPackage.model_validate_json(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValidationError) as exc:
        logger.error("invalid_datapackage key=%s error=%s", key, exc)
        raise InvalidManifest() from exc

    return raw, datapackage


def canonical_redirect(slug: str, datapackage: DataPackage, subpath: str) -> RedirectResponse | None:
    """
    Redirect to `subpath` under the manifest's name unless `slug` is exactly that name.
    """
    if slug == datapackage.name:
        return None
    return RedirectResponse(url=f"/v1/datasets/{datapackage.name}/{subpath}", status_code=302)


async def open_artifact(storage: Storage, workflow_id: int, subpath: str) -> StorageReader:
    try:
        return await storage.create_reader(artifact_key(workflow_id, subpath))
    except NotFound as exc:
        raise ArtifactNotInDataset() from exc
