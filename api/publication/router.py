"""
Dataset publication endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from core.dependencies import get_repository, get_storage
from storage import Storage
from workflows.repository import WorkflowRepository

from . import artifacts
from . import service

router = APIRouter(prefix="/v1/datasets")


@router.get("/{slug}/datapackage.json")
async def get_datapackage(
    slug: str,
    authorization: str | None = Header(default=None),
    repository: WorkflowRepository = Depends(get_repository),
    storage: Storage = Depends(get_storage),
) -> Response:
    """
    Serve the dataset's top-level manifest.
    """
    workflow_id = await service.access_workflow(slug, authorization, repository=repository)
    raw, datapackage = await service.read_datapackage(storage, workflow_id)
    redirect = service.canonical_redirect(slug, datapackage, service.DATAPACKAGE)
    if redirect is not None:
        return redirect
    return Response(content=raw, media_type="application/json")


@router.get("/{slug}/{revision}/datapackage.json")
async def get_revision_datapackage(
    slug: str,
    revision: str,
    authorization: str | None = Header(default=None),
    repository: WorkflowRepository = Depends(get_repository),
    storage: Storage = Depends(get_storage),
) -> Response:
    """
    Serve the manifest of one revision.
    """
    workflow_id = await service.access_workflow(slug, authorization, repository=repository)
    raw, datapackage = await service.read_datapackage(storage, workflow_id, revision)
    redirect = service.canonical_redirect(slug, datapackage, f"{revision}/{service.DATAPACKAGE}")
    if redirect is not None:
        return redirect
    return Response(content=raw, media_type="application/json")


@router.get("/{slug}/{revision}/{artifact:path}")
async def get_artifact(
    slug: str,
    revision: str,
    artifact: str,
    authorization: str | None = Header(default=None),
    repository: WorkflowRepository = Depends(get_repository),
    storage: Storage = Depends(get_storage),
) -> Response:
    """
    Stream README.md or a data file of one revision.
    """
    route = artifacts.match_artifact(slug, revision, artifact)
    if route is None:
        raise HTTPException(status_code=404)

    workflow_id = await service.access_workflow(slug, authorization, repository=repository)
    # The revision's manifest decides both "is it published" and the canonical slug.
    _, datapackage = await service.read_datapackage(storage, workflow_id, route.revision)
    redirect = service.canonical_redirect(slug, datapackage, route.subpath)
    if redirect is not None:
        return redirect

    reader = await service.open_artifact(storage, workflow_id, route.subpath)
    return StreamingResponse(
        reader.iter_bytes(),
        media_type=route.content_type,
        headers={"Content-Length": str(reader.content_length)},
        background=BackgroundTask(reader.aclose),
    )
