"""
Health check endpoint.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from core.dependencies import get_repository, get_storage
from storage import Storage
from workflows.repository import WorkflowRepository

from .schemas import HealthResponse

router = APIRouter()


@router.get("/healthz", response_model=HealthResponse)
async def healthz(
    repository: WorkflowRepository = Depends(get_repository),
    storage: Storage = Depends(get_storage),
) -> JSONResponse:
    """
    Probe the database and storage concurrently; 200 only if both are healthy.
    """
    database_error, storage_error = await asyncio.gather(
        repository.healthz_database_error(),
        storage.healthz_storage_error(),
    )
    body = HealthResponse(
        database="ok" if database_error is None else database_error,
        storage="ok" if storage_error is None else storage_error,
    )
    healthy = database_error is None and storage_error is None
    return JSONResponse(status_code=200 if healthy else 500, content=body.model_dump())
