"""
FastAPI dependencies that hand injected collaborators to route handlers.
"""

from __future__ import annotations

from fastapi import Request

from storage.base import Storage
from workflows.repository import WorkflowRepository


def get_repository(request: Request) -> WorkflowRepository:
    return request.app.state.workflows


def get_storage(request: Request) -> Storage:
    return request.app.state.storage
