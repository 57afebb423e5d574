"""
Workflow persistence (read-only).

The gateway never writes workflows; it only asks whether one exists, whether
it is public and what its secret is.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from core.db import Database

logger = logging.getLogger(__name__)

# Postgres BIGINT bounds. Anything outside cannot be a stored id.
_ID_MIN = -(2**63)
_ID_MAX = 2**63 - 1


@dataclass(frozen=True)
class WorkflowAccess:
    public: bool
    secret: str


class WorkflowRepository:
    def __init__(self, database: Database, *, healthz_timeout_s: float = 2.0) -> None:
        self._database = database
        self._healthz_timeout_s = healthz_timeout_s

    async def resolve_visibility(self, workflow_id: int) -> WorkflowAccess | None:
        """
        Return the workflow's visibility and secret, or None when it does not exist.
        """
        if not _ID_MIN <= workflow_id <= _ID_MAX:
            return None

        row = await self._database.fetch_one(
            """
            SELECT public, secret_id
            FROM workflow
            WHERE id = $1
            """,
            workflow_id,
        )
        if row is None:
            return None
        return WorkflowAccess(public=bool(row["public"]), secret=str(row["secret_id"] or ""))

    async def healthz_database_error(self) -> str | None:
        """
        Run a trivial query with a short timeout; return an error message or None.

        Never raises: the result is a health signal, not a request failure.
        """
        try:
            await asyncio.wait_for(
                self._database.fetch_one("SELECT 1 AS ok"),
                timeout=self._healthz_timeout_s,
            )
        except Exception as exc:
            logger.warning("healthz_database_failed error=%r", exc)
            return f"{type(exc).__name__}: {exc}"
        return None
