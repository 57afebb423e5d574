"""
Slug parsing and per-workflow authorization.
"""

from __future__ import annotations

import base64
import hmac
import re

from core.errors import Forbidden, InvalidSlug, MalformedCredential, WorkflowNotFound

from .repository import WorkflowRepository

_BEARER_PREFIX = "Bearer "
_WORKFLOW_ID_RE = re.compile(r"[0-9]+")


def parse_workflow_id(slug: str) -> int:
    """
    Return the workflow id encoded in `slug` ("123" or "123-human-readable").

    Only the part before the first "-" matters; the suffix is checked later
    against the dataset's canonical name.
    """
    prefix = slug.split("-", 1)[0]
    if not _WORKFLOW_ID_RE.fullmatch(prefix):
        raise InvalidSlug()
    return int(prefix)


def extract_credential(authorization: str | None) -> str:
    """
    Decode `Authorization: Bearer <base64(secret)>` into the raw secret.

    No header means anonymous, which is the empty string.
    """
    if not authorization:
        return ""
    if not authorization.startswith(_BEARER_PREFIX):
        raise MalformedCredential()

    token = authorization[len(_BEARER_PREFIX):]
    try:
        return base64.b64decode(token, validate=True).decode("utf-8")
    except ValueError as exc:
        # binascii.Error and UnicodeDecodeError are both ValueErrors.
        raise MalformedCredential() from exc


def secrets_equal(presented: str, stored: str) -> bool:
    # Compare encoded lengths: compare_digest leaks only length, which we check first.
    presented_bytes = presented.encode("utf-8")
    stored_bytes = stored.encode("utf-8")
    if len(presented_bytes) != len(stored_bytes):
        return False
    return hmac.compare_digest(presented_bytes, stored_bytes)


async def authorize(repository: WorkflowRepository, workflow_id: int, credential: str) -> None:
    """
    Raise WorkflowNotFound or Forbidden unless `credential` may read the workflow.
    """
    workflow = await repository.resolve_visibility(workflow_id)
    if workflow is None:
        raise WorkflowNotFound()
    if workflow.public:
        return None
    if not secrets_equal(credential, workflow.secret):
        raise Forbidden()
    return None
