"""
Typed request failures.

Each subclass maps to one fixed HTTP status and plain-text body. The app
registers a single exception handler for `DatasetAccessError`; anything
else falls through to the framework's generic 500.
"""

from __future__ import annotations


class DatasetAccessError(RuntimeError):
    status_code: int = 500
    text: str = "Internal Server Error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.text)


class MalformedCredential(DatasetAccessError):
    status_code = 400
    text = "Badly-formed Authorization header"


class Forbidden(DatasetAccessError):
    status_code = 403
    text = "Wrong Authorization token"


class InvalidSlug(DatasetAccessError):
    status_code = 404
    text = "Workflow must start with an integer"


class WorkflowNotFound(DatasetAccessError):
    status_code = 404
    text = "Workflow not found"


class DatasetNotPublished(DatasetAccessError):
    status_code = 404
    text = "This dataset is not published"


class ArtifactNotInDataset(DatasetAccessError):
    status_code = 404
    text = "This file is not in the dataset"


class InvalidManifest(DatasetAccessError):
    status_code = 500
    text = "Invalid datapackage.json"
