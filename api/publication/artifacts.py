"""
The closed set of files that may be downloaded from a dataset revision.

A request path is only turned into a storage key once every segment has
matched one of these shapes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_SLUG_RE = re.compile(r"[-0-9a-z]+")
_REVISION_RE = re.compile(r"r[0-9]+")
_DATA_FILE_RE = re.compile(r"data/[-a-z0-9]+_(?P<suffix>parquet\.parquet|csv\.csv\.gz|json\.json\.gz)")

README = "README.md"
README_CONTENT_TYPE = "text/markdown; charset=utf-8"

# Parquet has no registered MIME type yet.
DATA_CONTENT_TYPES = {
    "parquet.parquet": "application/x-parquet",
    "csv.csv.gz": "application/gzip",
    "json.json.gz": "application/gzip",
}


@dataclass(frozen=True)
class ArtifactRoute:
    revision: str
    # Path below the slug, e.g. "r3/data/table-1_csv.csv.gz".
    subpath: str
    content_type: str


def match_artifact(slug: str, revision: str, artifact: str) -> ArtifactRoute | None:
    """
    Return the route for `/v1/datasets/<slug>/<revision>/<artifact>`, or None.
    """
    if not _SLUG_RE.fullmatch(slug) or not _REVISION_RE.fullmatch(revision):
        return None

    if artifact == README:
        content_type = README_CONTENT_TYPE
    else:
        match = _DATA_FILE_RE.fullmatch(artifact)
        if match is None:
            return None
        content_type = DATA_CONTENT_TYPES[match.group("suffix")]

    return ArtifactRoute(
        revision=revision,
        subpath=f"{revision}/{artifact}",
        content_type=content_type,
    )
