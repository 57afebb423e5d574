"""
Published dataset schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, StrictStr


class DataPackage(BaseModel):
    # Only `name` matters here; the rest of the manifest is served verbatim.
    model_config = ConfigDict(extra="allow")

    name: StrictStr
