"""Source-control connection descriptor."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pipeforge.models.common import LOGICAL_ID_PATTERN


class Connection(BaseModel):
    """An external source-control link.

    ``connection_id`` may be left out of the definition; the Assembler then
    resolves it from the injected settings by ``logical_id``.  Only the
    templated ARN appears in the synthesized graph.
    """

    model_config = ConfigDict(frozen=True)

    logical_id: str = Field(pattern=LOGICAL_ID_PATTERN)
    provider: str = "GitHub"
    connection_id: str | None = Field(default=None, pattern=r"^[A-Za-z0-9-]+$")
