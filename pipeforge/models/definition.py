"""The declarative input handed to the Assembler."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from pipeforge.models.build import BuildResource
from pipeforge.models.connection import Connection
from pipeforge.models.function import FunctionResource
from pipeforge.models.iam import AccessNeed, IdentityRole
from pipeforge.models.storage import StorageResource
from pipeforge.models.topology import PipelineResource


class PipelineDefinition(BaseModel):
    """Resources, roles, declared needs and (optionally) a pipeline.

    A definition without ``pipeline`` describes standalone, webhook-driven
    builds.  ``needs`` are processed in declaration order.
    """

    model_config = ConfigDict(frozen=True)

    name: str = "pipeline"
    pipeline: PipelineResource | None = None
    storage: list[StorageResource] = []
    builds: list[BuildResource] = []
    functions: list[FunctionResource] = []
    connections: list[Connection] = []
    roles: list[IdentityRole] = []
    needs: list[AccessNeed] = []

    @property
    def logical_ids(self) -> list[str]:
        """Every declared logical id, in declaration order."""
        ids: list[str] = []
        for group in (self.storage, self.builds, self.functions, self.connections, self.roles):
            ids.extend(r.logical_id for r in group)
        if self.pipeline is not None:
            ids.append(self.pipeline.logical_id)
        return ids
