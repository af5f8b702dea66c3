"""Function deploy-target descriptor."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pipeforge.models.common import LOGICAL_ID_PATTERN


class FunctionResource(BaseModel):
    """A function updated by a deploy action.

    When ``code_bucket`` is set, the function's execution role is granted
    ``read`` on it so the runtime can fetch its package.
    """

    model_config = ConfigDict(frozen=True)

    logical_id: str = Field(pattern=LOGICAL_ID_PATTERN)
    function_name: str | None = Field(default=None, pattern=r"^[A-Za-z0-9_-]{1,64}$")
    runtime: str = "python3.11"
    handler: str = "index.handler"
    memory_mb: int = Field(default=128, ge=128, le=10240)
    timeout_seconds: int = Field(default=3, ge=1, le=900)
    code_bucket: str | None = None
    code_key: str | None = None
    execution_role: str | None = Field(default=None, pattern=LOGICAL_ID_PATTERN)
    environment: dict[str, str] = {}

    @model_validator(mode="after")
    def _code_location(self) -> FunctionResource:
        if (self.code_bucket is None) != (self.code_key is None):
            raise ValueError("code_bucket and code_key must be set together")
        return self

    @property
    def resolved_function_name(self) -> str:
        return self.function_name or self.logical_id
