"""Target environment injected into the Assembler."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

REGION_PATTERN = r"^[a-z]{2}(-[a-z]+)+-\d+$"
ACCOUNT_PATTERN = r"^\d{12}$"
KNOWN_PARTITIONS: frozenset[str] = frozenset({"aws", "aws-cn", "aws-us-gov"})


class TargetEnvironment(BaseModel):
    """Where the synthesized graph is going to live.

    Always supplied by the caller (settings, CLI options, tests); synthesis
    logic never carries its own region or account.
    """

    model_config = ConfigDict(frozen=True)

    region: str = Field(pattern=REGION_PATTERN)
    account: str = Field(pattern=ACCOUNT_PATTERN)
    partition: str = "aws"
