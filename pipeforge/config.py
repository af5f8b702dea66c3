"""Environment-derived configuration: target region, account and connections.

Centralized settings using pydantic-settings.  Reads from a .env file and
PIPEFORGE_* environment variables.  There is no module-level instance:
callers build ``PipelineSettings`` and hand the derived
``TargetEnvironment`` to the Assembler explicitly.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from pipeforge.core.errors import ConfigurationError
from pipeforge.models.environment import TargetEnvironment


class PipelineSettings(BaseSettings):
    """Assembly configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export PIPEFORGE_REGION=us-east-1
        export PIPEFORGE_ACCOUNT=123456789012
        export PIPEFORGE_CONNECTIONS='{"GitHubConnection": "0f6c2a4e-1b7d-4d52-9e61-2c1f3b8a7d90"}'

    Or via .env file::

        PIPEFORGE_ENVIRONMENT=production
        PIPEFORGE_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PIPEFORGE_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Target environment
    region: str = ""
    account: str = ""
    partition: str = "aws"

    # Connection logical id -> connection id (JSON object in the env var)
    connections: dict[str, str] = {}

    # Derived build log groups are named <prefix>/<project name>
    log_group_prefix: str = "/aws/codebuild"

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"

    def target_environment(self) -> TargetEnvironment:
        """The frozen target environment, or ``ConfigurationError``."""
        try:
            return TargetEnvironment(
                region=self.region, account=self.account, partition=self.partition
            )
        except PydanticValidationError as exc:
            fields = sorted({str(e["loc"][0]) for e in exc.errors() if e.get("loc")})
            raise ConfigurationError(
                f"invalid target environment ({', '.join(fields)}); set "
                + ", ".join(f"PIPEFORGE_{f.upper()}" for f in fields),
                location="settings",
            ) from exc
