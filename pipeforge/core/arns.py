"""Resource reference templating.

Every ARN is built from the injected ``TargetEnvironment``; nothing in the
synthesis path carries a literal region, account or connection id.
"""

from __future__ import annotations

from pipeforge.models.environment import TargetEnvironment


class ArnResolver:
    """Templates resource references for one target environment."""

    def __init__(self, environment: TargetEnvironment) -> None:
        self._env = environment

    @property
    def environment(self) -> TargetEnvironment:
        return self._env

    def _regional(self, service: str, resource: str) -> str:
        env = self._env
        return f"arn:{env.partition}:{service}:{env.region}:{env.account}:{resource}"

    def bucket_arn(self, bucket_name: str) -> str:
        return f"arn:{self._env.partition}:s3:::{bucket_name}"

    def objects_arn(self, bucket_name: str) -> str:
        return f"{self.bucket_arn(bucket_name)}/*"

    def project_arn(self, project_name: str) -> str:
        return self._regional("codebuild", f"project/{project_name}")

    def connection_arn(self, connection_id: str) -> str:
        return self._regional("codeconnections", f"connection/{connection_id}")

    def log_group_arn(self, group_name: str) -> str:
        return self._regional("logs", f"log-group:{group_name}")

    def function_arn(self, function_name: str) -> str:
        return self._regional("lambda", f"function:{function_name}")
