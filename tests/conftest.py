"""Shared test fixtures for Pipeforge."""

from __future__ import annotations

import copy
import os
from collections.abc import Callable
from typing import Any

import pytest

from pipeforge.core.assembler import Assembler
from pipeforge.core.permission_synthesizer import PermissionSynthesizer, ResourceRef
from pipeforge.models.common import ResourceKind
from pipeforge.models.environment import TargetEnvironment
from pipeforge.models.iam import IdentityRole, TrustPrincipal

REGION = "eu-central-1"
ACCOUNT = "123456789012"
CONNECTION_ID = "0f6c2a4e-1b7d-4d52-9e61-2c1f3b8a7d90"

SITE_ARN = "arn:aws:s3:::im-frontend-site"
ARTIFACTS_ARN = "arn:aws:s3:::im-frontend-artifacts"
PROJECT_ARN = f"arn:aws:codebuild:{REGION}:{ACCOUNT}:project/im-frontend-build"
CONNECTION_ARN = f"arn:aws:codeconnections:{REGION}:{ACCOUNT}:connection/{CONNECTION_ID}"
LOG_GROUP_ARN = f"arn:aws:logs:{REGION}:{ACCOUNT}:log-group:/aws/codebuild/im-frontend-build"
FUNCTION_ARN = f"arn:aws:lambda:{REGION}:{ACCOUNT}:function:im-backend"


@pytest.fixture
def environment() -> TargetEnvironment:
    """Provide a deterministic target environment."""
    return TargetEnvironment(region=REGION, account=ACCOUNT)


@pytest.fixture
def assembler(environment: TargetEnvironment) -> Assembler:
    """Provide an Assembler with the test connection id injected."""
    return Assembler(environment, connections={"GitHubConnection": CONNECTION_ID})


@pytest.fixture
def synthesizer() -> PermissionSynthesizer:
    """Provide a synthesizer with one resource of each kind and three roles."""
    synth = PermissionSynthesizer()
    for ref in (
        ResourceRef(logical_id="SiteBucket", kind=ResourceKind.STORAGE, arn=SITE_ARN),
        ResourceRef(logical_id="ArtifactBucket", kind=ResourceKind.STORAGE, arn=ARTIFACTS_ARN),
        ResourceRef(logical_id="SiteBuild", kind=ResourceKind.BUILD, arn=PROJECT_ARN),
        ResourceRef(logical_id="GitHubConnection", kind=ResourceKind.CONNECTION, arn=CONNECTION_ARN),
        ResourceRef(logical_id="BuildLogs", kind=ResourceKind.LOG_GROUP, arn=LOG_GROUP_ARN),
        ResourceRef(logical_id="Backend", kind=ResourceKind.FUNCTION, arn=FUNCTION_ARN),
    ):
        synth.register_resource(ref)
    synth.register_role(IdentityRole(logical_id="BuildRole", trust_principal=TrustPrincipal.BUILD))
    synth.register_role(
        IdentityRole(logical_id="PipelineRole", trust_principal=TrustPrincipal.PIPELINE)
    )
    synth.register_role(
        IdentityRole(logical_id="FunctionRole", trust_principal=TrustPrincipal.FUNCTION)
    )
    return synth


# ---------------------------------------------------------------------------
# Definition factories shared across test modules
# ---------------------------------------------------------------------------

_BASE_DEFINITION: dict[str, Any] = {
    "name": "im-frontend",
    "storage": [
        {
            "logical_id": "ArtifactBucket",
            "bucket_name": "im-frontend-artifacts",
            "versioned": True,
        },
        {
            "logical_id": "SiteBucket",
            "bucket_name": "im-frontend-site",
            "visibility": "website",
            "website": {"index_document": "index.html", "error_document": "index.html"},
        },
    ],
    "connections": [{"logical_id": "GitHubConnection"}],
    "roles": [{"logical_id": "BuildRole", "trust_principal": "build"}],
    "builds": [
        {
            "logical_id": "SiteBuild",
            "project_name": "im-frontend-build",
            "service_role": "BuildRole",
            "timeout_minutes": 20,
            "environment_variables": {"S3_BUCKET": {"resource": "SiteBucket"}},
        }
    ],
    "needs": [{"consumer": "BuildRole", "resource": "SiteBucket", "capability": "read-write"}],
    "pipeline": {
        "logical_id": "Pipeline",
        "artifact_store": "ArtifactBucket",
        "stages": [
            {
                "name": "Source",
                "actions": [{
                    "name": "GitHub_Source",
                    "kind": "source",
                    "resource": "GitHubConnection",
                    "outputs": ["SourceOutput"],
                    "configuration": {
                        "FullRepositoryId": "sakai/im-frontend",
                        "BranchName": "develop",
                    },
                }],
            },
            {
                "name": "Build",
                "actions": [{
                    "name": "CodeBuild",
                    "kind": "build",
                    "resource": "SiteBuild",
                    "inputs": ["SourceOutput"],
                }],
            },
        ],
    },
}


@pytest.fixture
def make_definition() -> Callable[..., dict[str, Any]]:
    """Factory fixture: a static-site definition as a raw mapping.

    Top-level keys may be overridden; the result is a fresh deep copy.
    """

    def _factory(**overrides: Any) -> dict[str, Any]:
        data = copy.deepcopy(_BASE_DEFINITION)
        data.update(copy.deepcopy(overrides))
        return data

    return _factory


@pytest.fixture
def make_stages() -> Callable[..., list[dict[str, Any]]]:
    """Factory fixture: stages from ``(stage name, [action dicts])`` pairs."""

    def _factory(*stages: tuple[str, list[dict[str, Any]]]) -> list[dict[str, Any]]:
        return [{"name": name, "actions": list(actions)} for name, actions in stages]

    return _factory


@pytest.fixture
def definition_data(make_definition: Callable[..., dict[str, Any]]) -> dict[str, Any]:
    """Convenience: the default definition mapping."""
    return make_definition()


@pytest.fixture(autouse=True)
def _clean_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep PIPEFORGE_* variables from the outer shell out of every test."""
    for key in list(os.environ):
        if key.startswith("PIPEFORGE_"):
            monkeypatch.delenv(key, raising=False)
