"""Ready-made definitions for the common pipeline shapes.

Each preset is a plain builder function returning a ``PipelineDefinition``;
presets compose resources rather than extending a base type.  No preset
carries an account, region or connection id: connection ids come from the
caller or from injected settings.
"""

from __future__ import annotations

from collections.abc import Callable

from pipeforge.core.resources import new_definition
from pipeforge.models.common import to_slug
from pipeforge.models.definition import PipelineDefinition

WEBSITE_DOCUMENT = "index.html"
SOURCE_ARTIFACT = "SourceOutput"
BUILD_ARTIFACT = "BuildOutput"

# Image used by function builds that need a newer toolchain
STANDARD_7_IMAGE = "aws/codebuild/amazonlinux2-x86_64-standard:7.0"


def _connection(logical_id: str, connection_id: str | None) -> dict:
    data: dict = {"logical_id": logical_id, "provider": "GitHub"}
    if connection_id:
        data["connection_id"] = connection_id
    return data


def _source_stage(connection: str, repository: str, branch: str) -> dict:
    return {
        "name": "Source",
        "actions": [{
            "name": "GitHub_Source",
            "kind": "source",
            "resource": connection,
            "outputs": [SOURCE_ARTIFACT],
            "configuration": {
                "FullRepositoryId": repository,
                "BranchName": branch,
                "OutputArtifactFormat": "CODE_ZIP",
            },
        }],
    }


def _artifact_store(logical_id: str, bucket_name: str) -> dict:
    return {
        "logical_id": logical_id,
        "bucket_name": bucket_name,
        "visibility": "private",
        "versioned": True,
        "removal_policy": "destroy",
        "auto_delete_objects": True,
        "lifecycle_rules": [{
            "id": "DeleteRuleForOldArtifactsId",
            "expiration_days": 1,
            "abort_incomplete_upload_after_days": 2,
        }],
    }


def static_site_pipeline(
    name: str,
    *,
    repository: str,
    branch: str = "develop",
    connection: str = "GitHubConnection",
    connection_id: str | None = None,
    site_bucket: str | None = None,
    artifact_bucket: str | None = None,
    build_spec: str = "buildspec.yaml",
) -> PipelineDefinition:
    """Source -> Build pipeline publishing a static site to a website bucket.

    The build receives the site bucket name as ``S3_BUCKET`` and read-write
    access to it; the pipeline role gets the same on the site bucket.
    """
    slug = to_slug(name)
    return new_definition(
        name=name,
        storage=[
            _artifact_store("ArtifactBucket", artifact_bucket or f"{slug}-artifacts"),
            {
                "logical_id": "SiteBucket",
                "bucket_name": site_bucket or f"{slug}-site",
                "visibility": "website",
                "website": {
                    "index_document": WEBSITE_DOCUMENT,
                    "error_document": WEBSITE_DOCUMENT,
                },
            },
        ],
        connections=[_connection(connection, connection_id)],
        roles=[
            {"logical_id": "PipelineRole", "trust_principal": "pipeline"},
            {"logical_id": "BuildRole", "trust_principal": "build"},
        ],
        builds=[{
            "logical_id": "SiteBuild",
            "project_name": f"{slug}-build",
            "build_spec": build_spec,
            "timeout_minutes": 20,
            "queued_timeout_minutes": 480,
            "service_role": "BuildRole",
            "environment_variables": {"S3_BUCKET": {"resource": "SiteBucket"}},
        }],
        needs=[
            {"consumer": "BuildRole", "resource": "SiteBucket", "capability": "read-write"},
            {"consumer": "PipelineRole", "resource": "SiteBucket", "capability": "read-write"},
        ],
        pipeline={
            "logical_id": "Pipeline",
            "artifact_store": "ArtifactBucket",
            "role": "PipelineRole",
            "stages": [
                _source_stage(connection, repository, branch),
                {
                    "name": "Build",
                    "actions": [{
                        "name": "CodeBuild",
                        "kind": "build",
                        "resource": "SiteBuild",
                        "inputs": [SOURCE_ARTIFACT],
                    }],
                },
            ],
        },
    )


def webhook_build(
    name: str,
    *,
    repository: str,
    branch: str = "develop",
    connection: str = "GitHubConnection",
    connection_id: str | None = None,
    project_name: str | None = None,
    description: str = "",
) -> PipelineDefinition:
    """A standalone build fetched from the repository, fired by pushes to ``branch``."""
    return new_definition(
        name=name,
        connections=[_connection(connection, connection_id)],
        builds=[{
            "logical_id": "WebhookBuild",
            "project_name": project_name or f"{to_slug(name)}-build",
            "description": description,
            "source": {
                "kind": "repository",
                "repository": repository,
                "branch": branch,
                "connection": connection,
            },
            "timeout_minutes": 20,
            "trigger": {"event": "push", "match": "exact", "webhook": True},
        }],
    )


def function_deploy_pipeline(
    name: str,
    *,
    repository: str,
    branch: str = "main",
    connection: str = "GitHubConnection",
    connection_id: str | None = None,
    function_name: str | None = None,
    runtime: str = "java17",
    handler: str = "com.example.Handler::handleRequest",
    code_key: str = "initial-lambda.jar",
    stage: str = "dev",
) -> PipelineDefinition:
    """Source -> Build -> Deploy pipeline updating a function's code.

    The build writes the package to a versioned code bucket; the function's
    execution role reads it and the pipeline role deploys the function.
    """
    slug = to_slug(name)
    return new_definition(
        name=name,
        storage=[
            {
                "logical_id": "CodeBucket",
                "bucket_name": f"{slug}-code",
                "versioned": True,
                "lifecycle_rules": [{"id": "ExpireOldPackages", "expiration_days": 30}],
            },
            _artifact_store("ArtifactBucket", f"{slug}-artifacts"),
        ],
        connections=[_connection(connection, connection_id)],
        roles=[
            {"logical_id": "PipelineRole", "trust_principal": "pipeline"},
            {"logical_id": "BuildRole", "trust_principal": "build"},
        ],
        functions=[{
            "logical_id": "Function",
            "function_name": function_name or f"{slug}-function",
            "runtime": runtime,
            "handler": handler,
            "memory_mb": 512,
            "timeout_seconds": 30,
            "code_bucket": "CodeBucket",
            "code_key": code_key,
            "environment": {"STAGE": stage},
        }],
        builds=[{
            "logical_id": "FunctionBuild",
            "project_name": f"{slug}-build",
            "compute": {"size": "small", "image": STANDARD_7_IMAGE},
            "timeout_minutes": 15,
            "service_role": "BuildRole",
            "environment_variables": {"S3_BUCKET": {"resource": "CodeBucket"}},
        }],
        needs=[
            {"consumer": "BuildRole", "resource": "CodeBucket", "capability": "read-write"},
            {"consumer": "PipelineRole", "resource": "CodeBucket", "capability": "read"},
        ],
        pipeline={
            "logical_id": "Pipeline",
            "artifact_store": "ArtifactBucket",
            "role": "PipelineRole",
            "stages": [
                _source_stage(connection, repository, branch),
                {
                    "name": "Build",
                    "actions": [{
                        "name": "Build_Function",
                        "kind": "build",
                        "resource": "FunctionBuild",
                        "inputs": [SOURCE_ARTIFACT],
                        "outputs": [BUILD_ARTIFACT],
                    }],
                },
                {
                    "name": "Deploy",
                    "actions": [{
                        "name": "Deploy_Function",
                        "kind": "deploy",
                        "resource": "Function",
                        "inputs": [BUILD_ARTIFACT],
                    }],
                },
            ],
        },
    )


PRESETS: dict[str, Callable[..., PipelineDefinition]] = {
    "static-site": static_site_pipeline,
    "webhook-build": webhook_build,
    "function-deploy": function_deploy_pipeline,
}


def get_preset(name: str) -> Callable[..., PipelineDefinition]:
    try:
        return PRESETS[name]
    except KeyError:
        raise KeyError(
            f"Unknown preset '{name}'. Available: {', '.join(sorted(PRESETS))}"
        ) from None
