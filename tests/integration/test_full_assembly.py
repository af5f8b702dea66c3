"""Integration tests: every preset assembled end to end.

Exercises the complete path: preset -> YAML document -> loader ->
Assembler -> ResourceGraph -> JSON document, and checks the wiring
each preset promises.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from pipeforge.core.assembler import Assembler
from pipeforge.core.definition_loader import load_definition
from pipeforge.models.iam import TrustPrincipal
from pipeforge.presets import function_deploy_pipeline, static_site_pipeline, webhook_build

from tests.conftest import ACCOUNT, CONNECTION_ARN, REGION


def _resources(graph, role_id: str) -> list[str]:
    return [p.resource for p in graph.role(role_id).statements]


# ---------------------------------------------------------------------------
# Test: static site
# ---------------------------------------------------------------------------


class TestStaticSitePreset:
    @pytest.fixture
    def graph(self, assembler: Assembler):
        return assembler.assemble(
            static_site_pipeline("im-frontend", repository="sakai/im-frontend")
        )

    def test_stages(self, graph):
        assert graph.pipeline is not None
        assert [s.name for s in graph.pipeline.stages] == ["Source", "Build"]
        assert graph.pipeline.artifacts.keys() == {"SourceOutput"}

    def test_build_role_scope(self, graph):
        site = "arn:aws:s3:::im-frontend-site"
        artifacts = "arn:aws:s3:::im-frontend-artifacts"
        logs = f"arn:aws:logs:{REGION}:{ACCOUNT}:log-group:/aws/codebuild/im-frontend-build"
        assert _resources(graph, "BuildRole") == [
            logs, f"{logs}:*", artifacts, f"{artifacts}/*", site, f"{site}/*",
        ]

    def test_pipeline_role_scope(self, graph):
        project = f"arn:aws:codebuild:{REGION}:{ACCOUNT}:project/im-frontend-build"
        assert _resources(graph, "PipelineRole") == [
            project,
            CONNECTION_ARN,
            "arn:aws:s3:::im-frontend-artifacts",
            "arn:aws:s3:::im-frontend-artifacts/*",
            "arn:aws:s3:::im-frontend-site",
            "arn:aws:s3:::im-frontend-site/*",
        ]

    def test_site_bucket_is_bound(self, graph):
        assert graph.build("SiteBuild").environment == {"S3_BUCKET": "im-frontend-site"}

    def test_only_the_site_is_public(self, graph):
        assert [p.bucket for p in graph.bucket_policies] == ["SiteBucket"]


# ---------------------------------------------------------------------------
# Test: webhook build
# ---------------------------------------------------------------------------


class TestWebhookBuildPreset:
    @pytest.fixture
    def graph(self, assembler: Assembler):
        return assembler.assemble(webhook_build("im-frontend-ci", repository="sakai/im-frontend"))

    def test_no_pipeline(self, graph):
        assert graph.pipeline is None
        assert graph.storage == []

    def test_exactly_two_filters(self, graph):
        (group,) = graph.build("WebhookBuild").trigger.filter_groups
        assert [f.pattern for f in group] == ["PUSH", "^refs/heads/develop$"]

    def test_service_role(self, graph):
        build = graph.build("WebhookBuild")
        role = graph.role(build.service_role)
        assert role.trust_principal == TrustPrincipal.BUILD
        assert CONNECTION_ARN in _resources(graph, build.service_role)


# ---------------------------------------------------------------------------
# Test: function deploy
# ---------------------------------------------------------------------------


class TestFunctionDeployPreset:
    @pytest.fixture
    def graph(self, assembler: Assembler):
        return assembler.assemble(
            function_deploy_pipeline("im-backend", repository="sakai/im-backend")
        )

    def test_three_stages_with_hand_off(self, graph):
        deploy = graph.pipeline.stages[2].actions[0]
        assert deploy.inputs == ["BuildOutput"]
        assert deploy.resource_arn == f"arn:aws:lambda:{REGION}:{ACCOUNT}:function:im-backend-function"

    def test_pipeline_role_can_deploy_function(self, graph):
        (statement,) = [
            s for s in graph.role("PipelineRole").statements if ":function:" in s.resource
        ]
        assert "update-function-code" in statement.actions
        assert statement.resource.endswith(":function:im-backend-function")

    def test_execution_role_reads_code(self, graph):
        (function,) = graph.functions
        role = graph.role(function.execution_role)
        assert role.trust_principal == TrustPrincipal.FUNCTION
        assert [(p.resource, p.actions) for p in role.statements] == [
            ("arn:aws:s3:::im-backend-code/*", ("get-object",)),
        ]

    def test_build_binds_code_bucket(self, graph):
        assert graph.build("FunctionBuild").environment == {"S3_BUCKET": "im-backend-code"}


# ---------------------------------------------------------------------------
# Test: document round trip and determinism
# ---------------------------------------------------------------------------


class TestDocumentRoundTrip:
    @pytest.mark.parametrize("builder, repository", [
        (static_site_pipeline, "sakai/im-frontend"),
        (webhook_build, "sakai/im-frontend"),
        (function_deploy_pipeline, "sakai/im-backend"),
    ])
    def test_yaml_definition_assembles_to_same_graph(
        self, tmp_path: Path, assembler: Assembler, builder, repository
    ):
        definition = builder("im-app", repository=repository)
        path = tmp_path / "pipeline.yaml"
        document = definition.model_dump(mode="json", exclude_defaults=True)
        path.write_text(yaml.safe_dump(document, sort_keys=False), encoding="utf-8")

        direct = assembler.assemble(definition)
        loaded = assembler.assemble(load_definition(path))
        assert loaded.fingerprint == direct.fingerprint

    def test_graph_document_is_json_serializable(self, assembler: Assembler):
        graph = assembler.assemble(
            static_site_pipeline("im-frontend", repository="sakai/im-frontend")
        )
        text = json.dumps(graph.to_document(), sort_keys=True)
        assert json.loads(text)["fingerprint"] == graph.fingerprint

    def test_fresh_assemblers_agree(self, environment):
        connections = {"GitHubConnection": "abc-123"}
        definition = function_deploy_pipeline("im-backend", repository="sakai/im-backend")
        fingerprints = {
            Assembler(environment, connections=connections).assemble(definition).fingerprint
            for _ in range(3)
        }
        assert len(fingerprints) == 1
