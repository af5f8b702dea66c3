"""Adversarial tests: synthesis is deterministic, idempotent and order-free.

These tests verify that:
1. Repeating a need never changes a role's statements
2. Needs on one role commute: any declaration order yields the same set
3. The graph fingerprint is stable across runs and Assembler instances
4. Any change to the input moves the fingerprint
"""

from __future__ import annotations

import itertools
import random

import pytest

from pipeforge.core.assembler import Assembler
from pipeforge.core.permission_synthesizer import PermissionSynthesizer, ResourceRef
from pipeforge.models.common import ResourceKind
from pipeforge.models.iam import IdentityRole, TrustPrincipal

from tests.conftest import ARTIFACTS_ARN, LOG_GROUP_ARN, PROJECT_ARN, SITE_ARN

_NEEDS = [
    ("SiteBucket", "read"),
    ("SiteBucket", "read-write"),
    ("SiteBucket", "list"),
    ("ArtifactBucket", "read"),
    ("SiteBuild", "invoke"),
    ("BuildLogs", "write-logs"),
]


def _fresh() -> PermissionSynthesizer:
    synth = PermissionSynthesizer()
    for logical_id, kind, arn in (
        ("SiteBucket", ResourceKind.STORAGE, SITE_ARN),
        ("ArtifactBucket", ResourceKind.STORAGE, ARTIFACTS_ARN),
        ("SiteBuild", ResourceKind.BUILD, PROJECT_ARN),
        ("BuildLogs", ResourceKind.LOG_GROUP, LOG_GROUP_ARN),
    ):
        synth.register_resource(ResourceRef(logical_id=logical_id, kind=kind, arn=arn))
    synth.register_role(IdentityRole(logical_id="BuildRole", trust_principal=TrustPrincipal.BUILD))
    return synth


def _statement_set(synth: PermissionSynthesizer) -> set[tuple[str, tuple[str, ...]]]:
    return {(p.resource, p.actions) for p in synth.permissions("BuildRole")}


# ---------------------------------------------------------------------------
# Test: idempotence and commutativity
# ---------------------------------------------------------------------------


class TestPermissionAlgebra:
    def test_idempotent_for_every_need(self):
        for resource, capability in _NEEDS:
            once, twice = _fresh(), _fresh()
            once.grant("BuildRole", resource, capability)
            twice.grant("BuildRole", resource, capability)
            twice.grant("BuildRole", resource, capability)
            assert once.permissions("BuildRole") == twice.permissions("BuildRole")

    def test_every_permutation_yields_same_statements(self):
        expected: set | None = None
        for order in itertools.permutations(_NEEDS[:5]):
            synth = _fresh()
            for resource, capability in order:
                synth.grant("BuildRole", resource, capability)
            statements = _statement_set(synth)
            if expected is None:
                expected = statements
            assert statements == expected

    @pytest.mark.parametrize("seed", range(10))
    def test_random_multiset_orders_agree(self, seed: int):
        rng = random.Random(seed)
        needs = [rng.choice(_NEEDS) for _ in range(12)]
        shuffled = list(needs)
        rng.shuffle(shuffled)

        first, second = _fresh(), _fresh()
        for resource, capability in needs:
            first.grant("BuildRole", resource, capability)
        for resource, capability in shuffled:
            second.grant("BuildRole", resource, capability)
        assert _statement_set(first) == _statement_set(second)

    def test_finalized_roles_identical_for_any_order(self):
        finished = []
        for order in (_NEEDS, list(reversed(_NEEDS))):
            synth = _fresh()
            for resource, capability in order:
                synth.grant("BuildRole", resource, capability)
            finished.append(synth.finalize())
        forward, backward = finished
        assert forward == backward
        assert forward[0].model_dump_json() == backward[0].model_dump_json()

    def test_finalized_statements_sorted_by_resource(self):
        synth = _fresh()
        for resource, capability in reversed(_NEEDS):
            synth.grant("BuildRole", resource, capability)
        (role,) = synth.finalize()
        resources = [s.resource for s in role.statements]
        assert resources == sorted(resources)

    def test_read_is_subsumed_by_read_write(self):
        synth = _fresh()
        synth.grant("BuildRole", "SiteBucket", "read-write")
        before = _statement_set(synth)
        synth.grant("BuildRole", "SiteBucket", "read")
        assert _statement_set(synth) == before


# ---------------------------------------------------------------------------
# Test: fingerprint stability
# ---------------------------------------------------------------------------


class TestFingerprint:
    def test_stable_across_instances(self, environment, definition_data):
        connections = {"GitHubConnection": "abc-123"}
        fingerprints = {
            Assembler(environment, connections=connections).assemble(definition_data).fingerprint
            for _ in range(5)
        }
        assert len(fingerprints) == 1

    def test_need_order_does_not_move_fingerprint(self, assembler, make_definition):
        needs = [
            {"consumer": "BuildRole", "resource": "SiteBucket", "capability": "read-write"},
            {"consumer": "BuildRole", "resource": "SiteBucket", "capability": "read"},
        ]
        forward = assembler.assemble(make_definition(needs=needs))
        backward = assembler.assemble(make_definition(needs=list(reversed(needs))))
        assert forward.fingerprint == backward.fingerprint

    def test_needs_on_different_resources_commute(self, assembler, make_definition):
        needs = [
            {"consumer": "BuildRole", "resource": "SiteBucket", "capability": "read"},
            {"consumer": "BuildRole", "resource": "ArtifactBucket", "capability": "read"},
            {"consumer": "BuildRole", "resource": "SiteBuild", "capability": "invoke"},
        ]
        forward = assembler.assemble(make_definition(needs=needs))
        backward = assembler.assemble(make_definition(needs=list(reversed(needs))))
        assert forward.role("BuildRole") == backward.role("BuildRole")
        assert forward.fingerprint == backward.fingerprint

    @pytest.mark.parametrize("mutation", [
        lambda d: d["builds"][0].update(timeout_minutes=30),
        lambda d: d["storage"][0].update(versioned=False),
        lambda d: d["pipeline"]["stages"][0]["actions"][0]["configuration"].update(
            BranchName="main"
        ),
        lambda d: d.update(name="im-frontend-2"),
    ])
    def test_any_change_moves_fingerprint(self, assembler, make_definition, mutation):
        baseline = assembler.assemble(make_definition()).fingerprint
        data = make_definition()
        mutation(data)
        assert assembler.assemble(data).fingerprint != baseline
