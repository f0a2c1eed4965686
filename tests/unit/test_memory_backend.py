"""
Unit tests for the in-memory provisioning backend.
"""
import json

import pytest
from tierstack.BACKENDS.memory_backend import InMemoryBackend
from tierstack.MODELS.errors import RealizationError
from tierstack.MODELS.resource_node import NodeDeclaration


def _declaration(node_name="vpc", resource_type="vpc", **inputs):
    return NodeDeclaration(stack="net", name=node_name, resource_type=resource_type, inputs=inputs)


class TestInMemoryBackend:
    """Tests for InMemoryBackend."""

    def test_realize_echoes_inputs_and_adds_identity(self):
        backend = InMemoryBackend()
        outputs = backend.realize(_declaration(cidr="10.0.0.0/16"))
        assert outputs["cidr"] == "10.0.0.0/16"
        assert outputs["id"].startswith("vpc-")
        assert outputs["vpc_id"] == outputs["id"]
        assert outputs["arn"].endswith(":vpc/vpc")
        assert backend.state["net/vpc"] == outputs

    def test_identifiers_are_deterministic(self):
        first = InMemoryBackend().realize(_declaration())
        second = InMemoryBackend().realize(_declaration())
        assert first["id"] == second["id"]

    def test_subnets_become_identifiers(self):
        outputs = InMemoryBackend().realize(_declaration(private_subnets=["10.0.4.0/24", "10.0.5.0/24"]))
        assert len(outputs["private_subnets"]) == 2
        assert all(subnet.startswith("subnet-") for subnet in outputs["private_subnets"])
        assert outputs["private_subnets_cidr_blocks"] == ["10.0.4.0/24", "10.0.5.0/24"]

    def test_type_specific_outputs(self):
        backend = InMemoryBackend(region="eu-west-1")
        alb = backend.realize(_declaration("alb", "alb", name="myAlb"))
        assert alb["dns_name"].startswith("myAlb-")
        assert "eu-west-1" in alb["dns_name"]

        ami = backend.realize(_declaration("ami", "data_ssm_parameter", name="/aws/service/ami"))
        assert ami["value"].startswith("ami-")

        document = backend.realize(_declaration("doc", "data_iam_policy_document", statement=[{"effect": "Allow"}]))
        assert json.loads(document["json"])["Statement"] == [{"effect": "Allow"}]

    def test_fail_on(self):
        backend = InMemoryBackend(fail_on=["net/vpc"])
        with pytest.raises(RealizationError) as exc:
            backend.realize(_declaration())
        assert "[net/vpc]" in str(exc.value)
        assert backend.state == {}

    def test_realize_twice(self):
        backend = InMemoryBackend()
        backend.realize(_declaration())
        with pytest.raises(RealizationError):
            backend.realize(_declaration())

    def test_destroy(self):
        backend = InMemoryBackend()
        backend.realize(_declaration())
        backend.destroy(_declaration())
        assert backend.state == {}
        assert backend.history == [("realize", "net/vpc"), ("destroy", "net/vpc")]
        with pytest.raises(RealizationError):
            backend.destroy(_declaration())
