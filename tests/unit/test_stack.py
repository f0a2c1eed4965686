"""
Unit tests for stacks and their configuration contract.
"""
from typing import List

import pytest
from pydantic import BaseModel, ConfigDict, ValidationError

from tierstack.MANAGERS.stack import Stack
from tierstack.MODELS.errors import (
    CyclicDependencyError,
    DuplicateNameError,
    InvalidConfigurationError,
    MissingConfigurationError,
    TierstackError,
    UnresolvedReferenceError,
)
from tierstack.MODELS.stack_exports import StackExports, StrValue
from tierstack.STACKS.base_stack import BaseStack
from tierstack.STACKS.pet_app_stack import PetAppStack


class NetConfig(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    vpc_id: StrValue
    subnets: List[str]
    port: int = 80


class NetExports(StackExports):
    vpc_id: StrValue


class RecordingStack(Stack):
    config_model = NetConfig
    exports_model = NetExports
    built = []

    def build(self, config):
        RecordingStack.built.append(self.name)
        self.declare("tg", "lb_target_group", {"vpc_id": config.vpc_id, "port": config.port})
        self.export(vpc_id=config.vpc_id)


class TestDeclare:
    """Tests for Stack.declare."""

    def test_declaration_order(self):
        stack = Stack(None, "net")
        stack.declare("vpc", "vpc")
        stack.declare("public", "security_group")
        assert [node.name for node in stack.nodes] == ["vpc", "public"]
        assert stack.nodes[0].stack_name == "net"

    def test_duplicate_name(self):
        stack = Stack(None, "net")
        stack.declare("vpc", "vpc")
        with pytest.raises(DuplicateNameError) as exc:
            stack.declare("vpc", "vpc")
        assert "[net/vpc]" in str(exc.value)
        assert len(stack.nodes) == 1

    def test_depends_on_by_name(self):
        stack = Stack(None, "net")
        role = stack.declare("role", "iam_role")
        project = stack.declare("project", "codebuild_project", depends_on=["role"])
        assert project.dependencies() == [role]

    def test_depends_on_unknown_name(self):
        stack = Stack(None, "net")
        with pytest.raises(UnresolvedReferenceError):
            stack.declare("project", "codebuild_project", depends_on=["role"])

    def test_depends_on_itself(self):
        stack = Stack(None, "net")
        with pytest.raises(CyclicDependencyError):
            stack.declare("project", "codebuild_project", depends_on=["project"])
        assert stack.nodes == []

    def test_declare_after_realization(self):
        stack = Stack(None, "net")
        stack.realized = True
        with pytest.raises(TierstackError):
            stack.declare("vpc", "vpc")


class TestConfiguration:
    """Tests for configuration validation."""

    def test_valid_mapping(self):
        stack = RecordingStack(None, "app", {"vpc_id": "vpc-1", "subnets": ["a"]})
        assert stack.config.port == 80
        assert stack.exports.vpc_id == "vpc-1"

    def test_model_instance(self):
        config = NetConfig(vpc_id="vpc-1", subnets=[])
        stack = RecordingStack(None, "app", config)
        assert stack.config is config

    def test_missing_field_fails_before_build(self):
        RecordingStack.built.clear()
        with pytest.raises(MissingConfigurationError) as exc:
            RecordingStack(None, "app", {"subnets": ["a"]})
        assert "vpc_id" in str(exc.value)
        assert "[app]" in str(exc.value)
        assert RecordingStack.built == []

    def test_none_counts_as_missing(self):
        with pytest.raises(MissingConfigurationError) as exc:
            RecordingStack(None, "app", {"vpc_id": None, "subnets": None})
        assert "vpc_id" in str(exc.value)
        assert "subnets" in str(exc.value)
        assert "vpc_id.str" not in str(exc.value)

    def test_no_config_at_all(self):
        with pytest.raises(MissingConfigurationError):
            RecordingStack(None, "app")

    def test_wrong_type(self):
        with pytest.raises(InvalidConfigurationError) as exc:
            RecordingStack(None, "app", {"vpc_id": "vpc-1", "subnets": ["a"], "port": "http"})
        assert "port" in str(exc.value)

    def test_nested_field_path(self):
        tiers = [{"ingress": []}, {"name": "app"}, {"name": "data"}]
        with pytest.raises(MissingConfigurationError) as exc:
            BaseStack(None, "base", {"profile": "dev", "cidr": "10.1.0.0/16", "tiers": tiers})
        assert "tiers.0.name" in str(exc.value)

    def test_pet_app_without_network(self):
        with pytest.raises(MissingConfigurationError) as exc:
            PetAppStack(None, "petapp", {"profile": "dev", "repository": "org/petapp", "branch": "main"})
        assert "vpc_id" in str(exc.value)
        assert "app_security_group_id" in str(exc.value)


class TestExports:
    """Tests for exported outputs."""

    def test_exports_are_frozen(self):
        stack = RecordingStack(None, "app", {"vpc_id": "vpc-1", "subnets": []})
        with pytest.raises(ValidationError):
            stack.exports.vpc_id = "vpc-2"
        with pytest.raises(TierstackError):
            stack.export(vpc_id="vpc-2")

    def test_handle(self):
        stack = RecordingStack(None, "app", {"vpc_id": "vpc-1", "subnets": []})
        handle = stack.handle()
        assert handle.name == "app"
        assert handle.exports.vpc_id == "vpc-1"
        assert not hasattr(handle, "nodes")

    def test_handle_without_exports(self):
        handle = Stack(None, "plain").handle()
        with pytest.raises(MissingConfigurationError):
            handle.exports

    def test_outputs(self):
        stack = Stack(None, "plain")
        alb = stack.declare("alb", "alb")
        stack.output("lb_dns_name", alb.ref("dns_name"))
        with pytest.raises(DuplicateNameError):
            stack.output("lb_dns_name", "x")
        assert stack.rendered_outputs() == {"lb_dns_name": "${plain.alb.dns_name}"}
        alb.mark_realized({"dns_name": "alb.example.com"})
        assert stack.outputs() == {"lb_dns_name": "alb.example.com"}
