import pytest
from tierstack.MODELS.resource_node import ResourceNode
from tierstack.MODELS.output_reference import find_references, resolve_value, render_value
from tierstack.MODELS.errors import NotYetRealizedError, UnresolvedReferenceError


def _vpc():
    return ResourceNode("net", "vpc", "vpc", {"cidr": "10.0.0.0/16"})


def test_resolve_before_realization_raises():
    node = _vpc()
    ref = node.ref("vpc_id")
    with pytest.raises(NotYetRealizedError) as exc:
        ref.resolve()
    assert isinstance(exc.value, UnresolvedReferenceError)
    assert str(exc.value).startswith("[net/vpc]")
    assert not ref.resolved

def test_resolve_is_idempotent():
    node = _vpc()
    ref = node.ref("private_subnets")
    node.mark_realized({"vpc_id": "vpc-1", "private_subnets": ["subnet-a", "subnet-b"]})

    first = ref.resolve()
    second = ref.resolve()
    assert first == ["subnet-a", "subnet-b"]
    assert first is second
    assert ref.resolved

def test_resolved_value_is_cached():
    node = _vpc()
    ref = node.ref("vpc_id")
    node.mark_realized({"vpc_id": "vpc-1"})
    assert ref.resolve() == "vpc-1"
    node.outputs["vpc_id"] = "vpc-2"
    assert ref.resolve() == "vpc-1"

def test_destroyed_node_drops_cached_value():
    node = _vpc()
    ref = node.ref("vpc_id")
    node.mark_realized({"vpc_id": "vpc-1"})
    assert ref.resolve() == "vpc-1"

    node.mark_destroyed()
    assert not ref.resolved
    assert render_value(ref) == "${net.vpc.vpc_id}"
    with pytest.raises(NotYetRealizedError):
        ref.resolve()

    node.mark_realized({"vpc_id": "vpc-2"})
    assert ref.resolve() == "vpc-2"

def test_missing_attribute():
    node = _vpc()
    node.mark_realized({"vpc_id": "vpc-1"})
    with pytest.raises(UnresolvedReferenceError) as exc:
        node.ref("ipv6_cidr").resolve()
    assert not isinstance(exc.value, NotYetRealizedError)
    assert "ipv6_cidr" in str(exc.value)

def test_element():
    node = _vpc()
    subnets = node.ref("private_subnets")
    node.mark_realized({"private_subnets": ["subnet-a", "subnet-b"]})
    assert subnets.element(1).resolve() == "subnet-b"
    with pytest.raises(UnresolvedReferenceError):
        subnets.element(5).resolve()

def test_token():
    node = _vpc()
    assert node.ref("vpc_id").token() == "${net.vpc.vpc_id}"
    assert node.ref("private_subnets").element(0).token() == "${net.vpc.private_subnets[0]}"

def test_nested_values():
    node = _vpc()
    vpc_id = node.ref("vpc_id")
    value = {"a": [vpc_id, {"b": vpc_id}], "c": 1}

    assert list(find_references(value)) == [vpc_id, vpc_id]
    assert render_value(value) == {"a": ["${net.vpc.vpc_id}", {"b": "${net.vpc.vpc_id}"}], "c": 1}

    node.mark_realized({"vpc_id": "vpc-1"})
    assert resolve_value(value) == {"a": ["vpc-1", {"b": "vpc-1"}], "c": 1}
