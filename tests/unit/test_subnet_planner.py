import pytest
from tierstack.UTILS.subnet_planner import cidr_subnet, plan_subnets

def test_cidr_subnet():
    assert cidr_subnet("10.1.0.0/16", 8, 0) == "10.1.0.0/24"
    assert cidr_subnet("10.1.0.0/16", 8, 10) == "10.1.10.0/24"
    assert cidr_subnet("10.0.0.0/16", 3, 1) == "10.0.32.0/19"

def test_cidr_subnet_out_of_range():
    with pytest.raises(ValueError):
        cidr_subnet("10.1.0.0/16", 2, 4)

def test_plan_subnets_three_azs():
    planned = plan_subnets("10.1.0.0/16", 3)
    assert planned["public"] == ["10.1.0.0/24", "10.1.1.0/24", "10.1.2.0/24"]
    assert planned["private"] == ["10.1.4.0/24", "10.1.5.0/24", "10.1.6.0/24"]
    assert planned["database"] == ["10.1.8.0/24", "10.1.9.0/24", "10.1.10.0/24"]

def test_plan_subnets_prefix_too_large():
    with pytest.raises(ValueError):
        plan_subnets("10.1.0.0/24", 3)

def test_plan_subnets_groups_never_overlap():
    for az_count in range(1, 9):
        planned = plan_subnets("10.1.0.0/16", az_count)
        blocks = planned["public"] + planned["private"] + planned["database"]
        assert len(set(blocks)) == 3 * az_count

def test_plan_subnets_five_azs():
    planned = plan_subnets("10.1.0.0/16", 5)
    assert planned["public"][-1] == "10.1.4.0/24"
    assert planned["private"][0] == "10.1.5.0/24"
    assert planned["database"][0] == "10.1.10.0/24"
