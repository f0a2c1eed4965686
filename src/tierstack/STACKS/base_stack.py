# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Base network stack: VPC, the public/app/data tier chain, the ECS cluster
and the environment table shared by every application stack.
"""
import ipaddress
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..MANAGERS.stack import Stack
from ..MANAGERS.tier_chain import SecurityTierChain
from ..MODELS.errors import InvalidConfigurationError
from ..MODELS.stack_exports import BaseStackExports
from ..MODELS.tier_definition import IngressRule, RuleName, TierSpec
from ..UTILS.subnet_planner import plan_subnets

REQUIRED_TIERS = ("public", "app", "data")


def default_tiers() -> List[TierSpec]:
    """
    Three-tier chain: the internet reaches ``public`` on 80/443, ``public``
    reaches ``app`` and ``app`` reaches ``data``.
    """
    return [
        TierSpec(
            name="public",
            ingress=[IngressRule(rule=RuleName.HTTP_80_TCP), IngressRule(rule=RuleName.HTTPS_443_TCP)],
        ),
        TierSpec(name="app"),
        TierSpec(name="data"),
    ]


class BaseStackConfig(BaseModel):
    """
    Configuration of the base network stack.
    """
    model_config = ConfigDict(frozen=True)

    profile: str
    cidr: str
    region: str = "us-east-1"
    vpc_name: Optional[str] = None
    azs: Optional[List[str]] = None

    # Subnets default to /24 blocks planned from ``cidr``
    public_subnets: Optional[List[str]] = None
    private_subnets: Optional[List[str]] = None
    database_subnets: Optional[List[str]] = None

    enable_nat_gateway: bool = True
    one_nat_gateway_per_az: bool = True
    create_igw: bool = True

    tiers: List[TierSpec] = Field(default_factory=default_tiers)

    cluster_name: str = "main"
    capacity_providers: List[str] = ["FARGATE"]
    table_name: Optional[str] = None

    activation_instance: bool = True
    instance_type: str = "t2.micro"
    ami_parameter: str = "/aws/service/ami-amazon-linux-latest/amzn2-ami-hvm-x86_64-gp2"

    @field_validator("cidr")
    @classmethod
    def _valid_cidr(cls, value: str) -> str:
        ipaddress.ip_network(value)
        return value

    @field_validator("tiers")
    @classmethod
    def _has_required_tiers(cls, value: List[TierSpec]) -> List[TierSpec]:
        names = [tier.name for tier in value]
        missing = [name for name in REQUIRED_TIERS if name not in names]
        if missing:
            raise ValueError(f"tier chain is missing {', '.join(missing)}")
        positions = [names.index(name) for name in REQUIRED_TIERS]
        if positions != sorted(positions):
            raise ValueError(f"tiers must run {' -> '.join(REQUIRED_TIERS)}, got {' -> '.join(names)}")
        return value


class BaseStack(Stack):
    """
    The network every application stack is placed in.
    """
    config_model = BaseStackConfig
    exports_model = BaseStackExports

    def build(self, config: BaseStackConfig):
        region = config.region
        self.declare("provider", "provider", {"region": region, "profile": config.profile})

        azs = config.azs or [f"{region}{zone}" for zone in "abc"]
        subnets = self._subnets(config, len(azs))
        vpc = self.declare("vpc", "vpc", {
            "name": config.vpc_name or f"{self.name}-main",
            "cidr": config.cidr,
            "azs": azs,
            "public_subnets": subnets["public"],
            "private_subnets": subnets["private"],
            "database_subnets": subnets["database"],
            "enable_nat_gateway": config.enable_nat_gateway,
            "one_nat_gateway_per_az": config.one_nat_gateway_per_az,
            "create_igw": config.create_igw,
        })

        self.tier_chain = SecurityTierChain(self, vpc.ref("vpc_id"), config.tiers)

        self.declare("ecs", "iam_service_linked_role", {"aws_service_name": "ecs.amazonaws.com"})
        cluster = self.declare("ecs-cluster-main", "ecs_cluster", {"name": config.cluster_name})
        self.declare("ecs-capacity-provider-main", "ecs_cluster_capacity_providers", {
            "cluster_name": cluster.ref("name"),
            "capacity_providers": list(config.capacity_providers),
        })

        table = self.declare("idp-environment", "dynamodb_table", {
            "name": config.table_name or f"{self.name}-idp-environment",
            "billing_mode": "PAY_PER_REQUEST",
            "hash_key": "environment",
            "attribute": [{"name": "environment", "type": "S"}],
        })

        if config.activation_instance:
            ami = self.declare("latest-amazon-linux-2-ami-id", "data_ssm_parameter", {"name": config.ami_parameter})
            # ECS will not run more than two tasks until the account has launched an EC2 instance
            self.declare("activation", "instance", {
                "ami": ami.ref("value"),
                "instance_type": config.instance_type,
                "associate_public_ip_address": False,
                "subnet_id": vpc.ref("private_subnets").element(0),
            })

        self.export(
            vpc_id=vpc.ref("vpc_id"),
            public_subnets=vpc.ref("public_subnets"),
            private_subnets=vpc.ref("private_subnets"),
            database_subnets=vpc.ref("database_subnets"),
            public_security_group_id=self.tier_chain["public"].security_group_id,
            app_security_group_id=self.tier_chain["app"].security_group_id,
            data_security_group_id=self.tier_chain["data"].security_group_id,
            ecs_cluster_name=cluster.ref("name"),
            table_name=table.ref("name"),
        )
        self.output("vpc_id", vpc.ref("vpc_id"))
        self.output("ecs_cluster_name", cluster.ref("name"))

    def _subnets(self, config: BaseStackConfig, az_count: int) -> Dict[str, List[str]]:
        """
        Subnet CIDRs per group, planned from ``cidr`` only for the groups the
        configuration leaves out.

        :raises InvalidConfigurationError: If ``cidr`` cannot hold the planned subnets.
        """
        given = {
            "public": config.public_subnets,
            "private": config.private_subnets,
            "database": config.database_subnets,
        }
        if all(given.values()):
            return given
        try:
            planned = plan_subnets(config.cidr, az_count)
        except ValueError as e:
            raise InvalidConfigurationError(f"cannot plan subnets: {e}", stack=self.name) from e
        return {group: given[group] or planned[group] for group in given}
