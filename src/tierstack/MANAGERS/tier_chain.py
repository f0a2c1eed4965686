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
Security tier chains: ordered isolation boundaries inside one network.

Each tier is a security group. The first tier only admits static,
address-range based traffic; every later tier admits traffic whose source
is the security group of the tier right before it. Members of a tier can
always reach each other.
"""
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from ..MODELS.errors import DuplicateNameError, InvalidTierReferenceError, MissingConfigurationError
from ..MODELS.output_reference import OutputRef
from ..MODELS.resource_node import ResourceNode
from ..MODELS.tier_definition import InboundRule, RuleName, TierSpec

SECURITY_GROUP = "security_group"


class SecurityTier:
    """
    One realized-or-pending tier of a chain.
    """
    def __init__(self, spec: TierSpec, node: ResourceNode, index: int,
                 predecessor: Optional["SecurityTier"] = None):
        self.spec = spec
        self.node = node
        self.index = index
        self.predecessor = predecessor

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def security_group_id(self) -> OutputRef:
        """The tier's identity, as seen by downstream tiers and stacks."""
        return self.node.ref("security_group_id")

    def inbound_rules(self) -> List[InboundRule]:
        """
        Returns the resolved ingress rule set of the tier.

        :raises NotYetRealizedError: If the tier (or its predecessor) is not realized.
        """
        inputs = self.node.resolved_inputs()
        own_id = self.security_group_id.resolve()

        rules = []
        for entry in inputs.get("ingress_with_self", []):
            rules.append(InboundRule.from_catalog(
                entry["rule"], source_security_group_id=own_id, self_referencing=True
            ))
        for entry in inputs.get("ingress_with_cidr_blocks", []):
            rules.append(InboundRule.from_catalog(entry["rule"], cidr_blocks=entry["cidr_blocks"]))
        for entry in inputs.get("computed_ingress_with_source_security_group_id", []):
            rules.append(InboundRule.from_catalog(
                entry["rule"], source_security_group_id=entry["source_security_group_id"]
            ))
        return rules

    def egress_rules(self) -> List[InboundRule]:
        """Returns the resolved egress rule set of the tier."""
        inputs = self.node.resolved_inputs()
        own_id = self.security_group_id.resolve()

        rules = []
        for entry in inputs.get("egress_with_self", []):
            rules.append(InboundRule.from_catalog(
                entry["rule"], source_security_group_id=own_id, self_referencing=True
            ))
        for rule in inputs.get("egress_rules", []):
            rules.append(InboundRule.from_catalog(rule, cidr_blocks=inputs.get("egress_cidr_blocks", [])))
        return rules

    def __repr__(self) -> str:
        return f"SecurityTier({self.index}: {self.name})"


class SecurityTierChain:
    """
    Builds a chain of security tiers from an ordered list of tier specs.

    The whole chain is validated before any node is declared, so a chain
    that skips a boundary leaves the stack untouched.
    """
    def __init__(self, stack: Any, vpc_id: Union[OutputRef, str],
                 specs: Sequence[Union[TierSpec, Dict[str, Any]]], node_prefix: str = ""):
        """
        :param stack: The stack the tier nodes are declared on.
        :param vpc_id: Identity of the network the tiers live in.
        :param specs: Tier specs, first tier first.
        :param node_prefix: Prefix for the security group node names.
        """
        if vpc_id is None:
            raise MissingConfigurationError("tier chain requires a network identity", stack=stack.name)

        self.specs = [spec if isinstance(spec, TierSpec) else TierSpec.model_validate(spec) for spec in specs]
        self.validate(self.specs, stack_name=stack.name)

        self.tiers: Dict[str, SecurityTier] = {}
        predecessor = None
        for index, spec in enumerate(self.specs):
            node = stack.declare(f"{node_prefix}{spec.name}", SECURITY_GROUP, self._inputs(spec, vpc_id, predecessor))
            tier = SecurityTier(spec, node, index, predecessor)
            self.tiers[spec.name] = tier
            predecessor = tier

    @staticmethod
    def validate(specs: Sequence[TierSpec], stack_name: Optional[str] = None):
        """
        Checks the chain structure: unique names, no derived rules on the first
        tier, and every later tier deriving only from its direct predecessor.

        :raises InvalidTierReferenceError: On any skip-level or self reference.
        """
        if not specs:
            raise MissingConfigurationError("tier chain needs at least one tier", stack=stack_name)

        seen = set()
        for index, spec in enumerate(specs):
            if spec.name in seen:
                raise DuplicateNameError(f"tier '{spec.name}' is declared twice", stack=stack_name, node=spec.name)
            seen.add(spec.name)

            if index == 0:
                if spec.derive_from is not None:
                    raise InvalidTierReferenceError(
                        f"first tier '{spec.name}' cannot derive from '{spec.derive_from}'",
                        stack=stack_name,
                        node=spec.name,
                    )
                continue

            predecessor = specs[index - 1].name
            source = spec.derive_from or predecessor
            if source != predecessor:
                raise InvalidTierReferenceError(
                    f"tier '{spec.name}' derives from '{source}', only its predecessor '{predecessor}' is allowed",
                    stack=stack_name,
                    node=spec.name,
                )
            if not spec.derived_rules:
                raise InvalidTierReferenceError(
                    f"tier '{spec.name}' derives no rules from '{predecessor}'",
                    stack=stack_name,
                    node=spec.name,
                )

    @staticmethod
    def _inputs(spec: TierSpec, vpc_id: Union[OutputRef, str],
                predecessor: Optional[SecurityTier]) -> Dict[str, Any]:
        computed = []
        if predecessor is not None:
            computed = [
                {"rule": RuleName(rule).value, "source_security_group_id": predecessor.security_group_id}
                for rule in spec.derived_rules
            ]

        return {
            "name": spec.name,
            "description": spec.description or f"{spec.name} tier",
            "vpc_id": vpc_id,
            "ingress_with_self": [{"rule": RuleName.ALL_ALL.value}],
            "ingress_with_cidr_blocks": [
                {"rule": rule.rule.value, "cidr_blocks": list(rule.cidr_blocks)} for rule in spec.ingress
            ],
            "computed_ingress_with_source_security_group_id": computed,
            "number_of_computed_ingress_with_source_security_group_id": len(computed),
            "egress_with_self": [{"rule": RuleName.ALL_ALL.value}],
            "egress_rules": [RuleName.ALL_ALL.value],
            "egress_cidr_blocks": list(spec.egress_cidr_blocks),
        }

    def __getitem__(self, name: str) -> SecurityTier:
        return self.tiers[name]

    def __iter__(self) -> Iterator[SecurityTier]:
        return iter(self.tiers.values())

    def __len__(self) -> int:
        return len(self.tiers)

    @property
    def names(self) -> List[str]:
        return list(self.tiers)
