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
Resource nodes: the leaf units of a stack.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from .errors import CyclicDependencyError, TierstackError
from .output_reference import OutputRef, find_references, resolve_value


class NodeDeclaration(BaseModel):
    """
    Fully resolved description of a node, as handed to the provisioning backend.
    """
    model_config = ConfigDict(frozen=True)

    stack: str
    name: str
    resource_type: str
    inputs: Dict[str, Any] = {}
    depends_on: List[str] = []


class ResourceNode:
    """
    One provisioned entity with declared inputs and post-realization outputs.

    Inputs map parameter names to literals or output references (nested
    inside lists and dicts is fine). Outputs are ``None`` until the node is
    realized.
    """
    def __init__(self, stack_name: str, name: str, resource_type: str,
                 inputs: Optional[Dict[str, Any]] = None):
        """
        :param stack_name: Name of the owning stack.
        :param name: Name of the node, unique within its stack.
        :param resource_type: Provider resource type, e.g. ``security_group``.
        :param inputs: Parameter name to literal value or OutputRef.
        """
        self.stack_name = stack_name
        self.name = name
        self.resource_type = resource_type
        self.inputs: Dict[str, Any] = dict(inputs or {})
        self.explicit_dependencies: List["ResourceNode"] = []
        self.outputs: Optional[Dict[str, Any]] = None

    @property
    def realized(self) -> bool:
        return self.outputs is not None

    def ref(self, attribute: str) -> OutputRef:
        """
        Returns an unresolved handle to one of this node's outputs.
        """
        return OutputRef(self, attribute)

    def add_dependency(self, node: "ResourceNode"):
        """
        Adds an explicit ordering edge: ``node`` is realized before this one.

        :raises CyclicDependencyError: If a node is made to depend on itself.
        """
        if node is self:
            raise CyclicDependencyError(
                "resource depends on itself", stack=self.stack_name, node=self.name
            )
        if node not in self.explicit_dependencies:
            self.explicit_dependencies.append(node)

    def references(self) -> List[OutputRef]:
        """All output references found in the inputs, in input order."""
        return list(find_references(self.inputs))

    def dependencies(self) -> List["ResourceNode"]:
        """
        Nodes whose outputs or realization this node waits on, without
        duplicates, explicit edges last.
        """
        deps: List[ResourceNode] = []
        for ref in self.references():
            if ref.node is self:
                raise CyclicDependencyError(
                    f"input references own output '{ref.attribute}'",
                    stack=self.stack_name,
                    node=self.name,
                )
            if ref.node not in deps:
                deps.append(ref.node)
        for node in self.explicit_dependencies:
            if node not in deps:
                deps.append(node)
        return deps

    def resolved_inputs(self) -> Dict[str, Any]:
        return resolve_value(self.inputs)

    def declaration(self) -> NodeDeclaration:
        """
        Builds the backend-facing declaration. Every input reference must be
        resolvable at this point.
        """
        return NodeDeclaration(
            stack=self.stack_name,
            name=self.name,
            resource_type=self.resource_type,
            inputs=self.resolved_inputs(),
            depends_on=[dep.name for dep in self.dependencies() if dep.stack_name == self.stack_name],
        )

    def mark_realized(self, outputs: Dict[str, Any]):
        if self.realized:
            raise TierstackError("resource realized twice", stack=self.stack_name, node=self.name)
        self.outputs = dict(outputs)

    def mark_destroyed(self):
        self.outputs = None

    def __repr__(self) -> str:
        return f"ResourceNode({self.stack_name}/{self.name}: {self.resource_type})"
