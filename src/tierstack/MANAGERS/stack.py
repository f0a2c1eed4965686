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
Stacks: named, independently deployable groupings of resource nodes.
"""
from typing import Any, Dict, Iterable, List, Optional, Type, Union
from pydantic import BaseModel, ValidationError

from ..MODELS.errors import (
    CyclicDependencyError,
    DuplicateNameError,
    InvalidConfigurationError,
    MissingConfigurationError,
    TierstackError,
    UnresolvedReferenceError,
)
from ..MODELS.output_reference import render_value, resolve_value
from ..MODELS.resource_node import ResourceNode
from ..MODELS.stack_exports import StackExports


# pydantic appends the member type to the loc of union errors
_TYPE_TAGS = {"str", "int", "float", "bool", "list", "dict", "none"}


def _field_path(loc) -> str:
    """
    Dotted path of a validation error location, e.g. ``tiers.0.name``.
    """
    parts = []
    for part in loc:
        if isinstance(part, str) and (part in _TYPE_TAGS or "[" in part or "-" in part):
            break
        parts.append(str(part))
    return ".".join(parts) or "<root>"


class StackHandle:
    """
    What downstream code gets back for a stack: its name and its frozen
    exports, never its nodes.
    """
    def __init__(self, name: str, exports: Optional[StackExports]):
        self.name = name
        self._exports = exports

    @property
    def exports(self) -> StackExports:
        if self._exports is None:
            raise MissingConfigurationError("stack does not export any outputs", stack=self.name)
        return self._exports

    def __repr__(self) -> str:
        return f"StackHandle({self.name})"


class Stack:
    """
    Base class for stacks.

    Subclasses set ``config_model`` (and ``exports_model`` when they export
    anything) and declare their nodes in ``build``. The constructor validates
    the configuration before ``build`` runs, so a stack with a missing
    upstream value never declares a single node.
    """
    config_model: Optional[Type[BaseModel]] = None
    exports_model: Optional[Type[StackExports]] = None

    def __init__(self, scope: Any, name: str, config: Union[BaseModel, Dict[str, Any], None] = None):
        """
        :param scope: The composition root the stack belongs to.
        :param name: Stack name, unique within the composition root.
        :param config: A ``config_model`` instance or a mapping of its fields.
        """
        self.scope = scope
        self.name = name
        self._nodes: Dict[str, ResourceNode] = {}
        self._exports: Optional[StackExports] = None
        self._outputs: Dict[str, Any] = {}
        self.realized = False
        self.config = self._validate_config(config)
        self.build(self.config)

    def build(self, config: Any):
        """Declares the stack's nodes. Overridden by subclasses."""

    def _validate_config(self, config: Union[BaseModel, Dict[str, Any], None]) -> Any:
        """
        Validates the configuration against ``config_model``.

        :raises MissingConfigurationError: If required fields are absent or None.
        :raises InvalidConfigurationError: If a present field has the wrong type.
        """
        if self.config_model is None:
            return config
        if isinstance(config, self.config_model):
            return config
        if isinstance(config, BaseModel):
            config = dict(config)

        try:
            return self.config_model.model_validate(config or {})
        except ValidationError as e:
            missing = []
            invalid = []
            for error in e.errors():
                field = _field_path(error["loc"])
                if error["type"] == "missing" or error.get("input", "") is None:
                    if field not in missing:
                        missing.append(field)
                elif field not in invalid:
                    invalid.append(field)
            if missing:
                raise MissingConfigurationError(
                    f"missing required configuration: {', '.join(missing)}", stack=self.name
                ) from e
            raise InvalidConfigurationError(
                f"invalid configuration: {', '.join(invalid)}", stack=self.name
            ) from e

    def declare(self, name: str, resource_type: str, inputs: Optional[Dict[str, Any]] = None,
                depends_on: Iterable[Union[str, ResourceNode]] = ()) -> ResourceNode:
        """
        Declares a resource node and appends it to the stack's declaration order.

        :param name: Node name, unique within the stack.
        :param resource_type: Provider resource type.
        :param inputs: Literal values and output references.
        :param depends_on: Extra ordering edges, as nodes or names of nodes already declared.
        :return: The declared node.
        :raises DuplicateNameError: If ``name`` is already declared in this stack.
        """
        if self.realized:
            raise TierstackError("cannot declare resources on a realized stack", stack=self.name, node=name)
        if name in self._nodes:
            raise DuplicateNameError(f"resource '{name}' is already declared", stack=self.name, node=name)

        node = ResourceNode(self.name, name, resource_type, inputs)
        for dep in depends_on:
            if isinstance(dep, str):
                if dep == name:
                    raise CyclicDependencyError("resource depends on itself", stack=self.name, node=name)
                if dep not in self._nodes:
                    raise UnresolvedReferenceError(
                        f"depends_on '{dep}' is not declared", stack=self.name, node=name
                    )
                dep = self._nodes[dep]
            node.add_dependency(dep)

        self._nodes[name] = node
        return node

    @property
    def nodes(self) -> List[ResourceNode]:
        """The stack's nodes in declaration order."""
        return list(self._nodes.values())

    def export(self, **values) -> StackExports:
        """
        Freezes the stack's exported outputs. Can be called once.
        """
        if self._exports is not None:
            raise TierstackError("exports are already frozen", stack=self.name)
        if self.exports_model is None:
            raise TierstackError("stack has no exports model", stack=self.name)
        try:
            self._exports = self.exports_model(**values)
        except ValidationError as e:
            raise MissingConfigurationError(
                f"incomplete exports: {e.error_count()} error(s)", stack=self.name
            ) from e
        return self._exports

    @property
    def exports(self) -> Optional[StackExports]:
        return self._exports

    def handle(self) -> StackHandle:
        return StackHandle(self.name, self._exports)

    def output(self, name: str, value: Any):
        """
        Declares a user-facing stack output reported after realization.
        """
        if name in self._outputs:
            raise DuplicateNameError(f"output '{name}' is already declared", stack=self.name)
        self._outputs[name] = value

    def outputs(self) -> Dict[str, Any]:
        """Resolved stack outputs. Only valid after realization."""
        return {name: resolve_value(value) for name, value in self._outputs.items()}

    def rendered_outputs(self) -> Dict[str, Any]:
        """Stack outputs, with unresolved references shown as tokens."""
        return render_value(self._outputs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name}, {len(self._nodes)} resources)"
