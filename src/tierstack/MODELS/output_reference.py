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
Output references: lazily resolved handles to attributes of resource nodes.

A reference is created at declaration time and only resolves once the
provisioning backend has reported the outputs of the node it points at.
"""
from typing import Any, Iterator, Tuple, TYPE_CHECKING

from .errors import NotYetRealizedError, UnresolvedReferenceError

if TYPE_CHECKING:
    from .resource_node import ResourceNode

_UNSET = object()


class OutputRef:
    """
    Handle to ``node.outputs[attribute]``, optionally indexed into a list
    output (``ref.element(0)``).
    """
    def __init__(self, node: "ResourceNode", attribute: str, path: Tuple[int, ...] = ()):
        self.node = node
        self.attribute = attribute
        self.path = tuple(path)
        self._value = _UNSET
        # outputs mapping the cached value was read from
        self._source = None

    @property
    def stack_name(self) -> str:
        return self.node.stack_name

    @property
    def resolved(self) -> bool:
        return self._value is not _UNSET and self._source is self.node.outputs

    def element(self, index: int) -> "OutputRef":
        """
        Returns a reference to one element of a list-valued output.
        """
        return OutputRef(self.node, self.attribute, self.path + (index,))

    def resolve(self) -> Any:
        """
        Resolves the referenced attribute. The first successful resolution is
        cached and returned by every later call while the target node stays
        realized. Realizing the node again, after a destroy, drops the cached
        value.

        :return: The materialized attribute value.
        :raises NotYetRealizedError: If the target node is not realized yet.
        :raises UnresolvedReferenceError: If the attribute or element is missing.
        """
        if not self.node.realized:
            raise NotYetRealizedError(
                f"output '{self.attribute}' read before '{self.node.name}' was realized",
                stack=self.node.stack_name,
                node=self.node.name,
            )
        if self.resolved:
            return self._value

        outputs = self.node.outputs
        if self.attribute not in outputs:
            raise UnresolvedReferenceError(
                f"{self.node.resource_type} '{self.node.name}' has no output '{self.attribute}'",
                stack=self.node.stack_name,
                node=self.node.name,
            )

        value = outputs[self.attribute]
        for index in self.path:
            try:
                value = value[index]
            except (IndexError, KeyError, TypeError) as e:
                raise UnresolvedReferenceError(
                    f"output '{self.attribute}' has no element {index}",
                    stack=self.node.stack_name,
                    node=self.node.name,
                ) from e

        self._value = value
        self._source = outputs
        return value

    def token(self) -> str:
        """Printable placeholder used in plans before resolution."""
        suffix = "".join(f"[{i}]" for i in self.path)
        return f"${{{self.node.stack_name}.{self.node.name}.{self.attribute}{suffix}}}"

    def __repr__(self) -> str:
        return f"OutputRef({self.token()})"


def find_references(value: Any) -> Iterator[OutputRef]:
    """
    Yields every output reference nested anywhere inside a value, in order.
    """
    if isinstance(value, OutputRef):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from find_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from find_references(item)


def resolve_value(value: Any) -> Any:
    """
    Returns a copy of ``value`` with every nested output reference resolved.
    """
    if isinstance(value, OutputRef):
        return value.resolve()
    if isinstance(value, dict):
        return {k: resolve_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_value(v) for v in value]
    return value


def render_value(value: Any) -> Any:
    """
    Like ``resolve_value`` but leaves unresolved references as tokens.
    """
    if isinstance(value, OutputRef):
        return value.resolve() if value.node.realized else value.token()
    if isinstance(value, dict):
        return {k: render_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [render_value(v) for v in value]
    return value
