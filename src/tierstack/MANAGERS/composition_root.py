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
Composition root: instantiates stacks in order and realizes their nodes.
"""
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from pydantic import BaseModel

from ..BACKENDS.memory_backend import InMemoryBackend
from ..BACKENDS.provisioning_backend import ProvisioningBackend
from ..MODELS.errors import DuplicateNameError, RealizationError, TierstackError, UnresolvedReferenceError
from ..MODELS.resource_node import NodeDeclaration, ResourceNode
from ..RUNNERS.dependency_resolver import DependencyResolver
from .stack import Stack, StackHandle

StackFactory = Callable[[Any, str, Any], Stack]


class CompositionRoot:
    """
    Owns the ordered list of stacks of one assembly.

    Stack *i* can only be configured with exports of stacks added before it,
    because those are the only handles that exist when it is added. ``synth``
    realizes the stacks in the order they were added and, inside each
    stack, realizes nodes in dependency order.
    """
    def __init__(self, backend: Optional[ProvisioningBackend] = None):
        """
        Initializes the composition root.

        :param backend: Provisioning backend; defaults to the in-memory one.
        """
        self.backend = backend or InMemoryBackend()
        self.resolver = DependencyResolver()
        self.stacks: List[Stack] = []
        self._realized: List[Tuple[ResourceNode, NodeDeclaration]] = []
        self._started = False

    def add_stack(self, factory: StackFactory, name: str,
                  config: Union[BaseModel, Dict[str, Any], None] = None) -> StackHandle:
        """
        Instantiates a stack and appends it to the realization sequence.

        :param factory: Stack class (or callable with the same signature).
        :param name: Stack name, unique within this root.
        :param config: Stack configuration, built from upstream exports.
        :return: Handle exposing the stack's frozen exports.
        """
        if self._started:
            raise TierstackError("cannot add stacks after synth has started", stack=name)
        if any(stack.name == name for stack in self.stacks):
            raise DuplicateNameError(f"stack '{name}' is already added", stack=name)

        stack = factory(self, name, config)
        self.stacks.append(stack)
        return stack.handle()

    def plan(self) -> List[Tuple[Stack, List[ResourceNode]]]:
        """
        Computes the realization order of every stack without touching the
        backend.

        :return: ``(stack, ordered nodes)`` pairs in stack order.
        :raises CyclicDependencyError: If any stack has a dependency cycle.
        :raises UnresolvedReferenceError: If a stack depends on a later or unknown stack.
        """
        positions = {stack.name: index for index, stack in enumerate(self.stacks)}
        plans = []
        for index, stack in enumerate(self.stacks):
            order = self.resolver.resolve_order(stack.name, stack.nodes)
            for node, dep in self.resolver.external_dependencies(stack.name, stack.nodes):
                target = positions.get(dep.stack_name)
                if target is None or dep not in self.stacks[target].nodes:
                    raise UnresolvedReferenceError(
                        f"references '{dep.stack_name}/{dep.name}' which is not part of this assembly",
                        stack=stack.name,
                        node=node.name,
                    )
                if target > index:
                    raise UnresolvedReferenceError(
                        f"references '{dep.stack_name}/{dep.name}' which is realized after this stack",
                        stack=stack.name,
                        node=node.name,
                    )
            plans.append((stack, order))
        return plans

    def synth(self) -> Dict[str, Dict[str, Any]]:
        """
        Realizes every stack in order. The whole assembly is planned first,
        so a cycle or a bad cross-stack reference aborts before the backend
        sees any node. The first failure halts the run.

        :return: Resolved stack outputs, keyed by stack name.
        """
        if self._started:
            raise TierstackError("synth already ran on this composition root")
        plans = self.plan()
        self._started = True

        print(f"Realizing stacks in order: {', '.join(stack.name for stack, _ in plans)}")
        for stack, order in plans:
            print(f"Realizing stack: {stack.name} ({len(order)} resources)...")
            for node in order:
                self._realize(node)
            stack.realized = True

        return {stack.name: stack.outputs() for stack in self.stacks}

    def _realize(self, node: ResourceNode):
        """
        Resolves a node's inputs and hands it to the backend.

        :param node: The node to realize.
        """
        declaration = node.declaration()
        print(f"Realizing resource: {node.stack_name}/{node.name} ({node.resource_type})...")
        try:
            outputs = self.backend.realize(declaration)
        except TierstackError:
            raise
        except Exception as e:
            raise RealizationError(f"{type(e).__name__}: {e}", stack=node.stack_name, node=node.name) from e

        if not isinstance(outputs, dict):
            raise RealizationError("backend returned no outputs", stack=node.stack_name, node=node.name)
        node.mark_realized(outputs)
        self._realized.append((node, declaration))

    def destroy(self):
        """
        Tears down every realized node in exact reverse realization order.
        """
        for node, declaration in reversed(list(self._realized)):
            print(f"Destroying resource: {node.stack_name}/{node.name} ({node.resource_type})...")
            try:
                self.backend.destroy(declaration)
            except TierstackError:
                raise
            except Exception as e:
                raise RealizationError(f"{type(e).__name__}: {e}", stack=node.stack_name, node=node.name) from e
            node.mark_destroyed()
            self._realized.pop()

        for stack in self.stacks:
            stack.realized = False

    def realization_order(self) -> List[str]:
        """``stack/name`` of every node realized so far, in order."""
        return [f"{node.stack_name}/{node.name}" for node, _ in self._realized]

    def ps(self) -> Dict[str, str]:
        """
        Returns the status of all stacks.
        """
        status = {}
        for stack in self.stacks:
            done = sum(1 for node in stack.nodes if node.realized)
            if stack.realized:
                status[stack.name] = "realized"
            elif done:
                status[stack.name] = f"partial ({done}/{len(stack.nodes)})"
            else:
                status[stack.name] = "pending"
        return status
