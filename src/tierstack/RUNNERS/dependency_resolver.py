"""
Dependency resolution for resource nodes to determine realization and teardown order.
"""
from typing import List, Tuple
from ..MODELS.errors import CyclicDependencyError, UnresolvedReferenceError
from ..MODELS.resource_node import ResourceNode

class DependencyResolver:
    """
    Orders the nodes of one stack so that every node comes after the nodes it
    depends on. Declaration order breaks ties, so a stack declared in a
    consistent order is realized exactly in declaration order.
    """
    def resolve_order(self, stack_name: str, nodes: List[ResourceNode]) -> List[ResourceNode]:
        """
        Determines the realization order using a depth-first topological sort.

        :param stack_name: Name of the stack owning ``nodes``.
        :param nodes: The stack's nodes in declaration order.
        :return: Nodes in the order they should be realized.
        :raises CyclicDependencyError: If a circular dependency is detected.
        :raises UnresolvedReferenceError: If a node depends on an undeclared node of this stack.
        """
        members = {node.name: node for node in nodes}

        ordered = []
        visited = set()
        processing = []

        def visit(node: ResourceNode):
            """
            Recursive function for topological sort.
            """
            if node.name in processing:
                cycle = processing[processing.index(node.name):] + [node.name]
                raise CyclicDependencyError(
                    f"circular dependency: {' -> '.join(cycle)}", stack=stack_name, node=node.name
                )
            if node.name not in visited:
                processing.append(node.name)
                for dep in node.dependencies():
                    if dep.stack_name != stack_name:
                        continue  # cross-stack, ordered by the composition root
                    if members.get(dep.name) is not dep:
                        raise UnresolvedReferenceError(
                            f"depends on '{dep.name}' which is not declared in this stack",
                            stack=stack_name,
                            node=node.name,
                        )
                    visit(dep)
                processing.pop()
                visited.add(node.name)
                ordered.append(node)

        for node in nodes:
            visit(node)

        return ordered

    def external_dependencies(self, stack_name: str, nodes: List[ResourceNode]) -> List[Tuple[ResourceNode, ResourceNode]]:
        """
        Lists ``(node, dependency)`` pairs where the dependency lives in another stack.
        """
        pairs = []
        for node in nodes:
            for dep in node.dependencies():
                if dep.stack_name != stack_name:
                    pairs.append((node, dep))
        return pairs
