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
Interface of the provisioning backend that materializes resource nodes.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict

from ..MODELS.resource_node import NodeDeclaration


class ProvisioningBackend(ABC):
    """
    External collaborator that creates and destroys remote resources.

    The composition root calls ``realize`` once per node, in dependency order,
    with every input already resolved. Any exception raised here halts the
    run; exceptions that are not ``TierstackError`` are wrapped into
    ``RealizationError`` by the caller.
    """

    @abstractmethod
    def realize(self, declaration: NodeDeclaration) -> Dict[str, Any]:
        """
        Materializes one node.

        :param declaration: The node with resolved inputs.
        :return: The node's output attributes.
        """

    @abstractmethod
    def destroy(self, declaration: NodeDeclaration):
        """
        Tears one realized node down.

        :param declaration: The node as it was realized.
        """
