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
Error taxonomy for stack composition and realization.

Every error carries the stack and node it was detected on so the CLI can
report which contract was violated and where.
"""
from typing import Optional


class TierstackError(Exception):
    """
    Base class for all composition and realization errors.
    """
    def __init__(self, message: str, stack: Optional[str] = None, node: Optional[str] = None):
        """
        :param message: Description of the violated contract.
        :param stack: Name of the stack the error was detected in.
        :param node: Name of the resource node the error was detected on.
        """
        self.message = message
        self.stack = stack
        self.node = node
        super().__init__(self._format())

    def _format(self) -> str:
        location = "/".join(part for part in (self.stack, self.node) if part)
        if location:
            return f"[{location}] {self.message}"
        return self.message


class DuplicateNameError(TierstackError):
    """Two nodes in one stack (or two stacks in one root) share a name."""


class MissingConfigurationError(TierstackError):
    """A stack was constructed without a required configuration value."""


class InvalidTierReferenceError(TierstackError):
    """A security tier derives ingress from a tier other than its predecessor."""


class UnresolvedReferenceError(TierstackError):
    """An output reference cannot be resolved."""


class NotYetRealizedError(UnresolvedReferenceError):
    """An output reference was read before its target node was realized."""


class CyclicDependencyError(TierstackError):
    """The dependency edges of a stack form a cycle."""


class RealizationError(TierstackError):
    """The provisioning backend rejected or failed a node."""


class InvalidConfigurationError(TierstackError):
    """A stack configuration value has the wrong type or shape."""
