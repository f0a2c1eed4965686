"""
Named top-level assemblies. Each one adds its stacks to a composition root
and wires upstream exports into downstream configuration.
"""
from typing import Callable, Dict, Optional

from ..BACKENDS.memory_backend import InMemoryBackend
from ..BACKENDS.provisioning_backend import ProvisioningBackend
from ..MANAGERS.composition_root import CompositionRoot
from ..MANAGERS.stack import StackHandle
from ..MODELS.assembly_config import AssemblyConfig
from ..MODELS.errors import MissingConfigurationError
from .base_stack import BaseStack
from .pet_app_stack import PetAppStack, PetAppStackConfig

DEFAULT_ASSEMBLY = "dev-base"

Assembly = Callable[[CompositionRoot, AssemblyConfig], None]
ASSEMBLIES: Dict[str, Assembly] = {}


def assembly(name: str) -> Callable[[Assembly], Assembly]:
    """Registers an assembly function under ``name``."""
    def register(func: Assembly) -> Assembly:
        ASSEMBLIES[name] = func
        return func
    return register


def _add_base(root: CompositionRoot, config: AssemblyConfig) -> StackHandle:
    settings = config.stack_settings("base")
    name = settings.pop("name", "buildit-agency-dev-base")
    return root.add_stack(BaseStack, name, settings)


@assembly("dev-base")
def dev_base(root: CompositionRoot, config: AssemblyConfig):
    """Base network stack only."""
    _add_base(root, config)


@assembly("dev-petapp")
def dev_petapp(root: CompositionRoot, config: AssemblyConfig):
    """Base network stack plus the pet application stack."""
    base = _add_base(root, config)

    settings = config.stack_settings("petapp")
    name = settings.pop("name", "buildit-agency-dev-petapp")
    settings.setdefault("profile", config.stack_settings("base").get("profile"))
    settings.update(PetAppStackConfig.wiring(base.exports))
    root.add_stack(PetAppStack, name, settings)


def build_assembly(name: str, config: AssemblyConfig,
                   backend: Optional[ProvisioningBackend] = None) -> CompositionRoot:
    """
    Builds the composition root of a named assembly.

    :param name: Registered assembly name.
    :param config: Parsed assembly file.
    :param backend: Provisioning backend; defaults to an in-memory one in the assembly region.
    :raises MissingConfigurationError: If no assembly is registered under ``name``.
    """
    if name not in ASSEMBLIES:
        raise MissingConfigurationError(
            f"unknown assembly '{name}' (available: {', '.join(sorted(ASSEMBLIES))})"
        )
    root = CompositionRoot(backend or InMemoryBackend(region=config.region))
    ASSEMBLIES[name](root, config)
    return root
