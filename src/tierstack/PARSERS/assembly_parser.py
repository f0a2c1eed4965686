"""
Parser for YAML assembly files.
"""
import os
from typing import Dict, Optional

import yaml
from dotenv import dotenv_values
from pydantic import ValidationError

from ..MODELS.assembly_config import AssemblyConfig
from ..MODELS.errors import InvalidConfigurationError
from ..UTILS.string_interpolation import EnvironmentInterpolator


class AssemblyParser:
    """
    Parser for tierstack.yml files.
    """
    def __init__(self, context: Optional[Dict[str, str]] = None):
        """
        Initializes the parser with an optional variable context for interpolation.

        :param context: Variables for interpolation. When omitted, the process
            environment is used, layered over a ``.env`` file next to the
            assembly file.
        """
        self.context = context

    def parse(self, assembly_path: str) -> AssemblyConfig:
        """
        Parses an assembly file from a path.

        :param assembly_path: Path to the assembly file.
        :return: Parsed configuration.
        """
        with open(assembly_path, 'r') as f:
            content = f.read()
        context = self.context if self.context is not None else self.load_context(assembly_path)
        return self.parse_from_string(content, context)

    @staticmethod
    def load_context(assembly_path: str) -> Dict[str, str]:
        """
        Builds the interpolation context: ``.env`` values, overridden by the
        process environment.
        """
        context = {}
        env_file = os.path.join(os.path.dirname(os.path.abspath(assembly_path)), ".env")
        if os.path.exists(env_file):
            context.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
        context.update(os.environ)
        return context

    def parse_from_string(self, content: str, context: Optional[Dict[str, str]] = None) -> AssemblyConfig:
        """
        Parses an assembly file from a string.

        :param content: YAML content of the assembly file.
        :param context: Variables for interpolation; defaults to the parser's context or the environment.
        :return: Parsed configuration.
        :raises MissingConfigurationError: If a referenced variable is not set.
        :raises InvalidConfigurationError: If the content is not a valid assembly file.
        """
        if context is None:
            context = self.context if self.context is not None else dict(os.environ)
        content = EnvironmentInterpolator.interpolate(content, context)

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise InvalidConfigurationError(f"assembly file is not valid YAML: {e}") from e
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise InvalidConfigurationError("assembly file must be a mapping")

        try:
            return AssemblyConfig.model_validate(data)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise InvalidConfigurationError(f"invalid assembly file: {', '.join(fields)}") from e
