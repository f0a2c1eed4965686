"""
Utilities for interpolating environment variables into assembly files.
"""
import re
from typing import Dict

from ..MODELS.errors import MissingConfigurationError

# ${VAR}, ${VAR:-default}, ${VAR:+alt}, ${VAR:?message}; $$ escapes a dollar
_PATTERN = re.compile(r'\$\$|\$\{([A-Za-z_][A-Za-z0-9_]*)(?::([-+?])([^}]*))?\}')


class EnvironmentInterpolator:
    """
    Replaces ``${VAR}`` style placeholders using a variable context.
    """
    @staticmethod
    def interpolate(template: str, context: Dict[str, str]) -> str:
        """
        Interpolates variables in the template string.

        :param template: Text containing placeholders.
        :param context: Variable values.
        :return: The interpolated text.
        :raises MissingConfigurationError: If a required variable is unset or empty.
        """
        def replace(match):
            if match.group(0) == "$$":
                return "$"

            var_name, modifier, alt_value = match.group(1), match.group(2), match.group(3)
            value = context.get(var_name)

            if modifier == '-':
                return value if value else alt_value
            if modifier == '+':
                return alt_value if value else ''
            if modifier == '?':
                if not value:
                    raise MissingConfigurationError(f"{var_name}: {alt_value or 'required variable is not set'}")
                return value
            if value is None:
                raise MissingConfigurationError(f"variable {var_name} is not set")
            return value

        return _PATTERN.sub(replace, template)
