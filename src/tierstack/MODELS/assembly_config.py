"""
Models for a parsed assembly file.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel


class AssemblyConfig(BaseModel):
    """
    Settings for the stacks of a top-level assembly, keyed by stack role
    (``base``, ``petapp``, ...).
    """
    assembly: Optional[str] = None
    region: str = "us-east-1"
    stacks: Dict[str, Optional[Dict[str, Any]]] = {}

    def stack_settings(self, role: str) -> Dict[str, Any]:
        """
        Returns the settings for one stack role, with the assembly region as
        the default region.
        """
        settings = {"region": self.region}
        settings.update(self.stacks.get(role) or {})
        return settings
