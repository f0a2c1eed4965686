"""
Models for security tiers, their ingress rules and the named rule catalog.
"""
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


class RuleName(str, Enum):
    """
    Named rules, matching the terraform security-group module catalog.
    """
    ALL_ALL = "all-all"
    HTTP_80_TCP = "http-80-tcp"
    HTTP_8080_TCP = "http-8080-tcp"
    HTTPS_443_TCP = "https-443-tcp"
    SSH_TCP = "ssh-tcp"
    POSTGRESQL_TCP = "postgresql-tcp"
    MYSQL_TCP = "mysql-tcp"
    REDIS_TCP = "redis-tcp"


# rule -> (from_port, to_port, protocol, description)
RULE_CATALOG: Dict[RuleName, Tuple[int, int, str, str]] = {
    RuleName.ALL_ALL: (-1, -1, "-1", "All protocols"),
    RuleName.HTTP_80_TCP: (80, 80, "tcp", "HTTP"),
    RuleName.HTTP_8080_TCP: (8080, 8080, "tcp", "HTTP"),
    RuleName.HTTPS_443_TCP: (443, 443, "tcp", "HTTPS"),
    RuleName.SSH_TCP: (22, 22, "tcp", "SSH"),
    RuleName.POSTGRESQL_TCP: (5432, 5432, "tcp", "PostgreSQL"),
    RuleName.MYSQL_TCP: (3306, 3306, "tcp", "MySQL/Aurora"),
    RuleName.REDIS_TCP: (6379, 6379, "tcp", "Redis"),
}

OPEN_CIDR = "0.0.0.0/0"


class IngressRule(BaseModel):
    """
    A static, address-range based ingress rule.
    """
    model_config = ConfigDict(frozen=True)

    rule: RuleName
    cidr_blocks: List[str] = Field(default_factory=lambda: [OPEN_CIDR])


class TierSpec(BaseModel):
    """
    Declaration of one tier in a security tier chain.

    ``derive_from`` names the tier whose members may reach this one. It
    defaults to the immediately preceding tier and may not name any other.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    ingress: List[IngressRule] = []
    derive_from: Optional[str] = None
    derived_rules: List[RuleName] = Field(default_factory=lambda: [RuleName.ALL_ALL])
    egress_cidr_blocks: List[str] = Field(default_factory=lambda: [OPEN_CIDR])
    description: Optional[str] = None


class InboundRule(BaseModel):
    """
    A resolved inbound (or outbound) rule of a realized tier.
    """
    model_config = ConfigDict(frozen=True)

    rule: RuleName
    from_port: int
    to_port: int
    protocol: str
    cidr_blocks: List[str] = []
    source_security_group_id: Optional[str] = None
    self_referencing: bool = False

    @property
    def derived(self) -> bool:
        """True for rules computed from another tier's identity."""
        return self.source_security_group_id is not None and not self.self_referencing

    @classmethod
    def from_catalog(cls, rule: RuleName, **kwargs) -> "InboundRule":
        from_port, to_port, protocol, _ = RULE_CATALOG[RuleName(rule)]
        return cls(rule=rule, from_port=from_port, to_port=to_port, protocol=protocol, **kwargs)
