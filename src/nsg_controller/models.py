"""Pydantic models for the network description and security group state.

These models provide:
1. Validation at the boundary (fail fast, fail loudly)
2. The desired security group body built on every reconcile
3. Clean transformation to the Azure SDK network models
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated

from azure.mgmt.network.models import NetworkSecurityGroup
from azure.mgmt.network.models import SecurityRule as AzureSecurityRule
from pydantic import BaseModel, Field, field_validator

# Azure NSG names: 1-80 chars, alphanumerics, underscores, periods and hyphens.
# Must start with an alphanumeric and end with an alphanumeric or underscore.
VALID_SECURITY_GROUP_NAME_PATTERN = r"^[A-Za-z0-9](?:[A-Za-z0-9_.-]{0,78}[A-Za-z0-9_])?$"

DEFAULT_VNET_CIDR = "10.0.0.0/8"

MIN_RULE_PRIORITY = 100
MAX_RULE_PRIORITY = 4096


# =============================================================================
# Network description
# =============================================================================


class VnetSpec(BaseModel):
    """Virtual network description of a cluster.

    A populated ``id``, or a ``resource_group`` other than the cluster's,
    means the vnet was supplied by the operator and is not ours to manage.
    """

    model_config = {"extra": "ignore", "populate_by_name": True}

    resource_group: str = Field("", alias="resourceGroup")
    name: str = ""
    id: str = ""
    cidr_block: str = Field(DEFAULT_VNET_CIDR, alias="cidrBlock")

    @field_validator("cidr_block")
    @classmethod
    def validate_cidr(cls, v: str) -> str:
        if "/" not in v:
            raise ValueError(f"Invalid CIDR notation: {v}")
        return v


class NetworkSpec(BaseModel):
    """Network configuration of a cluster."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    vnet: VnetSpec = Field(default_factory=VnetSpec)


# =============================================================================
# Per-call request
# =============================================================================


class SecurityGroupSpec(BaseModel):
    """Request to reconcile or delete a single network security group."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name: Annotated[str, Field(min_length=1, max_length=80)]
    is_control_plane: bool = Field(False, alias="isControlPlane")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not re.fullmatch(VALID_SECURITY_GROUP_NAME_PATTERN, v):
            raise ValueError(f"invalid network security group name: {v}")
        return v


# =============================================================================
# Desired state
# =============================================================================


class RuleProtocol(str, Enum):
    """Transport protocols accepted by Azure security rules."""

    TCP = "Tcp"
    UDP = "Udp"
    ICMP = "Icmp"
    ANY = "*"


class RuleAccess(str, Enum):
    """Whether matching traffic is allowed or denied."""

    ALLOW = "Allow"
    DENY = "Deny"


class RuleDirection(str, Enum):
    """Traffic direction a rule applies to."""

    INBOUND = "Inbound"
    OUTBOUND = "Outbound"


class SecurityRule(BaseModel):
    """A single traffic rule of a network security group."""

    model_config = {"extra": "ignore", "populate_by_name": True, "frozen": True}

    name: Annotated[str, Field(min_length=1, max_length=80)]
    description: str | None = None
    protocol: RuleProtocol = RuleProtocol.TCP
    source_address_prefix: str = Field("*", alias="sourceAddressPrefix")
    source_port_range: str = Field("*", alias="sourcePortRange")
    destination_address_prefix: str = Field("*", alias="destinationAddressPrefix")
    destination_port_range: str = Field(alias="destinationPortRange")
    access: RuleAccess = RuleAccess.ALLOW
    direction: RuleDirection = RuleDirection.INBOUND
    priority: Annotated[int, Field(ge=MIN_RULE_PRIORITY, le=MAX_RULE_PRIORITY)]

    def to_azure_model(self) -> AzureSecurityRule:
        """Convert to the Azure SDK security rule model."""
        return AzureSecurityRule(
            name=self.name,
            description=self.description,
            protocol=self.protocol.value,
            source_address_prefix=self.source_address_prefix,
            source_port_range=self.source_port_range,
            destination_address_prefix=self.destination_address_prefix,
            destination_port_range=self.destination_port_range,
            access=self.access.value,
            direction=self.direction.value,
            priority=self.priority,
        )


class SecurityGroup(BaseModel):
    """Desired state of a network security group.

    Built fresh on every reconcile and never mutated afterwards.
    """

    model_config = {"extra": "ignore", "populate_by_name": True, "frozen": True}

    resource_group: Annotated[str, Field(min_length=1, alias="resourceGroup")]
    name: Annotated[str, Field(min_length=1, max_length=80)]
    location: Annotated[str, Field(min_length=1)]
    security_rules: tuple[SecurityRule, ...] = Field((), alias="securityRules")
    tags: dict[str, str] = Field(default_factory=dict)

    @field_validator("security_rules")
    @classmethod
    def validate_unique_rules(cls, v: tuple[SecurityRule, ...]) -> tuple[SecurityRule, ...]:
        names = [rule.name for rule in v]
        if len(names) != len(set(names)):
            raise ValueError("security rule names must be unique")
        seen: set[tuple[RuleDirection, int]] = set()
        for rule in v:
            key = (rule.direction, rule.priority)
            if key in seen:
                raise ValueError(
                    f"duplicate {rule.direction.value} rule priority: {rule.priority}"
                )
            seen.add(key)
        return v

    def rule_names(self) -> list[str]:
        """Names of all rules in priority order."""
        return [rule.name for rule in sorted(self.security_rules, key=lambda r: r.priority)]

    def to_azure_model(self) -> NetworkSecurityGroup:
        """Convert to the Azure SDK request body."""
        return NetworkSecurityGroup(
            location=self.location,
            security_rules=[rule.to_azure_model() for rule in self.security_rules],
            tags=dict(self.tags) or None,
        )
