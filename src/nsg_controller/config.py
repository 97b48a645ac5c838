"""Configuration management with validation.

Configuration is read once from the environment and validated at load
time so that a misconfigured controller fails before it touches Azure.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_API_SERVER_PORT = 6443
DEFAULT_OPERATION_TIMEOUT_SECONDS = 300
MIN_OPERATION_TIMEOUT_SECONDS = 10
MAX_OPERATION_TIMEOUT_SECONDS = 3600

MAX_RESOURCE_GROUP_NAME_LENGTH = 90
MAX_CLUSTER_NAME_LENGTH = 63

# Input validation patterns
VALID_SUBSCRIPTION_ID_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
VALID_LOCATION_PATTERN = r"^[a-z]{2,}[a-z0-9]*$"


@dataclass(frozen=True)
class Config:
    """Controller configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing at runtime.
    """

    # Required fields
    subscription_id: str
    location: str
    cluster_name: str
    resource_group: str

    # Pre-existing virtual network, empty when the cluster owns its vnet
    vnet_resource_group: str = ""
    vnet_name: str = ""
    vnet_id: str = ""

    api_server_port: int = DEFAULT_API_SERVER_PORT
    operation_timeout_seconds: int = DEFAULT_OPERATION_TIMEOUT_SECONDS

    # User-assigned identity; system-assigned when None
    managed_identity_client_id: str | None = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.subscription_id:
            errors.append("AZURE_SUBSCRIPTION_ID is required")
        elif not re.match(VALID_SUBSCRIPTION_ID_PATTERN, self.subscription_id.lower()):
            errors.append(f"AZURE_SUBSCRIPTION_ID must be a valid GUID: {self.subscription_id}")

        if not self.location:
            errors.append("AZURE_LOCATION is required")
        elif not re.match(VALID_LOCATION_PATTERN, self.location.lower()):
            errors.append(f"AZURE_LOCATION must be a valid Azure region: {self.location}")

        if not self.cluster_name:
            errors.append("CLUSTER_NAME is required")
        elif len(self.cluster_name) > MAX_CLUSTER_NAME_LENGTH:
            errors.append(f"CLUSTER_NAME exceeds maximum length of {MAX_CLUSTER_NAME_LENGTH}")

        if not self.resource_group:
            errors.append("RESOURCE_GROUP_NAME is required")
        elif len(self.resource_group) > MAX_RESOURCE_GROUP_NAME_LENGTH:
            errors.append(
                f"RESOURCE_GROUP_NAME exceeds maximum length of {MAX_RESOURCE_GROUP_NAME_LENGTH}"
            )

        if not (1 <= self.api_server_port <= 65535):
            errors.append(f"API_SERVER_PORT must be a valid TCP port: {self.api_server_port}")

        if not (
            MIN_OPERATION_TIMEOUT_SECONDS
            <= self.operation_timeout_seconds
            <= MAX_OPERATION_TIMEOUT_SECONDS
        ):
            errors.append(
                f"OPERATION_TIMEOUT must be between {MIN_OPERATION_TIMEOUT_SECONDS} "
                f"and {MAX_OPERATION_TIMEOUT_SECONDS} seconds"
            )

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            AZURE_SUBSCRIPTION_ID: Target Azure subscription
            AZURE_LOCATION: Region of the cluster resources
            CLUSTER_NAME: Name of the owning cluster
            RESOURCE_GROUP_NAME: Resource group holding the cluster resources
            VNET_RESOURCE_GROUP: Resource group of a pre-existing vnet (optional)
            VNET_NAME: Name of a pre-existing vnet (optional)
            VNET_ID: Resource ID of a pre-existing vnet (optional)
            API_SERVER_PORT: Port opened on control plane nodes (default: 6443)
            OPERATION_TIMEOUT: Seconds to wait on a single Azure call (default: 300)
            AZURE_CLIENT_ID: Client ID of a user-assigned managed identity (optional)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        return cls(
            subscription_id=os.environ.get("AZURE_SUBSCRIPTION_ID", ""),
            location=os.environ.get("AZURE_LOCATION", ""),
            cluster_name=os.environ.get("CLUSTER_NAME", ""),
            resource_group=os.environ.get("RESOURCE_GROUP_NAME", ""),
            vnet_resource_group=os.environ.get("VNET_RESOURCE_GROUP", ""),
            vnet_name=os.environ.get("VNET_NAME", ""),
            vnet_id=os.environ.get("VNET_ID", ""),
            api_server_port=get_int("API_SERVER_PORT", DEFAULT_API_SERVER_PORT),
            operation_timeout_seconds=get_int(
                "OPERATION_TIMEOUT", DEFAULT_OPERATION_TIMEOUT_SECONDS
            ),
            managed_identity_client_id=os.environ.get("AZURE_CLIENT_ID") or None,
        )
