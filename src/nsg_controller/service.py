"""Reconcile and delete a cluster's network security group.

Each call makes at most one Azure call:

    Start -> Skipped                      (vnet is externally managed)
    Start -> Submitted -> Success/Failure (otherwise)

A delete that fails because the security group is already gone counts as
success. Every other error is raised to the caller unchanged; retrying is
left to whatever loop drives the service.

Create-or-update is idempotent on the Azure side, so the desired body is
submitted without reading the current state first.
"""

from __future__ import annotations

import logging
from typing import Any

from .client import SecurityGroupClient, is_not_found
from .config import DEFAULT_API_SERVER_PORT
from .models import SecurityGroup, SecurityGroupSpec
from .rules import rules_for
from .scope import ClusterScope, should_manage

logger = logging.getLogger(__name__)


class InvalidSpecError(Exception):
    """Raised when a reconcile or delete request is malformed."""

    pass


class SecurityGroupService:
    """Drives a single network security group towards its desired state."""

    def __init__(
        self,
        scope: ClusterScope,
        client: SecurityGroupClient,
        api_server_port: int = DEFAULT_API_SERVER_PORT,
    ) -> None:
        self._scope = scope
        self._client = client
        self._api_server_port = api_server_port

    def desired_state(self, spec: SecurityGroupSpec) -> SecurityGroup:
        """Build the security group body for a request.

        Args:
            spec: Name and node role of the security group.

        Returns:
            Desired security group in the cluster's resource group and location,
            tagged as owned by the cluster.
        """
        return SecurityGroup(
            resource_group=self._scope.resource_group,
            name=spec.name,
            location=self._scope.location,
            security_rules=rules_for(spec.is_control_plane, self._api_server_port),
            tags=self._scope.owned_tags(),
        )

    async def reconcile(self, spec: Any) -> None:
        """Create or update the security group described by ``spec``.

        Args:
            spec: SecurityGroupSpec naming the group and its node role.

        Raises:
            InvalidSpecError: If spec is not a valid SecurityGroupSpec.
            Exception: Any error from the client, unchanged.
        """
        nsg_spec = _validate(spec)

        if not should_manage(self._scope):
            logger.debug(
                "Skipping network security group reconcile in custom vnet mode",
                extra={"security_group": nsg_spec.name, "vnet": self._scope.vnet.name},
            )
            return

        security_group = self.desired_state(nsg_spec)
        if nsg_spec.is_control_plane:
            logger.info(
                "Using additional rules for control plane",
                extra={"security_group": nsg_spec.name, "rules": security_group.rule_names()},
            )

        logger.info(
            "Creating security group",
            extra={
                "security_group": nsg_spec.name,
                "resource_group": self._scope.resource_group,
            },
        )
        await self._client.create_or_update(
            self._scope.resource_group, nsg_spec.name, security_group
        )
        logger.info("Created security group", extra={"security_group": nsg_spec.name})

    async def delete(self, spec: Any) -> None:
        """Delete the security group described by ``spec``.

        A security group that no longer exists is treated as deleted.

        Args:
            spec: SecurityGroupSpec naming the group.

        Raises:
            InvalidSpecError: If spec is not a valid SecurityGroupSpec.
            Exception: Any client error other than not found, unchanged.
        """
        nsg_spec = _validate(spec)

        if not should_manage(self._scope):
            logger.debug(
                "Skipping network security group delete in custom vnet mode",
                extra={"security_group": nsg_spec.name, "vnet": self._scope.vnet.name},
            )
            return

        logger.info(
            "Deleting security group",
            extra={
                "security_group": nsg_spec.name,
                "resource_group": self._scope.resource_group,
            },
        )
        try:
            await self._client.delete(self._scope.resource_group, nsg_spec.name)
        except Exception as e:
            if not is_not_found(e):
                raise
            logger.info("Security group already deleted", extra={"security_group": nsg_spec.name})
            return

        logger.info("Deleted security group", extra={"security_group": nsg_spec.name})


def _validate(spec: Any) -> SecurityGroupSpec:
    if not isinstance(spec, SecurityGroupSpec):
        raise InvalidSpecError("invalid security groups specification")
    if not spec.name:
        raise InvalidSpecError("security group name is required")
    return spec
