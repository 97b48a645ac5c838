"""Client contract for network security groups and its Azure implementation.

The service depends only on SecurityGroupClient, a two-method capability.
AzureSecurityGroupClient implements it on top of the Azure SDK; tests
substitute a recording double.

Azure SDK exceptions are surfaced untouched so callers can still tell a
missing resource (HTTP 404) apart from any other failure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

from azure.core.credentials import TokenCredential
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from azure.identity import ManagedIdentityCredential
from azure.mgmt.network import NetworkManagementClient

from .config import DEFAULT_OPERATION_TIMEOUT_SECONDS
from .models import SecurityGroup

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404


class SecurityGroupClient(Protocol):
    """Capability consumed by SecurityGroupService."""

    async def create_or_update(
        self, resource_group: str, name: str, security_group: SecurityGroup
    ) -> None:
        """Create the security group, or update it to match the body."""
        ...

    async def delete(self, resource_group: str, name: str) -> None:
        """Delete the security group."""
        ...


def is_not_found(error: BaseException) -> bool:
    """Check whether an error means the resource does not exist.

    Args:
        error: Exception raised by a SecurityGroupClient.

    Returns:
        True for ResourceNotFoundError or any HTTP error with status 404.
    """
    if isinstance(error, ResourceNotFoundError):
        return True
    if isinstance(error, HttpResponseError):
        return error.status_code == HTTP_NOT_FOUND
    return False


def get_managed_identity_credential(client_id: str | None = None) -> ManagedIdentityCredential:
    """Get a managed identity credential for the Azure network API.

    Args:
        client_id: Optional client ID for user-assigned managed identity.
                   If None, uses system-assigned managed identity.
    """
    if client_id:
        logger.info(
            "Using user-assigned managed identity",
            extra={"client_id": client_id[:8] + "..." if len(client_id) > 8 else client_id},
        )
        return ManagedIdentityCredential(client_id=client_id)

    logger.info("Using system-assigned managed identity")
    return ManagedIdentityCredential()


class AzureSecurityGroupClient:
    """SecurityGroupClient backed by azure-mgmt-network.

    Each call starts the long-running operation and waits for it in the
    default executor, bounded by ``timeout_seconds``.
    """

    def __init__(
        self,
        subscription_id: str,
        credential: TokenCredential | None = None,
        timeout_seconds: int = DEFAULT_OPERATION_TIMEOUT_SECONDS,
        client_id: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            subscription_id: Subscription holding the security groups.
            credential: Credential to authenticate with. Defaults to a
                managed identity credential.
            timeout_seconds: Maximum time to wait for a single operation.
            client_id: User-assigned identity client ID, used only when no
                credential is given.
        """
        self._credential = credential or get_managed_identity_credential(client_id)
        self._timeout_seconds = timeout_seconds
        self._client = NetworkManagementClient(
            credential=self._credential,
            subscription_id=subscription_id,
        )

    async def create_or_update(
        self, resource_group: str, name: str, security_group: SecurityGroup
    ) -> None:
        """Submit the desired security group body.

        Raises:
            HttpResponseError: If the Azure API rejects the request.
            TimeoutError: If the operation exceeds the timeout.
        """
        parameters = security_group.to_azure_model()
        await self._execute_with_timeout(
            lambda: self._client.network_security_groups.begin_create_or_update(
                resource_group, name, parameters
            ),
            operation_name=f"create or update security group {name}",
        )

    async def delete(self, resource_group: str, name: str) -> None:
        """Delete the security group.

        Raises:
            ResourceNotFoundError: If the security group does not exist.
            HttpResponseError: If the Azure API rejects the request.
            TimeoutError: If the operation exceeds the timeout.
        """
        await self._execute_with_timeout(
            lambda: self._client.network_security_groups.begin_delete(resource_group, name),
            operation_name=f"delete security group {name}",
        )

    async def _execute_with_timeout(
        self,
        begin_operation: Callable[[], Any],
        operation_name: str,
    ) -> Any:
        """Execute an Azure SDK poller operation with timeout.

        Args:
            begin_operation: Callable that returns an LROPoller.
            operation_name: Human-readable name for logging.

        Returns:
            The result of the poller operation.
        """
        loop = asyncio.get_running_loop()

        poller = await loop.run_in_executor(None, begin_operation)

        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, poller.result),
                timeout=self._timeout_seconds,
            )
        except TimeoutError:
            logger.error(
                f"{operation_name} timed out",
                extra={"timeout_seconds": self._timeout_seconds},
            )
            raise

    def close(self) -> None:
        """Close the underlying SDK client."""
        self._client.close()
