"""Azure API mocks for network security group tests.

Usage:
    from azure_mock import MockSecurityGroupClient, not_found_error

    client = MockSecurityGroupClient()
    client.fail_delete_with(not_found_error("my-sg"))
    service = SecurityGroupService(scope, client)
    await service.delete(SecurityGroupSpec(name="my-sg"))

    assert client.call_count == 1
"""

from .context import MockAzureContext
from .credential import MockManagedIdentityCredential
from .network import (
    MockNetworkManagementClient,
    MockNetworkState,
    MockSecurityGroupClient,
    RecordedCall,
    http_error,
    not_found_error,
)

__all__ = [
    "MockAzureContext",
    "MockManagedIdentityCredential",
    "MockNetworkManagementClient",
    "MockNetworkState",
    "MockSecurityGroupClient",
    "RecordedCall",
    "http_error",
    "not_found_error",
]
