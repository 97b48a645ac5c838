"""Tests for the Azure security group client."""

from __future__ import annotations

import asyncio
import time
from unittest import mock

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from azure.mgmt.network.models import NetworkSecurityGroup
from azure_mock import MockAzureContext, http_error, not_found_error

from nsg_controller.client import AzureSecurityGroupClient, is_not_found
from nsg_controller.models import SecurityGroup, SecurityGroupSpec
from nsg_controller.rules import control_plane_rules
from nsg_controller.scope import ClusterScope
from nsg_controller.service import SecurityGroupService

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000001"


class TestIsNotFound:
    """Tests for not-found classification."""

    def test_resource_not_found_error(self) -> None:
        """Test ResourceNotFoundError is not found."""
        assert is_not_found(not_found_error("my-sg")) is True

    def test_resource_not_found_without_status(self) -> None:
        """Test ResourceNotFoundError counts even without a status code."""
        assert is_not_found(ResourceNotFoundError(message="gone")) is True

    def test_http_404(self) -> None:
        """Test any HTTP error with status 404 is not found."""
        assert is_not_found(http_error(404)) is True

    @pytest.mark.parametrize("status_code", [400, 409, 500])
    def test_other_http_status(self, status_code: int) -> None:
        """Test other HTTP statuses are not not-found."""
        assert is_not_found(http_error(status_code)) is False

    def test_http_error_without_status(self) -> None:
        """Test an HTTP error without a response is not not-found."""
        assert is_not_found(HttpResponseError(message="boom")) is False

    def test_non_azure_error(self) -> None:
        """Test unrelated exceptions are not not-found."""
        assert is_not_found(ValueError("404")) is False


class TestAzureSecurityGroupClient:
    """Tests for AzureSecurityGroupClient against a mocked SDK."""

    @pytest.fixture
    def security_group(self) -> SecurityGroup:
        """Desired control plane security group."""
        return SecurityGroup(
            resource_group="my-rg",
            name="my-sg",
            location="westeurope",
            security_rules=control_plane_rules(),
        )

    @pytest.mark.asyncio
    async def test_create_or_update_sends_sdk_model(self, security_group: SecurityGroup) -> None:
        """Test create_or_update submits the converted SDK body."""
        with MockAzureContext() as ctx:
            client = AzureSecurityGroupClient(subscription_id=SUBSCRIPTION_ID)
            await client.create_or_update("my-rg", "my-sg", security_group)

            stored = ctx.state.get_group("my-rg", "my-sg")
            assert isinstance(stored, NetworkSecurityGroup)
            assert stored.location == "westeurope"
            assert [r.name for r in stored.security_rules] == ["allow_ssh", "allow_apiserver"]
            assert stored.security_rules[1].destination_port_range == "6443"

    @pytest.mark.asyncio
    async def test_delete_existing_group(self) -> None:
        """Test delete removes an existing group."""
        with MockAzureContext(initial_groups=[("my-rg", "my-sg")]) as ctx:
            client = AzureSecurityGroupClient(subscription_id=SUBSCRIPTION_ID)
            await client.delete("my-rg", "my-sg")

            assert ctx.state.group_count == 0

    @pytest.mark.asyncio
    async def test_delete_missing_group_raises_not_found(self) -> None:
        """Test the SDK's not-found error reaches the caller untouched."""
        with MockAzureContext():
            client = AzureSecurityGroupClient(subscription_id=SUBSCRIPTION_ID)

            with pytest.raises(ResourceNotFoundError) as exc_info:
                await client.delete("my-rg", "my-sg")

            assert is_not_found(exc_info.value)

    @pytest.mark.asyncio
    async def test_poller_failure_raises(self, security_group: SecurityGroup) -> None:
        """Test a failed long-running operation surfaces its error."""
        with MockAzureContext(fail_operations=True):
            client = AzureSecurityGroupClient(subscription_id=SUBSCRIPTION_ID)

            with pytest.raises(HttpResponseError) as exc_info:
                await client.create_or_update("my-rg", "my-sg", security_group)

            assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_timeout(self, security_group: SecurityGroup) -> None:
        """Test a hanging operation is bounded by the timeout."""
        with MockAzureContext() as ctx:
            client = AzureSecurityGroupClient(subscription_id=SUBSCRIPTION_ID, timeout_seconds=0)
            slow_poller = mock.Mock()
            slow_poller.result.side_effect = lambda: time.sleep(0.2)
            ctx.clients[0].network_security_groups.begin_create_or_update = mock.Mock(
                return_value=slow_poller
            )

            with pytest.raises(asyncio.TimeoutError):
                await client.create_or_update("my-rg", "my-sg", security_group)

    def test_uses_system_assigned_identity_by_default(self) -> None:
        """Test the managed identity credential is built when none is given."""
        with MockAzureContext() as ctx:
            AzureSecurityGroupClient(subscription_id=SUBSCRIPTION_ID)

            assert len(ctx.credentials) == 1
            assert ctx.credentials[0].client_id is None
            assert ctx.clients[0].subscription_id == SUBSCRIPTION_ID

    def test_uses_user_assigned_identity(self) -> None:
        """Test a client ID selects a user-assigned identity."""
        with MockAzureContext() as ctx:
            AzureSecurityGroupClient(subscription_id=SUBSCRIPTION_ID, client_id="abcdef12-3456")

            assert ctx.credentials[0].client_id == "abcdef12-3456"

    def test_injected_credential_is_used(self) -> None:
        """Test an explicit credential skips managed identity."""
        credential = mock.Mock()
        with MockAzureContext() as ctx:
            AzureSecurityGroupClient(subscription_id=SUBSCRIPTION_ID, credential=credential)

            assert ctx.credentials == []

    def test_close(self) -> None:
        """Test close releases the SDK client."""
        with MockAzureContext() as ctx:
            client = AzureSecurityGroupClient(subscription_id=SUBSCRIPTION_ID)
            client.close()

            assert ctx.clients[0].closed is True


class TestServiceWithAzureClient:
    """End-to-end tests of the service over the mocked SDK."""

    @pytest.mark.asyncio
    async def test_reconcile_then_delete_twice(self, cluster_scope: ClusterScope) -> None:
        """Test create, delete and a second delete of the same group."""
        with MockAzureContext() as ctx:
            service = SecurityGroupService(
                cluster_scope, AzureSecurityGroupClient(subscription_id=SUBSCRIPTION_ID)
            )
            spec = SecurityGroupSpec(name="my-sg", is_control_plane=True)

            await service.reconcile(spec)
            assert ctx.state.get_group("my-rg", "my-sg") is not None

            await service.delete(spec)
            await service.delete(spec)

            assert ctx.state.group_count == 0
            assert [op.operation for op in ctx.state.operations] == [
                "create_or_update",
                "delete",
                "delete",
            ]

    @pytest.mark.asyncio
    async def test_custom_vnet_makes_no_sdk_calls(self, custom_vnet_scope: ClusterScope) -> None:
        """Test nothing reaches the SDK in custom vnet mode."""
        with MockAzureContext(initial_groups=[("my-rg", "my-sg")]) as ctx:
            service = SecurityGroupService(
                custom_vnet_scope, AzureSecurityGroupClient(subscription_id=SUBSCRIPTION_ID)
            )
            spec = SecurityGroupSpec(name="my-sg")

            await service.reconcile(spec)
            await service.delete(spec)

            assert ctx.state.operations == []
            assert ctx.state.group_count == 1
