"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for azure_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from azure_mock import MockSecurityGroupClient  # noqa: E402

from nsg_controller.models import NetworkSpec, VnetSpec  # noqa: E402
from nsg_controller.scope import ClusterScope  # noqa: E402


@pytest.fixture
def cluster_scope() -> ClusterScope:
    """Scope of a cluster that owns its virtual network."""
    return ClusterScope(
        cluster_name="test-cluster",
        resource_group="my-rg",
        location="test-location",
    )


@pytest.fixture
def custom_vnet_scope() -> ClusterScope:
    """Scope of a cluster deployed into a pre-existing virtual network."""
    return ClusterScope(
        cluster_name="test-cluster",
        resource_group="my-rg",
        location="test-location",
        network_spec=NetworkSpec(
            vnet=VnetSpec(resource_group="custom-vnet-rg", name="custom-vnet", id="id1")
        ),
    )


@pytest.fixture
def sg_client() -> MockSecurityGroupClient:
    """Recording security group client."""
    return MockSecurityGroupClient()
