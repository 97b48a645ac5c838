"""Cluster scope and the vnet ownership decision."""

from __future__ import annotations

from dataclasses import dataclass, field

from .config import Config
from .models import NetworkSpec, VnetSpec

CLUSTER_OWNED_TAG_PREFIX = "sigs.k8s.io_cluster-api-provider-azure_cluster_"
CLUSTER_OWNED_TAG_VALUE = "owned"


@dataclass(frozen=True)
class ClusterScope:
    """Read-only cluster context handed to the security group service.

    Owned by the caller; the service never constructs or mutates it.
    """

    cluster_name: str
    resource_group: str
    location: str
    network_spec: NetworkSpec = field(default_factory=NetworkSpec)

    @property
    def vnet(self) -> VnetSpec:
        """Get the cluster's virtual network description."""
        return self.network_spec.vnet

    def is_vnet_managed(self) -> bool:
        """Check whether the cluster owns its virtual network."""
        return should_manage(self)

    def owned_tags(self) -> dict[str, str]:
        """Tags marking a resource as created for this cluster."""
        return {f"{CLUSTER_OWNED_TAG_PREFIX}{self.cluster_name}": CLUSTER_OWNED_TAG_VALUE}

    @classmethod
    def from_config(cls, config: Config) -> ClusterScope:
        """Build a scope from controller configuration."""
        return cls(
            cluster_name=config.cluster_name,
            resource_group=config.resource_group,
            location=config.location,
            network_spec=NetworkSpec(
                vnet=VnetSpec(
                    resource_group=config.vnet_resource_group,
                    name=config.vnet_name,
                    id=config.vnet_id,
                )
            ),
        )


def should_manage(scope: ClusterScope) -> bool:
    """Decide whether security groups in this scope are ours to change.

    An empty vnet description means the cluster created the vnet itself.
    A vnet ID, or a vnet resource group different from the cluster's,
    means the vnet was brought by the operator and must be left alone.

    Args:
        scope: Cluster scope holding the network description.

    Returns:
        True if reconcile and delete should call Azure, False to skip.
    """
    vnet = scope.vnet
    if vnet.id:
        return False
    if vnet.resource_group and vnet.resource_group != scope.resource_group:
        return False
    return True
