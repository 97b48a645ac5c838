"""Security rule profiles for control plane and worker nodes."""

from __future__ import annotations

from .config import DEFAULT_API_SERVER_PORT
from .models import RuleAccess, RuleDirection, RuleProtocol, SecurityRule

SSH_PORT = 22

SSH_RULE_NAME = "allow_ssh"
API_SERVER_RULE_NAME = "allow_apiserver"

SSH_RULE_PRIORITY = 100
API_SERVER_RULE_PRIORITY = 101


def control_plane_rules(
    api_server_port: int = DEFAULT_API_SERVER_PORT,
) -> tuple[SecurityRule, ...]:
    """Inbound rules for nodes hosting the API server."""
    return (
        SecurityRule(
            name=SSH_RULE_NAME,
            description="Allow SSH",
            protocol=RuleProtocol.TCP,
            destination_port_range=str(SSH_PORT),
            access=RuleAccess.ALLOW,
            direction=RuleDirection.INBOUND,
            priority=SSH_RULE_PRIORITY,
        ),
        SecurityRule(
            name=API_SERVER_RULE_NAME,
            description="Allow K8s API Server",
            protocol=RuleProtocol.TCP,
            destination_port_range=str(api_server_port),
            access=RuleAccess.ALLOW,
            direction=RuleDirection.INBOUND,
            priority=API_SERVER_RULE_PRIORITY,
        ),
    )


def worker_rules() -> tuple[SecurityRule, ...]:
    """Worker nodes rely on the Azure default rules only."""
    return ()


def rules_for(
    is_control_plane: bool,
    api_server_port: int = DEFAULT_API_SERVER_PORT,
) -> tuple[SecurityRule, ...]:
    """Select the rule profile for a node role."""
    if is_control_plane:
        return control_plane_rules(api_server_port)
    return worker_rules()
