"""Main entry point for the network security group controller.

Runs a single reconcile or delete pass for one security group and exits.
Any retry belongs to whatever schedules the process.

Environment Variables (in addition to those read by Config.from_env):
    SECURITY_GROUP_NAME: Name of the security group to manage
    CONTROL_PLANE: "true" to apply the control plane rule profile
    ACTION: "reconcile" (default) or "delete"
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum

from azure.core.exceptions import AzureError, HttpResponseError
from pydantic import ValidationError

from .client import AzureSecurityGroupClient
from .config import Config, ConfigurationError
from .models import SecurityGroupSpec
from .scope import ClusterScope
from .service import SecurityGroupService

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class Action(str, Enum):
    """Operations the controller can run."""

    RECONCILE = "reconcile"
    DELETE = "delete"


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: int = logging.INFO) -> None:
    """Configure structured logging with JSON output for production."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Reduce noise from Azure SDK
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def load_request() -> tuple[Action, SecurityGroupSpec]:
    """Read the requested action and security group from the environment.

    Raises:
        ConfigurationError: If ACTION or the security group spec is invalid.
    """
    raw_action = os.environ.get("ACTION", Action.RECONCILE.value).lower()
    try:
        action = Action(raw_action)
    except ValueError as e:
        valid = [a.value for a in Action]
        raise ConfigurationError(f"ACTION must be one of {valid}: {raw_action}") from e

    try:
        spec = SecurityGroupSpec(
            name=os.environ.get("SECURITY_GROUP_NAME", ""),
            is_control_plane=os.environ.get("CONTROL_PLANE", "").lower() in ("true", "1", "yes"),
        )
    except ValidationError as e:
        raise ConfigurationError(f"SECURITY_GROUP_NAME is invalid: {e}") from e

    return action, spec


async def run_action(
    service: SecurityGroupService, action: Action, spec: SecurityGroupSpec
) -> None:
    """Run one reconcile or delete pass."""
    match action:
        case Action.RECONCILE:
            await service.reconcile(spec)
        case Action.DELETE:
            await service.delete(spec)


async def main() -> int:
    """Run the controller once.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        config = Config.from_env()
        action, spec = load_request()
    except ConfigurationError as e:
        logger.error("Configuration error", extra={"error": str(e)})
        return 1

    scope = ClusterScope.from_config(config)
    logger.info(
        "Starting network security group controller",
        extra={
            "action": action.value,
            "security_group": spec.name,
            "cluster": scope.cluster_name,
            "resource_group": scope.resource_group,
            "vnet_managed": scope.is_vnet_managed(),
        },
    )

    try:
        client = AzureSecurityGroupClient(
            subscription_id=config.subscription_id,
            timeout_seconds=config.operation_timeout_seconds,
            client_id=config.managed_identity_client_id,
        )
    except Exception as e:
        logger.error(
            "Failed to initialize Azure client",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        return 1
    service = SecurityGroupService(scope, client, api_server_port=config.api_server_port)

    try:
        await run_action(service, action, spec)
    except HttpResponseError as e:
        logger.error(
            "Azure API error",
            extra={"error": str(e), "status_code": e.status_code},
        )
        return 1
    except AzureError as e:
        logger.error("Azure SDK error", extra={"error": str(e)})
        return 1
    except TimeoutError:
        logger.error("Azure operation timed out", extra={"action": action.value})
        return 1
    finally:
        client.close()

    logger.info("Controller finished", extra={"action": action.value, "security_group": spec.name})
    return 0


def run() -> None:
    """Entry point for the controller CLI."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
