"""Environment configuration guard: validates injected settings at the boundary.

The guard runs once before an Assembler is built from settings and fails
hard (raises ``ConfigurationError``) if any constraint is violated.  All
violations are collected and reported together.

Region, account and connection ids only ever enter the system through
here; synthesis code never reads the environment itself.
"""

from __future__ import annotations

import logging
import re

from pipeforge.config import PipelineSettings
from pipeforge.core.errors import ConfigurationError
from pipeforge.models.common import LOGICAL_ID_PATTERN
from pipeforge.models.environment import ACCOUNT_PATTERN, KNOWN_PARTITIONS, REGION_PATTERN

logger = logging.getLogger(__name__)

CONNECTION_ID_PATTERN = r"^[A-Za-z0-9-]+$"
LOG_LEVELS: frozenset[str] = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


def find_environment_violations(settings: PipelineSettings) -> list[str]:
    """Return a message for every violated constraint; empty means healthy."""
    violations: list[str] = []

    if not settings.region:
        violations.append("region is not configured. Set PIPEFORGE_REGION.")
    elif not re.match(REGION_PATTERN, settings.region):
        violations.append(f"region '{settings.region}' is not a valid region name.")

    if not settings.account:
        violations.append("account is not configured. Set PIPEFORGE_ACCOUNT.")
    elif not re.match(ACCOUNT_PATTERN, settings.account):
        violations.append(f"account '{settings.account}' must be a 12-digit account id.")

    if settings.partition not in KNOWN_PARTITIONS:
        violations.append(
            f"partition '{settings.partition}' is not one of {sorted(KNOWN_PARTITIONS)}."
        )

    for logical_id, connection_id in sorted(settings.connections.items()):
        if not re.match(LOGICAL_ID_PATTERN, logical_id):
            violations.append(f"connection key '{logical_id}' is not a valid logical id.")
        if not connection_id:
            violations.append(f"connection '{logical_id}' has an empty connection id.")
        elif not re.match(CONNECTION_ID_PATTERN, connection_id):
            violations.append(f"connection '{logical_id}' has a malformed connection id.")

    if not settings.log_group_prefix.startswith("/"):
        violations.append(
            f"log_group_prefix '{settings.log_group_prefix}' must start with '/'."
        )

    if settings.log_level.upper() not in LOG_LEVELS:
        violations.append(f"log_level '{settings.log_level}' is not a logging level.")

    if settings.is_production and not settings.connections:
        violations.append(
            "production assembly requires explicit connections. "
            "Set PIPEFORGE_CONNECTIONS."
        )

    return violations


def enforce_environment_constraints(settings: PipelineSettings) -> None:
    """Validate all injected configuration constraints.

    Parameters
    ----------
    settings:
        The active ``PipelineSettings`` instance.

    Raises
    ------
    ConfigurationError
        If any constraint is violated.
    """
    violations = find_environment_violations(settings)
    if violations:
        msg = (
            "Environment configuration guard failed.\n"
            + "\n".join(f"  - {v}" for v in violations)
        )
        logger.critical(msg)
        raise ConfigurationError(msg, location="settings")

    logger.info(
        "Environment configuration guard passed (%s/%s).", settings.region, settings.account
    )
