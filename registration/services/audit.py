"""Audit logging for compliance tracking. Entries go to the log, never to storage."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

_MASKED_KEYS = ("socialSecurityNumber", "policyNumber", "email", "parentEmail")


def _mask_value(key: str, value: str) -> str:
    if key == "socialSecurityNumber":
        return "XXX-XX-" + value[-4:]
    if key == "policyNumber":
        return "XXXX-" + value[-4:] if len(value) > 4 else value
    if "@" in value:
        username, _, domain = value.partition("@")
        return username[:2] + "***@" + domain
    return value


def mask_sensitive_data(detail: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of detail with SSNs, policy numbers and emails masked."""
    masked = dict(detail)
    for key in _MASKED_KEYS:
        value = masked.get(key)
        if isinstance(value, str) and value:
            masked[key] = _mask_value(key, value)
    return masked


def log_action(
    *,
    actor: str,
    action: str,
    resource_type: str,
    resource_id: str,
    detail: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Write an audit log entry (detail masked) and return it."""
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "actor": actor,
        "action": action,
        "resource_type": resource_type,
        "resource_id": resource_id,
        "detail": mask_sensitive_data(detail or {}),
    }
    logger.info(
        "AUDIT: %s %s %s/%s %s", actor, action, resource_type, resource_id, entry["detail"]
    )
    return entry
