"""
Audit logging for pricing administration.

Every pricing mutation emits one audit entry (actor, action, entity,
before/after). Storage of the audit trail is owned by the audit service;
the default recorder here writes a structured log line that the log
pipeline ships there.
"""

import logging
from typing import Optional, Dict, Any, Protocol

logger = logging.getLogger("ride_pricing.audit")


class AuditAction:
    """Standardized audit action constants."""
    VERSION_CREATED = "PRICING_VERSION_CREATED"
    VERSION_UPDATED = "PRICING_VERSION_UPDATED"
    VERSION_ACTIVATED = "PRICING_VERSION_ACTIVATED"
    VERSION_ARCHIVED = "PRICING_VERSION_ARCHIVED"
    VERSION_CLONED = "PRICING_VERSION_CLONED"

    ENTITY_CREATED = "PRICING_ENTITY_CREATED"
    ENTITY_UPDATED = "PRICING_ENTITY_UPDATED"
    ENTITY_DELETED = "PRICING_ENTITY_DELETED"


class AuditRecorder(Protocol):
    async def record(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        actor_id: Optional[int] = None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None
    ) -> None:
        ...


class LoggingAuditRecorder:
    """Audit recorder that emits structured log entries."""

    async def record(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        actor_id: Optional[int] = None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None
    ) -> None:
        """
        Log a pricing admin event.

        Args:
            action: Action being performed (use AuditAction constants)
            entity_type: Table-level name of the entity ("pricing_config", ...)
            entity_id: ID of the entity acted upon
            actor_id: ID of the admin performing the action (None for system)
            before: Serialized entity before the change
            after: Serialized entity after the change
            reason: Optional free-text justification
        """
        logger.info(
            action,
            extra={
                "audit_action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "actor_id": actor_id,
                "before": before,
                "after": after,
                "reason": reason,
            }
        )


class InMemoryAuditRecorder:
    """Keeps audit entries in a list. Used by tests and local tooling."""

    def __init__(self):
        self.entries: list[Dict[str, Any]] = []

    async def record(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        actor_id: Optional[int] = None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None
    ) -> None:
        self.entries.append({
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "actor_id": actor_id,
            "before": before,
            "after": after,
            "reason": reason,
        })

    def actions(self) -> list[str]:
        return [entry["action"] for entry in self.entries]
