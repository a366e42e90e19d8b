"""Audit service for recording state changes to invoices and payments."""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from condoledger.repositories.audit_log_repository import AuditLogRepository


class AuditService:
    """Service for recording audit trail entries.

    Entries are flushed inside the caller's transaction so they commit or roll
    back together with the change they describe.
    """

    def __init__(self, db: Session):
        self.repo = AuditLogRepository(db)

    def log_create(
        self,
        resource_type: str,
        resource_id: UUID,
        actor_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Log a resource creation event."""
        self.repo.create(
            resource_type=resource_type,
            resource_id=resource_id,
            action="created",
            changes=data or {},
            actor_id=actor_id,
        )

    def log_status_change(
        self,
        resource_type: str,
        resource_id: UUID,
        old_status: str,
        new_status: str,
        actor_id: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Log a status change event."""
        changes: dict[str, Any] = {"status": {"old": old_status, "new": new_status}}
        if extra:
            changes.update(extra)
        self.repo.create(
            resource_type=resource_type,
            resource_id=resource_id,
            action="status_changed",
            changes=changes,
            actor_id=actor_id,
        )

    def log_action(
        self,
        resource_type: str,
        resource_id: UUID,
        action: str,
        actor_id: str | None = None,
        changes: dict[str, Any] | None = None,
    ) -> None:
        """Log any other named action."""
        self.repo.create(
            resource_type=resource_type,
            resource_id=resource_id,
            action=action,
            changes=changes or {},
            actor_id=actor_id,
        )
