"""Repository for AuditLog CRUD operations."""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from condoledger.models.audit_log import AuditLog
from condoledger.models.shared import generate_uuid


class AuditLogRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        *,
        resource_type: str,
        resource_id: UUID,
        action: str,
        changes: dict[str, Any],
        actor_id: str | None = None,
    ) -> AuditLog:
        audit_log = AuditLog(
            id=generate_uuid(),
            resource_type=resource_type,
            resource_id=resource_id,
            action=action,
            changes=changes,
            actor_id=actor_id,
        )
        self.db.add(audit_log)
        self.db.flush()
        return audit_log

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        resource_type: str | None = None,
        resource_id: UUID | None = None,
        action: str | None = None,
        actor_id: str | None = None,
    ) -> list[AuditLog]:
        query = self.db.query(AuditLog)
        if resource_type:
            query = query.filter(AuditLog.resource_type == resource_type)
        if resource_id:
            query = query.filter(AuditLog.resource_id == resource_id)
        if action:
            query = query.filter(AuditLog.action == action)
        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)
        return query.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit).all()
