"""Audit trail endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from condoledger.core.database import get_db
from condoledger.models.audit_log import AuditResource
from condoledger.repositories.audit_log_repository import AuditLogRepository
from condoledger.schemas.audit_log import AuditLogResponse

router = APIRouter()


@router.get("/", response_model=list[AuditLogResponse], summary="List audit logs")
async def list_audit_logs(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    resource_type: AuditResource | None = None,
    resource_id: UUID | None = None,
    action: str | None = None,
    actor_id: str | None = Query(default=None, description="Acting user that made the change"),
    db: Session = Depends(get_db),
) -> list[AuditLogResponse]:
    """Newest first. ``action`` is ``created``, ``status_changed`` or a named action."""
    logs = AuditLogRepository(db).get_all(
        skip=skip,
        limit=limit,
        resource_type=resource_type.value if resource_type else None,
        resource_id=resource_id,
        action=action,
        actor_id=actor_id,
    )
    return [AuditLogResponse.model_validate(log) for log in logs]


@router.get(
    "/{resource_type}/{resource_id}",
    response_model=list[AuditLogResponse],
    summary="Audit trail of one building, unit, invoice or payment",
)
async def get_resource_audit_trail(
    resource_type: AuditResource,
    resource_id: UUID,
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[AuditLogResponse]:
    logs = AuditLogRepository(db).get_all(
        limit=limit, resource_type=resource_type.value, resource_id=resource_id
    )
    return [AuditLogResponse.model_validate(log) for log in logs]
