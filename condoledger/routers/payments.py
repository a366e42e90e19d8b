"""Payment API endpoints: submission, review and allocation lookups."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from condoledger.core.auth import get_acting_user
from condoledger.core.database import get_db
from condoledger.core.errors import ValidationError
from condoledger.core.idempotency import (
    IdempotencyResult,
    check_idempotency,
    record_idempotency_response,
)
from condoledger.models.payment import PaymentStatus
from condoledger.models.payment_allocation import PaymentAllocation
from condoledger.schemas.payment import (
    AllocationResponse,
    PaymentApprove,
    PaymentCreate,
    PaymentReallocate,
    PaymentReject,
    PaymentResponse,
    PaymentStatusUpdate,
)
from condoledger.services.approval_workflow import ApprovalWorkflow
from condoledger.services.payment_service import PaymentService

router = APIRouter()


def _record(
    db: Session,
    idempotency: JSONResponse | IdempotencyResult | None,
    response: PaymentResponse,
) -> PaymentResponse:
    if isinstance(idempotency, IdempotencyResult):
        body = response.model_dump(mode="json")
        record_idempotency_response(db, idempotency, 200, body)
    return response


@router.post(
    "/",
    response_model=PaymentResponse,
    status_code=201,
    summary="Submit payment",
    responses={
        400: {"description": "Non-positive amount or malformed period"},
        401: {"description": "Missing X-Acting-User header"},
        404: {"description": "Unit not found"},
        409: {"description": "Explicit allocations are invalid"},
    },
)
async def submit_payment(
    data: PaymentCreate,
    db: Session = Depends(get_db),
    acting_user: str = Depends(get_acting_user),
) -> PaymentResponse:
    """Record a PENDING payment and propose how it settles the unit's invoices.

    Invoices are not touched until the payment is approved.
    """
    service = PaymentService(db)
    payment = service.submit_payment(data, acting_user)
    return service.to_response(payment)


@router.get("/", response_model=list[PaymentResponse], summary="List payments")
async def list_payments(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    building_id: UUID | None = None,
    unit_id: UUID | None = None,
    status: PaymentStatus | None = None,
    submitted_by: str | None = None,
    period: str | None = None,
    year: int | None = Query(default=None, ge=1900, le=9999),
    db: Session = Depends(get_db),
) -> list[PaymentResponse]:
    """List payments with optional filters, newest first."""
    service = PaymentService(db)
    payments = service.list_payments(
        skip=skip,
        limit=limit,
        building_id=building_id,
        unit_id=unit_id,
        status=status,
        submitted_by=submitted_by,
        period=period,
        year=year,
    )
    return service.to_responses(payments)


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Get payment",
    responses={404: {"description": "Payment not found"}},
)
async def get_payment(payment_id: UUID, db: Session = Depends(get_db)) -> PaymentResponse:
    service = PaymentService(db)
    return service.to_response(service.get_payment(payment_id))


@router.get(
    "/{payment_id}/allocations",
    response_model=list[AllocationResponse],
    summary="Payment allocations",
    responses={404: {"description": "Payment not found"}},
)
async def get_allocations(
    payment_id: UUID,
    db: Session = Depends(get_db),
) -> list[PaymentAllocation]:
    """Proposed allocations while pending, committed allocations once approved."""
    return PaymentService(db).get_allocations(payment_id)


@router.put(
    "/{payment_id}/allocations",
    response_model=PaymentResponse,
    summary="Recompute proposed allocations",
    responses={
        401: {"description": "Missing X-Acting-User header"},
        404: {"description": "Payment not found"},
        409: {"description": "Payment is not pending or allocations are invalid"},
    },
)
async def reallocate_payment(
    payment_id: UUID,
    data: PaymentReallocate,
    db: Session = Depends(get_db),
    acting_user: str = Depends(get_acting_user),
) -> PaymentResponse:
    """Replace the proposal of a pending payment against the current balances."""
    service = PaymentService(db)
    payment = service.reallocate(payment_id, acting_user, data.allocations, data.periods)
    return service.to_response(payment)


@router.post(
    "/{payment_id}/approve",
    response_model=PaymentResponse,
    summary="Approve payment",
    responses={
        400: {"description": "Selected periods are invalid"},
        401: {"description": "Missing X-Acting-User header"},
        404: {"description": "Payment not found"},
        409: {"description": "Payment is not pending or an invoice would be overpaid"},
        503: {"description": "Storage failure, safe to retry with the same Idempotency-Key"},
    },
)
async def approve_payment(
    payment_id: UUID,
    request: Request,
    data: PaymentApprove | None = None,
    db: Session = Depends(get_db),
    acting_user: str = Depends(get_acting_user),
) -> PaymentResponse | JSONResponse:
    """Approve a pending payment and apply its allocations to the invoices.

    With ``selected_periods`` only allocations for those periods are applied;
    the rest of the money stays unallocated on the approved payment.
    """
    idempotency = check_idempotency(request, db, acting_user)
    if isinstance(idempotency, JSONResponse):
        return idempotency

    data = data or PaymentApprove()
    result = ApprovalWorkflow(db).approve(
        payment_id,
        acting_user,
        selected_periods=data.selected_periods,
        notes=data.notes,
    )
    response = PaymentService(db).to_response(result.payment)
    return _record(db, idempotency, response)


@router.post(
    "/{payment_id}/reject",
    response_model=PaymentResponse,
    summary="Reject payment",
    responses={
        400: {"description": "Missing rejection reason"},
        401: {"description": "Missing X-Acting-User header"},
        404: {"description": "Payment not found"},
        409: {"description": "Payment is not pending"},
    },
)
async def reject_payment(
    payment_id: UUID,
    data: PaymentReject,
    request: Request,
    db: Session = Depends(get_db),
    acting_user: str = Depends(get_acting_user),
) -> PaymentResponse | JSONResponse:
    """Reject a pending payment. Invoices are left untouched."""
    idempotency = check_idempotency(request, db, acting_user)
    if isinstance(idempotency, JSONResponse):
        return idempotency

    payment = ApprovalWorkflow(db).reject(payment_id, data.reason, acting_user)
    response = PaymentService(db).to_response(payment)
    return _record(db, idempotency, response)


@router.patch(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Review payment (legacy)",
    responses={
        400: {"description": "Unsupported status or missing rejection reason"},
        401: {"description": "Missing X-Acting-User header"},
        404: {"description": "Payment not found"},
        409: {"description": "Payment is not pending or an invoice would be overpaid"},
    },
)
async def update_payment_status(
    payment_id: UUID,
    data: PaymentStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    acting_user: str = Depends(get_acting_user),
) -> PaymentResponse | JSONResponse:
    """Review a payment with the ``{status, notes, approved_periods}`` payload.

    ``APPROVED`` approves with ``approved_periods`` as the selected periods;
    ``REJECTED`` rejects with ``notes`` as the reason.
    """
    idempotency = check_idempotency(request, db, acting_user)
    if isinstance(idempotency, JSONResponse):
        return idempotency

    workflow = ApprovalWorkflow(db)
    if data.status == PaymentStatus.APPROVED:
        payment = workflow.approve(
            payment_id,
            acting_user,
            selected_periods=data.approved_periods,
            notes=data.notes,
        ).payment
    elif data.status == PaymentStatus.REJECTED:
        payment = workflow.reject(payment_id, data.notes or "", acting_user)
    else:
        raise ValidationError("Status must be APPROVED or REJECTED", field="status")

    response = PaymentService(db).to_response(payment)
    return _record(db, idempotency, response)
