"""Billing API endpoints: debt loading, invoices and unit balances."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from condoledger.core.auth import get_acting_user
from condoledger.core.database import get_db
from condoledger.models.invoice import Invoice, InvoiceStatus
from condoledger.schemas.balance import InvoiceBalanceLine, UnitBalanceResponse
from condoledger.schemas.invoice import (
    InvoiceBatchCreate,
    InvoiceCreate,
    InvoicePaymentResponse,
    InvoiceResponse,
)
from condoledger.schemas.payment import PaymentResponse
from condoledger.services.balance_service import BalanceService
from condoledger.services.invoice_ledger import InvoiceLedger
from condoledger.services.payment_service import PaymentService

router = APIRouter()


@router.post(
    "/debt",
    response_model=InvoiceResponse,
    status_code=201,
    summary="Load a debt",
    responses={
        400: {"description": "Non-positive amount or malformed period"},
        401: {"description": "Missing X-Acting-User header"},
        404: {"description": "Unit not found"},
    },
)
async def create_debt(
    data: InvoiceCreate,
    db: Session = Depends(get_db),
    acting_user: str = Depends(get_acting_user),
) -> Invoice:
    """Create a PENDING invoice for a unit and billing period."""
    return InvoiceLedger(db).create_invoice(
        unit_id=data.unit_id,
        amount=data.amount,
        period=data.period,
        description=data.description,
        due_date=data.due_date,
        acting_user=acting_user,
    )


@router.post(
    "/debt/batch",
    response_model=list[InvoiceResponse],
    status_code=201,
    summary="Load many debts",
    responses={
        400: {"description": "An item has a non-positive amount or malformed period"},
        401: {"description": "Missing X-Acting-User header"},
        404: {"description": "A unit was not found"},
    },
)
async def create_debt_batch(
    data: InvoiceBatchCreate,
    db: Session = Depends(get_db),
    acting_user: str = Depends(get_acting_user),
) -> list[Invoice]:
    """Create several invoices at once; if any item is invalid none is created."""
    items = [
        (item.unit_id, item.amount, item.period, item.description, item.due_date)
        for item in data.items
    ]
    return InvoiceLedger(db).create_invoices_batch(items, acting_user)


@router.get("/invoices", response_model=list[InvoiceResponse], summary="List invoices")
async def list_invoices(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    building_id: UUID | None = None,
    unit_id: UUID | None = None,
    status: InvoiceStatus | None = None,
    period: str | None = None,
    year: int | None = Query(default=None, ge=1900, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
) -> list[Invoice]:
    """List invoices, newest period first."""
    return InvoiceLedger(db).list_invoices(
        skip=skip,
        limit=limit,
        building_id=building_id,
        unit_id=unit_id,
        status=status,
        period=period,
        year=year,
        month=month,
    )


@router.get(
    "/invoices/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Get invoice",
    responses={404: {"description": "Invoice not found"}},
)
async def get_invoice(invoice_id: UUID, db: Session = Depends(get_db)) -> Invoice:
    return InvoiceLedger(db).get_invoice(invoice_id)


@router.get(
    "/invoices/{invoice_id}/payments",
    response_model=list[InvoicePaymentResponse],
    summary="Payments applied to an invoice",
    responses={404: {"description": "Invoice not found"}},
)
async def get_invoice_payments(
    invoice_id: UUID,
    db: Session = Depends(get_db),
) -> list[InvoicePaymentResponse]:
    """Committed allocations against the invoice, oldest first."""
    return [
        InvoicePaymentResponse(
            allocation_id=allocation.id,
            payment_id=payment.id,
            allocated_amount=allocation.amount,
            allocated_at=allocation.allocated_at,
            payment_amount=payment.amount,
            payment_date=payment.payment_date,
            method=payment.method,
            reference=payment.reference,
            status=payment.status,
        )
        for allocation, payment in InvoiceLedger(db).get_invoice_payments(invoice_id)
    ]


@router.post(
    "/invoices/{invoice_id}/cancel",
    response_model=InvoiceResponse,
    summary="Cancel invoice",
    responses={
        401: {"description": "Missing X-Acting-User header"},
        404: {"description": "Invoice not found"},
        409: {"description": "Invoice has payments or is already cancelled"},
    },
)
async def cancel_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    acting_user: str = Depends(get_acting_user),
) -> Invoice:
    return InvoiceLedger(db).cancel_invoice(invoice_id, acting_user)


@router.get(
    "/units/{unit_id}/invoices",
    response_model=list[InvoiceResponse],
    summary="List a unit's invoices",
)
async def list_unit_invoices(
    unit_id: UUID,
    status: InvoiceStatus | None = None,
    year: int | None = Query(default=None, ge=1900, le=9999),
    db: Session = Depends(get_db),
) -> list[Invoice]:
    return InvoiceLedger(db).list_invoices(unit_id=unit_id, status=status, year=year, limit=1000)


@router.get(
    "/units/{unit_id}/outstanding",
    response_model=list[InvoiceResponse],
    summary="Outstanding invoices of a unit",
    responses={404: {"description": "Unit not found"}},
)
async def list_outstanding(unit_id: UUID, db: Session = Depends(get_db)) -> list[Invoice]:
    """PENDING and PARTIAL invoices, oldest period first."""
    return InvoiceLedger(db).list_outstanding(unit_id)


@router.get(
    "/units/{unit_id}/balance",
    response_model=UnitBalanceResponse,
    summary="Unit balance",
    responses={404: {"description": "Unit not found"}},
)
async def get_unit_balance(unit_id: UUID, db: Session = Depends(get_db)) -> UnitBalanceResponse:
    """Total debt with per-invoice breakdown. Pending payments do not reduce the debt."""
    balance = BalanceService(db).get_unit_balance(unit_id)
    return UnitBalanceResponse(
        unit_id=balance.unit_id,
        total_debt=balance.total_debt,
        outstanding_count=balance.outstanding_count,
        pending_payments_amount=balance.pending_payments_amount,
        invoice_breakdown=[
            InvoiceBalanceLine(
                invoice_id=line.invoice_id,
                number=line.number,
                period=line.period,
                amount=line.amount,
                paid_amount=line.paid_amount,
                balance=line.balance,
                status=line.status,
            )
            for line in balance.breakdown
        ],
    )


@router.get(
    "/units/{unit_id}/payments",
    response_model=list[PaymentResponse],
    summary="Payment history of a unit",
    responses={404: {"description": "Unit not found"}},
)
async def get_payment_history(
    unit_id: UUID,
    db: Session = Depends(get_db),
) -> list[PaymentResponse]:
    """Every payment of the unit in any status, newest first."""
    payments = BalanceService(db).get_payment_history(unit_id)
    return PaymentService(db).to_responses(payments)
