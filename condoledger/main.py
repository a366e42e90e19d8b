import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from condoledger.core.config import settings
from condoledger.core.errors import CondoLedgerError, StorageError
from condoledger.core.logging import setup_logging
from condoledger.routers import audit_logs, billing, buildings, payments

setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "Buildings", "description": "Manage buildings and their units."},
    {"name": "Billing", "description": "Load debts, query invoices and unit balances."},
    {"name": "Payments", "description": "Submit, review and inspect resident payments."},
    {"name": "Audit Logs", "description": "Query the audit trail for invoices and payments."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Condominium payment reconciliation API. "
        "Load monthly debts, record resident payments and approve them against "
        "outstanding invoices."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CondoLedgerError)
async def condo_ledger_error_handler(request: Request, exc: CondoLedgerError) -> JSONResponse:
    if isinstance(exc, StorageError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(buildings.router, prefix="/v1/buildings", tags=["Buildings"])
app.include_router(billing.router, prefix="/v1/billing", tags=["Billing"])
app.include_router(payments.router, prefix="/v1/payments", tags=["Payments"])
app.include_router(audit_logs.router, prefix="/v1/audit_logs", tags=["Audit Logs"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "status": "running",
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
