"""Idempotent payment reviews.

Approve, reject and the legacy PATCH accept an ``Idempotency-Key`` header.
The first completed response for an (acting user, key) pair is stored; a
retry with the same pair gets that response back with
``Idempotency-Replayed: true`` instead of ``InvalidStateError``. A request
that failed (for example with ``StorageError``) leaves its record incomplete,
so retrying it runs the review again.
"""

from dataclasses import dataclass
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from condoledger.core.errors import ValidationError
from condoledger.repositories.idempotency_repository import IdempotencyRepository

IDEMPOTENCY_HEADER = "Idempotency-Key"
REPLAYED_HEADER = "Idempotency-Replayed"


@dataclass
class IdempotencyResult:
    """A keyed request that has not completed yet."""

    actor_id: str
    key: str


def check_idempotency(
    request: Request, db: Session, acting_user: str
) -> JSONResponse | IdempotencyResult | None:
    """Look up the request's key for ``acting_user``.

    Returns ``None`` when the header is absent, the cached ``JSONResponse``
    when the key already completed on this path, and an ``IdempotencyResult``
    to pass to ``record_idempotency_response`` otherwise. Reusing a key on a
    different path is a ``ValidationError``.
    """
    key = request.headers.get(IDEMPOTENCY_HEADER, "").strip()
    if not key:
        return None
    if len(key) > 255:
        raise ValidationError(f"{IDEMPOTENCY_HEADER} is too long", field=IDEMPOTENCY_HEADER)

    repo = IdempotencyRepository(db)
    path = request.url.path
    record = repo.find(acting_user, key)
    if record is None:
        repo.start(acting_user, key, request.method, path)
    elif record.request_path != path:
        raise ValidationError(
            f"{IDEMPOTENCY_HEADER} '{key}' was already used for {record.request_path}",
            field=IDEMPOTENCY_HEADER,
        )
    elif record.response_status is not None:
        response = JSONResponse(
            content=record.response_body, status_code=int(record.response_status)
        )
        response.headers[REPLAYED_HEADER] = "true"
        return response

    return IdempotencyResult(actor_id=acting_user, key=key)


def record_idempotency_response(
    db: Session,
    pending: IdempotencyResult,
    status: int,
    body: dict[str, Any],
) -> None:
    """Store the completed response so later retries replay it."""
    repo = IdempotencyRepository(db)
    record = repo.find(pending.actor_id, pending.key)
    if record is not None:
        repo.complete(record, status, body)
