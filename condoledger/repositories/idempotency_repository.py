from typing import Any

from sqlalchemy.orm import Session

from condoledger.models.idempotency_record import IdempotencyRecord


class IdempotencyRepository:
    """Review replay records. Writes commit immediately, outside the review transaction."""

    def __init__(self, db: Session):
        self.db = db

    def find(self, actor_id: str, idempotency_key: str) -> IdempotencyRecord | None:
        return (
            self.db.query(IdempotencyRecord)
            .filter(
                IdempotencyRecord.actor_id == actor_id,
                IdempotencyRecord.idempotency_key == idempotency_key,
            )
            .first()
        )

    def start(
        self, actor_id: str, idempotency_key: str, method: str, path: str
    ) -> IdempotencyRecord:
        record = IdempotencyRecord(
            actor_id=actor_id,
            idempotency_key=idempotency_key,
            request_method=method,
            request_path=path,
        )
        self.db.add(record)
        self.db.commit()
        return record

    def complete(self, record: IdempotencyRecord, status: int, body: dict[str, Any]) -> None:
        record.response_status = status  # type: ignore[assignment]
        record.response_body = body  # type: ignore[assignment]
        self.db.commit()
