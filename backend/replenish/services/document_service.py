# Overview: Durable document numbering for requests, transfers and purchase orders.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import ValidationError
from ..extensions import db
from ..models import DocumentSequence
from ..time_utils import utcnow
from .concurrency import run_with_retry

DOCUMENT_TYPE_REQUEST = "ITEM_REQUEST"
DOCUMENT_TYPE_TRANSFER = "TRANSFER"
DOCUMENT_TYPE_PURCHASE_ORDER = "PURCHASE_ORDER"

DOCUMENT_PREFIXES = {
    DOCUMENT_TYPE_REQUEST: "REQ",
    DOCUMENT_TYPE_TRANSFER: "TRF",
    DOCUMENT_TYPE_PURCHASE_ORDER: "PO",
}


def _current_value(document_type: str, period: str) -> int:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type, period=period)
        .scalar()
    )


def next_document_number(
    *,
    document_type: str,
    period: str | None = None,
    pad: int = 4,
) -> str:
    """
    Atomically allocate the next document number for a type/period.

    Increments the (document_type, period) row in place, so two writers can
    never read the same value. Numbers look like TRF-2026-0001; the period
    defaults to the current UTC year.
    """
    def _op() -> str:
        if document_type not in DOCUMENT_PREFIXES:
            raise ValidationError(f"Unknown document type {document_type!r}")

        seq_period = period or str(utcnow().year)

        stmt = (
            update(DocumentSequence)
            .where(
                DocumentSequence.document_type == document_type,
                DocumentSequence.period == seq_period,
            )
            .values(next_number=DocumentSequence.next_number + 1)
        )

        result = db.session.execute(stmt)
        if result.rowcount:
            db.session.flush()
            next_num = _current_value(document_type, seq_period) - 1
        else:
            try:
                with db.session.begin_nested():
                    db.session.add(
                        DocumentSequence(document_type=document_type, period=seq_period, next_number=2)
                    )
                next_num = 1
            except IntegrityError:
                # Another writer created the row first; take the next slot from it.
                result = db.session.execute(stmt)
                if not result.rowcount:
                    raise
                db.session.flush()
                next_num = _current_value(document_type, seq_period) - 1

        prefix = DOCUMENT_PREFIXES[document_type]
        return f"{prefix}-{seq_period}-{next_num:0{pad}d}"

    return run_with_retry(_op)
