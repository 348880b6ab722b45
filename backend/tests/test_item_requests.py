"""
Request store and document numbering tests.

Verifies:
- Requests are created pending with durable REQ-<year>-<seq> numbers
- Input validation rejects malformed lines before anything is written
- Listing filters by branch and status
- Priority is derived from line reasons
"""

import pytest

from replenish.errors import NotFoundError, ValidationError
from replenish.models import ItemRequest
from replenish.services import request_service
from replenish.services.document_service import (
    DOCUMENT_TYPE_PURCHASE_ORDER,
    DOCUMENT_TYPE_REQUEST,
    next_document_number,
)
from replenish.time_utils import utcnow


def _line(**overrides):
    line = {
        "item_id": "SH-001",
        "item_name": "Shampoo",
        "requested_quantity": 15,
        "unit_price_cents": 35000,
    }
    line.update(overrides)
    return line


# =============================================================================
# CREATE
# =============================================================================


class TestCreateRequest:

    def test_created_pending_with_totals(self, db_session, branches):
        item_request = request_service.create_request(
            branch="Downtown",
            lines=[_line(), _line(item_id="CD-002", item_name="Conditioner", requested_quantity=2, unit_price_cents=1250)],
            requested_by="staff-dt",
            notes="Weekend rush",
        )

        assert item_request.status == "pending"
        assert item_request.branch_id == branches["Downtown"].id
        assert item_request.total_amount_cents == 15 * 35000 + 2 * 1250
        assert item_request.request_number == f"REQ-{utcnow().year}-0001"
        assert item_request.fulfillment_status == "none"
        assert [line.total_price_cents for line in item_request.lines] == [525000, 2500]

    def test_branch_resolved_by_code_or_id(self, db_session, branches):
        by_code = request_service.create_request(branch="dt", lines=[_line()], requested_by="u")
        by_id = request_service.create_request(branch=branches["Downtown"].id, lines=[_line()], requested_by="u")

        assert by_code.branch_id == by_id.branch_id == branches["Downtown"].id

    def test_unknown_branch(self, db_session, branches):
        with pytest.raises(NotFoundError):
            request_service.create_request(branch="Nowhere", lines=[_line()], requested_by="u")

    @pytest.mark.parametrize(
        "lines",
        [
            [],
            None,
            [_line(requested_quantity=0)],
            [_line(requested_quantity=-1)],
            [_line(requested_quantity="3")],
            [_line(unit_price_cents=-5)],
            [_line(item_id="")],
            [_line(item_name="  ")],
            [_line(), _line()],
        ],
    )
    def test_invalid_lines_rejected(self, db_session, branches, lines):
        with pytest.raises(ValidationError):
            request_service.create_request(branch="Downtown", lines=lines, requested_by="u")
        db_session.rollback()

        assert db_session.query(ItemRequest).count() == 0

    def test_numbers_are_sequential(self, db_session, branches):
        first = request_service.create_request(branch="Downtown", lines=[_line()], requested_by="u")
        second = request_service.create_request(branch="Main", lines=[_line()], requested_by="u")

        assert first.request_number.endswith("-0001")
        assert second.request_number.endswith("-0002")


# =============================================================================
# LIST / GET / PRIORITY
# =============================================================================


class TestQueryRequests:

    def test_list_filters_by_branch_and_status(self, db_session, branches):
        request_service.create_request(branch="Downtown", lines=[_line()], requested_by="u")
        request_service.create_request(branch="Main", lines=[_line()], requested_by="u")

        downtown = request_service.list_requests(branch_id=branches["Downtown"].id)
        pending = request_service.list_requests(status="pending")

        assert len(downtown) == 1
        assert len(pending) == 2

    def test_list_rejects_unknown_status(self, db_session, branches):
        with pytest.raises(ValidationError):
            request_service.list_requests(status="shipped")

    def test_get_missing_request(self, db_session):
        with pytest.raises(NotFoundError):
            request_service.get_request(12345)

    @pytest.mark.parametrize(
        "reason,expected",
        [
            ("URGENT: wedding booking", "high"),
            ("Shelf is out of stock", "high"),
            ("Regular top-up", "normal"),
            (None, "normal"),
        ],
    )
    def test_priority_from_reason(self, db_session, branches, reason, expected):
        item_request = request_service.create_request(
            branch="Downtown", lines=[_line(reason=reason)], requested_by="u"
        )

        assert request_service.request_priority(item_request) == expected


# =============================================================================
# DOCUMENT NUMBERING
# =============================================================================


class TestDocumentNumbers:

    def test_sequences_independent_per_type(self, db_session):
        assert next_document_number(document_type=DOCUMENT_TYPE_REQUEST, period="2026") == "REQ-2026-0001"
        assert next_document_number(document_type=DOCUMENT_TYPE_PURCHASE_ORDER, period="2026") == "PO-2026-0001"
        assert next_document_number(document_type=DOCUMENT_TYPE_REQUEST, period="2026") == "REQ-2026-0002"

    def test_sequences_restart_per_period(self, db_session):
        next_document_number(document_type=DOCUMENT_TYPE_REQUEST, period="2025")

        assert next_document_number(document_type=DOCUMENT_TYPE_REQUEST, period="2026") == "REQ-2026-0001"

    def test_unknown_document_type(self, db_session):
        with pytest.raises(ValidationError):
            next_document_number(document_type="INVOICE")
