"""
CLI tests.

Verifies:
- system init seeds the default branches idempotently
- inventory verify-ledger reports disagreements with a non-zero exit
- perms list reflects role grants
"""

from replenish.models import Branch
from replenish.services import request_service
from replenish.services.ledger_service import get_record


class TestSystemCommands:

    def test_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init"])
        second = runner.invoke(args=["system", "init"])

        assert first.exit_code == 0, first.output
        assert second.exit_code == 0, second.output
        assert "Using existing branch: Main" in second.output
        assert sorted(b.name for b in db_session.query(Branch).all()) == ["Downtown", "Main", "Uptown"]


class TestInspectionCommands:

    def test_verify_ledger(self, app, db_session, branches, stock):
        runner = app.test_cli_runner()
        stock("SH-001", "Main", 4, item_name="Shampoo")

        ok = runner.invoke(args=["inventory", "verify-ledger"])
        assert ok.exit_code == 0
        assert "PASS" in ok.output

        record = get_record("SH-001", branches["Main"].id)
        record.quantity = 7
        db_session.commit()

        bad = runner.invoke(args=["inventory", "verify-ledger", "--branch", "Main"])
        assert bad.exit_code == 1
        assert "1 discrepancies" in bad.output

    def test_requests_show(self, app, db_session, shampoo_request):
        item_request = shampoo_request(reason="Urgent")
        runner = app.test_cli_runner()

        result = runner.invoke(args=["requests", "show", item_request.request_number])
        missing = runner.invoke(args=["requests", "show", "REQ-1999-0001"])

        assert result.exit_code == 0
        assert "Shampoo" in result.output
        assert missing.exit_code != 0
        assert request_service.get_request_by_number("REQ-1999-0001") is None

    def test_perms_list_for_staff(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["perms", "list", "--role", "staff"])

        assert result.exit_code == 0
        assert "CREATE_ITEM_REQUESTS" in result.output
        assert "REVIEW_ITEM_REQUESTS" not in result.output

    def test_perms_list_by_category(self, app, db_session):
        result = app.test_cli_runner().invoke(
            args=["perms", "list", "--role", "branch_manager", "--category", "REQUESTS"]
        )

        assert result.exit_code == 0, result.output
        assert "REVIEW_ITEM_REQUESTS" in result.output
        assert "MOVE_STOCK" not in result.output
