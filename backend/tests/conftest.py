"""
Pytest fixtures for replenishment backend tests.

Provides test database setup, branch directory, forwarded-identity helpers,
stock seeding, and test client.
"""

import pytest
from replenish import create_app
from replenish.extensions import db
from replenish.services import branch_service, inventory_service, request_service
from replenish.services.identity_service import Actor


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DB_RETRY_ATTEMPTS': 2,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def branches(db_session):
    """Main, Downtown and Uptown, keyed by name."""
    return {
        name: branch_service.create_branch(name, code)
        for name, code in (("Main", "MAIN"), ("Downtown", "DT"), ("Uptown", "UP"))
    }


@pytest.fixture(scope='function')
def admin():
    return Actor(id="admin-1", role="admin", display_name="Head Office")


@pytest.fixture(scope='function')
def downtown_manager(branches):
    return Actor(id="mgr-dt", role="branch_manager", branch="Downtown")


@pytest.fixture(scope='function')
def main_manager(branches):
    return Actor(id="mgr-main", role="branch_manager", branch="Main")


@pytest.fixture(scope='function')
def downtown_staff(branches):
    return Actor(id="staff-dt", role="staff", branch="Downtown")


@pytest.fixture(scope='function')
def stock(branches):
    """Seed stock through the ledger: stock("SH-001", "Main", 20, item_name="Shampoo")."""
    def _stock(item_id, branch_name, quantity, **attrs):
        attrs.setdefault("item_name", item_id)
        return inventory_service.record_stock_movement(
            item_id=item_id,
            branch_id=branches[branch_name].id,
            direction="in",
            quantity=quantity,
            actor_id="seed",
            reason="Initial Stock",
            **attrs,
        )
    return _stock


@pytest.fixture(scope='function')
def shampoo_request(branches):
    """Pending Downtown request for 15 Shampoo at 350.00."""
    def _create(quantity=15, reason="Running low"):
        return request_service.create_request(
            branch="Downtown",
            lines=[{
                "item_id": "SH-001",
                "item_name": "Shampoo",
                "requested_quantity": quantity,
                "unit_price_cents": 35000,
                "reason": reason,
            }],
            requested_by="staff-dt",
        )
    return _create


def actor_headers(actor: Actor) -> dict:
    """Helper to create forwarded-identity headers for an actor."""
    headers = {
        'X-Actor-Id': actor.id,
        'X-Actor-Role': actor.role,
    }
    if actor.branch:
        headers['X-Actor-Branch'] = actor.branch
    if actor.display_name:
        headers['X-Actor-Name'] = actor.display_name
    return headers


@pytest.fixture(scope='function')
def headers():
    """Forwarded-identity headers for an Actor: client.get(path, headers=headers(admin))."""
    return actor_headers
