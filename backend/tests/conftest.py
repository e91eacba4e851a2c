"""
Pytest fixtures for backend tests.

Provides an in-memory database, a temporary blob directory and the test client.
"""

import pytest
from invdocs import create_app
from invdocs.extensions import db
from invdocs.models import InventoryItem
from invdocs.services import inventory_service


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    blob_dir = tmp_path_factory.mktemp("blobs")
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BLOB_STORAGE_DIR': str(blob_dir),
        'AUTO_BOOTSTRAP': False,
        'BCRYPT_ROUNDS': 4,
        'REGISTRATION_SECURITY_CODE': '1234',
        'REPORT_TIMEZONE': 'UTC',
        'REPORT_PDF_COMPRESSION': False,
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
def widget(db_session):
    """SKU-1 'Widget' with no stock, cost 4.00, price 7.00."""
    created = inventory_service.create_item(
        patch={
            "sku": "SKU-1",
            "name": "Widget",
            "category": "Parts",
            "unit_cost_cents": 400,
            "unit_price_cents": 700,
        },
        user="tester",
    )
    return db_session.get(InventoryItem, created["id"])


@pytest.fixture(scope='function')
def actor_headers():
    return {"X-Username": "alice"}
