"""
Pytest fixtures for StockFlow backend tests.

Provides test database setup, catalog fixtures, caller identity and test client.
"""

import pytest
from stockflow import create_app
from stockflow.config import TestConfig
from stockflow.extensions import db
from stockflow.identity import Identity
from stockflow.models import Organization, User, Supplier, Customer, Product, Warehouse, Category


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
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
def org(db_session):
    org = Organization(name="Acme Corp", slug="acme", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def user(db_session, org):
    """User row matching the `identity` fixture, so its writes are audited."""
    user = User(
        cognito_sub="sub-alice",
        email="alice@acme.test",
        first_name="Alice",
        organization_id=org.id,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def identity(user):
    return Identity(user_id=user.cognito_sub, email=user.email)


@pytest.fixture(scope='function')
def anonymous_identity():
    """Authenticated caller without a User row (not audited)."""
    return Identity(user_id="sub-nobody", email="nobody@acme.test")


@pytest.fixture(scope='function')
def auth_headers(user):
    return {"X-User-Id": user.cognito_sub, "X-User-Email": user.email}


@pytest.fixture(scope='function')
def supplier(db_session):
    supplier = Supplier(code="SUP1", name="Widget Supply Co")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def customer(db_session, org):
    customer = Customer(organization_id=org.id, code="CUST1", name="Buyer Inc", tax_exempt=False)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Hardware", slug="hardware", sort_order=1)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def product(db_session, org):
    """Taxable product priced at $5.00."""
    product = Product(
        organization_id=org.id,
        sku="WID-001",
        name="Widget",
        unit_price_cents=500,
        min_stock_level=5,
        is_taxable=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def priced_product(db_session, org):
    """Taxable product priced at $100.00."""
    product = Product(
        organization_id=org.id,
        sku="GAD-100",
        name="Gadget",
        unit_price_cents=10000,
        is_taxable=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def warehouse(db_session, org):
    warehouse = Warehouse(organization_id=org.id, code="MAIN", name="Main Warehouse", is_default=True)
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def second_warehouse(db_session, org):
    warehouse = Warehouse(organization_id=org.id, code="OVERFLOW", name="Overflow", is_default=False)
    db_session.add(warehouse)
    db_session.commit()
    return warehouse
