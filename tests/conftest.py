"""
Pytest configuration for storefront tests.

Every test gets a fresh in-memory SQLite database (StaticPool so the
TestClient's worker thread sees the same connection) seeded with a small
catalog, and the app's get_db dependency is pointed at it.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.config import StorefrontConfig, get_config, set_config
from storefront.database import Base, get_db
from storefront.main import app
from storefront.metrics import metrics_collector
from storefront.models import Category, Product


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function", autouse=True)
def setup_database():
    """Fresh schema + seed catalog per test."""
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    necklaces = Category(name="Necklaces", slug="necklaces", description="Crystal necklaces")
    rings = Category(name="Rings", slug="rings", description="Crystal rings")
    db.add_all([necklaces, rings])
    db.flush()

    db.add_all([
        # id 1
        Product(
            sku="TC-NECK-001",
            name="Amethyst Tranquility Necklace",
            description="A calming amethyst pendant on sterling silver chain.",
            category_id=necklaces.id,
            price_cents=9000,
            stock_quantity=15,
            materials=["Sterling Silver", "Amethyst"],
            gemstones=["Amethyst"],
            image_url="/images/products/amethyst-necklace-1.jpg",
            is_active=True,
            is_featured=True,
        ),
        # id 2
        Product(
            sku="TC-RING-001",
            name="Black Tourmaline Protection Ring",
            description="Grounding and protection against negative energy.",
            category_id=rings.id,
            price_cents=12500,
            stock_quantity=10,
            materials=["Sterling Silver", "Black Tourmaline"],
            gemstones=["Black Tourmaline"],
            image_url="/images/products/tourmaline-ring-1.jpg",
            is_active=True,
            is_featured=True,
        ),
        # id 3
        Product(
            sku="TC-NECK-002",
            name="Rose Quartz Heart Necklace",
            description="Gold vermeil chain with a rose quartz heart.",
            category_id=necklaces.id,
            price_cents=4550,
            stock_quantity=5,
            materials=["Gold Vermeil"],
            gemstones=["Rose Quartz"],
            image_url="/images/products/rose-quartz-necklace-1.jpg",
            is_active=True,
            is_featured=False,
        ),
        # id 4
        Product(
            sku="TC-RING-OLD",
            name="Retired Citrine Ring",
            description="No longer sold.",
            category_id=rings.id,
            price_cents=5500,
            stock_quantity=0,
            materials=["Gold Vermeil"],
            gemstones=["Citrine"],
            is_active=False,
            is_featured=True,
        ),
    ])
    db.commit()
    db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.pop(get_db, None)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def session_headers():
    return {"X-Session-ID": "session-test-a"}


@pytest.fixture
def config():
    """Swap in a test config and restore the original afterwards."""
    original = get_config()
    test_config = StorefrontConfig(
        stripe_secret_key="sk_test_123",
        stripe_publishable_key="pk_test_123",
        currency="CAD",
    )
    set_config(test_config)
    yield test_config
    set_config(original)


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics_collector.reset()
    yield
    metrics_collector.reset()


@pytest.fixture
def add_to_cart(client, session_headers):
    """POST /api/cart for the default test session and return the cart JSON."""
    def _add(product_id, quantity=1, headers=None):
        response = client.post(
            "/api/cart",
            json={"productId": product_id, "quantity": quantity},
            headers=headers or session_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _add
