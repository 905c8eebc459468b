"""
Shared fixtures: an in-memory SQLite session per test and fakes for the
product catalog and the e-mail provider.
"""
import os

# Must be set before app.config is first imported
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENABLE_SCHEDULER", "false")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("RESEND_API_KEY", "")

from datetime import timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from app.models.base import create_db_engine, init_db
from app.services.abandoned_cart_store import AbandonedCartStore
from app.utils.helpers import utcnow
from tests.fakes import FakeEmailSender, FakeProductLookup, product


@pytest.fixture
def db():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def store(db):
    return AbandonedCartStore(db)


@pytest.fixture
def products():
    return FakeProductLookup({
        "p-lavender": product("Lavender Oil", 0.5),
        "p-diffuser": product("Diffuser", 1.0),
        "p-1kg": product("Eucalyptus Refill Pack", 1.0),
        "p-heavy": product("Carrier Oil Canister", 12.0),
        "p-huge": product("Bulk Oil Drum", 40.0),
    })


@pytest.fixture
def email_sender():
    return FakeEmailSender()


@pytest.fixture
def make_cart(store):
    """Create an abandoned cart; defaults to idle for two hours."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        data = {
            "cart_id": f"cart-{n}",
            "email": f"customer{n}@example.com",
            "items": [
                {"product_id": "p-lavender", "quantity": 2, "price": 299.99},
                {"product_id": "p-diffuser", "quantity": 1, "price": 449.50},
            ],
            "subtotal": 1049.48,
            "total": 1049.48,
            "abandoned_at": utcnow() - timedelta(hours=2),
        }
        data.update(overrides)
        result = store.create(data)
        assert result.success, result.error
        return result.data

    return _make
