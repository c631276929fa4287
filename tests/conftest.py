# tests/conftest.py
import hashlib
import hmac
import json
import os
import time

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import storefront.data.models  # noqa: F401
from storefront.api.deps import get_payment_provider, get_event_dedup
from storefront.data.database import Base, get_db
from storefront.data.models.product import ProductModel
from storefront.data.models.user import UserModel
from storefront.domain.order_status import PaymentOutcome
from storefront.domain.errors import PaymentProviderError
from storefront.main import create_app
from storefront.services.inventory_ledger import InventoryLedger
from storefront.services.payment_client import (
    CheckoutSession,
    PaymentProvider,
    StripeCheckoutClient,
)

WEBHOOK_SECRET = "whsec_test"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite needs these two for SAVEPOINT / begin_nested to work
@event.listens_for(engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class FakePaymentProvider(PaymentProvider):
    """Hosted checkout stand-in; webhook parsing goes through the real client code."""

    def __init__(self):
        self.sessions = {}
        self.status_calls = 0
        self.down = False
        self._stripe = StripeCheckoutClient(api_key="sk_test", webhook_secret=WEBHOOK_SECRET)

    def create_checkout_session(self, order):
        if self.down:
            raise PaymentProviderError("provider down")
        session_id = f"cs_test_{order.id}_{len(self.sessions) + 1}"
        self.sessions[session_id] = PaymentOutcome.PENDING
        return CheckoutSession(id=session_id, url=f"https://checkout.test/{session_id}")

    def get_session_status(self, session_id):
        self.status_calls += 1
        if self.down:
            raise PaymentProviderError("provider down")
        return self.sessions.get(session_id, PaymentOutcome.PENDING)

    def construct_event(self, payload, signature_header):
        return self._stripe.construct_event(payload, signature_header)


class FakeDedup:
    def __init__(self):
        self.claims = {}

    def claim(self, event_id, claimant):
        if event_id in self.claims:
            return False
        self.claims[event_id] = claimant
        return True

    def release(self, event_id, claimant):
        if self.claims.get(event_id) == claimant:
            del self.claims[event_id]
            return True
        return False


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Provider-side header: t=<ts>,v1=<hex hmac-sha256 of "<ts>.<payload>">"""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def make_event(event_type: str, order_id, event_id: str = "evt_1", **obj) -> bytes:
    data = {"id": "cs_test_1", "metadata": {"order_id": str(order_id)}}
    data.update(obj)
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": data}}).encode("utf-8")


BUYER = {"X-Actor-Id": "buyer-1"}
OTHER_BUYER = {"X-Actor-Id": "buyer-2"}
ADMIN = {"X-Actor-Id": "admin-1"}


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def provider():
    return FakePaymentProvider()


@pytest.fixture
def dedup():
    return FakeDedup()


@pytest.fixture
def client(provider, dedup):
    def _get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app = create_app(init_database=False)
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_payment_provider] = lambda: provider
    app.dependency_overrides[get_event_dedup] = lambda: dedup
    return TestClient(app)


@pytest.fixture
def add_product():
    """Creates a product with stock in its own committed session, returns its id."""

    def _add(price_cents: int, stock: int, name: str = "Widget", sku: str | None = None, low_threshold: int = 0):
        with TestingSessionLocal() as session:
            product = ProductModel(sku=sku, name=name, price_cents=price_cents, low_threshold=low_threshold)
            session.add(product)
            session.flush()
            InventoryLedger(session).set_quantity(product.id, stock)
            session.commit()
            return product.id

    return _add


@pytest.fixture
def admin():
    with TestingSessionLocal() as session:
        user = UserModel(external_id=ADMIN["X-Actor-Id"], role="ADMIN")
        session.add(user)
        session.commit()
    return ADMIN


def stock_of(product_id: int) -> int:
    with TestingSessionLocal() as session:
        return InventoryLedger(session).available(product_id)


def order_row(order_id: int):
    from storefront.data.models.order import OrderModel

    with TestingSessionLocal() as session:
        return session.get(OrderModel, order_id)
