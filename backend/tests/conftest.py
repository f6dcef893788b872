"""Shared pytest fixtures for test suite"""
import json
import os
import time
from typing import Generator
from unittest.mock import patch

import pytest

# Settings are read at import time; configure before importing the app
TEST_WEBHOOK_SECRET = "test-webhook-secret"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["WEBHOOK_SECRET"] = TEST_WEBHOOK_SECRET
os.environ.setdefault("ENVIRONMENT", "test")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from payment_webhooks.main import app
from payment_webhooks.db.session import get_db
from payment_webhooks.db.store import SqlAlchemyTransactionStore
from payment_webhooks.models import Base
from payment_webhooks.services.signature import sign_payload


# SQLite in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

# Create test engine with StaticPool for in-memory database
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session factory
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def make_payload(**overrides) -> dict:
    """A valid payment event; keyword overrides replace fields inside `data`"""
    payload = {
        "event_id": "evt_8f7d6e5c4b3a2",
        "event_type": "transaction.completed",
        "timestamp": "2025-10-28T14:30:00Z",
        "data": {
            "transaction_id": "txn_1a2b3c4d5e6f",
            "amount": 2500.75,
            "currency": "USD",
            "sender": {
                "id": "usr_sender_12345",
                "name": "Alice Johnson",
                "email": "alice.j@example.com",
                "country": "US",
            },
            "receiver": {
                "id": "usr_receiver_67890",
                "name": "Raj Patel",
                "email": "raj.p@example.in",
                "country": "IN",
            },
            "status": "completed",
            "payment_method": "bank_transfer",
            "metadata": {"reference": "INV-2025-001", "notes": "Q4 payment"},
        },
    }
    payload["data"].update(overrides)
    return payload


def encode(payload) -> bytes:
    return json.dumps(payload).encode("utf-8")


def signed_headers(body: bytes, secret: str = TEST_WEBHOOK_SECRET, timestamp=None, body_only=False) -> dict:
    """Headers a well-behaved producer would send for `body`"""
    if body_only:
        return {"Content-Type": "application/json", "X-Webhook-Signature": sign_payload(secret, body)}
    timestamp = str(int(time.time())) if timestamp is None else str(timestamp)
    return {
        "Content-Type": "application/json",
        "X-Webhook-Signature": sign_payload(secret, body, timestamp),
        "X-Webhook-Timestamp": timestamp,
    }


@pytest.fixture
def sample_payload() -> dict:
    return make_payload()


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh SQLite in-memory database session for each test"""
    # Create all tables
    Base.metadata.create_all(bind=test_engine)

    # Create session
    session = TestSessionLocal()

    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def store(db_session: Session) -> SqlAlchemyTransactionStore:
    return SqlAlchemyTransactionStore(db_session)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """FastAPI test client backed by the test database"""

    # Override get_db dependency to use test database
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close session here, handled by fixture

    app.dependency_overrides[get_db] = override_get_db

    try:
        # Disable OpenTelemetry and the startup schema creation in tests
        with patch('payment_webhooks.main.initialize_otel', return_value=False):
            with patch('payment_webhooks.main.setup_otel_logging', return_value=False):
                with patch('payment_webhooks.main.instrument_sqlalchemy'):
                    with patch('payment_webhooks.main.init_db'):
                        with TestClient(app) as test_client:
                            yield test_client
    finally:
        # Cleanup - always clear overrides
        app.dependency_overrides.clear()
