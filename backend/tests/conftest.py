import os
from pathlib import Path

from dotenv import load_dotenv

# Settings are read at import time, so the environment must be in place first.
os.environ["PYTEST_RUN"] = "1"
os.environ["REDIS_URL"] = "disabled"
os.environ["STRIPE_WEBHOOK_SECRET"] = ""
os.environ["REQUIRE_BOOKING_PERMISSION"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")
load_dotenv(Path(__file__).resolve().parents[1] / ".env.test")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.services import payment_gateway  # noqa: E402
from app.utils import redis_cache  # noqa: E402


@pytest.fixture(autouse=True)
def reset_redis_client():
    """Each test starts with the disabled (no-op) cache client."""
    redis_cache._redis_client = None
    yield
    redis_cache._redis_client = None


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture
def file_session_factory(tmp_path):
    """File-backed database shared by several threads, each with its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'scheduling.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    from app.main import app

    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def fake_gateway(monkeypatch):
    """Replace Stripe intent creation; returns the list of recorded calls."""
    calls = []
    intents = {}

    def create_payment_intent(*, amount_cents, currency, metadata, idempotency_key):
        calls.append(
            {
                "amount_cents": amount_cents,
                "currency": currency,
                "metadata": dict(metadata),
                "idempotency_key": idempotency_key,
            }
        )
        n = len(calls)
        handle = payment_gateway.PaymentIntentHandle(
            id=f"pi_test_{n}",
            client_secret=f"pi_test_{n}_secret",
            amount_cents=amount_cents,
            currency=currency,
        )
        intents[handle.id] = handle
        return handle

    def retrieve_payment_intent(intent_id, *, amount_cents, currency):
        return intents[intent_id]

    monkeypatch.setattr(payment_gateway, "create_payment_intent", create_payment_intent)
    monkeypatch.setattr(payment_gateway, "retrieve_payment_intent", retrieve_payment_intent)
    return calls
