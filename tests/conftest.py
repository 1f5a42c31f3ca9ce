"""
Test configuration: in-memory SQLite database, fake text-generation and
payment providers, and an authenticated HTTP client.
"""
import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("MODE", "dev")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio
from collections.abc import AsyncGenerator
from typing import Any, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.apis.deps import get_billing_provider, get_text_provider
from app.core.config import GenerationSettings
from app.core.db.base import Base, get_session
from app.core.db.schemas import Plan, User
from app.modules.auth import current_active_user
from app.modules.billing import BillingError, CheckoutReceipt
from main import app


test_engine = create_async_engine(
    "sqlite+aiosqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

test_session_maker = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


MITOCHONDRIA_NOTES = "Mitochondria are the powerhouse of the cell."

MITOCHONDRIA_REPLY = """{
  "flashcards": [
    {
      "question": "What are mitochondria often called?",
      "answer": "The powerhouse of the cell, because they produce energy.",
      "category": "biology"
    }
  ],
  "confidence": 0.92
}"""


class FakeProvider:
    """Stands in for the text-generation provider."""

    model_name = "fake-model"

    def __init__(
        self,
        reply: str = MITOCHONDRIA_REPLY,
        *,
        errors: Optional[list[Exception]] = None,
        delay: float = 0.0,
    ) -> None:
        self.reply = reply
        self.errors = list(errors or [])
        self.delay = delay
        self.prompts: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.errors:
            raise self.errors.pop(0)
        return self.reply


class FakePaymentProvider:
    def __init__(self) -> None:
        self.charges: list[tuple[int, Plan, Optional[str]]] = []
        self.event: dict[str, Any] = {}

    async def charge(
        self, user_id: int, plan: Plan, email: Optional[str] = None
    ) -> CheckoutReceipt:
        if plan is not Plan.PRO:
            raise BillingError(f"Plan {plan.value!r} cannot be purchased")
        self.charges.append((user_id, plan, email))
        return CheckoutReceipt(
            session_id="cs_test_123", url="https://checkout.test/cs_test_123", plan=plan
        )

    def parse_event(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]:
        if signature != "valid":
            raise BillingError("Invalid webhook signature")
        return self.event


@pytest.fixture
def generation_config() -> GenerationSettings:
    return GenerationSettings(
        GENERATION_MAX_NOTES_CHARS=2000,
        GENERATION_MAX_CARDS=20,
        GENERATION_TIMEOUT_SECONDS=0.2,
        GENERATION_RETRY_ATTEMPTS=3,
        GENERATION_RETRY_MAX_WAIT=0,
        GENERATION_DEFAULT_CONFIDENCE=0.5,
    )


@pytest.fixture
def no_model_credentials(monkeypatch) -> None:
    """Leave the default provider without any API key and a single attempt."""
    from app.core.config import settings

    for name in ("GOOGLE_API_KEY", "GEMINI_API_KEY", "GOOGLE_GENAI_USE_VERTEXAI"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(settings.generation, "gemini_api_key", None)
    monkeypatch.setattr(settings.generation, "openrouter_api_key", None)
    monkeypatch.setattr(settings.generation, "model_provider", "google")
    monkeypatch.setattr(settings.generation, "retry_attempts", 1)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def payment_provider() -> FakePaymentProvider:
    return FakePaymentProvider()


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_session_maker() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def create_user(session: AsyncSession, email: str) -> User:
    user = User(
        email=email,
        hashed_password="not-a-real-hash",
        is_active=True,
        is_superuser=False,
        is_verified=True,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "student@example.com")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "other@example.com")


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    test_user: User,
    fake_provider: FakeProvider,
    payment_provider: FakePaymentProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as ``test_user`` with fake providers."""

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[current_active_user] = lambda: test_user
    app.dependency_overrides[get_text_provider] = lambda: fake_provider
    app.dependency_overrides[get_billing_provider] = lambda: payment_provider

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
