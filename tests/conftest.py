"""
Shared fixtures for Offer Studio backend tests.

Uses a throwaway SQLite database (aiosqlite) unless TEST_DATABASE_URL points
somewhere else.  Each test function gets its own session; tables are
created before and dropped after every test so each starts with a clean
slate.

The generation backend is never called: tests inject a ``FakeGenerationClient``
with scripted answers through ``app.dependency_overrides``.
"""
from __future__ import annotations

import json
import os
from typing import Any, AsyncGenerator, Dict, Generator, List, Optional, Union

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Override DATABASE_URL *before* any app module is imported, so that
# settings.DATABASE_URL and the global engine point at the test DB.
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///./.pytest_offer_studio.db",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["ANTHROPIC_API_KEY"] = "test-key"
os.environ["OFFER_WEBHOOK_URL"] = "http://hooks.test/offers"

from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import database_models  # noqa: E402,F401
from app.models.schemas import Branding, KnowledgeProfile, ToneOfVoice  # noqa: E402
from app.services.debounce import AuditRegistry, get_audit_registry  # noqa: E402
from app.services.llm_client import get_generation_client  # noqa: E402


# ---------------------------------------------------------------------------
# Fake generation backend
# ---------------------------------------------------------------------------

class FakeGenerationClient:
    """
    Scripted stand-in for the generation backend.

    Each ``generate`` call pops the next queued answer.  An exception instance
    in the queue is raised instead of returned.  Every call is recorded.
    """

    is_configured = True

    def __init__(self, *responses: Union[str, Exception]) -> None:
        self.responses: List[Union[str, Exception]] = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *responses: Union[str, Exception]) -> "FakeGenerationClient":
        self.responses.extend(responses)
        return self

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def generate(
        self,
        system_instructions: str,
        user_content: str,
        expect_structured: bool = False,
    ) -> str:
        self.calls.append(
            {
                "system": system_instructions,
                "user": user_content,
                "structured": expect_structured,
            }
        )
        if not self.responses:
            raise AssertionError("FakeGenerationClient: unexpected generate() call")
        answer = self.responses.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


def offer_json(
    status: str = "ready",
    subject: str = "Your UGC ad package",
    body: str = "<p>Hi Sam,</p><p>We will deliver three UGC ads for TikTok.</p>",
    questions: Optional[List[str]] = None,
    rationale: str = "Scope and pricing are covered by the business context.",
    **extra: Any,
) -> str:
    """Serialised offer record as the generator would return it."""
    record = {
        "status": status,
        "emailSubject": subject,
        "emailBody": body,
        "missingClientInfo": questions or [],
        "rationale": rationale,
    }
    record.update(extra)
    return json.dumps(record)


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test. After the test, all tables are dropped
    so each test starts with a clean slate.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def fake_llm() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def audits() -> Generator[AuditRegistry, None, None]:
    """
    Per-test audit registry.  The idle window is long enough that profile
    edits never reach the backend unless a test shortens ``delay`` first.
    """
    registry = AuditRegistry(delay=60.0)
    yield registry
    registry.close()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    fake_llm: FakeGenerationClient,
    audits: AuditRegistry,
) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB, generation and
    audit dependencies overridden to use the per-test session, fake backend
    and registry.
    """

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_generation_client] = lambda: fake_llm
    app.dependency_overrides[get_audit_registry] = lambda: audits

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

VIDEO_FACTS = [
    "Service: UGC ads for TikTok and Instagram Reels",
    "Pricing: UGC ad starts at $500 per video",
    "Pricing: Rush fee is +30%",
    "Process: 50% deposit required",
]

VIDEO_PROOF_POINTS = [
    "Glow Skincare: 12 UGC ads - 3.1x ROAS (https://example.com/glow)",
]


@pytest.fixture
def video_profile() -> KnowledgeProfile:
    return KnowledgeProfile(
        company_name="Northframe Studio",
        industry="Video services",
        facts=list(VIDEO_FACTS),
        proof_points=list(VIDEO_PROOF_POINTS),
        style_examples=["Hey Sam, quick one: we can start Monday. Cheers, Ana"],
        brand=Branding(primary_color="#111827", font_name="Poppins", tone=ToneOfVoice.CASUAL),
    )


def profile_payload(**overrides: Any) -> Dict[str, Any]:
    """JSON body for POST/PUT /api/profiles."""
    body: Dict[str, Any] = {
        "company_name": "Northframe Studio",
        "industry": "Video services",
        "facts": list(VIDEO_FACTS),
        "proof_points": list(VIDEO_PROOF_POINTS),
        "style_examples": [],
        "branding": {"primary_color": "#111827", "font_name": "Poppins", "tone": "casual"},
    }
    body.update(overrides)
    return body
