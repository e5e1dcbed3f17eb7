"""
Pytest configuration and fixtures
"""

import os
import time
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

# Set test environment variables before importing app modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("DATABASE_TYPE", "sqlite")
os.environ.setdefault("SQLITE_PATH", ":memory:")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length-for-hs256")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("SIKKA_APP_ID", "test-app-id")
os.environ.setdefault("SIKKA_APP_KEY", "test-app-key")
os.environ.setdefault("SIKKA_PRACTICE_ID", "sikka-practice-1")
os.environ.setdefault("SIKKA_WEBHOOK_SECRET", "test-sikka-secret")
os.environ.setdefault("RETELL_API_KEY", "test-retell-key")
os.environ.setdefault("RETELL_WEBHOOK_SECRET", "test-retell-secret")
os.environ.setdefault("RETELL_RETRY_DELAYS", "0,0,0")
os.environ.setdefault("OPENAI_WEBHOOK_SECRET", "test-openai-secret")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "test-account-sid")
os.environ.setdefault("TWILIO_AUTH_TOKEN", "test-auth-token")
os.environ.setdefault("TWILIO_PHONE_NUMBER", "+15551234567")

import jwt
from fastapi.testclient import TestClient

from dentalhub.core.config import settings
from dentalhub.db import set_database
from dentalhub.db.adapters.sqlite import SQLiteAdapter
from dentalhub.services.rate_limiter import get_rate_limiter
from dentalhub.models.patient import Patient
from dentalhub.models.practice import Practice, PracticeCreate
from dentalhub.db.repositories import PatientRepository
from dentalhub.services.practice_service import PracticeService


def make_access_token(
    user_id: str = "user-1",
    practice_id: str = None,
    role: str = "admin",
    email: str = "owner@smiles.example",
    expires_in: int = 3600,
) -> str:
    """Sign an access token the way Supabase Auth does"""
    now = int(time.time())
    claims = {
        "sub": user_id,
        "email": email,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + expires_in,
        "user_metadata": {"role": role, "practice_id": practice_id},
    }
    return jwt.encode(claims, settings.supabase_jwt_secret, algorithm=settings.jwt_algorithm)


def auth_headers(practice_id: str, role: str = "admin") -> dict:
    return {"Authorization": f"Bearer {make_access_token(practice_id=practice_id, role=role)}"}


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Buckets are process-wide; start every test with full ones"""
    limiter = get_rate_limiter()
    limiter.reset()
    limiter.practice_configs.clear()
    yield


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database installed as the process adapter"""
    adapter = SQLiteAdapter(":memory:")
    await adapter.connect()
    await adapter.initialize_schema()
    set_database(adapter)
    yield adapter
    await adapter.disconnect()
    set_database(None)


@pytest_asyncio.fixture
async def practice(db) -> Practice:
    return await PracticeService(db).create_practice(PracticeCreate(
        name="Bright Smiles Dental",
        sikka_practice_id="sikka-practice-1",
    ))


@pytest_asyncio.fixture
async def patients(db, practice):
    """Three patients: two active with phones, one inactive without contact details"""
    repo = PatientRepository(db)
    created = []
    for first, last, phone, email, status in (
        ("Ada", "Lovelace", "+14155550101", "ada@example.com", "active"),
        ("Grace", "Hopper", "+14155550102", "grace@example.com", "active"),
        ("Alan", "Turing", None, None, "inactive"),
    ):
        created.append(await repo.create(Patient(
            practice_id=practice.id,
            first_name=first,
            last_name=last,
            phone=phone,
            email=email,
            status=status,
        )))
    return created


@pytest.fixture
def test_client():
    """Test client; the app lifespan opens a fresh in-memory database"""
    from dentalhub.main import app
    with TestClient(app) as client:
        yield client


@pytest.fixture
def api_practice(test_client) -> Practice:
    """A practice created inside the test client's event loop"""
    return test_client.portal.call(
        PracticeService().create_practice,
        PracticeCreate(name="Bright Smiles Dental", sikka_practice_id="sikka-practice-1"),
    )


@pytest.fixture
def mock_retell_client():
    """Fixture for a mocked Retell client"""
    client = MagicMock()
    client.initiate_call = AsyncMock(return_value={"call_id": "retell-call-1", "status": "initiated"})
    client.cancel_call = AsyncMock(return_value=None)
    client.update_call_priority = AsyncMock(return_value={})
    client.get_recording_url = AsyncMock(return_value="https://recordings.example/retell-call-1.mp3")
    client.get_transcription = AsyncMock(return_value={"segments": []})
    client.get_analysis = AsyncMock(return_value={"sentiment": "positive"})
    return client


@pytest.fixture
def mock_openai_service():
    """Fixture for a mocked OpenAI service"""
    service = MagicMock()
    service.chat_completion = AsyncMock(return_value={
        "success": True,
        "content": "Test response",
        "usage": {"total_tokens": 42},
        "finish_reason": "stop",
    })
    service.run_assistant = AsyncMock(return_value={
        "success": True,
        "content": "Assistant response",
        "thread_id": "thread-1",
        "run_id": "run-1",
    })
    return service
