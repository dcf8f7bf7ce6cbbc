"""Shared fixtures for backend tests."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from promaallem.config import Settings
from promaallem.infrastructure.store import SQLiteMarketplaceStore
from promaallem.main import create_app

SAMPLE_ANALYSIS = {
    "category": "Plomberie",
    "confidence_score": 92,
    "problem_type": "Fuite robinet",
    "urgency_level": 3,
    "estimated_duration": "1-2 heures",
    "estimated_price_range": "150-300 DH",
    "suggested_package": "Intervention plomberie standard",
    "possible_complications": ["Joint usé", "Robinet à remplacer"],
    "safety_instructions": None,
    "required_tools": ["Clé à molette", "Joints"],
}


def make_settings(tmp_path: Path, **overrides) -> Settings:
    """Create a Settings instance suitable for tests.

    Uses ``_env_file=None`` so a local .env is never loaded.
    """
    values = {
        "deepseek_api_key": "sk-test",
        "database_path": tmp_path / "promaallem.sqlite",
        "jwt_secret": "test-secret-that-is-long-enough-for-hs256",
        "llm_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def fake_llm() -> AsyncMock:
    """A mock language model whose completion is a well-formed analysis."""
    llm = AsyncMock()
    llm.model_name = "fake-model"
    llm.complete.return_value = json.dumps(SAMPLE_ANALYSIS)
    return llm


@pytest.fixture()
async def store(tmp_path: Path) -> SQLiteMarketplaceStore:
    """A SQLite store on a temp file, with the default catalog seeded."""
    svc = SQLiteMarketplaceStore(db_path=tmp_path / "store.sqlite")
    await svc.connect()
    await svc.seed_services()
    yield svc
    await svc.close()


@pytest.fixture()
def client(tmp_path: Path, fake_llm: AsyncMock) -> TestClient:
    """A TestClient over a fresh app: real SQLite store, mocked model."""
    app = create_app(make_settings(tmp_path), llm=fake_llm)
    with TestClient(app) as c:
        yield c


def register(client: TestClient, email: str, role: str = "client", **extra) -> dict:
    """Register an account through the API and return the response body."""
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": "s3cret-pass", "role": role, **extra},
    )
    assert response.status_code == 201, response.text
    return response.json()
