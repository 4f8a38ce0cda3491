from datetime import date

import pytest
from fastapi.testclient import TestClient

from finance_tracker.config import Settings
from finance_tracker.database import create_engine, create_sessionmaker, init_models
from finance_tracker.main import create_app
from finance_tracker.security import PasswordHasher

TODAY = date(2024, 3, 31)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'finance.db'}",
        session_secret="test-secret",
        bcrypt_rounds=4,
    )


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def app(settings):
    return create_app(settings, today=lambda: TODAY)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
async def db(settings):
    engine = create_engine(settings)
    await init_models(engine)
    sessionmaker = create_sessionmaker(engine)
    async with sessionmaker() as session:
        yield session
    await engine.dispose()


def register(client, name="Maria Souza", email="maria@exemplo.com.br", password="segredo123"):
    return client.post("/api/cadastrar", json={"name": name, "email": email, "password": password})


def login(client, email="maria@exemplo.com.br", password="segredo123"):
    return client.post("/api/login", json={"email": email, "password": password})


@pytest.fixture
def logged_in(client):
    assert register(client).status_code == 200
    assert login(client).status_code == 200
    return client
