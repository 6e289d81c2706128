"""
Pytest configuration and fixtures
"""
import json
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Keep tests off real services
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FORMAT"] = "text"
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("ASSISTANT_RELAY_URL", None)

from focuslane.core.database import Base  # noqa: E402
from focuslane.core.identity_client import IdentityClient  # noqa: E402
from focuslane.services.assistant_gateway import (AssistantGateway,  # noqa: E402
                                                  AssistantUnavailableError)
from focuslane.services.auth_session import AuthSession  # noqa: E402
from focuslane.services.dashboard_controller import DashboardController  # noqa: E402
from focuslane.services.dashboard_sessions import DashboardSessionManager  # noqa: E402
from focuslane.services.entry_store import EntryStore  # noqa: E402

IDENTITY_URL = "http://identity.test"


class FakeIdentityProvider:
    """In-memory stand-in for the identity provider's REST endpoints"""

    def __init__(self):
        self.users: Dict[str, Dict[str, str]] = {}
        self.magic_links: List[str] = []
        self.revoked: List[str] = []
        self.fail_otp = False
        self.unavailable = False

    def add_user(self, token: str, user_id: str, email: str) -> None:
        self.users[token] = {"id": user_id, "email": email, "aud": "authenticated"}

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.unavailable:
            raise httpx.ConnectError("identity provider down", request=request)

        auth = request.headers.get("Authorization", "")
        token = auth[len("Bearer "):] if auth.startswith("Bearer ") else None

        if request.url.path == "/auth/v1/otp":
            if self.fail_otp:
                return httpx.Response(500, json={"msg": "smtp failure"})
            self.magic_links.append(json.loads(request.content)["email"])
            return httpx.Response(200, json={})

        if request.url.path == "/auth/v1/user":
            user = self.users.get(token) if token else None
            if user is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=user)

        if request.url.path == "/auth/v1/logout":
            if token in self.users:
                self.users.pop(token)
                self.revoked.append(token)
            return httpx.Response(204)

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakeAssistant(AssistantGateway):
    """Records prompts and answers with a fixed reply"""

    def __init__(self, reply: str = "Take one sip of water first."):
        self.reply = reply
        self.prompts: List[str] = []
        self.error: Optional[Exception] = None

    async def ask(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across connections"""
    import focuslane.models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def entry_store(session_factory) -> EntryStore:
    return EntryStore(session_factory=session_factory)


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    provider = FakeIdentityProvider()
    provider.add_user("token-a", "user-a", "a@b.com")
    provider.add_user("token-b", "user-b", "b@b.com")
    return provider


@pytest.fixture
def identity_client(identity_provider) -> IdentityClient:
    return IdentityClient(
        base_url=IDENTITY_URL,
        api_key="anon-key",
        transport=identity_provider.transport,
    )


@pytest.fixture
def fake_assistant() -> FakeAssistant:
    return FakeAssistant()


@pytest.fixture
def unreachable_assistant() -> FakeAssistant:
    assistant = FakeAssistant()
    assistant.error = AssistantUnavailableError("connection refused")
    return assistant


@pytest.fixture
def auth_session(identity_client) -> AuthSession:
    return AuthSession(identity=identity_client)


@pytest.fixture
def controller(auth_session, entry_store, fake_assistant) -> DashboardController:
    return DashboardController(auth=auth_session, store=entry_store, assistant=fake_assistant)


@pytest.fixture
def dashboard_manager(identity_client, entry_store, fake_assistant) -> DashboardSessionManager:
    return DashboardSessionManager(
        identity=identity_client,
        store=entry_store,
        assistant=fake_assistant,
    )


@pytest.fixture
def client(dashboard_manager):
    """TestClient wired to the in-memory store and fake identity provider"""
    from fastapi.testclient import TestClient

    from focuslane.main import app
    from focuslane.services.dashboard_sessions import get_dashboard_manager

    app.dependency_overrides[get_dashboard_manager] = lambda: dashboard_manager
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def completion_transport(status_code: int = 200, json_body=None, content: Optional[bytes] = None,
                         captured: Optional[List[httpx.Request]] = None) -> httpx.MockTransport:
    """Mock chat-completions endpoint answering with a fixed response"""

    def handler(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(request)
        if content is not None:
            return httpx.Response(status_code, content=content)
        return httpx.Response(status_code, json=json_body)

    return httpx.MockTransport(handler)


def completion_body(content: str) -> Dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
    }
