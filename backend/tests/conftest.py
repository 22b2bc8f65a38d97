"""
Pytest configuration and fixtures for the test suite.
"""
import json
import os
import pytest
from typing import Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

# Set test environment before importing app
os.environ["ENV"] = "development"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-purposes-only-32chars"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["LLM_API_BASE"] = "http://llm.test/v1"
os.environ["LLM_API_KEY"] = "test-key"

from mindchat.main import app
from mindchat.db.base import Base
from mindchat import models  # noqa: F401
from mindchat.core.deps import get_db, get_session_factory
from mindchat.core.rate_limiter import ALL_LIMITERS
from mindchat.core.turn_lock import TurnLockRegistry, get_turn_locks
from mindchat.models.character import Character
from mindchat.models.chat_session import ChatSession
from mindchat.models.study import Study
from mindchat.models.user import User
from mindchat.services import session_store
from mindchat.services.auth import get_password_hash, create_user_token
from mindchat.services.character_seed import seed_characters
from mindchat.services.study_seed import seed_studies
from mindchat.services.llm_client import LLMClient, ModerationResult, get_llm_client


# Use SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    "sqlite:///./test.db"
)

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in SQLALCHEMY_TEST_DATABASE_URL else {},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeLLMClient(LLMClient):
    """
    LLM client that answers from a queue instead of calling the API.

    Queue dicts (serialized to JSON), raw strings, or exceptions to raise.
    Moderation answers ``self.moderation`` unless ``real_moderation`` is set,
    in which case the real (HTTP) moderation call runs.
    """

    def __init__(self):
        super().__init__(api_base="http://llm.test/v1", api_key="test-key", model="test-model")
        self.responses: List = []
        self.calls: List[Dict] = []
        self.moderated: List[str] = []
        self.moderation = ModerationResult()
        self.real_moderation = False

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def create_structured_response(self, messages, response_format, schema_name="structured_response", **kwargs):
        self.calls.append(
            {"messages": messages, "response_format": response_format, "schema_name": schema_name}
        )
        if not self.responses:
            raise AssertionError("No fake completion queued")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, str):
            return response
        return json.dumps(response, ensure_ascii=False)

    async def moderate(self, text: str) -> ModerationResult:
        self.moderated.append(text)
        if self.real_moderation:
            return await super().moderate(text)
        return self.moderation


class TrackingSessionFactory:
    """Session factory for work outside the request that remembers what it opened."""

    def __init__(self):
        self.opened: List[Session] = []

    def __call__(self) -> Session:
        session = TestingSessionLocal()
        self.opened.append(session)
        return session


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Every test starts with empty rate limit windows."""
    for limiter in ALL_LIMITERS:
        limiter.reset("testclient")
    yield


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def turn_locks() -> TurnLockRegistry:
    return TurnLockRegistry()


@pytest.fixture
def session_factory() -> TrackingSessionFactory:
    return TrackingSessionFactory()


@pytest.fixture(scope="function")
def client(
    db: Session,
    fake_llm: FakeLLMClient,
    turn_locks: TurnLockRegistry,
    session_factory: TrackingSessionFactory,
) -> Generator[TestClient, None, None]:
    """Create a test client with database, LLM client and turn lock overrides."""

    def override_get_db_with_session():
        """Return the test database session."""
        yield db

    app.dependency_overrides[get_db] = override_get_db_with_session
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    app.dependency_overrides[get_turn_locks] = lambda: turn_locks
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def test_user(db: Session) -> User:
    """Create a test user."""
    user = User(
        username="testuser",
        password_hash=get_password_hash("TestPassword123!"),
        display_name="Maria",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Create authentication headers for test user."""
    return {"Authorization": f"Bearer {create_user_token(test_user)}"}


@pytest.fixture
def authenticated_client(client: TestClient, auth_headers: dict) -> TestClient:
    """Create an authenticated test client."""
    client.headers.update(auth_headers)
    return client


@pytest.fixture
def other_user(db: Session) -> User:
    """Create another test user."""
    user = User(
        username="otheruser",
        password_hash=get_password_hash("OtherPassword123!"),
        display_name="Other User",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db: Session) -> User:
    """Create an admin user."""
    user = User(
        username="admin",
        password_hash=get_password_hash("AdminPassword123!"),
        display_name="Admin",
        role="admin",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return {"Authorization": f"Bearer {create_user_token(admin_user)}"}


@pytest.fixture
def characters(db: Session) -> Dict[str, Character]:
    """The default characters, by key."""
    seed_characters(db)
    return {c.key: c for c in db.query(Character).all()}


@pytest.fixture
def council_session(db: Session, test_user: User, characters) -> ChatSession:
    """Council session with Moisés and Rei Salomão."""
    return session_store.create_session(db, test_user.id, "COUNCIL", ["moises", "salomao"])


@pytest.fixture
def decision_session(db: Session, test_user: User, characters) -> ChatSession:
    """Decision session with José do Egito and Rei Salomão."""
    return session_store.create_session(db, test_user.id, "DECISION", ["jose-egito", "salomao"])


@pytest.fixture
def other_user_session(db: Session, other_user: User, characters) -> ChatSession:
    """Council session owned by another user."""
    return session_store.create_session(db, other_user.id, "COUNCIL", ["freud"])


@pytest.fixture
def studies(db: Session) -> List[Study]:
    """The default studies: faith (5 lessons), then wisdom (4 lessons)."""
    return seed_studies(db)
