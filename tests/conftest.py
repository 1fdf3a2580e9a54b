import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional
from uuid import uuid4

# Bind the engine to a throwaway file and keep cookies non-secure before the app is imported.
os.environ.setdefault("DB_PATH", str(Path(tempfile.gettempdir()) / f"sweatfix_import_{uuid4().hex[:8]}.db"))
os.environ["APP_ENV"] = "test"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from sweatfix.core.security import SESSION_COOKIE_NAME, create_session_token  # noqa: E402
from sweatfix.db.models import User  # noqa: E402
from sweatfix.db.session import SessionLocal, configure_database, create_tables  # noqa: E402
from sweatfix.services.llm import get_coach_gateway  # noqa: E402

PLAN_REPLY = (
    "Here's your plan.\n"
    "```json\n"
    '{"workout_plan": "Pushups", "diet_plan": "Chicken"}\n'
    "```"
)


class FakeScenario(str, Enum):
    PLAN_REPLY = "PLAN_REPLY"
    WORKOUT_ONLY = "WORKOUT_ONLY"
    PLAIN_REPLY = "PLAIN_REPLY"
    MALFORMED_BLOCK = "MALFORMED_BLOCK"
    CRASH = "CRASH"


class FakeCoachGateway:
    def __init__(self, scenario: FakeScenario) -> None:
        self.scenario = scenario
        self.calls: list[tuple[str, list[dict[str, Any]]]] = []

    def get_reply(self, message: str, history: list[dict[str, Any]]) -> str:
        self.calls.append((message, history))
        if self.scenario == FakeScenario.PLAN_REPLY:
            return PLAN_REPLY
        if self.scenario == FakeScenario.WORKOUT_ONLY:
            return 'Updated workout:\n```json\n{"workout_plan": "Deadlifts 5x5", "diet_plan": ""}\n```'
        if self.scenario == FakeScenario.PLAIN_REPLY:
            return "- What is your current weight and height?\n- What is your goal?"
        if self.scenario == FakeScenario.MALFORMED_BLOCK:
            return "Plan below.\n```json\n{workout_plan: Pushups,}\n```"
        if self.scenario == FakeScenario.CRASH:
            raise RuntimeError("simulated local failure")
        raise ValueError("Unknown fake scenario")


class RecordingPlanStore:
    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []

    def upsert_plan(self, user_id: int, day, workout_plan: Optional[str], diet_plan: Optional[str]) -> None:
        self.calls.append((user_id, day, workout_plan, diet_plan))


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    db_path = tmp_path_factory.mktemp("db") / "sweatfix_test.db"
    configure_database(str(db_path))
    create_tables()
    return db_path


@pytest.fixture(scope="session")
def app(test_db_path: Path):
    from sweatfix.main import app as fastapi_app

    return fastapi_app


@pytest.fixture
def client(app):
    app.dependency_overrides = {}
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides = {}


@pytest.fixture
def db_session(test_db_path: Path):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def create_user(db_session: Session) -> Callable[..., User]:
    def _create_user(name: str = "Test Member") -> User:
        user = User(
            google_id=f"google_{uuid4().hex[:12]}",
            name=name,
            email=f"user_{uuid4().hex[:10]}@test.com",
            avatar=None,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture
def login_as(client: TestClient) -> Callable[[User], None]:
    def _login(user: User) -> None:
        client.cookies.set(SESSION_COOKIE_NAME, create_session_token(str(user.id)))

    return _login


@pytest.fixture
def auth_user(create_user, login_as) -> User:
    user = create_user()
    login_as(user)
    return user


@pytest.fixture
def override_gateway(app) -> Callable[[FakeScenario], FakeCoachGateway]:
    def _override(scenario: FakeScenario) -> FakeCoachGateway:
        fake = FakeCoachGateway(scenario)
        app.dependency_overrides[get_coach_gateway] = lambda: fake
        return fake

    return _override


@pytest.fixture
def recording_plan_store() -> RecordingPlanStore:
    return RecordingPlanStore()
