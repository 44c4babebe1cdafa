from collections.abc import Callable
from pathlib import Path

import pytest

from src.adapters.clock import FixedClock
from src.adapters.dev_email import DevEmailAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.app_shell.context import ServiceContext
from src.domain.entities import User
from src.rules.loader import load_rules
from src.rules.models import Rules

PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def rules() -> Rules:
    # Real rules from the project root
    return load_rules(PROJECT_ROOT / "rules.yaml")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def email_sender(rules: Rules) -> DevEmailAdapter:
    return DevEmailAdapter(rules=rules.email)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    path = str(tmp_path / "hyn.db")
    SQLiteMigrator(path, str(PROJECT_ROOT / "migrations")).run_migrations()
    return path


@pytest.fixture
def sqlite_ctx(
    db_path: str, rules: Rules, clock: FixedClock, email_sender: DevEmailAdapter
) -> ServiceContext:
    """Full ServiceContext backed by a freshly migrated temporary SQLite DB."""
    return ServiceContext.create(db_path, rules, clock=clock, email_sender=email_sender)


@pytest.fixture
def memory_ctx(rules: Rules, clock: FixedClock, email_sender: DevEmailAdapter) -> ServiceContext:
    return ServiceContext.in_memory(rules, clock=clock, email_sender=email_sender)


@pytest.fixture(params=["memory", "sqlite"])
def ctx(request: pytest.FixtureRequest) -> ServiceContext:
    """Runs a test once per store adapter."""
    return request.getfixturevalue(f"{request.param}_ctx")


@pytest.fixture
def make_user(ctx: ServiceContext) -> Callable[..., User]:
    def _make(email: str, name: str = "") -> User:
        return ctx.store.save_user(User(email=email, name=name or email.split("@")[0].title()))

    return _make
