"""
Groups component unit tests.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from src.adapters.memory_store import InMemoryEntityStore
from src.components.groups import (
    CreateGroupInput,
    LeaveGroupInput,
    RemoveMemberInput,
    list_members,
    list_user_groups,
    run,
    run_create_group,
    run_leave,
    run_remove_member,
)
from src.domain.entities import Group, Invite, Membership, User
from src.domain.errors import ErrorKind
from src.rules.models import Rules

# --- Mock Implementations ---


class MockTimePort:
    """Mock time port for deterministic testing."""

    def __init__(self, fixed_time: datetime | None = None) -> None:
        self._time = fixed_time or datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self._time

    def advance(self, delta: timedelta) -> None:
        self._time = self._time + delta


# --- Fixtures ---


@pytest.fixture
def store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def time_port() -> MockTimePort:
    return MockTimePort()


@pytest.fixture
def rules() -> Rules:
    return Rules()


@pytest.fixture
def alice(store: InMemoryEntityStore) -> User:
    return store.save_user(User(email="alice@example.com", name="Alice"))


@pytest.fixture
def bob(store: InMemoryEntityStore) -> User:
    return store.save_user(User(email="bob@example.com", name="Bob"))


def _join(store: InMemoryEntityStore, group: Group, user: User, when: datetime) -> None:
    invite = Invite(
        group_id=group.id,
        email=user.email,
        token=f"tok-{user.id}",
        invited_by=group.created_by,
        expires_at=when + timedelta(days=7),
        created_at=when,
    )
    store.add_invite(invite)
    membership = Membership(group_id=group.id, user_id=user.id, joined_at=when)
    store.consume_invite(invite.id, when, membership)


@pytest.fixture
def group(
    store: InMemoryEntityStore, time_port: MockTimePort, rules: Rules, alice: User, bob: User
) -> Group:
    output = run_create_group(CreateGroupInput("Maple Street", alice.id), store, time_port, rules)
    assert output.group is not None
    time_port.advance(timedelta(minutes=1))
    _join(store, output.group, bob, time_port.now_utc())
    return output.group


# --- Create ---


class TestCreateGroup:
    def test_owner_is_enrolled(
        self, store: InMemoryEntityStore, time_port: MockTimePort, rules: Rules, alice: User
    ) -> None:
        output = run_create_group(
            CreateGroupInput("  <em>Oak</em> Avenue ", alice.id), store, time_port, rules
        )

        assert output.success
        assert output.group is not None
        assert output.group.name == "Oak Avenue"
        assert output.group.created_by == alice.id
        assert store.get_membership(output.group.id, alice.id) is not None

    def test_blank_name_rejected(
        self, store: InMemoryEntityStore, time_port: MockTimePort, rules: Rules, alice: User
    ) -> None:
        output = run_create_group(CreateGroupInput("   ", alice.id), store, time_port, rules)

        assert output.error is not None
        assert output.error.kind == ErrorKind.VALIDATION_ERROR
        assert output.error.field == "name"

    def test_created_group_ceiling(
        self, store: InMemoryEntityStore, time_port: MockTimePort, rules: Rules, alice: User
    ) -> None:
        for n in range(3):
            output = run_create_group(CreateGroupInput(f"G{n}", alice.id), store, time_port, rules)
            assert output.success

        output = run_create_group(CreateGroupInput("G4", alice.id), store, time_port, rules)

        assert output.error is not None
        assert output.error.kind == ErrorKind.LIMIT_EXCEEDED


# --- Leave / remove ---


class TestLeave:
    def test_member_leaves(self, store: InMemoryEntityStore, bob: User, group: Group) -> None:
        output = run_leave(LeaveGroupInput(group.id, bob.id), store)

        assert output.success
        assert store.get_membership(group.id, bob.id) is None

    def test_owner_cannot_leave(self, store: InMemoryEntityStore, alice: User, group: Group) -> None:
        output = run_leave(LeaveGroupInput(group.id, alice.id), store)

        assert output.error is not None
        assert output.error.kind == ErrorKind.FORBIDDEN
        assert store.get_membership(group.id, alice.id) is not None

    def test_non_member_forbidden(self, store: InMemoryEntityStore, group: Group) -> None:
        carol = store.save_user(User(email="carol@example.com"))

        output = run_leave(LeaveGroupInput(group.id, carol.id), store)

        assert output.error is not None
        assert output.error.kind == ErrorKind.FORBIDDEN


class TestRemoveMember:
    def test_owner_removes_member(
        self, store: InMemoryEntityStore, alice: User, bob: User, group: Group
    ) -> None:
        output = run_remove_member(RemoveMemberInput(group.id, bob.id, alice.id), store)

        assert output.success
        assert store.get_membership(group.id, bob.id) is None

    def test_only_owner_removes(
        self, store: InMemoryEntityStore, alice: User, bob: User, group: Group
    ) -> None:
        output = run_remove_member(RemoveMemberInput(group.id, alice.id, bob.id), store)

        assert output.error is not None
        assert output.error.kind == ErrorKind.FORBIDDEN

    def test_owner_cannot_remove_self(
        self, store: InMemoryEntityStore, alice: User, group: Group
    ) -> None:
        output = run_remove_member(RemoveMemberInput(group.id, alice.id, alice.id), store)

        assert output.error is not None
        assert output.error.kind == ErrorKind.VALIDATION_ERROR

    def test_target_must_be_member(
        self, store: InMemoryEntityStore, alice: User, group: Group
    ) -> None:
        carol = store.save_user(User(email="carol@example.com"))

        output = run(RemoveMemberInput(group.id, carol.id, alice.id), store=store)

        assert output.error is not None
        assert output.error.kind == ErrorKind.NOT_FOUND


# --- Reads ---


class TestReads:
    def test_list_members_owner_first(
        self, store: InMemoryEntityStore, alice: User, bob: User, group: Group
    ) -> None:
        output = list_members(group.id, bob.id, store)

        assert output.success
        assert [m.user.id for m in output.members] == [alice.id, bob.id]
        assert output.members[0].is_owner
        assert not output.members[1].is_owner

    def test_list_members_requires_membership(
        self, store: InMemoryEntityStore, group: Group
    ) -> None:
        carol = store.save_user(User(email="carol@example.com"))

        output = list_members(group.id, carol.id, store)

        assert output.error is not None
        assert output.error.kind == ErrorKind.FORBIDDEN

    def test_list_user_groups(self, store: InMemoryEntityStore, bob: User, group: Group) -> None:
        assert [g.id for g in list_user_groups(bob.id, store)] == [group.id]
