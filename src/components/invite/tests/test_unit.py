"""
Invite component unit tests.

Tests for invitation issue, validation, acceptance and decline.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.dev_tasks import InlineDispatcher
from src.adapters.memory_store import InMemoryEntityStore
from src.components.invite import (
    AcceptInviteInput,
    DeclineInviteInput,
    InviteOutput,
    IssueInviteInput,
    list_incoming,
    list_outgoing,
    purge_expired,
    run,
    run_accept,
    run_decline,
    run_issue,
    run_validate,
    validate_email,
)
from src.domain.entities import Group, Invite, Membership, User, UserLimits
from src.domain.errors import ErrorKind
from src.ports.store import ConsumeResult
from src.ports.tasks import TaskStatus
from src.rules.models import Rules

IssueFn = Callable[..., InviteOutput]

# --- Mock Implementations ---


class MockTimePort:
    """Mock time port for deterministic testing."""

    def __init__(self, fixed_time: datetime | None = None) -> None:
        self._time = fixed_time or datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self._time

    def advance(self, delta: timedelta) -> None:
        self._time = self._time + delta


class FailingEmailSender:
    def send_invitation_email(
        self, recipient_email: str, inviter_name: str, group: Group, token: str
    ) -> str:
        raise ConnectionError("SMTP unreachable")


class RacingStore(InMemoryEntityStore):
    """Reports a fixed consume outcome, as if another caller won."""

    def __init__(self, outcome: ConsumeResult) -> None:
        super().__init__()
        self.outcome = outcome

    def consume_invite(
        self, invite_id: UUID, used_at: datetime, membership: Membership | None = None
    ) -> ConsumeResult:
        return self.outcome


class StaleReadStore(InMemoryEntityStore):
    """Hides existing invites from the duplicate pre-check, as if read before a concurrent write."""

    def list_invites_for_group_email(self, group_id: UUID, email: str) -> list[Invite]:
        return []


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
def email_sender() -> DevEmailAdapter:
    return DevEmailAdapter()


@pytest.fixture
def dispatcher() -> InlineDispatcher:
    return InlineDispatcher()


@pytest.fixture
def owner(store: InMemoryEntityStore) -> User:
    return store.save_user(User(email="alice@example.com", name="Alice"))


@pytest.fixture
def bob(store: InMemoryEntityStore) -> User:
    return store.save_user(User(email="bob@example.com", name="Bob"))


@pytest.fixture
def group(store: InMemoryEntityStore, owner: User) -> Group:
    group = Group(name="Maple Street", created_by=owner.id)
    store.add_group(group, Membership(group_id=group.id, user_id=owner.id))
    return group


@pytest.fixture
def issue(
    store: InMemoryEntityStore,
    time_port: MockTimePort,
    rules: Rules,
    email_sender: DevEmailAdapter,
    dispatcher: InlineDispatcher,
    owner: User,
    group: Group,
) -> IssueFn:
    def _issue(
        email: str, inviter: User | None = None, group_id: UUID | None = None
    ) -> InviteOutput:
        return run_issue(
            IssueInviteInput(
                group_id=group_id or group.id,
                email=email,
                inviter_id=(inviter or owner).id,
            ),
            store,
            time_port,
            rules,
            email_sender,
            dispatcher,
        )

    return _issue


# --- Email validation ---


class TestValidateEmail:
    def test_normalizes(self) -> None:
        assert validate_email("  Bob@Example.COM ") == "bob@example.com"

    @pytest.mark.parametrize("email", ["", "bob", "bob@", "@example.com", "bob@example", "a b@c.d"])
    def test_rejects(self, email: str) -> None:
        assert validate_email(email) is None


# --- Issue ---


class TestIssue:
    def test_owner_issues_invite(
        self, issue: IssueFn, time_port: MockTimePort, email_sender: DevEmailAdapter, group: Group
    ) -> None:
        output = issue("Bob@Example.com")

        assert output.success
        assert output.invite is not None
        assert output.invite.email == "bob@example.com"
        assert output.invite.used_at is None
        assert output.invite.expires_at == time_port.now_utc() + timedelta(days=7)
        assert len(output.invite.token) >= 32

        sent = email_sender.get_last_email()
        assert sent is not None
        assert sent.recipient == "bob@example.com"
        assert group.name in sent.subject
        assert output.invite.token in sent.invite_link

    def test_non_owner_forbidden(self, issue: IssueFn, bob: User) -> None:

        output = issue("carol@example.com", inviter=bob)

        assert output.error is not None
        assert output.error.kind == ErrorKind.FORBIDDEN

    def test_unknown_group(self, issue: IssueFn) -> None:
        output = issue("carol@example.com", group_id=uuid4())

        assert output.error is not None
        assert output.error.kind == ErrorKind.NOT_FOUND

    def test_invalid_email(self, issue: IssueFn) -> None:
        output = issue("not-an-email")

        assert output.error is not None
        assert output.error.kind == ErrorKind.VALIDATION_ERROR
        assert output.error.field == "email"

    def test_duplicate_open_invite(self, issue: IssueFn) -> None:
        assert issue("carol@example.com").success

        output = issue("CAROL@example.com")

        assert output.error is not None
        assert output.error.kind == ErrorKind.DUPLICATE_INVITE

    def test_duplicate_rejected_by_conditional_write(
        self, time_port: MockTimePort, rules: Rules
    ) -> None:
        store = StaleReadStore()
        owner = store.save_user(User(email="alice@example.com"))
        group = Group(name="G", created_by=owner.id)
        store.add_group(group, Membership(group_id=group.id, user_id=owner.id))

        def _issue() -> InviteOutput:
            return run_issue(
                IssueInviteInput(group.id, "carol@example.com", owner.id),
                store,
                time_port,
                rules,
                DevEmailAdapter(),
                InlineDispatcher(),
            )

        assert _issue().success
        output = _issue()

        assert output.error is not None
        assert output.error.kind == ErrorKind.DUPLICATE_INVITE
        assert len(store.list_invites_by_email("carol@example.com")) == 1

    def test_reissue_after_expiry(self, issue: IssueFn, time_port: MockTimePort) -> None:

        assert issue("carol@example.com").success
        time_port.advance(timedelta(days=7, seconds=1))

        assert issue("carol@example.com").success

    def test_existing_member_rejected(self, issue: IssueFn, owner: User) -> None:

        output = issue(owner.email)

        assert output.error is not None
        assert output.error.kind == ErrorKind.ALREADY_MEMBER

    def test_open_invite_ceiling(
        self, issue: IssueFn, store: InMemoryEntityStore, owner: User
    ) -> None:

        # Spread across two groups; the ceiling is per inviter
        second = Group(name="Oak Avenue", created_by=owner.id)
        store.add_group(second, Membership(group_id=second.id, user_id=owner.id))
        for n in range(5):
            assert issue(f"a{n}@example.com").success
            assert issue(f"b{n}@example.com", group_id=second.id).success

        output = issue("eleven@example.com")

        assert output.error is not None
        assert output.error.kind == ErrorKind.LIMIT_EXCEEDED

    def test_email_failure_does_not_fail_issue(
        self,
        store: InMemoryEntityStore,
        time_port: MockTimePort,
        rules: Rules,
        dispatcher: InlineDispatcher,
        owner: User,
        group: Group,
    ) -> None:
        output = run_issue(
            IssueInviteInput(group.id, "carol@example.com", owner.id),
            store,
            time_port,
            rules,
            FailingEmailSender(),
            dispatcher,
        )

        assert output.success
        assert output.email_task is not None
        assert output.email_task.status == TaskStatus.FAILURE
        assert dispatcher.failure_count == 1
        assert output.invite is not None
        assert store.get_invite(output.invite.id) is not None


# --- Validate ---


class TestValidate:
    def test_valid_token(
        self, issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort, group: Group
    ) -> None:

        invite = issue("bob@example.com").invite

        output = run_validate(invite.token, store, time_port)

        assert output.success
        assert output.group == group
        assert output.invite is not None
        assert output.invite.used_at is None

    def test_boundary_expiry_is_still_valid(
        self, issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort
    ) -> None:

        invite = issue("bob@example.com").invite
        time_port.advance(timedelta(days=7))

        assert run_validate(invite.token, store, time_port).success

        time_port.advance(timedelta(microseconds=1))
        output = run_validate(invite.token, store, time_port)
        assert output.error is not None
        assert output.error.kind == ErrorKind.NOT_FOUND_OR_EXPIRED

    @pytest.mark.parametrize("token", ["", "no-such-token"])
    def test_unknown_token(self, store: InMemoryEntityStore, time_port: MockTimePort, token: str) -> None:
        output = run_validate(token, store, time_port)

        assert output.error is not None
        assert output.error.kind == ErrorKind.NOT_FOUND_OR_EXPIRED


# --- Accept ---


class TestAccept:
    def test_accept_creates_membership_and_marks_used(
        self,
        issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort, rules: Rules,
        bob: User, group: Group
    ) -> None:
        invite = issue("bob@example.com").invite

        output = run_accept(AcceptInviteInput(invite.token, bob.id), store, time_port, rules)

        assert output.success
        assert output.group == group
        assert store.get_membership(group.id, bob.id) is not None
        stored = store.get_invite(invite.id)
        assert stored is not None
        assert stored.used_at == time_port.now_utc()

    def test_second_accept_is_not_found_or_expired(
        self,
        issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort, rules: Rules,
        bob: User, group: Group
    ) -> None:
        invite = issue("bob@example.com").invite
        assert run_accept(AcceptInviteInput(invite.token, bob.id), store, time_port, rules).success

        output = run_accept(AcceptInviteInput(invite.token, bob.id), store, time_port, rules)

        assert output.error is not None
        assert output.error.kind == ErrorKind.NOT_FOUND_OR_EXPIRED
        assert len(store.list_memberships_by_group(group.id)) == 2

    def test_any_registered_user_may_accept(
        self,
        issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort, rules: Rules,
        group: Group
    ) -> None:
        invite = issue("bob@example.com").invite
        dana = store.save_user(User(email="dana@example.com", name="Dana"))

        assert run_accept(AcceptInviteInput(invite.token, dana.id), store, time_port, rules).success

    def test_already_member(
        self,
        issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort, rules: Rules,
        owner: User
    ) -> None:
        invite = issue("someone@example.com").invite

        output = run_accept(AcceptInviteInput(invite.token, owner.id), store, time_port, rules)

        assert output.error is not None
        assert output.error.kind == ErrorKind.ALREADY_MEMBER
        stored = store.get_invite(invite.id)
        assert stored is not None
        assert stored.used_at is None

    def test_joined_group_ceiling(
        self,
        issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort, rules: Rules,
        bob: User
    ) -> None:
        store.save_user_limits(
            UserLimits(user_id=bob.id, max_open_requests=5, max_groups_created=3, max_groups_joined=0)
        )
        invite = issue("bob@example.com").invite

        output = run_accept(AcceptInviteInput(invite.token, bob.id), store, time_port, rules)

        assert output.error is not None
        assert output.error.kind == ErrorKind.LIMIT_EXCEEDED

    def test_expired_invite(
        self,
        issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort, rules: Rules,
        bob: User
    ) -> None:
        invite = issue("bob@example.com").invite
        time_port.advance(timedelta(days=8))

        output = run_accept(AcceptInviteInput(invite.token, bob.id), store, time_port, rules)

        assert output.error is not None
        assert output.error.kind == ErrorKind.NOT_FOUND_OR_EXPIRED

    @pytest.mark.parametrize(
        ("outcome", "kind"),
        [
            (ConsumeResult.ALREADY_USED, ErrorKind.NOT_FOUND_OR_EXPIRED),
            (ConsumeResult.ALREADY_MEMBER, ErrorKind.ALREADY_MEMBER),
        ],
    )
    def test_lost_race(
        self,
        time_port: MockTimePort,
        rules: Rules,
        outcome: ConsumeResult,
        kind: ErrorKind,
    ) -> None:
        store = RacingStore(outcome)
        owner = store.save_user(User(email="alice@example.com"))
        bob = store.save_user(User(email="bob@example.com"))
        group = Group(name="G", created_by=owner.id)
        store.add_group(group, Membership(group_id=group.id, user_id=owner.id))
        issued = run_issue(
            IssueInviteInput(group.id, "bob@example.com", owner.id),
            store,
            time_port,
            rules,
            DevEmailAdapter(),
            InlineDispatcher(),
        )
        assert issued.invite is not None

        output = run_accept(AcceptInviteInput(issued.invite.token, bob.id), store, time_port, rules)

        assert output.error is not None
        assert output.error.kind == kind


# --- Decline ---


class TestDecline:
    def test_decline_marks_used_without_membership(
        self, issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort, bob: User, group: Group
    ) -> None:
        invite = issue("bob@example.com").invite

        output = run_decline(DeclineInviteInput(invite.token, bob.id), store, time_port)

        assert output.success
        assert store.get_membership(group.id, bob.id) is None
        stored = store.get_invite(invite.id)
        assert stored is not None
        assert stored.used_at is not None

    def test_decline_requires_matching_email(
        self, issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort, owner: User
    ) -> None:
        invite = issue("bob@example.com").invite

        output = run_decline(DeclineInviteInput(invite.token, owner.id), store, time_port)

        assert output.error is not None
        assert output.error.kind == ErrorKind.FORBIDDEN


# --- Listing & purge ---


class TestListingAndPurge:
    def test_incoming_and_outgoing(
        self, issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort, owner: User, bob: User
    ) -> None:
        issue("bob@example.com")
        issue("carol@example.com")

        incoming = list_incoming(bob.id, store, time_port)
        outgoing = list_outgoing(owner.id, store, time_port)

        assert [v.invite.email for v in incoming] == ["bob@example.com"]
        assert incoming[0].group_name == "Maple Street"
        assert incoming[0].inviter_name == "Alice"
        assert {v.invite.email for v in outgoing} == {"bob@example.com", "carol@example.com"}

    def test_purge_removes_only_expired_unused(
        self,
        issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort, rules: Rules,
        bob: User
    ) -> None:
        accepted = issue("bob@example.com").invite
        run_accept(AcceptInviteInput(accepted.token, bob.id), store, time_port, rules)
        stale = issue("carol@example.com").invite
        time_port.advance(timedelta(days=3))
        fresh = issue("dana@example.com").invite
        time_port.advance(timedelta(days=5))

        assert purge_expired(store, time_port) == 1
        assert store.get_invite(stale.id) is None
        assert store.get_invite(accepted.id) is not None
        assert store.get_invite(fresh.id) is not None

    def test_run_dispatches(
        self,
        issue: IssueFn, store: InMemoryEntityStore, time_port: MockTimePort, rules: Rules,
        bob: User
    ) -> None:
        invite = issue("bob@example.com").invite

        output = run(AcceptInviteInput(invite.token, bob.id), store=store, time=time_port, rules=rules)

        assert output.success
