from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from src.adapters.clock import SystemClock
from src.adapters.dev_email import DevEmailAdapter
from src.adapters.dev_tasks import InlineDispatcher, ThreadDispatcher
from src.adapters.memory_store import InMemoryEntityStore
from src.adapters.sqlite.store import SQLiteEntityStore
from src.components.invite import InvitationEmailSenderPort
from src.domain.entities import User
from src.ports.clock import ClockPort
from src.ports.store import EntityStorePort
from src.ports.tasks import TaskDispatcherPort
from src.rules.models import Rules
from src.services.groups import GroupService
from src.services.invite import InviteService
from src.services.limits import LimitsService
from src.services.requests import RequestService


@dataclass
class ServiceContext:
    request_service: RequestService
    invite_service: InviteService
    group_service: GroupService
    limits_service: LimitsService
    store: EntityStorePort
    email_sender: InvitationEmailSenderPort
    dispatcher: TaskDispatcherPort
    rules: Rules
    clock: ClockPort

    @classmethod
    def create(
        cls,
        db_path: str | Path,
        rules: Rules,
        email_mode: str = "inline",
        clock: ClockPort | None = None,
        email_sender: InvitationEmailSenderPort | None = None,
    ) -> ServiceContext:
        """Wire services against the SQLite store at db_path (already migrated)."""
        return cls.build(SQLiteEntityStore(str(db_path)), rules, email_mode, clock, email_sender)

    @classmethod
    def in_memory(
        cls,
        rules: Rules,
        clock: ClockPort | None = None,
        email_sender: InvitationEmailSenderPort | None = None,
    ) -> ServiceContext:
        return cls.build(InMemoryEntityStore(), rules, "inline", clock, email_sender)

    @classmethod
    def build(
        cls,
        store: EntityStorePort,
        rules: Rules,
        email_mode: str = "inline",
        clock: ClockPort | None = None,
        email_sender: InvitationEmailSenderPort | None = None,
    ) -> ServiceContext:
        clock = clock or SystemClock()
        email_sender = email_sender or DevEmailAdapter(rules=rules.email)
        dispatcher: TaskDispatcherPort
        if email_mode == "thread":
            dispatcher = ThreadDispatcher()
        else:
            dispatcher = InlineDispatcher()

        return cls(
            request_service=RequestService(store, clock, rules),
            invite_service=InviteService(store, clock, rules, email_sender, dispatcher),
            group_service=GroupService(store, clock, rules),
            limits_service=LimitsService(store, clock, rules),
            store=store,
            email_sender=email_sender,
            dispatcher=dispatcher,
            rules=rules,
            clock=clock,
        )

    def close(self) -> None:
        """Wait for dispatched tasks so none are cut off at process exit."""
        if isinstance(self.dispatcher, ThreadDispatcher):
            self.dispatcher.join()

    def current_user(self, session_token: str | None) -> User | None:
        """Resolve an unexpired session to its user. Read-only."""
        if not session_token:
            return None
        session = self.store.get_session(session_token)
        if session is None or not session.is_active(self.clock.now_utc()):
            return None
        return self.store.get_user(session.user_id)
