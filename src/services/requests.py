from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from src.components import requests as lifecycle
from src.components.requests import RequestStorePort, TimePort
from src.domain.entities import DisplayStatus, PickupRequest
from src.domain.errors import raise_for_error
from src.rules.models import Rules


class RequestService:
    def __init__(self, store: RequestStorePort, clock: TimePort, rules: Rules):
        self.store = store
        self.clock = clock
        self.rules = rules

    def create_request(
        self,
        group_id: UUID,
        owner_id: UUID,
        *,
        item_description: str,
        needed_by: datetime | date | str,
        store_preference: str | None = None,
        pickup_notes: str | None = None,
    ) -> PickupRequest:
        output = lifecycle.run_create(
            lifecycle.CreateRequestInput(
                user_id=owner_id,
                group_id=group_id,
                item_description=item_description,
                needed_by=needed_by,
                store_preference=store_preference,
                pickup_notes=pickup_notes,
            ),
            self.store,
            self.clock,
            self.rules,
        )
        raise_for_error(output.error)
        assert output.request is not None
        return output.request

    def claim_request(self, request_id: UUID, user_id: UUID) -> PickupRequest:
        return self._transition(lifecycle.ClaimInput(request_id, user_id))

    def unclaim_request(self, request_id: UUID, user_id: UUID) -> PickupRequest:
        return self._transition(lifecycle.UnclaimInput(request_id, user_id))

    def fulfill_request(self, request_id: UUID, user_id: UUID) -> PickupRequest:
        return self._transition(lifecycle.FulfillInput(request_id, user_id))

    def delete_request(self, request_id: UUID, user_id: UUID) -> None:
        self._transition(lifecycle.DeleteInput(request_id, user_id))

    def _transition(self, inp: lifecycle.RequestActionInput) -> PickupRequest:
        output = lifecycle.run(inp, store=self.store, time=self.clock)
        raise_for_error(output.error)
        assert output.request is not None
        return output.request

    def display_status(self, request: PickupRequest) -> DisplayStatus:
        return lifecycle.display_status(request, self.clock.now_utc())

    def list_group_requests(self, group_id: UUID, user_id: UUID) -> list[PickupRequest]:
        requests, error = lifecycle.list_group_requests(group_id, user_id, self.store)
        raise_for_error(error)
        return requests

    def list_user_requests(self, user_id: UUID) -> list[PickupRequest]:
        return lifecycle.list_user_requests(user_id, self.store)
