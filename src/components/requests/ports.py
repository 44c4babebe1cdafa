from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from src.components.limits import LimitsStorePort
from src.domain.entities import Group, Membership, PickupRequest, RequestStatus


class RequestStorePort(LimitsStorePort, Protocol):
    """Store surface used by the request lifecycle."""

    def get_group(self, group_id: UUID) -> Group | None: ...
    def get_membership(self, group_id: UUID, user_id: UUID) -> Membership | None: ...

    def get_request(self, request_id: UUID) -> PickupRequest | None: ...
    def list_requests_by_group(self, group_id: UUID) -> list[PickupRequest]: ...
    def add_request(self, request: PickupRequest) -> PickupRequest: ...
    def swap_request(self, expected: PickupRequest, updated: PickupRequest) -> bool: ...
    def delete_request(self, request_id: UUID, expected_status: RequestStatus) -> bool: ...


class TimePort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
