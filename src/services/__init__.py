"""
Service layer.

Thin facades over the components. Each method runs the component, raises
the matching DomainError on failure and returns the entity on success.
"""

from src.services.groups import GroupService
from src.services.invite import InviteService
from src.services.limits import LimitsService
from src.services.requests import RequestService

__all__ = ["GroupService", "InviteService", "LimitsService", "RequestService"]
