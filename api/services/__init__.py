"""
API Services Layer.

Async database operations behind the HTTP routes. Each function takes the
session, the calling user and, where state changes, the notifier and clock.
"""

from api.services import (
    activity,
    admin,
    candidates,
    interviews,
    invitations,
    job_requests,
    notifications,
    organizations,
    tickets,
)

__all__ = [
    "activity",
    "admin",
    "candidates",
    "interviews",
    "invitations",
    "job_requests",
    "notifications",
    "organizations",
    "tickets",
]
