"""
StudySphere — Domain exceptions.

Services raise these; the API layer maps each one onto an HTTP status code.
The partner matcher itself never raises for well-typed input.
"""

from __future__ import annotations


class StudySphereError(Exception):
    """Base class for every error raised by StudySphere services."""


class NotFoundError(StudySphereError):
    """A referenced user, group or subject does not exist."""

    def __init__(self, kind: str, identifier: object) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found.")


class MessageValidationError(StudySphereError):
    """A message was rejected before it reached the store (e.g. empty text)."""


class ForbiddenError(StudySphereError):
    """The signed-in user may not change this resource."""


class MembershipError(ForbiddenError):
    """The acting user is not a member of the group they tried to edit."""


class ConflictError(StudySphereError):
    """A write collided with existing data (e.g. an email already in use)."""


class PersistenceError(StudySphereError):
    """A write to the store failed; nothing may be assumed committed."""


class PlanGenerationError(StudySphereError):
    """The study plan generator was unreachable or returned an invalid plan."""


class SessionError(StudySphereError):
    """An anonymous session token is invalid, expired or revoked."""
