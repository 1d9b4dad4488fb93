"""Actor authority resolved once at the request boundary."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .exceptions import AuthorizationError
from .models import Profile


class ActorKind(str, Enum):
    STUDENT = "student"
    COORDINATOR = "coordinator"
    ADMIN = "admin"
    EVENT_MANAGER = "event_manager"


@dataclass(frozen=True)
class Actor:
    """Who is acting: a student (self), a coordinator for a year, or staff."""

    kind: ActorKind
    student_id: int | None = None
    year: str | None = None
    user_id: int | None = None

    @classmethod
    def student(cls, student_id: int, *, user_id: int | None = None) -> "Actor":
        return cls(ActorKind.STUDENT, student_id=student_id, user_id=user_id)

    @classmethod
    def coordinator(cls, year: str, *, user_id: int | None = None) -> "Actor":
        return cls(ActorKind.COORDINATOR, year=year, user_id=user_id)

    @classmethod
    def admin(cls, *, user_id: int | None = None) -> "Actor":
        return cls(ActorKind.ADMIN, user_id=user_id)

    @classmethod
    def event_manager(cls, *, user_id: int | None = None) -> "Actor":
        return cls(ActorKind.EVENT_MANAGER, user_id=user_id)

    @property
    def is_staff(self) -> bool:
        """Staff actors may override soft limits; students never can."""

        return self.kind is not ActorKind.STUDENT

    def is_self(self, student_id: int) -> bool:
        return self.kind is ActorKind.STUDENT and self.student_id == student_id

    def coordinates(self, year: str) -> bool:
        return self.kind is ActorKind.COORDINATOR and self.year == year

    def can_review(self, year: str) -> bool:
        """Return True when the actor may approve or reject a registration for ``year``."""

        if self.kind in (ActorKind.ADMIN, ActorKind.EVENT_MANAGER):
            return True
        return self.coordinates(year)

    def as_payload(self) -> dict:
        payload = {"kind": self.kind.value}
        if self.student_id is not None:
            payload["student_id"] = self.student_id
        if self.year:
            payload["year"] = self.year
        return payload


def actor_for_user(user) -> Actor:
    """Translate an authenticated user's festival profile into an :class:`Actor`."""

    if user is None or not user.is_authenticated:
        raise AuthorizationError("Authentication required.")
    if user.is_superuser:
        return Actor.admin(user_id=user.pk)
    try:
        profile = user.festival_profile
    except Profile.DoesNotExist as exc:
        raise AuthorizationError("No festival role is assigned to this account.") from exc

    if profile.role == Profile.Role.ADMIN:
        return Actor.admin(user_id=user.pk)
    if profile.role == Profile.Role.EVENT_MANAGER:
        return Actor.event_manager(user_id=user.pk)
    if profile.role == Profile.Role.COORDINATOR:
        if not profile.year:
            raise AuthorizationError("Coordinator account has no year assigned.")
        return Actor.coordinator(profile.year, user_id=user.pk)
    if profile.student_id is None:
        raise AuthorizationError("Student account is not linked to a student record.")
    return Actor.student(profile.student_id, user_id=user.pk)
