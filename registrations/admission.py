"""Admission rules deciding whether a student may be registered for an event.

Everything in this module is a pure function over plain snapshots: callers
load the current counts (see :mod:`registrations.services`) and pass them in
through :class:`AdmissionContext`. Business outcomes are returned as
:class:`Decision` values and never raised.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from django.utils import timezone

from .actors import Actor, ActorKind
from .models import Event, Registration

__all__ = [
    "Reason",
    "Verdict",
    "Candidate",
    "StudentSnapshot",
    "EventSnapshot",
    "QuotaSettings",
    "AdmissionContext",
    "Decision",
    "evaluate",
    "check_authority",
    "check_cohort_capacity",
    "check_category_quota",
]


class Reason(str, Enum):
    UNAUTHORIZED = "unauthorized"
    DUPLICATE = "duplicate"
    CLOSED = "closed"
    GROUP_REQUIRED = "group_required"
    TEAM_FULL = "team_full"
    GROUP_EXISTS = "group_exists"
    COHORT_CAP = "cohort_cap"
    QUOTA_EXCEEDED = "quota_exceeded"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


class Verdict(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    WARN = "warn"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class Candidate:
    """A proposed student → event registration."""

    student_id: int
    event_id: int
    group_id: uuid.UUID | None = None
    override: bool = False


@dataclass(frozen=True)
class StudentSnapshot:
    id: int
    year: str
    department: str = ""


@dataclass(frozen=True)
class EventSnapshot:
    id: int
    category: str
    mode: str = Event.Mode.INDIVIDUAL
    registration_method: str = Event.RegistrationMethod.COORDINATOR
    max_entries_per_year: int = 3
    min_team_size: int = 1
    max_team_size: int = 1
    registration_deadline: datetime | None = None
    is_active: bool = True
    name: str = ""

    @property
    def is_group(self) -> bool:
        return self.mode == Event.Mode.GROUP


@dataclass(frozen=True)
class QuotaSettings:
    """Per-student limits on non-rejected registrations in each category."""

    on_stage_limit: int = 5
    off_stage_limit: int = 4

    def limit_for(self, category: str) -> int:
        if category == Event.Category.ON_STAGE:
            return self.on_stage_limit
        return self.off_stage_limit


@dataclass(frozen=True)
class AdmissionContext:
    """Everything :func:`evaluate` needs besides the candidate and actor.

    ``cohort_count`` is the number of distinct non-rejected students from the
    student's year already in the event; ``cohort_groups`` is the set of
    non-rejected group ids from that year and ``group_size`` the number of
    non-rejected members in the candidate's own group.
    """

    student: StudentSnapshot
    event: EventSnapshot
    quotas: QuotaSettings = field(default_factory=QuotaSettings)
    already_registered: bool = False
    category_count: int = 0
    cohort_count: int = 0
    cohort_groups: frozenset = frozenset()
    group_size: int = 0
    auto_approve: bool = False
    registration_open: bool = True
    override: bool = False
    now: datetime | None = None


@dataclass(frozen=True)
class Decision:
    verdict: Verdict
    reason: Reason | None = None
    status: str | None = None
    must_override: bool = False
    overridden: tuple[Reason, ...] = ()
    message: str = ""

    @classmethod
    def accept(cls, status: str, overridden: tuple[Reason, ...] = ()) -> "Decision":
        return cls(Verdict.ACCEPT, status=status, overridden=overridden)

    @classmethod
    def reject(cls, reason: Reason, message: str = "") -> "Decision":
        return cls(Verdict.REJECT, reason=reason, message=message)

    @classmethod
    def warn(cls, reason: Reason, message: str = "") -> "Decision":
        return cls(Verdict.WARN, reason=reason, must_override=True, message=message)

    @classmethod
    def duplicate(cls) -> "Decision":
        return cls(
            Verdict.DUPLICATE,
            reason=Reason.DUPLICATE,
            message="Student is already registered for this event.",
        )

    @property
    def is_accepted(self) -> bool:
        return self.verdict is Verdict.ACCEPT


def check_authority(actor: Actor, student: StudentSnapshot, event: EventSnapshot) -> bool:
    """Return True when ``actor`` may submit ``student`` for ``event``."""

    if event.registration_method == Event.RegistrationMethod.STUDENT:
        return actor.is_self(student.id)
    if actor.kind is ActorKind.ADMIN:
        return True
    return actor.coordinates(student.year)


def _closed_message(event: EventSnapshot, context: AdmissionContext) -> str:
    if not context.registration_open:
        return "Registration is currently closed for all events."
    if not event.is_active:
        return "This event is not accepting registrations."
    now = context.now or timezone.now()
    if event.registration_deadline and now > event.registration_deadline:
        return "The registration deadline for this event has passed."
    return ""


def _soft_block(reason: Reason, actor: Actor, override: bool, message: str) -> Decision | None:
    # Students cannot override; staff see a warning until they confirm.
    if not actor.is_staff:
        return Decision.reject(reason, message)
    if not override:
        return Decision.warn(reason, message)
    return None


def check_cohort_capacity(
    actor: Actor,
    context: AdmissionContext,
    group_id: uuid.UUID | None = None,
) -> tuple[Decision | None, Reason | None]:
    """Apply the per-event, per-year limits.

    Returns ``(block, overridden)``: ``block`` is a reject/warn decision when
    the candidate cannot proceed, ``overridden`` names the limit that was
    passed only because of an explicit override.
    """

    event = context.event
    year = context.student.year
    if event.is_group:
        if group_id is None:
            return Decision.reject(Reason.GROUP_REQUIRED, "Group events need a group id."), None
        if event.max_team_size and context.group_size >= event.max_team_size:
            return (
                Decision.reject(
                    Reason.TEAM_FULL,
                    f"This team already has the maximum of {event.max_team_size} members.",
                ),
                None,
            )
        if context.cohort_groups and group_id not in context.cohort_groups:
            return (
                Decision.reject(
                    Reason.GROUP_EXISTS,
                    f"Only one group per year is allowed; {year} year already has a team.",
                ),
                None,
            )
        return None, None

    if context.cohort_count >= event.max_entries_per_year:
        message = (
            f"Maximum participation limit ({event.max_entries_per_year}) reached "
            f"for {year} year in this event."
        )
        block = _soft_block(Reason.COHORT_CAP, actor, context.override, message)
        if block is not None:
            return block, None
        return None, Reason.COHORT_CAP
    return None, None


def check_category_quota(
    actor: Actor,
    context: AdmissionContext,
) -> tuple[Decision | None, Reason | None]:
    """Apply the per-student limit for the event's category; same return shape as above."""

    event = context.event
    limit = context.quotas.limit_for(event.category)
    if context.category_count < limit:
        return None, None
    label = Event.Category(event.category).label
    message = f"Student already holds {context.category_count} of {limit} allowed {label} registrations."
    block = _soft_block(Reason.QUOTA_EXCEEDED, actor, context.override, message)
    if block is not None:
        return block, None
    return None, Reason.QUOTA_EXCEEDED


def evaluate(candidate: Candidate, actor: Actor, context: AdmissionContext) -> Decision:
    """Decide whether ``candidate`` may be registered.

    Checks run in order and the first failure wins: authority, duplicate,
    availability, per-event cohort capacity, per-student category quota.
    Only the cohort cap (individual events) and the category quota can be
    passed with ``context.override`` and only by staff actors.
    """

    student, event = context.student, context.event

    if not check_authority(actor, student, event):
        if event.registration_method == Event.RegistrationMethod.STUDENT:
            message = "This event requires student self-registration."
        else:
            message = "Only admins or the student's year coordinator can register for this event."
        return Decision.reject(Reason.UNAUTHORIZED, message)

    if context.already_registered:
        return Decision.duplicate()

    closed = _closed_message(event, context)
    if closed:
        return Decision.reject(Reason.CLOSED, closed)

    overridden: list[Reason] = []
    block, passed = check_cohort_capacity(actor, context, candidate.group_id)
    if block is not None:
        return block
    if passed is not None:
        overridden.append(passed)

    block, passed = check_category_quota(actor, context)
    if block is not None:
        return block
    if passed is not None:
        overridden.append(passed)

    status = Registration.Status.APPROVED if context.auto_approve else Registration.Status.PENDING
    return Decision.accept(status, tuple(overridden))
