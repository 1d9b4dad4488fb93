"""Registration workflows: admission under concurrency, reviews and results."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Iterable

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from . import admission, audit, roster, scoring, settings_store
from .actors import Actor, ActorKind
from .admission import AdmissionContext, Candidate, Decision, Reason, Verdict
from .exceptions import AdmissionBlocked, AuthorizationError, InvalidTransition, RegistrationNotFound
from .models import ACTIVE_REGISTRATION, AcademicYear, Event, EventResult, Registration

__all__ = [
    "OutcomeKind",
    "Outcome",
    "load_context",
    "submit_registration",
    "submit_batch",
    "transition_status",
    "withdraw_registration",
    "enter_result",
    "change_settings",
    "visible_registrations",
    "quota_usage",
    "scoreboard",
]

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    (Registration.Status.PENDING.value, Registration.Status.APPROVED.value),
    (Registration.Status.PENDING.value, Registration.Status.REJECTED.value),
    (Registration.Status.APPROVED.value, Registration.Status.REJECTED.value),
    (Registration.Status.REJECTED.value, Registration.Status.APPROVED.value),
}


class OutcomeKind(str, Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"
    WARNED = "warned"
    ERROR = "error"


@dataclass(frozen=True)
class Outcome:
    """Result of submitting a single candidate."""

    student_id: Any
    event_id: Any
    kind: OutcomeKind
    reason: str | None = None
    status: str | None = None
    must_override: bool = False
    retryable: bool = False
    registration_id: int | None = None
    overridden: tuple[str, ...] = ()
    message: str = ""

    @classmethod
    def from_decision(
        cls,
        candidate: Candidate,
        decision: Decision,
        registration: Registration | None = None,
    ) -> "Outcome":
        kind = {
            Verdict.ACCEPT: OutcomeKind.ACCEPTED,
            Verdict.DUPLICATE: OutcomeKind.DUPLICATE,
            Verdict.REJECT: OutcomeKind.REJECTED,
            Verdict.WARN: OutcomeKind.WARNED,
        }[decision.verdict]
        return cls(
            student_id=candidate.student_id,
            event_id=candidate.event_id,
            kind=kind,
            reason=decision.reason.value if decision.reason else None,
            status=str(decision.status) if decision.status else None,
            must_override=decision.must_override,
            registration_id=registration.pk if registration else None,
            overridden=tuple(reason.value for reason in decision.overridden),
            message=decision.message,
        )

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["overridden"] = list(self.overridden)
        return data


def load_context(candidate: Candidate, *, override: bool = False, lock: bool = True) -> AdmissionContext:
    """Read the current state relevant to ``candidate``.

    With ``lock`` set this must run inside a transaction: the event row and
    then the student row are locked so admissions racing for the same event
    or the same student are serialized until the caller commits.
    """

    event = roster.get_event(candidate.event_id, lock=lock)
    student = roster.get_student(candidate.student_id, lock=lock)

    active = Registration.objects.filter(ACTIVE_REGISTRATION)
    cohort = active.filter(event_id=event.id, student__year=student.year)
    group_size = 0
    if candidate.group_id is not None:
        group_size = active.filter(event_id=event.id, group_id=candidate.group_id).count()

    return AdmissionContext(
        student=student,
        event=event,
        quotas=settings_store.get_quota_settings(),
        already_registered=Registration.objects.filter(
            student_id=student.id, event_id=event.id
        ).exists(),
        category_count=active.filter(student_id=student.id, event__category=event.category).count(),
        cohort_count=cohort.count(),
        cohort_groups=frozenset(
            cohort.exclude(group_id=None).values_list("group_id", flat=True)
        ),
        group_size=group_size,
        auto_approve=settings_store.is_auto_approve_enabled(),
        registration_open=settings_store.is_registration_open(),
        override=override,
        now=timezone.now(),
    )


def _admit(candidate: Candidate, actor: Actor, override: bool) -> tuple[Decision, Registration | None]:
    with transaction.atomic():
        context = load_context(candidate, override=override)
        decision = admission.evaluate(candidate, actor, context)
        if not decision.is_accepted:
            return decision, None
        registration = Registration.objects.create(
            student_id=context.student.id,
            event_id=context.event.id,
            group_id=candidate.group_id if context.event.is_group else None,
            registered_by_id=actor.user_id,
            status=decision.status,
            overridden=[reason.value for reason in decision.overridden],
        )
        return decision, registration


def submit_registration(candidate: Candidate, actor: Actor, *, override: bool = False) -> Outcome:
    """Evaluate and, when accepted, persist a single candidate."""

    override = override or candidate.override
    try:
        decision, registration = _admit(candidate, actor, override)
    except RegistrationNotFound as exc:
        outcome = Outcome(
            student_id=candidate.student_id,
            event_id=candidate.event_id,
            kind=OutcomeKind.REJECTED,
            reason=Reason.NOT_FOUND.value,
            message=exc.detail,
        )
    except IntegrityError:
        # Lost the race on the unique (student, event) constraint.
        logger.info(
            "concurrent duplicate registration for student %s in event %s",
            candidate.student_id,
            candidate.event_id,
        )
        outcome = Outcome.from_decision(candidate, Decision.duplicate())
    except DatabaseError:
        logger.exception(
            "could not evaluate registration of student %s for event %s",
            candidate.student_id,
            candidate.event_id,
        )
        outcome = Outcome(
            student_id=candidate.student_id,
            event_id=candidate.event_id,
            kind=OutcomeKind.ERROR,
            reason=Reason.UNAVAILABLE.value,
            retryable=True,
            message="The registration could not be evaluated. Please retry.",
        )
    else:
        outcome = Outcome.from_decision(candidate, decision, registration)

    _report(actor, candidate, outcome)
    return outcome


def submit_batch(
    candidates: Iterable[Candidate],
    actor: Actor,
    *,
    override: bool = False,
) -> list[Outcome]:
    """Submit candidates in order; each one succeeds or fails on its own."""

    outcomes = [submit_registration(candidate, actor, override=override) for candidate in candidates]
    accepted = sum(1 for outcome in outcomes if outcome.kind is OutcomeKind.ACCEPTED)
    logger.info("registration batch processed: %d of %d accepted", accepted, len(outcomes))
    return outcomes


def _report(actor: Actor, candidate: Candidate, outcome: Outcome) -> None:
    if outcome.kind is OutcomeKind.DUPLICATE:
        return
    payload = outcome.as_dict()
    if candidate.group_id is not None:
        payload["group_id"] = str(candidate.group_id)
    audit.record(actor, f"registration_{outcome.kind.value}", payload)
    if outcome.kind is OutcomeKind.ACCEPTED:
        logger.info(
            "student %s registered for event %s as %s%s",
            outcome.student_id,
            outcome.event_id,
            outcome.status,
            " (override)" if outcome.overridden else "",
        )
        audit.broadcast("registration.outcome", payload)


def _get_registration(registration_id, *, lock: bool = False) -> Registration:
    queryset = Registration.objects.select_related("student", "event")
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=registration_id)
    except (Registration.DoesNotExist, ValueError, TypeError) as exc:
        raise RegistrationNotFound(f"Registration {registration_id} does not exist.") from exc


def transition_status(
    registration_id,
    new_status: str,
    actor: Actor,
    *,
    override: bool = False,
) -> Registration:
    """Move a registration between review states.

    Leaving ``rejected`` puts the registration back into the cohort counts,
    so the per-event cohort limits and the student's category quota are checked
    again under the same locks used for admission.
    """

    with transaction.atomic():
        current = _get_registration(registration_id)
        if not actor.can_review(current.student.year):
            raise AuthorizationError("You cannot review registrations for this student.")

        roster.get_event(current.event_id, lock=True)
        roster.get_student(current.student_id, lock=True)
        registration = _get_registration(registration_id, lock=True)
        previous = registration.status
        if (previous, new_status) not in ALLOWED_TRANSITIONS:
            raise InvalidTransition(f"Cannot change a {previous} registration to {new_status}.")

        if previous == Registration.Status.REJECTED:
            candidate = Candidate(
                student_id=registration.student_id,
                event_id=registration.event_id,
                group_id=registration.group_id,
            )
            context = load_context(candidate, override=override, lock=False)
            checks = (
                admission.check_cohort_capacity(actor, context, registration.group_id),
                admission.check_category_quota(actor, context),
            )
            for block, passed in checks:
                if block is not None:
                    raise AdmissionBlocked(
                        block.message,
                        code=block.reason.value,
                        must_override=block.must_override,
                    )
                if passed is not None and passed.value not in registration.overridden:
                    registration.overridden = [*registration.overridden, passed.value]

        registration.status = new_status
        registration.save(update_fields=["status", "overridden", "updated_at"])

    payload = {
        "registration_id": registration.pk,
        "student_id": registration.student_id,
        "event_id": registration.event_id,
        "from": previous,
        "to": new_status,
    }
    audit.record(actor, "registration_status_changed", payload)
    audit.broadcast("registration.status", payload)
    return registration


def withdraw_registration(registration_id, actor: Actor) -> None:
    """Let a student retract their own pending registration, freeing the slot."""

    with transaction.atomic():
        registration = _get_registration(registration_id, lock=True)
        if not actor.is_self(registration.student_id):
            raise AuthorizationError("Only the registered student can withdraw this registration.")
        if not settings_store.is_enabled(settings_store.ALLOW_WITHDRAWAL):
            raise InvalidTransition("Withdrawals are currently disabled.", code="withdrawal_disabled")
        if registration.status != Registration.Status.PENDING:
            raise InvalidTransition("Only pending registrations can be withdrawn.")
        payload = {
            "registration_id": registration.pk,
            "student_id": registration.student_id,
            "event_id": registration.event_id,
        }
        registration.delete()

    audit.record(actor, "registration_withdrawn", payload)
    audit.broadcast("registration.withdrawn", payload)


def enter_result(registration_id, participation: str, position: str, actor: Actor) -> EventResult:
    """Record an event result; the points are always derived, never supplied."""

    if actor.kind not in (ActorKind.ADMIN, ActorKind.EVENT_MANAGER):
        raise AuthorizationError("Only admins and event managers can enter results.")

    with transaction.atomic():
        registration = _get_registration(registration_id, lock=True)
        if registration.status != Registration.Status.APPROVED:
            raise InvalidTransition(
                "Results can only be entered for approved registrations.",
                code="not_approved",
            )
        score = scoring.calculate_points(registration.event.mode, participation, position)
        result, _ = EventResult.objects.update_or_create(
            registration=registration,
            defaults={
                "participation": score.participation,
                "position": score.position,
                "points": score.points,
                "entered_by_id": actor.user_id,
            },
        )

    audit.record(
        actor,
        "result_entered",
        {
            "registration_id": registration.pk,
            "participation": result.participation,
            "position": result.position,
            "points": result.points,
        },
    )
    return result


def change_settings(actor: Actor, changes: dict[str, Any], *, user=None) -> dict[str, Any]:
    """Apply policy changes; only admins may do so."""

    if actor.kind is not ActorKind.ADMIN:
        raise AuthorizationError("Only admins can change festival settings.")
    changed = settings_store.update_settings(changes, user=user)
    if not changed:
        return changed
    audit.record(actor, "settings_updated", changed)
    if settings_store.REGISTRATION_OPEN in changed:
        status = "OPEN" if changed[settings_store.REGISTRATION_OPEN] else "CLOSED"
        audit.record(actor, "global_registration_status_changed", {"status": status})
    audit.broadcast("settings.updated", changed)
    return changed


def visible_registrations(actor: Actor):
    """Registrations the actor is allowed to see."""

    queryset = Registration.objects.select_related("student", "event")
    if actor.kind in (ActorKind.ADMIN, ActorKind.EVENT_MANAGER):
        return queryset
    if actor.kind is ActorKind.COORDINATOR:
        return queryset.filter(student__year=actor.year)
    return queryset.filter(student_id=actor.student_id)


def quota_usage(student_id, actor: Actor) -> dict[str, Any]:
    """Per-category usage for a student against the active limits."""

    student = roster.get_student(student_id)
    if not (actor.is_self(student.id) or actor.can_review(student.year)):
        raise AuthorizationError("You cannot view this student's registrations.")

    quotas = settings_store.get_quota_settings()
    active = (
        Registration.objects.filter(ACTIVE_REGISTRATION, student_id=student.id)
        .select_related("event")
        .order_by("event__name")
    )
    usage: dict[str, Any] = {"student_id": student.id, "year": student.year}
    for category in Event.Category:
        entries = [reg for reg in active if reg.event.category == category]
        usage[category.value] = {
            "count": len(entries),
            "limit": quotas.limit_for(category),
            "events": [reg.event.name for reg in entries],
        }
    return usage


SCOREBOARD_COUNTS = ("played", "won", "second", "third", "dna")


def scoreboard() -> list[dict[str, Any]]:
    """Per academic year: points plus played, placing and non-participation counts, highest first."""

    Position = EventResult.Position
    stats = {
        row.pop("registration__student__year"): row
        for row in EventResult.objects.order_by()
        .values("registration__student__year")
        .annotate(
            total_points=Sum("points"),
            played=Count("pk"),
            won=Count("pk", filter=Q(position=Position.FIRST)),
            second=Count("pk", filter=Q(position=Position.SECOND)),
            third=Count("pk", filter=Q(position=Position.THIRD)),
            dna=Count("pk", filter=Q(participation=EventResult.Participation.DID_NOT_PARTICIPATE)),
        )
    }
    rows = []
    for year in AcademicYear:
        row = stats.get(year.value, {})
        entry = {"year": year.value, "label": year.label, "total_points": row.get("total_points") or 0}
        entry.update({key: row.get(key, 0) for key in SCOREBOARD_COUNTS})
        rows.append(entry)
    rows.sort(key=lambda row: row["total_points"], reverse=True)
    return rows
