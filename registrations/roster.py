"""Read-only access to students and events for admission decisions."""
from __future__ import annotations

from .admission import EventSnapshot, StudentSnapshot
from .exceptions import RegistrationNotFound
from .models import Event, Student


def student_snapshot(student: Student) -> StudentSnapshot:
    return StudentSnapshot(id=student.pk, year=student.year, department=student.department)


def event_snapshot(event: Event) -> EventSnapshot:
    return EventSnapshot(
        id=event.pk,
        name=event.name,
        category=event.category,
        mode=event.mode,
        registration_method=event.registration_method,
        max_entries_per_year=event.max_entries_per_year,
        min_team_size=event.min_team_size,
        max_team_size=event.max_team_size,
        registration_deadline=event.registration_deadline,
        is_active=event.is_active,
    )


def get_student(student_id: int, *, lock: bool = False) -> StudentSnapshot:
    """Return the student snapshot, locking the row when ``lock`` is set."""

    queryset = Student.objects.select_for_update() if lock else Student.objects.all()
    try:
        student = queryset.get(pk=student_id)
    except (Student.DoesNotExist, ValueError, TypeError) as exc:
        raise RegistrationNotFound(f"Student {student_id} does not exist.") from exc
    return student_snapshot(student)


def get_event(event_id: int, *, lock: bool = False) -> EventSnapshot:
    """Return the event snapshot, locking the row when ``lock`` is set."""

    queryset = Event.objects.select_for_update() if lock else Event.objects.all()
    try:
        event = queryset.get(pk=event_id)
    except (Event.DoesNotExist, ValueError, TypeError) as exc:
        raise RegistrationNotFound(f"Event {event_id} does not exist.") from exc
    return event_snapshot(event)
