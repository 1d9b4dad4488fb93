"""Database models for festival event registrations."""
from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


User = settings.AUTH_USER_MODEL


class AcademicYear(models.TextChoices):
    FIRST = "first", "First Year"
    SECOND = "second", "Second Year"
    THIRD = "third", "Third Year"
    FOURTH = "fourth", "Fourth Year"


class Student(models.Model):
    """A student who can be registered for festival events."""

    name = models.CharField(max_length=120)
    roll_number = models.CharField(max_length=32, unique=True)
    department = models.CharField(max_length=80)
    year = models.CharField(max_length=8, choices=AcademicYear.choices)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("name",)

    def __str__(self) -> str:
        return f"{self.name} ({self.roll_number})"


class Event(models.Model):
    """A festival event students register for."""

    class Category(models.TextChoices):
        ON_STAGE = "on_stage", "On-Stage"
        OFF_STAGE = "off_stage", "Off-Stage"

    class Mode(models.TextChoices):
        INDIVIDUAL = "individual", "Individual"
        GROUP = "group", "Group"

    class RegistrationMethod(models.TextChoices):
        STUDENT = "student", "Student self-registration"
        COORDINATOR = "coordinator", "Coordinator only"

    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=10, choices=Category.choices)
    mode = models.CharField(max_length=10, choices=Mode.choices, default=Mode.INDIVIDUAL)
    registration_method = models.CharField(
        max_length=12,
        choices=RegistrationMethod.choices,
        default=RegistrationMethod.COORDINATOR,
    )
    max_entries_per_year = models.PositiveIntegerField(default=3)
    min_team_size = models.PositiveIntegerField(default=1)
    max_team_size = models.PositiveIntegerField(default=1)
    registration_deadline = models.DateTimeField(blank=True, null=True)
    event_date = models.DateTimeField(blank=True, null=True)
    venue = models.CharField(max_length=120, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name

    def clean(self) -> None:
        super().clean()
        if self.min_team_size > self.max_team_size:
            raise ValidationError(
                {"min_team_size": "Minimum team size cannot exceed the maximum."}
            )


class Registration(models.Model):
    """A student's registration into an event."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="registrations")
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="registrations")
    group_id = models.UUIDField(blank=True, null=True, db_index=True)
    registered_by = models.ForeignKey(
        User,
        blank=True,
        null=True,
        on_delete=models.SET_NULL,
        related_name="festival_registrations",
    )
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    overridden = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["student", "event"], name="unique_registration_per_event"),
        ]
        ordering = ("-created_at", "pk")

    def __str__(self) -> str:
        return f"{self.student} - {self.event} ({self.status})"

    @property
    def is_override(self) -> bool:
        return bool(self.overridden)


ACTIVE_REGISTRATION = ~Q(status=Registration.Status.REJECTED)


class EventResult(models.Model):
    """Outcome recorded for an approved registration once the event concludes."""

    class Position(models.TextChoices):
        FIRST = "first", "First"
        SECOND = "second", "Second"
        THIRD = "third", "Third"
        NONE = "none", "No placing"

    class Participation(models.TextChoices):
        PARTICIPATED = "participated", "Participated"
        DID_NOT_PARTICIPATE = "did_not_participate", "Did not participate"

    registration = models.OneToOneField(Registration, on_delete=models.CASCADE, related_name="result")
    position = models.CharField(max_length=6, choices=Position.choices, default=Position.NONE)
    participation = models.CharField(
        max_length=20,
        choices=Participation.choices,
        default=Participation.PARTICIPATED,
    )
    points = models.IntegerField(default=0)
    entered_by = models.ForeignKey(
        User,
        blank=True,
        null=True,
        on_delete=models.SET_NULL,
        related_name="festival_results",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-points", "registration__event__name")

    def __str__(self) -> str:
        return f"Result for {self.registration} ({self.points} pts)"


class Setting(models.Model):
    """Key/value policy setting editable by admins."""

    key = models.CharField(max_length=64, unique=True)
    value = models.JSONField(default=dict)
    updated_by = models.ForeignKey(
        User,
        blank=True,
        null=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("key",)

    def __str__(self) -> str:
        return self.key


class Profile(models.Model):
    """Festival role attached to a login account."""

    class Role(models.TextChoices):
        ADMIN = "admin", "Administrator"
        EVENT_MANAGER = "event_manager", "Event Manager"
        COORDINATOR = "coordinator", "Year Coordinator"
        STUDENT = "student", "Student"

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="festival_profile")
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.STUDENT)
    year = models.CharField(max_length=8, choices=AcademicYear.choices, blank=True)
    student = models.OneToOneField(
        Student,
        blank=True,
        null=True,
        on_delete=models.SET_NULL,
        related_name="profile",
    )

    def __str__(self) -> str:
        return f"{self.user} ({self.get_role_display()})"

    def clean(self) -> None:
        super().clean()
        if self.role == self.Role.COORDINATOR and not self.year:
            raise ValidationError({"year": "Coordinators must be assigned a year."})
        if self.role == self.Role.STUDENT and not self.student_id:
            raise ValidationError({"student": "Student profiles must be linked to a student record."})


class AuditLog(models.Model):
    """Simple audit trail for registration decisions and policy changes."""

    ts = models.DateTimeField(auto_now_add=True)
    actor = models.ForeignKey(User, blank=True, null=True, on_delete=models.SET_NULL, related_name="+")
    action = models.CharField(max_length=64)
    payload = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ("-ts",)

    def __str__(self) -> str:
        return f"{self.action} at {self.ts:%Y-%m-%d %H:%M:%S}"
