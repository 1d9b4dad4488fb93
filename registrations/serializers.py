"""Serializers for the registration REST endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from rest_framework import serializers

from . import settings_store
from .admission import Candidate
from .models import EventResult, Registration


class CandidateSerializer(serializers.Serializer):
    student_id = serializers.IntegerField(min_value=1)
    event_id = serializers.IntegerField(min_value=1)
    group_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    override = serializers.BooleanField(required=False, default=False)


class SubmitRegistrationsSerializer(serializers.Serializer):
    registrations = CandidateSerializer(many=True, allow_empty=False)
    override = serializers.BooleanField(required=False, default=False)

    def to_candidates(self) -> List[Candidate]:
        return [Candidate(**item) for item in self.validated_data["registrations"]]


class EventResultSerializer(serializers.ModelSerializer):
    class Meta:
        model = EventResult
        fields = ["id", "registration", "participation", "position", "points", "updated_at"]
        read_only_fields = fields


class RegistrationSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source="student.name", read_only=True)
    student_year = serializers.CharField(source="student.year", read_only=True)
    event_name = serializers.CharField(source="event.name", read_only=True)
    event_category = serializers.CharField(source="event.category", read_only=True)

    class Meta:
        model = Registration
        fields = [
            "id",
            "student",
            "student_name",
            "student_year",
            "event",
            "event_name",
            "event_category",
            "group_id",
            "status",
            "overridden",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Registration.Status.choices)
    override = serializers.BooleanField(required=False, default=False)


class ResultEntrySerializer(serializers.Serializer):
    participation = serializers.ChoiceField(choices=EventResult.Participation.choices)
    position = serializers.ChoiceField(
        choices=EventResult.Position.choices,
        required=False,
        default=EventResult.Position.NONE,
    )


class FestivalSettingsSerializer(serializers.Serializer):
    max_on_stage_registrations = serializers.IntegerField(min_value=0, required=False)
    max_off_stage_registrations = serializers.IntegerField(min_value=0, required=False)
    auto_approve_registrations = serializers.BooleanField(required=False)
    global_registration_open = serializers.BooleanField(required=False)
    scoreboard_visible = serializers.BooleanField(required=False)
    allow_student_withdrawal = serializers.BooleanField(required=False)

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        known = set(settings_store.LIMIT_KEYS) | set(settings_store.TOGGLE_DEFAULTS)
        unknown = set(self.initial_data) - known
        if unknown:
            raise serializers.ValidationError(
                {key: "Unknown setting." for key in sorted(unknown)}
            )
        return attrs
