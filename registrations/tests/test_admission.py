import os
import uuid
from datetime import timedelta

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "festival_platform.settings")

import django

django.setup()

from django.test import SimpleTestCase
from django.utils import timezone

from registrations.actors import Actor
from registrations.admission import (
    AdmissionContext,
    Candidate,
    EventSnapshot,
    QuotaSettings,
    Reason,
    StudentSnapshot,
    Verdict,
    check_authority,
    evaluate,
)
from registrations.models import Event, Registration


FIRST = "first"
SECOND = "second"


def make_event(**overrides):
    values = {
        "id": 10,
        "name": "Solo Singing",
        "category": Event.Category.ON_STAGE,
        "mode": Event.Mode.INDIVIDUAL,
        "registration_method": Event.RegistrationMethod.STUDENT,
        "max_entries_per_year": 3,
    }
    values.update(overrides)
    return EventSnapshot(**values)


def make_context(event=None, **overrides):
    values = {
        "student": StudentSnapshot(id=1, year=FIRST, department="CSE"),
        "event": event or make_event(),
        "quotas": QuotaSettings(on_stage_limit=5, off_stage_limit=4),
    }
    values.update(overrides)
    return AdmissionContext(**values)


class ScenarioTests(SimpleTestCase):
    def test_self_registration_within_limits_is_pending(self):
        context = make_context(cohort_count=2, category_count=1)
        decision = evaluate(Candidate(1, 10), Actor.student(1), context)

        self.assertEqual(decision.verdict, Verdict.ACCEPT)
        self.assertEqual(decision.status, Registration.Status.PENDING)
        self.assertEqual(decision.overridden, ())

    def test_auto_approve_accepts_as_approved(self):
        context = make_context(auto_approve=True)
        decision = evaluate(Candidate(1, 10), Actor.student(1), context)
        self.assertEqual(decision.status, Registration.Status.APPROVED)

    def test_full_cohort_rejects_students_outright(self):
        context = make_context(cohort_count=3)
        decision = evaluate(Candidate(1, 10), Actor.student(1), context)

        self.assertEqual(decision.verdict, Verdict.REJECT)
        self.assertEqual(decision.reason, Reason.COHORT_CAP)
        self.assertFalse(decision.must_override)

    def test_full_cohort_warns_coordinator(self):
        event = make_event(registration_method=Event.RegistrationMethod.COORDINATOR)
        context = make_context(event=event, cohort_count=3)
        decision = evaluate(Candidate(1, 10), Actor.coordinator(FIRST), context)

        self.assertEqual(decision.verdict, Verdict.WARN)
        self.assertEqual(decision.reason, Reason.COHORT_CAP)
        self.assertTrue(decision.must_override)

    def test_coordinator_override_passes_cohort_cap(self):
        event = make_event(registration_method=Event.RegistrationMethod.COORDINATOR)
        context = make_context(event=event, cohort_count=3, override=True)
        decision = evaluate(Candidate(1, 10), Actor.coordinator(FIRST), context)

        self.assertEqual(decision.verdict, Verdict.ACCEPT)
        self.assertEqual(decision.overridden, (Reason.COHORT_CAP,))

    def test_existing_registration_is_duplicate(self):
        context = make_context(already_registered=True)
        decision = evaluate(Candidate(1, 10), Actor.student(1), context)

        self.assertEqual(decision.verdict, Verdict.DUPLICATE)
        self.assertEqual(decision.reason, Reason.DUPLICATE)

    def test_team_can_grow_when_its_group_holds_the_cohort_slot(self):
        group = uuid.uuid4()
        event = make_event(
            mode=Event.Mode.GROUP,
            registration_method=Event.RegistrationMethod.COORDINATOR,
            min_team_size=2,
            max_team_size=4,
        )
        context = make_context(
            event=event,
            cohort_count=2,
            cohort_groups=frozenset({group}),
            group_size=2,
        )
        decision = evaluate(Candidate(3, 10, group_id=group), Actor.coordinator(FIRST), context)

        self.assertEqual(decision.verdict, Verdict.ACCEPT)

    def test_lowered_quota_applies_to_new_attempts(self):
        event = make_event(registration_method=Event.RegistrationMethod.COORDINATOR)
        quotas = QuotaSettings(on_stage_limit=1, off_stage_limit=4)

        coordinator = evaluate(
            Candidate(1, 10),
            Actor.coordinator(FIRST),
            make_context(event=event, quotas=quotas, category_count=3),
        )
        self.assertEqual(coordinator.verdict, Verdict.WARN)
        self.assertEqual(coordinator.reason, Reason.QUOTA_EXCEEDED)

        student = evaluate(
            Candidate(1, 10),
            Actor.student(1),
            make_context(quotas=quotas, category_count=3),
        )
        self.assertEqual(student.verdict, Verdict.REJECT)
        self.assertEqual(student.reason, Reason.QUOTA_EXCEEDED)


class AuthorityTests(SimpleTestCase):
    def test_self_service_event_only_accepts_the_student_themself(self):
        student = StudentSnapshot(id=1, year=FIRST)
        event = make_event()

        self.assertTrue(check_authority(Actor.student(1), student, event))
        self.assertFalse(check_authority(Actor.student(2), student, event))
        self.assertFalse(check_authority(Actor.coordinator(FIRST), student, event))
        self.assertFalse(check_authority(Actor.admin(), student, event))

    def test_coordinator_event_accepts_admin_and_matching_coordinator(self):
        student = StudentSnapshot(id=1, year=FIRST)
        event = make_event(registration_method=Event.RegistrationMethod.COORDINATOR)

        self.assertTrue(check_authority(Actor.admin(), student, event))
        self.assertTrue(check_authority(Actor.coordinator(FIRST), student, event))
        self.assertFalse(check_authority(Actor.coordinator(SECOND), student, event))
        self.assertFalse(check_authority(Actor.event_manager(), student, event))
        self.assertFalse(check_authority(Actor.student(1), student, event))

    def test_authority_is_checked_before_duplicates(self):
        context = make_context(already_registered=True)
        decision = evaluate(Candidate(1, 10), Actor.student(2), context)

        self.assertEqual(decision.verdict, Verdict.REJECT)
        self.assertEqual(decision.reason, Reason.UNAUTHORIZED)

    def test_override_does_not_bypass_authority(self):
        context = make_context(override=True)
        decision = evaluate(Candidate(1, 10), Actor.coordinator(SECOND), context)
        self.assertEqual(decision.reason, Reason.UNAUTHORIZED)


class AvailabilityTests(SimpleTestCase):
    def test_inactive_event_is_closed(self):
        context = make_context(event=make_event(is_active=False))
        decision = evaluate(Candidate(1, 10), Actor.student(1), context)
        self.assertEqual(decision.reason, Reason.CLOSED)

    def test_passed_deadline_is_closed(self):
        now = timezone.now()
        context = make_context(
            event=make_event(registration_deadline=now - timedelta(hours=1)),
            now=now,
        )
        decision = evaluate(Candidate(1, 10), Actor.student(1), context)
        self.assertEqual(decision.reason, Reason.CLOSED)

    def test_future_deadline_is_open(self):
        now = timezone.now()
        context = make_context(
            event=make_event(registration_deadline=now + timedelta(days=1)),
            now=now,
        )
        decision = evaluate(Candidate(1, 10), Actor.student(1), context)
        self.assertTrue(decision.is_accepted)

    def test_global_close_blocks_everyone_even_with_override(self):
        event = make_event(registration_method=Event.RegistrationMethod.COORDINATOR)
        context = make_context(event=event, registration_open=False, override=True)
        decision = evaluate(Candidate(1, 10), Actor.admin(), context)

        self.assertEqual(decision.verdict, Verdict.REJECT)
        self.assertEqual(decision.reason, Reason.CLOSED)

    def test_duplicate_wins_over_closed(self):
        context = make_context(event=make_event(is_active=False), already_registered=True)
        decision = evaluate(Candidate(1, 10), Actor.student(1), context)
        self.assertEqual(decision.verdict, Verdict.DUPLICATE)


class GroupRuleTests(SimpleTestCase):
    def setUp(self):
        self.event = make_event(
            mode=Event.Mode.GROUP,
            registration_method=Event.RegistrationMethod.COORDINATOR,
            min_team_size=2,
            max_team_size=3,
        )
        self.actor = Actor.coordinator(FIRST)

    def test_group_event_requires_group_id(self):
        decision = evaluate(Candidate(1, 10), self.actor, make_context(event=self.event))
        self.assertEqual(decision.reason, Reason.GROUP_REQUIRED)

    def test_first_group_of_a_year_is_accepted(self):
        decision = evaluate(
            Candidate(1, 10, group_id=uuid.uuid4()),
            self.actor,
            make_context(event=self.event),
        )
        self.assertTrue(decision.is_accepted)

    def test_second_group_from_same_year_is_rejected_even_with_override(self):
        existing = uuid.uuid4()
        context = make_context(
            event=self.event,
            cohort_count=2,
            cohort_groups=frozenset({existing}),
            override=True,
        )
        decision = evaluate(Candidate(1, 10, group_id=uuid.uuid4()), Actor.admin(), context)

        self.assertEqual(decision.verdict, Verdict.REJECT)
        self.assertEqual(decision.reason, Reason.GROUP_EXISTS)

    def test_full_team_is_rejected(self):
        group = uuid.uuid4()
        context = make_context(
            event=self.event,
            cohort_count=3,
            cohort_groups=frozenset({group}),
            group_size=3,
        )
        decision = evaluate(Candidate(4, 10, group_id=group), self.actor, context)
        self.assertEqual(decision.reason, Reason.TEAM_FULL)

    def test_zero_max_team_size_means_unlimited(self):
        group = uuid.uuid4()
        event = make_event(
            mode=Event.Mode.GROUP,
            registration_method=Event.RegistrationMethod.COORDINATOR,
            max_team_size=0,
        )
        context = make_context(
            event=event,
            cohort_count=40,
            cohort_groups=frozenset({group}),
            group_size=40,
        )
        decision = evaluate(Candidate(41, 10, group_id=group), self.actor, context)
        self.assertTrue(decision.is_accepted)


class QuotaTests(SimpleTestCase):
    def test_quota_uses_the_event_category_limit(self):
        event = make_event(category=Event.Category.OFF_STAGE)
        quotas = QuotaSettings(on_stage_limit=5, off_stage_limit=2)

        allowed = evaluate(
            Candidate(1, 10), Actor.student(1), make_context(event=event, quotas=quotas, category_count=1)
        )
        blocked = evaluate(
            Candidate(1, 10), Actor.student(1), make_context(event=event, quotas=quotas, category_count=2)
        )

        self.assertTrue(allowed.is_accepted)
        self.assertEqual(blocked.reason, Reason.QUOTA_EXCEEDED)

    def test_override_records_every_passed_limit(self):
        event = make_event(registration_method=Event.RegistrationMethod.COORDINATOR)
        context = make_context(event=event, cohort_count=3, category_count=5, override=True)
        decision = evaluate(Candidate(1, 10), Actor.admin(), context)

        self.assertTrue(decision.is_accepted)
        self.assertEqual(decision.overridden, (Reason.COHORT_CAP, Reason.QUOTA_EXCEEDED))

    def test_student_override_flag_is_ignored(self):
        context = make_context(category_count=5, override=True)
        decision = evaluate(Candidate(1, 10), Actor.student(1), context)
        self.assertEqual(decision.verdict, Verdict.REJECT)

    def test_cohort_cap_is_reported_before_quota(self):
        event = make_event(registration_method=Event.RegistrationMethod.COORDINATOR)
        context = make_context(event=event, cohort_count=3, category_count=5)
        decision = evaluate(Candidate(1, 10), Actor.coordinator(FIRST), context)
        self.assertEqual(decision.reason, Reason.COHORT_CAP)
