import os
from unittest import mock

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "festival_platform.settings")

import django

django.setup()

from channels.exceptions import ChannelFull
from django.test import TestCase

from registrations import audit, services
from registrations.actors import Actor
from registrations.admission import Candidate
from registrations.models import AuditLog, Event, Registration, Student
from registrations.services import OutcomeKind


class FullChannelLayer:
    async def group_send(self, group, message):
        raise ChannelFull()


class AuditRecordTests(TestCase):
    def test_unserialisable_payload_is_still_recorded(self):
        with self.assertLogs("registrations.audit", level="WARNING"):
            log = audit.record(Actor.admin(), "registration_accepted", {"note": object()})

        self.assertIsNotNone(log)
        self.assertIn("unserialisable", log.payload)
        self.assertEqual(log.payload["actor"], {"kind": "admin"})

    def test_unserialisable_payload_does_not_fail_the_submission(self):
        student = Student.objects.create(name="Farah", roll_number="CV101", department="CIVIL", year="first")
        event = Event.objects.create(name="Poster", category=Event.Category.OFF_STAGE)
        real_as_dict = services.Outcome.as_dict

        def with_opaque_value(outcome):
            data = real_as_dict(outcome)
            data["widget"] = object()
            return data

        with mock.patch("registrations.audit.broadcast"), mock.patch.object(
            services.Outcome, "as_dict", with_opaque_value
        ):
            with self.assertLogs("registrations.audit", level="WARNING"):
                outcome = services.submit_registration(Candidate(student.pk, event.pk), Actor.coordinator("first"))

        self.assertEqual(outcome.kind, OutcomeKind.ACCEPTED)
        self.assertTrue(Registration.objects.filter(pk=outcome.registration_id).exists())
        self.assertTrue(AuditLog.objects.filter(action="registration_accepted").exists())


class BroadcastFailureTests(TestCase):
    def test_full_channel_is_logged_not_raised(self):
        with mock.patch("registrations.audit.get_channel_layer", return_value=FullChannelLayer()):
            with self.assertLogs("registrations.audit", level="WARNING") as logs:
                audit.broadcast("registration.outcome", {"student_id": 1})

        self.assertIn("broadcast of registration.outcome failed", logs.output[0])

    def test_missing_channel_layer_is_a_no_op(self):
        with mock.patch("registrations.audit.get_channel_layer", return_value=None):
            audit.broadcast("registration.outcome", {"student_id": 1})
