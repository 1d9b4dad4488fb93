import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "festival_platform.settings")

import django

django.setup()

from django.test import SimpleTestCase

from registrations.models import Event, EventResult
from registrations.scoring import calculate_points, points_for


PARTICIPATED = EventResult.Participation.PARTICIPATED
ABSENT = EventResult.Participation.DID_NOT_PARTICIPATE


class ScoringTests(SimpleTestCase):
    def test_individual_positions(self):
        expected = {
            EventResult.Position.FIRST: 5,
            EventResult.Position.SECOND: 3,
            EventResult.Position.THIRD: 1,
            EventResult.Position.NONE: 0,
        }
        for position, points in expected.items():
            with self.subTest(position=position):
                result = calculate_points(Event.Mode.INDIVIDUAL, PARTICIPATED, position)
                self.assertEqual(result.points, points)

    def test_group_positions(self):
        expected = {
            EventResult.Position.FIRST: 10,
            EventResult.Position.SECOND: 5,
            EventResult.Position.THIRD: 0,
            EventResult.Position.NONE: 0,
        }
        for position, points in expected.items():
            with self.subTest(position=position):
                result = calculate_points(Event.Mode.GROUP, PARTICIPATED, position)
                self.assertEqual(result.points, points)

    def test_non_participation_penalty_resets_position(self):
        individual = calculate_points(Event.Mode.INDIVIDUAL, ABSENT, EventResult.Position.FIRST)
        group = calculate_points(Event.Mode.GROUP, ABSENT, EventResult.Position.SECOND)

        self.assertEqual(individual.points, -3)
        self.assertEqual(individual.position, EventResult.Position.NONE)
        self.assertEqual(group.points, -10)
        self.assertEqual(group.position, EventResult.Position.NONE)

    def test_accepts_plain_string_values(self):
        result = calculate_points("group", "participated", "first")
        self.assertEqual(result.points, 10)
        self.assertEqual(result.position, "first")

    def test_points_for_returns_the_bare_points(self):
        self.assertEqual(points_for(Event.Mode.INDIVIDUAL, PARTICIPATED, EventResult.Position.SECOND), 3)
        self.assertEqual(points_for(Event.Mode.GROUP, ABSENT, EventResult.Position.NONE), -10)
