from __future__ import annotations

import json

from django.core.management.base import BaseCommand, CommandError

from registrations import services, settings_store
from registrations.actors import Actor


def _parse_value(raw: str):
    lowered = raw.strip().lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    try:
        return int(raw)
    except ValueError as exc:
        raise CommandError(f"Could not parse value '{raw}'; use an integer or true/false.") from exc


class Command(BaseCommand):
    """Show or update the festival registration policy."""

    help = "Print festival settings, or change them with --set key=value."

    def add_arguments(self, parser):
        parser.add_argument(
            "--set",
            dest="assignments",
            action="append",
            default=[],
            metavar="KEY=VALUE",
            help="Setting to change, e.g. max_on_stage_registrations=6 or scoreboard_visible=true",
        )

    def handle(self, *args, **options):
        changes = {}
        for assignment in options["assignments"]:
            key, sep, raw = assignment.partition("=")
            if not sep:
                raise CommandError(f"Expected KEY=VALUE, got '{assignment}'.")
            key = key.strip()
            if key not in settings_store.LIMIT_KEYS and key not in settings_store.TOGGLE_DEFAULTS:
                raise CommandError(f"Unknown setting '{key}'.")
            changes[key] = _parse_value(raw)

        if changes:
            changed = services.change_settings(Actor.admin(), changes)
            if changed:
                self.stdout.write(self.style.SUCCESS(f"Updated {', '.join(sorted(changed))}."))
            else:
                self.stdout.write("No settings changed.")

        self.stdout.write(json.dumps(settings_store.snapshot(), indent=2, sort_keys=True))
