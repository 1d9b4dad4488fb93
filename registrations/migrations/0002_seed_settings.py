from django.db import migrations


DEFAULTS = {
    "max_on_stage_registrations": {"limit": 5},
    "max_off_stage_registrations": {"limit": 4},
    "auto_approve_registrations": {"enabled": False},
    "global_registration_open": {"enabled": True},
    "scoreboard_visible": {"enabled": False},
    "allow_student_withdrawal": {"enabled": True},
}


def seed_settings(apps, schema_editor):
    Setting = apps.get_model("registrations", "Setting")
    for key, value in DEFAULTS.items():
        Setting.objects.get_or_create(key=key, defaults={"value": value})


def unseed_settings(apps, schema_editor):
    Setting = apps.get_model("registrations", "Setting")
    Setting.objects.filter(key__in=list(DEFAULTS)).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("registrations", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_settings, reverse_code=unseed_settings),
    ]
