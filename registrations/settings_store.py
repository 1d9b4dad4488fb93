"""Festival policy settings stored as key/value rows.

Values follow the shape used by the admin screens: numeric limits are stored
as ``{"limit": n}`` and toggles as ``{"enabled": bool}``.
"""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.db import transaction

from .admission import QuotaSettings
from .models import Setting

logger = logging.getLogger(__name__)

MAX_ON_STAGE = "max_on_stage_registrations"
MAX_OFF_STAGE = "max_off_stage_registrations"
AUTO_APPROVE = "auto_approve_registrations"
REGISTRATION_OPEN = "global_registration_open"
SCOREBOARD_VISIBLE = "scoreboard_visible"
ALLOW_WITHDRAWAL = "allow_student_withdrawal"

LIMIT_KEYS = (MAX_ON_STAGE, MAX_OFF_STAGE)
TOGGLE_DEFAULTS = {
    AUTO_APPROVE: False,
    REGISTRATION_OPEN: True,
    SCOREBOARD_VISIBLE: False,
    ALLOW_WITHDRAWAL: True,
}


def default_limits() -> dict[str, int]:
    limits = {MAX_ON_STAGE: 5, MAX_OFF_STAGE: 4}
    limits.update(getattr(settings, "FESTIVAL_DEFAULT_LIMITS", {}))
    return limits


def _values(keys) -> dict[str, Any]:
    return dict(Setting.objects.filter(key__in=keys).values_list("key", "value"))


def _limit(raw: Any, default: int) -> int:
    if isinstance(raw, dict):
        raw = raw.get("limit")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return max(value, 0)


def _enabled(raw: Any, default: bool) -> bool:
    if isinstance(raw, dict):
        raw = raw.get("enabled")
    if raw is None:
        return default
    return bool(raw)


def get_quota_settings() -> QuotaSettings:
    """Return the active per-student category limits."""

    defaults = default_limits()
    stored = _values(LIMIT_KEYS)
    return QuotaSettings(
        on_stage_limit=_limit(stored.get(MAX_ON_STAGE), defaults[MAX_ON_STAGE]),
        off_stage_limit=_limit(stored.get(MAX_OFF_STAGE), defaults[MAX_OFF_STAGE]),
    )


def is_enabled(key: str) -> bool:
    stored = _values([key])
    return _enabled(stored.get(key), TOGGLE_DEFAULTS.get(key, False))


def is_auto_approve_enabled() -> bool:
    return is_enabled(AUTO_APPROVE)


def is_registration_open() -> bool:
    return is_enabled(REGISTRATION_OPEN)


def snapshot() -> dict[str, Any]:
    """Return every known setting as plain values."""

    quotas = get_quota_settings()
    stored = _values(TOGGLE_DEFAULTS.keys())
    data: dict[str, Any] = {
        MAX_ON_STAGE: quotas.on_stage_limit,
        MAX_OFF_STAGE: quotas.off_stage_limit,
    }
    for key, default in TOGGLE_DEFAULTS.items():
        data[key] = _enabled(stored.get(key), default)
    return data


@transaction.atomic
def update_settings(changes: dict[str, Any], *, user=None) -> dict[str, Any]:
    """Persist ``changes`` and return the keys whose values actually changed.

    Limits apply to new admission decisions only; existing registrations are
    never re-validated.
    """

    current = snapshot()
    changed: dict[str, Any] = {}
    for key, value in changes.items():
        if key in LIMIT_KEYS:
            value = _limit(value, current[key])
            stored = {"limit": value}
        elif key in TOGGLE_DEFAULTS:
            value = bool(value)
            stored = {"enabled": value}
        else:
            raise KeyError(key)
        if current.get(key) == value:
            continue
        Setting.objects.update_or_create(key=key, defaults={"value": stored, "updated_by": user})
        changed[key] = value
    if changed:
        logger.info("festival settings updated: %s", changed)
    return changed
