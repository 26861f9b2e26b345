"""
@file timings.py
@brief Default timeouts, settle pauses and named presets.

Timeout groups (``resolve``, ``adb_command``) carry a ``timeout`` and a
polling ``interval``; pauses are plain seconds. A preset is just a set of
overrides layered on the defaults with ``merge_timing_values``.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Dict, Mapping, Optional

TIMEOUT_FIELDS: Dict[str, Dict[str, float]] = {
    "resolve": {"timeout": 30.0, "interval": 0.5},
    "adb_command": {"timeout": 20.0, "interval": 0.0},
}

PAUSE_FIELDS: Dict[str, float] = {
    "double_tap_pause": 0.1,
    "focus_pause": 0.2,
    "scroll_settle_pause": 0.5,
    "swipe_duration": 0.3,
}

PRESET_OVERRIDES: Dict[str, Dict[str, Any]] = {
    # Shorter settle times for a local emulator.
    "fast": {
        "resolve": {"interval": 0.25},
        "double_tap_pause": 0.05,
        "focus_pause": 0.1,
        "scroll_settle_pause": 0.3,
        "swipe_duration": 0.2,
    },
    "slow": {
        "resolve": {"interval": 1.0},
        "adb_command": {"timeout": 40.0},
        "double_tap_pause": 0.15,
        "focus_pause": 0.4,
        "scroll_settle_pause": 1.0,
        "swipe_duration": 0.5,
    },
    # Headless emulators on shared runners: slow adb, slower animations.
    "ci": {
        "resolve": {"interval": 1.0},
        "adb_command": {"timeout": 60.0},
        "focus_pause": 0.5,
        "scroll_settle_pause": 1.0,
        "swipe_duration": 0.5,
    },
}

PRESETS = ("default",) + tuple(PRESET_OVERRIDES)


def normalize_preset(name: Optional[str]) -> str:
    key = (name or "default").lower()
    if key not in PRESETS:
        raise ValueError(f"Unknown timing preset: {name}. Available: {', '.join(PRESETS)}")
    return key


def merge_timing_values(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Layer ``overrides`` on a copy of ``base``.

    Timeout groups merge key by key, so ``{"resolve": {"timeout": 5}}`` keeps
    the current interval.

    @throws ValueError on an unknown field or a malformed timeout group
    """
    merged = deepcopy(dict(base))
    for key, value in overrides.items():
        if key in TIMEOUT_FIELDS:
            if not isinstance(value, Mapping) or set(value) - {"timeout", "interval"}:
                raise ValueError(f"Invalid override for {key}: {value}")
            merged[key].update({k: v for k, v in value.items() if v is not None})
        elif key in PAUSE_FIELDS:
            merged[key] = value
        else:
            raise ValueError(f"Unknown TimeConfig field: {key}")
    return merged


def preset_values(name: Optional[str] = None) -> Dict[str, Any]:
    """Defaults with the named preset applied."""
    key = normalize_preset(name)
    defaults = {**deepcopy(TIMEOUT_FIELDS), **PAUSE_FIELDS}
    return merge_timing_values(defaults, PRESET_OVERRIDES.get(key, {}))
