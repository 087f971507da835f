"""Persist the last-used stamp settings between sessions."""
from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass
from typing import Any

from cornerbrand.constants import (
    DEFAULT_POSITION,
    DEFAULT_SIZE_PRESET,
    DEFAULT_STORED_SIZE_PERCENT,
    LEGACY_PRESET_PERCENTS,
    STORED_SIZE_PERCENT_RANGE,
)
from cornerbrand.errors import SettingsError
from cornerbrand.geometry import round_half_up
from cornerbrand.settings import StampSettingsInput, parse_position

logger = logging.getLogger(__name__)


@dataclass
class StoredSettings:
    """What the UI remembers: a corner and an explicit size percentage."""
    position: str = DEFAULT_POSITION
    size_percent: int = DEFAULT_STORED_SIZE_PERCENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "size_percent": self.size_percent,
        }

    def to_input(self, margin_percent: float) -> StampSettingsInput:
        return StampSettingsInput(
            position=self.position,
            margin_percent=margin_percent,
            size_preset=DEFAULT_SIZE_PRESET,
            size_percent=float(self.size_percent),
        )


def _legacy_percent(value: Any) -> int | None:
    if not isinstance(value, str):
        return None
    return LEGACY_PRESET_PERCENTS.get(value.strip().lower())


def sanitize_settings(data: Any) -> StoredSettings:
    """
    Coerce anything (parsed JSON, None...) into valid stored settings.

    - Unknown positions fall back to the default corner.
    - A finite ``size_percent`` is rounded and clamped to [1, 50].
    - Otherwise a legacy ``size_preset`` label maps to 8/12/16 percent.
    """
    obj = data if isinstance(data, dict) else {}

    position = DEFAULT_POSITION
    raw_position = obj.get("position")
    if isinstance(raw_position, str):
        try:
            position = parse_position(raw_position).value
        except SettingsError:
            pass

    size_percent: int | None = None
    raw_size = obj.get("size_percent", obj.get("sizePercent"))
    if (
        isinstance(raw_size, (int, float))
        and not isinstance(raw_size, bool)
        and math.isfinite(raw_size)
    ):
        low, high = STORED_SIZE_PERCENT_RANGE
        size_percent = max(low, min(high, round_half_up(raw_size)))
    if size_percent is None:
        size_percent = _legacy_percent(obj.get("size_preset", obj.get("sizePreset")))
    if size_percent is None:
        size_percent = DEFAULT_STORED_SIZE_PERCENT

    return StoredSettings(position=position, size_percent=size_percent)


def load_settings(filepath: str) -> StoredSettings:
    """Load settings; defaults when the file is missing or unreadable."""
    if not os.path.exists(filepath):
        return StoredSettings()
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", filepath, e)
        return StoredSettings()
    return sanitize_settings(data)


def save_settings(filepath: str, settings: StoredSettings) -> tuple[bool, str]:
    try:
        folder = os.path.dirname(filepath)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2, ensure_ascii=False)
        return True, "Settings saved."
    except OSError as e:
        logger.warning("Could not save settings to %s: %s", filepath, e)
        return False, f"Failed to save settings: {e}"
