"""Stamp settings: the raw payload supplied by the shell and its resolved form."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping

from cornerbrand.constants import (
    DEFAULT_SIZE_PRESET,
    IMAGE_SIZE_PERCENT_RANGE,
    MARGIN_PERCENT_RANGE,
    PDF_SIZE_PERCENT_RANGE,
    SIZE_PRESET_RATIOS,
)
from cornerbrand.errors import SettingsError


class Corner(Enum):
    TOP_LEFT = "Top Left"
    TOP_RIGHT = "Top Right"
    BOTTOM_LEFT = "Bottom Left"
    BOTTOM_RIGHT = "Bottom Right"

    @property
    def is_left(self) -> bool:
        return self in (Corner.TOP_LEFT, Corner.BOTTOM_LEFT)

    @property
    def is_top(self) -> bool:
        return self in (Corner.TOP_LEFT, Corner.TOP_RIGHT)


class StampTarget(Enum):
    """What is being stamped. Selects the explicit size clamp range."""
    IMAGE = "image"
    PDF = "pdf"

    @property
    def size_percent_range(self) -> tuple[float, float]:
        if self is StampTarget.PDF:
            return PDF_SIZE_PERCENT_RANGE
        return IMAGE_SIZE_PERCENT_RANGE


def _label_key(label: str) -> str:
    """'Bottom-Right', 'bottom_right' and 'BOTTOM RIGHT' all become 'bottomright'."""
    return re.sub(r"[\s_\-]+", "", label).lower()


_CORNERS_BY_KEY: dict[str, Corner] = {_label_key(c.value): c for c in Corner}


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# ============================================================
# RAW SETTINGS
# ============================================================

@dataclass(frozen=True)
class StampSettingsInput:
    """Settings exactly as supplied by the caller, before any validation."""
    position: str
    margin_percent: float
    size_preset: str = DEFAULT_SIZE_PRESET
    size_percent: float | None = None

    def with_size_percent(self, size_percent: float) -> StampSettingsInput:
        """Copy with the explicit size replaced (used for per-file overrides)."""
        return replace(self, size_percent=size_percent)

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "size_preset": self.size_preset,
            "size_percent": self.size_percent,
            "margin_percent": self.margin_percent,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StampSettingsInput:
        """
        Build from a payload using snake_case or camelCase keys.

        Raises:
            SettingsError: if a field is missing or has the wrong type.
        """
        if not isinstance(data, Mapping):
            raise SettingsError("Settings must be an object.")

        position = _pick(data, "position")
        if not isinstance(position, str):
            raise SettingsError("Position must be a text label.")

        size_preset = _pick(data, "size_preset", "sizePreset")
        if size_preset is None:
            size_preset = DEFAULT_SIZE_PRESET
        elif not isinstance(size_preset, str):
            raise SettingsError("Size preset must be a text label.")

        size_percent = _pick(data, "size_percent", "sizePercent")
        if size_percent is not None and not _is_number(size_percent):
            raise SettingsError("Size percentage must be a number.")

        margin_percent = _pick(data, "margin_percent", "marginPercent")
        if not _is_number(margin_percent):
            raise SettingsError("Margin percentage must be a number.")

        return cls(
            position=position,
            margin_percent=float(margin_percent),
            size_preset=size_preset,
            size_percent=None if size_percent is None else float(size_percent),
        )


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ============================================================
# RESOLVED SETTINGS
# ============================================================

@dataclass(frozen=True)
class ResolvedSettings:
    position: Corner
    size_ratio: float
    margin_percent: float


def parse_position(label: str) -> Corner:
    corner = _CORNERS_BY_KEY.get(_label_key(label))
    if corner is None:
        raise SettingsError(f"Invalid position: '{label}'.")
    return corner


def preset_ratio(label: str) -> float:
    ratio = SIZE_PRESET_RATIOS.get(label.strip().lower())
    if ratio is None:
        raise SettingsError(f"Invalid size preset: '{label}'.")
    return ratio


def resolve_settings(raw: StampSettingsInput, target: StampTarget) -> ResolvedSettings:
    """
    Validate and normalize raw settings for one kind of target.

    A finite explicit size percentage wins over the preset and is clamped to
    the target's range; otherwise the preset label selects a fixed ratio.
    The margin is always clamped to [0, 20].

    Raises:
        SettingsError: unknown position or preset label, or a NaN margin.
    """
    position = parse_position(raw.position)

    if raw.size_percent is not None and math.isfinite(raw.size_percent):
        low, high = target.size_percent_range
        size_ratio = clamp(raw.size_percent, low, high) / 100.0
    else:
        size_ratio = preset_ratio(raw.size_preset)

    if math.isnan(raw.margin_percent):
        raise SettingsError("Margin percentage must be a number.")
    margin_percent = clamp(raw.margin_percent, *MARGIN_PERCENT_RANGE)

    return ResolvedSettings(
        position=position,
        size_ratio=size_ratio,
        margin_percent=margin_percent,
    )
