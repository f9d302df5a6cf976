from __future__ import annotations

"""
Slide deck data model.

A deck is an ordered list of Slide records. Each slide carries its own
timing (dwell ticks, fade rates) and an ordered list of TextGroup records.

Timing in deck files is expressed in milliseconds and converted here to
per-tick values:
  * dwell ticks = time_ms * TICKS_PER_MS
  * fade rate   = FADE_SCALE_MS / fade_ms (opacity change per tick)
"""

import json
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from PyQt6.QtGui import QColor

TICKS_PER_MS = 0.05
FADE_SCALE_MS = 50.0

# Baseline fade when a slide does not declare a usable duration.
DEFAULT_FADE_MS = 1000.0


# ---------------------------------------------------------------------------
# Colors and roles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HslColor:
    """Hue in degrees, saturation and lightness in percent."""

    h: float = 0.0
    s: float = 100.0
    l: float = 50.0

    def to_qcolor(self, alpha: float = 1.0) -> QColor:
        hue = (int(self.h) % 360) / 360.0
        sat = max(0.0, min(100.0, float(self.s))) / 100.0
        light = max(0.0, min(100.0, float(self.l))) / 100.0
        return QColor.fromHslF(hue, sat, light, max(0.0, min(1.0, float(alpha))))


class TextRole(str, Enum):
    """Semantic role of a text group: drives vertical placement and density."""

    MAIN = "main"
    CENTER = "center"
    CAPTION = "caption"

    @property
    def dense(self) -> bool:
        return self is TextRole.CAPTION

    @classmethod
    def parse(cls, raw: Any) -> "TextRole":
        """Map a raw role name (including markup aliases) to a TextRole."""
        key = str(raw or "").strip().lower()
        return _ROLE_ALIASES.get(key, cls.CENTER)


_ROLE_ALIASES = {
    "main": TextRole.MAIN,
    "main-name": TextRole.MAIN,
    "top": TextRole.MAIN,
    "center": TextRole.CENTER,
    "center-name": TextRole.CENTER,
    "middle": TextRole.CENTER,
    "caption": TextRole.CAPTION,
    "sections": TextRole.CAPTION,
    "bottom": TextRole.CAPTION,
}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextGroup:
    text: str
    color: HslColor = field(default_factory=HslColor)
    role: TextRole = TextRole.CENTER


@dataclass(frozen=True)
class Slide:
    """
    One timed unit of displayed text groups.

    dwell_ticks == 0 means the slide is held until an external "next".
    A fade rate of 0 means the corresponding fade is instant.
    """

    dwell_ticks: float = 0.0
    fade_in: float = 0.0
    fade_out: float = 0.0
    groups: Tuple[TextGroup, ...] = ()


# ---------------------------------------------------------------------------
# Conversion from raw records
# ---------------------------------------------------------------------------


def _number(raw: Dict[str, Any], key: str, default: float) -> float:
    if key not in raw:
        return default
    try:
        value = float(raw[key])
    except Exception:
        return default
    if value != value or value in (float("inf"), float("-inf")):
        return default
    return value


def fade_rate_from_ms(duration_ms: Optional[float]) -> float:
    """
    Convert a fade duration to an opacity change per tick.

    None falls back to DEFAULT_FADE_MS; zero or negative durations mean no fade.
    """
    if duration_ms is None:
        duration_ms = DEFAULT_FADE_MS
    if duration_ms <= 0.0:
        return 0.0
    return FADE_SCALE_MS / duration_ms


def dwell_ticks_from_ms(duration_ms: float) -> float:
    return max(0.0, duration_ms) * TICKS_PER_MS


def text_group_from_dict(raw: Any) -> TextGroup:
    if isinstance(raw, str):
        return TextGroup(text=raw.strip())
    if not isinstance(raw, dict):
        return TextGroup(text="")
    color = HslColor(
        h=_number(raw, "hue", 0.0),
        s=_number(raw, "saturation", 100.0),
        l=_number(raw, "lightness", 50.0),
    )
    return TextGroup(
        text=str(raw.get("text") or "").strip(),
        color=color,
        role=TextRole.parse(raw.get("role")),
    )


def slide_from_dict(raw: Any) -> Slide:
    """
    Build a Slide from a raw record.

    Missing or malformed timing values fall back to baseline defaults
    (1000 ms fades, no dwell).
    """
    if not isinstance(raw, dict):
        raw = {}

    fade_in_ms = _number(raw, "fade_in_ms", DEFAULT_FADE_MS)
    fade_out_ms = _number(raw, "fade_out_ms", DEFAULT_FADE_MS)
    time_ms = _number(raw, "time_ms", 0.0)

    texts = raw.get("texts") or []
    if not isinstance(texts, list):
        texts = []

    return Slide(
        dwell_ticks=dwell_ticks_from_ms(time_ms),
        fade_in=fade_rate_from_ms(fade_in_ms),
        fade_out=fade_rate_from_ms(fade_out_ms),
        groups=tuple(text_group_from_dict(t) for t in texts),
    )


def slides_from_records(records: Iterable[Any]) -> List[Slide]:
    return [slide_from_dict(r) for r in records]


def load_slides(path: Union[str, Path]) -> List[Slide]:
    """
    Load a JSON deck file.

    The file holds either a bare list of slide records or an object with a
    "slides" list. Read or parse errors yield an empty deck.
    """
    deck_path = Path(path)
    try:
        with deck_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except Exception as exc:
        print(f"[sparks] Could not read deck {deck_path}: {exc}", file=sys.stderr)
        return []

    if isinstance(data, dict):
        data = data.get("slides", [])
    if not isinstance(data, list):
        print(f"[sparks] Deck {deck_path} has no slide list.", file=sys.stderr)
        return []

    slides = slides_from_records(data)
    if not slides:
        print(f"[sparks] Deck {deck_path} is empty; the animation will stay blank.", file=sys.stderr)
    return slides


DEMO_DECK: List[Dict[str, Any]] = [
    {
        "time_ms": 3000,
        "fade_in_ms": 800,
        "fade_out_ms": 800,
        "texts": [
            {"text": "Text", "hue": 200, "saturation": 90, "lightness": 60, "role": "center"},
            {"text": "Sparks", "hue": 30, "saturation": 100, "lightness": 55, "role": "center"},
        ],
    },
    {
        "time_ms": 4000,
        "fade_in_ms": 600,
        "fade_out_ms": 1200,
        "texts": [
            {"text": "Glowing", "hue": 320, "saturation": 80, "lightness": 60, "role": "main"},
            {"text": "pixels from glyphs", "hue": 180, "saturation": 70, "lightness": 55, "role": "caption"},
        ],
    },
]
