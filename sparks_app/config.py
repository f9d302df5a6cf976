from __future__ import annotations

"""
Shared configuration helpers for TextSparks.

All components receive the same plain ``dict`` config. This module
centralizes:
  * the default values (``apply_default_config``),
  * the PluginParameter definitions a host UI can use to build controls,
  * small tolerant readers that never raise on malformed values.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import random

from PyQt6.QtGui import QColor


@dataclass
class PluginParameter:
    """
    Description of a single configurable parameter.

    For numeric parameters (type == "int" or "float"), ``minimum`` and
    ``maximum`` are also used to clamp values read from the config.
    """
    name: str
    label: str
    type: str  # "int", "float", "bool", "color"
    default: Any
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    choices: Optional[List[Any]] = None
    step: Optional[float] = None
    description: str = ""


def config_parameters() -> Dict[str, PluginParameter]:
    """Return the PluginParameter metadata of every config key."""
    params = [
        # Particles
        PluginParameter(
            name="spawn_rate",
            label="Particles per frame",
            type="int",
            default=50,
            minimum=0,
            maximum=2000,
            step=5,
            description="Number of new particles spawned from the active mask every frame.",
        ),
        PluginParameter(
            name="expire_out_of_bounds",
            label="Retire particles off-surface",
            type="bool",
            default=True,
            description="Retire a particle as soon as it leaves the drawing surface.",
        ),
        # Frame loop
        PluginParameter(
            name="frame_interval_ms",
            label="Frame interval (ms)",
            type="int",
            default=16,
            minimum=1,
            maximum=1000,
            step=1,
            description="Delay between two frames (~60 FPS at 16 ms).",
        ),
        PluginParameter(
            name="background_color",
            label="Background color",
            type="color",
            default="#111111",
            description="Color used to clear each frame. Empty or 'transparent' keeps the surface transparent.",
        ),
        # Mask rasterization
        PluginParameter(
            name="mask_raster_width",
            label="Mask raster width (px)",
            type="int",
            default=400,
            minimum=16,
            maximum=4000,
            step=16,
            description="Maximum width of the offscreen raster used to sample glyph pixels.",
        ),
        PluginParameter(
            name="mask_raster_max_height",
            label="Mask raster max height (px)",
            type="int",
            default=400,
            minimum=16,
            maximum=4000,
            step=16,
            description="Upper bound for the raster height (the raster keeps the surface aspect ratio).",
        ),
        PluginParameter(
            name="mask_font_family",
            label="Mask font family",
            type="str",
            default="Arial",
            description="Font family used to rasterize slide text (always bold).",
        ),
        PluginParameter(
            name="mask_font_px",
            label="Base font size (px)",
            type="int",
            default=40,
            minimum=4,
            maximum=400,
            step=1,
            description="Baseline pixel size of main and centered text before fitting.",
        ),
        PluginParameter(
            name="mask_min_font_px",
            label="Minimum font size (px)",
            type="int",
            default=10,
            minimum=1,
            maximum=100,
            step=1,
            description="Hard floor for the fitted font size.",
        ),
        PluginParameter(
            name="mask_outline_px",
            label="Glyph outline (px)",
            type="float",
            default=1.0,
            minimum=0.0,
            maximum=10.0,
            step=0.5,
            description="Width of the stroke added around glyphs before sampling. 0 disables it.",
        ),
        # Static field
        PluginParameter(
            name="glow_step",
            label="Glow phase step",
            type="float",
            default=0.0025,
            minimum=0.0,
            maximum=0.1,
            step=0.0005,
            description="Phase advance per frame of the glow halos.",
        ),
        PluginParameter(
            name="alpha_quantization_steps",
            label="Alpha quantization steps",
            type="int",
            default=16,
            minimum=4,
            maximum=64,
            step=1,
            description="Number of discrete alpha levels used by the batched point renderer.",
        ),
        # Determinism
        PluginParameter(
            name="random_seed",
            label="Random seed",
            type="int",
            default=-1,
            minimum=-1,
            maximum=1_000_000,
            step=1,
            description="Seed for reproducible visuals. -1 uses ambient randomness.",
        ),
    ]
    return {p.name: p for p in params}


def apply_default_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Ensure that the given config dict contains every expected key.

    Existing values are kept untouched, so partially filled configs
    (older deck files, tests) still work. Returns the same dict.
    """
    for name, param in config_parameters().items():
        config.setdefault(name, param.default)
    return config


# ---------------------------------------------------------------------------
# Tolerant readers
# ---------------------------------------------------------------------------


# Built once; the readers below run every frame.
_PARAMETERS: Dict[str, PluginParameter] = config_parameters()


def _bounds(key: str) -> tuple[Optional[float], Optional[float]]:
    param = _PARAMETERS.get(key)
    if param is None:
        return None, None
    return param.minimum, param.maximum


def _default(key: str, default: Any) -> Any:
    if default is not None:
        return default
    param = _PARAMETERS.get(key)
    return param.default if param is not None else None


def config_float(config: Dict[str, Any], key: str, default: Optional[float] = None) -> float:
    """Read a float, falling back to the default and clamping to the declared bounds."""
    fallback = float(_default(key, default) or 0.0)
    try:
        value = float(config.get(key, fallback))
    except Exception:
        value = fallback
    if value != value:  # NaN
        value = fallback
    lo, hi = _bounds(key)
    if lo is not None:
        value = max(float(lo), value)
    if hi is not None:
        value = min(float(hi), value)
    return value


def config_int(config: Dict[str, Any], key: str, default: Optional[int] = None) -> int:
    """Read an int, falling back to the default and clamping to the declared bounds."""
    fallback = int(_default(key, default) or 0)
    try:
        value = int(float(config.get(key, fallback)))
    except Exception:
        value = fallback
    lo, hi = _bounds(key)
    if lo is not None:
        value = max(int(lo), value)
    if hi is not None:
        value = min(int(hi), value)
    return value


def config_bool(config: Dict[str, Any], key: str, default: Optional[bool] = None) -> bool:
    value = config.get(key, _default(key, default))
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def config_color(config: Dict[str, Any], key: str, default: Optional[str] = None) -> Optional[QColor]:
    """
    Return a QColor from config[key], or None for a transparent value.

    Invalid colors fall back to the default.
    """
    raw = config.get(key, _default(key, default))
    if raw is None:
        return None
    raw = str(raw).strip()
    if not raw or raw.lower() == "transparent":
        return None
    color = QColor(raw)
    if not color.isValid():
        color = QColor(str(_default(key, default)))
    return color


def make_rng(config: Dict[str, Any]) -> random.Random:
    """Return a Random seeded from ``random_seed`` (ambient when negative)."""
    seed = config_int(config, "random_seed")
    if seed < 0:
        return random.Random()
    return random.Random(seed)
