from __future__ import annotations

"""
Static shimmer field drawn straight from the active mask.

Every sample is drawn as a small square whose opacity follows a slow
cosine wave over the surface. Every second sample additionally carries a
glow halo (circle or square, picked once by the sample's shape selector)
that pulses with the sample's own phase.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
import math

import numpy as np

from PyQt6.QtCore import QPointF, Qt
from PyQt6.QtGui import QPainter, QPen, QPolygonF

from .config import apply_default_config, config_float, config_int
from .mask_builder import Mask
from .slides import HslColor

ArrayLike = Union[float, np.ndarray]

SHIMMER_FREQ = 5.0
SHIMMER_TICK_DIVISOR = 10.0
SHIMMER_WEIGHT = 0.5
GLOW_WEIGHT = 0.2

# Square size as a fraction of surface width (regular / dense samples).
SIDE_RATIO = 1.0 / 150.0
DENSE_SIDE_RATIO = 1.0 / 250.0

_SIZE_KEY = 100_000


def shimmer_alpha(x: ArrayLike, y: ArrayLike, shape: ArrayLike, tick: int, opacity: float) -> ArrayLike:
    """Opacity of the base square of a sample at ``tick``."""
    wave = (1.0 + np.cos(x * SHIMMER_FREQ * y * SHIMMER_FREQ + tick / SHIMMER_TICK_DIVISOR)) / 2.0
    return wave * opacity * shape * SHIMMER_WEIGHT


def glow_opacity(phase: ArrayLike, tick: int, step: float) -> ArrayLike:
    """Clamped-positive pulse of a glow halo; the phase advances ``step`` per frame."""
    return np.maximum(0.0, np.sin((phase + tick * step) * math.pi * 2.0))


@dataclass
class _GroupArrays:
    color: HslColor
    x: np.ndarray
    y: np.ndarray
    phase: np.ndarray
    shape: np.ndarray
    dense: np.ndarray
    glow: np.ndarray  # bool: sample carries a halo


def _mask_arrays(mask: Mask) -> List[_GroupArrays]:
    """Convert a mask to per-group NumPy arrays (stable global sample order)."""
    out: List[_GroupArrays] = []
    offset = 0
    for group in mask.groups:
        n = len(group.samples)
        if n == 0:
            continue
        s = group.samples
        index = np.arange(offset, offset + n)
        out.append(
            _GroupArrays(
                color=group.color,
                x=np.fromiter((p.x for p in s), dtype=np.float64, count=n),
                y=np.fromiter((p.y for p in s), dtype=np.float64, count=n),
                phase=np.fromiter((p.phase for p in s), dtype=np.float64, count=n),
                shape=np.fromiter((p.shape for p in s), dtype=np.float64, count=n),
                dense=np.fromiter((p.dense for p in s), dtype=bool, count=n),
                # 2nd, 4th, 6th... sample in global order
                glow=(index % 2) == 1,
            )
        )
        offset += n
    return out


class StaticFieldRenderer:
    """Draw the persistent shimmer layer of a mask."""

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        self.config: Dict[str, Any] = apply_default_config(config if config is not None else {})
        self._mask: Optional[Mask] = None
        self._arrays: List[_GroupArrays] = []

    def _arrays_for(self, mask: Mask) -> List[_GroupArrays]:
        if mask is not self._mask:
            self._mask = mask
            self._arrays = _mask_arrays(mask)
        return self._arrays

    def render(
        self,
        painter: QPainter,
        mask: Optional[Mask],
        width: int,
        height: int,
        tick: int,
        opacity: float,
    ) -> None:
        if mask is None or opacity <= 0.0 or width <= 0 or height <= 0:
            return

        step = config_float(self.config, "glow_step")
        steps = config_int(self.config, "alpha_quantization_steps")
        side = max(1.0, width * SIDE_RATIO)
        dense_side = max(1.0, width * DENSE_SIDE_RATIO)

        for g in self._arrays_for(mask):
            px = g.x * width
            py = g.y * height
            sides = np.where(g.dense, dense_side, side)

            # Base squares, anchored at their top-left corner.
            alpha = shimmer_alpha(g.x, g.y, g.shape, tick, opacity)
            self._draw_batched(
                painter, g.color, px + sides / 2.0, py + sides / 2.0, sides, alpha, steps,
                Qt.PenCapStyle.SquareCap,
            )

            if not g.glow.any():
                continue

            gx = px[g.glow]
            gy = py[g.glow]
            gside = sides[g.glow]
            glow = glow_opacity(g.phase[g.glow], tick, step)
            padding = glow * gside * 0.5
            halo_alpha = opacity * glow * GLOW_WEIGHT
            halo_size = gside + padding * 2.0
            circle = g.shape[g.glow] < 0.5

            # Circles are centered on the sample; squares grow around the base square.
            self._draw_batched(
                painter, g.color, gx[circle], gy[circle], halo_size[circle], halo_alpha[circle], steps,
                Qt.PenCapStyle.RoundCap,
            )
            square = ~circle
            self._draw_batched(
                painter, g.color,
                gx[square] + gside[square] / 2.0, gy[square] + gside[square] / 2.0,
                halo_size[square], halo_alpha[square], steps,
                Qt.PenCapStyle.SquareCap,
            )

    def _draw_batched(
        self,
        painter: QPainter,
        color: HslColor,
        cx: np.ndarray,
        cy: np.ndarray,
        sizes: np.ndarray,
        alphas: np.ndarray,
        steps: int,
        cap: Qt.PenCapStyle,
    ) -> None:
        """Batch drawPoints() calls by quantized alpha and half-pixel size."""
        if cx.size == 0:
            return
        buckets = np.rint(np.clip(alphas, 0.0, 1.0) * (steps - 1)).astype(np.int64)
        visible = buckets > 0
        if not visible.any():
            return

        cx = cx[visible]
        cy = cy[visible]
        buckets = buckets[visible]
        size_keys = np.maximum(1, np.rint(sizes[visible] * 2.0)).astype(np.int64)
        keys = buckets * _SIZE_KEY + size_keys

        pen = QPen()
        pen.setCapStyle(cap)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        for key in np.unique(keys).tolist():
            sel = keys == key
            bucket, size_half = divmod(int(key), _SIZE_KEY)
            pen.setColor(color.to_qcolor(bucket / float(steps - 1)))
            pen.setWidthF(size_half / 2.0)
            painter.setPen(pen)
            pts = [QPointF(x, y) for x, y in zip(cx[sel].tolist(), cy[sel].tolist())]
            painter.drawPoints(QPolygonF(pts))
