from __future__ import annotations

"""
Text-to-sample mask builder.

A slide's text groups are rasterized on a private offscreen QImage and every
pixel with non-zero alpha becomes a normalized MaskSample. The resulting Mask
is immutable and cached per slide until the surface is structurally resized.

Layout per role:
  - main:    top anchored, fitted to 90% of the raster width,
  - center:  vertically centered, same fitting,
  - caption: bottom anchored, 60% of the main size, each pixel sampled twice.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
import random
import sys

import numpy as np

from PyQt6.QtCore import QPointF
from PyQt6.QtGui import (
    QColor,
    QFont,
    QFontMetricsF,
    QImage,
    QPainter,
    QPainterPath,
    QPen,
)

from .config import apply_default_config, config_float, config_int, make_rng
from .slides import HslColor, Slide, TextGroup, TextRole

FIT_RATIO = 0.9
CAPTION_SCALE = 0.6
CAPTION_FALLBACK_PX = 30.0

# Vertical margin of the top/bottom anchored roles, as a fraction of raster height.
EDGE_MARGIN = 0.05


# ---------------------------------------------------------------------------
# Mask data structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MaskSample:
    """
    One sampled glyph pixel.

    x, y are normalized to the raster size. phase and shape are drawn once
    at build time and stay fixed for the lifetime of the mask.
    """

    x: float
    y: float
    phase: float
    shape: float
    dense: bool = False


@dataclass(frozen=True)
class GroupMask:
    color: HslColor
    samples: Tuple[MaskSample, ...] = ()


@dataclass(frozen=True)
class Mask:
    groups: Tuple[GroupMask, ...] = ()

    @property
    def sample_count(self) -> int:
        return sum(len(g.samples) for g in self.groups)

    @property
    def is_empty(self) -> bool:
        return self.sample_count == 0


EMPTY_MASK = Mask()


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class MaskBuilder:
    """Build and cache one Mask per slide."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config: Dict[str, Any] = apply_default_config(config if config is not None else {})
        self.rng = rng if rng is not None else make_rng(self.config)

        self._slides: List[Slide] = []
        self._cache: List[Mask] = []
        self._cache_size: Optional[Tuple[int, int]] = None

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------
    def build_cache(self, slides: Sequence[Slide], surface_width: int, surface_height: int) -> List[Mask]:
        """Build the mask of every slide for the given surface size."""
        self._slides = list(slides)
        self._cache = [
            self.build_mask(slide.groups, surface_width, surface_height) for slide in self._slides
        ]
        self._cache_size = (int(surface_width), int(surface_height))
        return self._cache

    def rebuild(self, surface_width: int, surface_height: int) -> List[Mask]:
        """Rebuild the cache after a resize. Same-size calls keep the cache."""
        if self._cache_size == (int(surface_width), int(surface_height)):
            return self._cache
        return self.build_cache(self._slides, surface_width, surface_height)

    def mask_for(self, index: int) -> Optional[Mask]:
        if 0 <= index < len(self._cache):
            return self._cache[index]
        return None

    @property
    def masks(self) -> List[Mask]:
        return list(self._cache)

    @property
    def cache_size(self) -> Optional[Tuple[int, int]]:
        """Surface size the cache was built for (None before the first build)."""
        return self._cache_size

    # ------------------------------------------------------------------
    # Raster geometry
    # ------------------------------------------------------------------
    def raster_size(self, surface_width: int, surface_height: int) -> Tuple[int, int]:
        """
        Return the working raster size for a surface.

        The raster is at most ``mask_raster_width`` wide and keeps the
        surface aspect ratio, so normalized samples are not distorted.
        """
        sw = max(1, int(surface_width))
        sh = max(1, int(surface_height))
        raster_w = max(1, min(sw, config_int(self.config, "mask_raster_width")))
        raster_h = int(round(raster_w * sh / float(sw)))
        raster_h = max(1, min(config_int(self.config, "mask_raster_max_height"), raster_h))
        return raster_w, raster_h

    def _font(self, pixel_size: float) -> QFont:
        font = QFont(str(self.config.get("mask_font_family") or "Arial"))
        font.setBold(True)
        font.setPixelSize(max(1, int(pixel_size)))
        return font

    def fit_font_px(self, text: str, base_px: float, raster_w: int) -> int:
        """
        Scale ``base_px`` down so ``text`` fits within 90% of the raster width.

        The result never drops below ``mask_min_font_px``.
        """
        floor = config_int(self.config, "mask_min_font_px")
        size = float(base_px)
        width = QFontMetricsF(self._font(base_px)).horizontalAdvance(text) if text else 0.0
        desired = raster_w * FIT_RATIO
        if width > desired > 0.0:
            size = base_px * desired / width
        return max(floor, int(size))

    @staticmethod
    def _baseline(role: TextRole, fm: QFontMetricsF, raster_h: int) -> float:
        margin = raster_h * EDGE_MARGIN
        if role is TextRole.MAIN:
            return margin + fm.ascent()
        if role is TextRole.CAPTION:
            return raster_h - margin - fm.descent()
        return raster_h / 2.0 + (fm.ascent() - fm.descent()) / 2.0

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------
    def build_mask(
        self,
        text_groups: Sequence[TextGroup],
        surface_width: int,
        surface_height: int,
    ) -> Mask:
        """
        Rasterize ``text_groups`` and return their Mask.

        The result always has one GroupMask per input group, in input order.
        Groups with empty text (or a degenerate surface) have no samples.
        """
        groups = list(text_groups or [])
        if not groups:
            return EMPTY_MASK

        results: List[GroupMask] = [GroupMask(color=g.color) for g in groups]
        if int(surface_width) <= 0 or int(surface_height) <= 0:
            return Mask(groups=tuple(results))

        raster_w, raster_h = self.raster_size(surface_width, surface_height)
        base_px = min(float(config_int(self.config, "mask_font_px")), raster_h * 0.6)
        main_px: Optional[int] = None

        for role in (TextRole.MAIN, TextRole.CENTER, TextRole.CAPTION):
            indices = [i for i, g in enumerate(groups) if g.role is role]
            if not indices:
                continue

            separator = " " if role.dense else ""
            joined = separator.join(groups[i].text for i in indices)

            if role is TextRole.CAPTION:
                role_base = CAPTION_SCALE * (main_px if main_px is not None else CAPTION_FALLBACK_PX)
            else:
                role_base = base_px
            px = self.fit_font_px(joined, role_base, raster_w)
            if role is TextRole.MAIN:
                main_px = px

            font = self._font(px)
            fm = QFontMetricsF(font)
            x = (raster_w - fm.horizontalAdvance(joined)) / 2.0
            baseline = self._baseline(role, fm, raster_h)
            gap = fm.horizontalAdvance(" ") if role.dense else 0.0

            for i in indices:
                group = groups[i]
                samples = self._sample_text(
                    group.text, font, x, baseline, raster_w, raster_h, role.dense
                )
                results[i] = GroupMask(color=group.color, samples=samples)
                x += fm.horizontalAdvance(group.text) + gap

        return Mask(groups=tuple(results))

    def _sample_text(
        self,
        text: str,
        font: QFont,
        x: float,
        baseline: float,
        raster_w: int,
        raster_h: int,
        dense: bool,
    ) -> Tuple[MaskSample, ...]:
        """Render ``text`` on a scoped raster and sample its opaque pixels."""
        if not text:
            return ()

        try:
            alpha = self._render_alpha(text, font, x, baseline, raster_w, raster_h)
        except Exception as exc:
            print(f"[sparks] Could not rasterize {text!r}: {exc}", file=sys.stderr)
            return ()

        # Row-major order, matching a top-to-bottom scan of the raster.
        ys, xs = np.nonzero(alpha > 0)
        inv_w = 1.0 / raster_w
        inv_h = 1.0 / raster_h
        rnd = self.rng.random

        samples: List[MaskSample] = []
        for row, col in zip(ys.tolist(), xs.tolist()):
            sample = MaskSample(
                x=col * inv_w,
                y=row * inv_h,
                phase=rnd(),
                shape=rnd(),
                dense=dense,
            )
            samples.append(sample)
            if dense:
                samples.append(sample)
        return tuple(samples)

    def _render_alpha(
        self,
        text: str,
        font: QFont,
        x: float,
        baseline: float,
        raster_w: int,
        raster_h: int,
    ) -> np.ndarray:
        img = QImage(raster_w, raster_h, QImage.Format.Format_ARGB32_Premultiplied)
        img.fill(0)

        path = QPainterPath()
        path.addText(QPointF(x, baseline), font, text)

        qp = QPainter(img)
        try:
            qp.setRenderHint(QPainter.RenderHint.Antialiasing, True)
            white = QColor(255, 255, 255)
            qp.fillPath(path, white)
            outline = config_float(self.config, "mask_outline_px")
            if outline > 0.0:
                qp.strokePath(path, QPen(white, outline))
        finally:
            qp.end()

        buf = img.constBits()
        buf.setsize(img.sizeInBytes())
        bpl = img.bytesPerLine()
        raw = np.frombuffer(buf, dtype=np.uint8).reshape((raster_h, bpl))
        return raw[:, 3::4][:, :raster_w].copy()
