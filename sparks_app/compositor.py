from __future__ import annotations

"""
Per-frame driver.

One call to Compositor.step() renders one frame:
  1. advance the global tick and the slide state machine,
  2. spawn a batch of particles from the active mask,
  3. clear the surface,
  4. draw the static field then the particles with additive blending,
  5. request the next frame.

Frames are requested through a FrameScheduler. The Qt implementation uses
a single-shot QTimer; tests can plug in a manual scheduler.
"""

from typing import Any, Callable, Dict, Optional, Sequence
import random
import sys

from PyQt6.QtCore import QObject, Qt, QTimer
from PyQt6.QtGui import QImage, QPainter

from .config import apply_default_config, config_color, config_int, make_rng
from .mask_builder import Mask, MaskBuilder
from .particles import ParticleSystem
from .slide_controller import SlideController, SlideState
from .slides import Slide
from .static_field import StaticFieldRenderer


# ---------------------------------------------------------------------------
# Frame scheduling
# ---------------------------------------------------------------------------


class FrameScheduler:
    """Host-provided "next frame" trigger."""

    def request(self, callback: Callable[[], None]) -> None:
        raise NotImplementedError

    def cancel(self) -> None:
        raise NotImplementedError


class QtFrameScheduler(FrameScheduler):
    """Single-shot QTimer based scheduler."""

    def __init__(self, interval_ms: int = 16, parent: Optional[QObject] = None) -> None:
        self._timer = QTimer(parent)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(1, int(interval_ms)))
        self._callback: Optional[Callable[[], None]] = None
        self._timer.timeout.connect(self._on_timeout)

    def set_interval(self, interval_ms: int) -> None:
        self._timer.setInterval(max(1, int(interval_ms)))

    @property
    def pending(self) -> bool:
        return self._timer.isActive()

    def request(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._timer.start()

    def cancel(self) -> None:
        self._timer.stop()
        self._callback = None

    def _on_timeout(self) -> None:
        callback = self._callback
        self._callback = None
        if callback is not None:
            callback()


# ---------------------------------------------------------------------------
# Compositor
# ---------------------------------------------------------------------------


class Compositor:
    """Wire mask cache, slide controller, particles and static field together."""

    def __init__(
        self,
        slides: Sequence[Slide],
        config: Optional[Dict[str, Any]] = None,
        scheduler: Optional[FrameScheduler] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config: Dict[str, Any] = apply_default_config(config if config is not None else {})
        rng = rng if rng is not None else make_rng(self.config)

        self.slides = list(slides)
        self.scheduler: FrameScheduler = (
            scheduler
            if scheduler is not None
            else QtFrameScheduler(config_int(self.config, "frame_interval_ms"))
        )

        self.mask_builder = MaskBuilder(self.config, rng=rng)
        self.particles = ParticleSystem(self.config, rng=rng)
        self.static_field = StaticFieldRenderer(self.config)
        self.controller = SlideController(
            self.slides,
            self.mask_builder,
            on_slide_loaded=lambda _index: self.particles.clear(),
        )

        self.tick: int = 0
        self.surface: Optional[QImage] = None
        self.on_frame: Optional[Callable[[], None]] = None
        self._running = False

    # ------------------------------------------------------------------
    # Surface management
    # ------------------------------------------------------------------
    @property
    def width(self) -> int:
        return self.surface.width() if self.surface is not None else 0

    @property
    def height(self) -> int:
        return self.surface.height() if self.surface is not None else 0

    @property
    def mask(self) -> Optional[Mask]:
        return self.controller.mask

    @property
    def running(self) -> bool:
        return self._running

    def attach_surface(self, surface: Optional[QImage]) -> None:
        """Use ``surface`` as the drawing surface and (re)build the mask cache for its size."""
        self.surface = surface
        if surface is None or surface.isNull():
            return
        if self.mask_builder.cache_size is None:
            self.mask_builder.build_cache(self.slides, surface.width(), surface.height())
        else:
            self.mask_builder.rebuild(surface.width(), surface.height())
        self.controller.refresh_mask()

    def resize(self, width: int, height: int) -> None:
        """Replace the surface with a new one of the given size."""
        width = max(1, int(width))
        height = max(1, int(height))
        if self.surface is not None and (self.surface.width(), self.surface.height()) == (width, height):
            return
        surface = QImage(width, height, QImage.Format.Format_ARGB32_Premultiplied)
        surface.fill(0)
        self.attach_surface(surface)

    # ------------------------------------------------------------------
    # Loop control
    # ------------------------------------------------------------------
    def start(self) -> bool:
        """
        Start the frame loop.

        Returns False (and starts nothing) when no usable surface is attached.
        """
        if self.surface is None or self.surface.isNull():
            print("[sparks] No drawing surface; animation not started.", file=sys.stderr)
            return False
        if self._running:
            return True
        self._running = True
        self.step()
        return True

    def stop(self) -> None:
        """Stop the loop and release the pending frame request."""
        self._running = False
        self.scheduler.cancel()

    def advance(self) -> None:
        """Manual "next slide" command."""
        self.controller.advance()

    # ------------------------------------------------------------------
    # Frame
    # ------------------------------------------------------------------
    def step(self) -> None:
        """Render one frame and request the next one while running."""
        surface = self.surface
        if surface is None or surface.isNull():
            return

        self.tick += 1
        self.controller.step()
        self.particles.spawn_batch(self.controller.mask)

        painter = QPainter(surface)
        try:
            self._render(painter, surface.width(), surface.height())
        finally:
            painter.end()

        if self.on_frame is not None:
            self.on_frame()
        if self._running:
            self.scheduler.request(self.step)

    def _render(self, painter: QPainter, width: int, height: int) -> None:
        painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_Source)
        background = config_color(self.config, "background_color")
        if background is None:
            painter.fillRect(0, 0, width, height, Qt.GlobalColor.transparent)
        else:
            painter.fillRect(0, 0, width, height, background)

        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_Plus)

        opacity = self.controller.opacity
        self.static_field.render(painter, self.controller.mask, width, height, self.tick, opacity)
        self.particles.update()
        self.particles.render(painter, width, height, opacity)

        painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_SourceOver)

    @property
    def state(self) -> SlideState:
        return self.controller.state
