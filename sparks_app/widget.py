from __future__ import annotations

"""
Qt widget hosting a Compositor.

The widget owns the surface lifecycle: it creates a surface matching its
size, forwards resizes (which rebuild the mask cache), and simply blits the
compositor's surface in paintEvent. The compositor's frame loop calls
update() after every frame.
"""

from typing import Any, Dict, Optional, Sequence

from PyQt6.QtCore import QSize
from PyQt6.QtGui import QPainter
from PyQt6.QtWidgets import QSizePolicy, QWidget

from .compositor import Compositor, QtFrameScheduler
from .config import apply_default_config, config_int
from .slides import Slide


class SparksWidget(QWidget):
    """Preview widget for a slide deck rendered as text sparks."""

    def __init__(
        self,
        slides: Sequence[Slide],
        config: Optional[Dict[str, Any]] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.config: Dict[str, Any] = apply_default_config(config if config is not None else {})

        self._scheduler = QtFrameScheduler(config_int(self.config, "frame_interval_ms"), parent=self)
        self.compositor = Compositor(slides, self.config, scheduler=self._scheduler)
        self.compositor.on_frame = self.update

        self.setMinimumSize(320, 120)
        self.setSizePolicy(
            QSizePolicy.Policy.Expanding,
            QSizePolicy.Policy.Expanding,
        )

    def sizeHint(self) -> QSize:  # type: ignore[override]
        return QSize(960, 540)

    # ------------------------------------------------------------------
    # Loop control
    # ------------------------------------------------------------------
    def start(self) -> bool:
        """Create the surface for the current size and start the frame loop."""
        self.compositor.resize(self.width(), self.height())
        return self.compositor.start()

    def stop(self) -> None:
        self.compositor.stop()

    def advance(self) -> None:
        self.compositor.advance()

    def set_frame_interval(self, interval_ms: int) -> None:
        """Adjust the delay between frames."""
        self.config["frame_interval_ms"] = int(interval_ms)
        self._scheduler.set_interval(config_int(self.config, "frame_interval_ms"))

    # ------------------------------------------------------------------
    # State (de)serialization
    # ------------------------------------------------------------------
    def save_state(self) -> Dict[str, Any]:
        """Return a JSON-serializable snapshot of the configuration."""
        return dict(self.config)

    def load_state(self, state: Dict[str, Any]) -> None:
        """
        Restore configuration from a previously saved state.

        The frame interval, background color, glow step and alpha
        quantization apply live. Spawn settings, mask keys and the seed
        are read at construction and take effect on the next widget.
        """
        if not isinstance(state, dict):
            return
        self.config.update(state)
        self._scheduler.set_interval(config_int(self.config, "frame_interval_ms"))

    # ------------------------------------------------------------------
    # Qt events
    # ------------------------------------------------------------------
    def resizeEvent(self, event) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        if self.compositor.surface is not None:
            self.compositor.resize(self.width(), self.height())

    def paintEvent(self, event) -> None:  # type: ignore[override]
        _ = event
        surface = self.compositor.surface
        if surface is None or surface.isNull():
            return
        painter = QPainter(self)
        painter.drawImage(0, 0, surface)
        painter.end()

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.stop()
        super().closeEvent(event)
