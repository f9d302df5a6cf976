from __future__ import annotations

"""
Slide orchestration state machine.

    LOADING -> FADING_IN -> HOLDING -> FADING_OUT -> LOADING -> ...
                        \\-> HELD_IDLE (no dwell: waits for advance())

Every call to step() runs the handler of the current state once. The
machine never terminates; it wraps around the slide list forever.
"""

from enum import Enum
from typing import Callable, Dict, Optional, Sequence
import sys

from .mask_builder import Mask, MaskBuilder
from .slides import Slide

# Float tolerance for fade completion, so a rate of 0.1 completes in 10 ticks.
FADE_EPSILON = 1e-9


class SlideState(str, Enum):
    LOADING = "loading"
    FADING_IN = "fading_in"
    HOLDING = "holding"
    FADING_OUT = "fading_out"
    HELD_IDLE = "held_idle"


class SlideController:
    """
    Owns the active slide index, the global opacity and the dwell counter.

    Masks are owned by the MaskBuilder cache; the controller only
    references the one of the active slide.
    """

    def __init__(
        self,
        slides: Sequence[Slide],
        masks: MaskBuilder,
        on_slide_loaded: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.slides = list(slides)
        self.masks = masks
        self.on_slide_loaded = on_slide_loaded

        self.index: int = -1
        self.opacity: float = 0.0
        self.dwell: int = 0
        self.state: SlideState = SlideState.LOADING
        self.mask: Optional[Mask] = None

        self._handlers: Dict[SlideState, Callable[[], None]] = {
            SlideState.LOADING: self._load_next,
            SlideState.FADING_IN: self._fade_in,
            SlideState.HOLDING: self._hold,
            SlideState.FADING_OUT: self._fade_out,
            SlideState.HELD_IDLE: self._idle,
        }
        self._warned_empty = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def slide(self) -> Optional[Slide]:
        if 0 <= self.index < len(self.slides):
            return self.slides[self.index]
        return None

    def step(self) -> SlideState:
        """Run one tick of the current state. Returns the resulting state."""
        self._handlers[self.state]()
        self.opacity = max(0.0, min(1.0, self.opacity))
        return self.state

    def advance(self) -> None:
        """
        External "next" command.

        Fades the current slide out when it defines a fade-out and is
        visible, otherwise loads the next slide on the following tick.
        """
        if self.state is SlideState.LOADING:
            return
        slide = self.slide
        if slide is not None and slide.fade_out > 0.0 and self.opacity > 0.0:
            self.state = SlideState.FADING_OUT
        else:
            self._after_fade_out()

    def refresh_mask(self) -> None:
        """Re-fetch the active mask after the cache was rebuilt."""
        if self.slide is not None:
            self.mask = self.masks.mask_for(self.index)

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------
    def _load_next(self) -> None:
        if not self.slides:
            if not self._warned_empty:
                print("[sparks] No slides to show; the animation stays blank.", file=sys.stderr)
                self._warned_empty = True
            self.mask = None
            return

        self.index = (self.index + 1) % len(self.slides)
        self.mask = self.masks.mask_for(self.index)
        if self.mask is None:
            print(f"[sparks] No cached mask for slide {self.index}.", file=sys.stderr)

        if self.on_slide_loaded is not None:
            self.on_slide_loaded(self.index)

        if self.slides[self.index].fade_in > 0.0:
            self.opacity = 0.0
            self.state = SlideState.FADING_IN
        else:
            self._after_fade_in()

    def _fade_in(self) -> None:
        self.opacity += self.slides[self.index].fade_in
        if self.opacity >= 1.0 - FADE_EPSILON:
            self._after_fade_in()

    def _after_fade_in(self) -> None:
        self.opacity = 1.0
        if self.slides[self.index].dwell_ticks > 0:
            self.dwell = 0
            self.state = SlideState.HOLDING
        else:
            self.state = SlideState.HELD_IDLE

    def _hold(self) -> None:
        self.dwell += 1
        if self.dwell >= self.slides[self.index].dwell_ticks:
            if self.slides[self.index].fade_out > 0.0:
                self.state = SlideState.FADING_OUT
            else:
                self._after_fade_out()

    def _fade_out(self) -> None:
        self.opacity -= self.slides[self.index].fade_out
        if self.opacity <= FADE_EPSILON:
            self._after_fade_out()

    def _after_fade_out(self) -> None:
        self.opacity = 0.0
        self.state = SlideState.LOADING

    def _idle(self) -> None:
        pass
