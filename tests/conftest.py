"""
Shared test fixtures for the TextSparks test suite.

Qt runs on the "offscreen" platform so the suite works headless.
"""

import os
import random
from pathlib import Path

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from PyQt6.QtWidgets import QApplication

from sparks_app.gui import load_custom_fonts
from sparks_app.mask_builder import GroupMask, Mask, MaskSample
from sparks_app.slides import HslColor, Slide, TextGroup, TextRole

FONTS_DIR = Path(__file__).resolve().parent / "fonts"


# ---------------------------------------------------------------------------
# Qt
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session", autouse=True)
def qapp():
    """One QApplication for the whole session (fonts and painting need it)."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


@pytest.fixture(scope="session")
def sample_font(qapp):
    """Family of the font bundled under tests/fonts, registered with Qt."""
    families = load_custom_fonts(FONTS_DIR)
    assert families, f"no usable font in {FONTS_DIR}"
    return families[0]


# ---------------------------------------------------------------------------
# Randomness
# ---------------------------------------------------------------------------

@pytest.fixture
def rng():
    return random.Random(1234)


# ---------------------------------------------------------------------------
# Masks
# ---------------------------------------------------------------------------

def make_group(n, color=None, x=0.5, y=0.5, dense=False):
    """GroupMask with ``n`` samples spread on a small horizontal line."""
    color = color or HslColor(0, 100, 50)
    samples = tuple(
        MaskSample(x=x + (i % 50) * 0.001, y=y, phase=(i * 0.37) % 1.0, shape=(i * 0.61) % 1.0, dense=dense)
        for i in range(n)
    )
    return GroupMask(color=color, samples=samples)


@pytest.fixture
def small_mask():
    """Two groups, both in the middle of the surface."""
    return Mask(groups=(
        make_group(20, HslColor(200, 90, 60)),
        make_group(20, HslColor(30, 100, 55), y=0.6),
    ))


# ---------------------------------------------------------------------------
# Slides
# ---------------------------------------------------------------------------

@pytest.fixture
def scenario_slides():
    """Three slides: timed, indefinite hold, timed."""
    return [
        Slide(dwell_ticks=10, fade_in=0.1, fade_out=0.1,
              groups=(TextGroup("One", HslColor(0, 100, 50), TextRole.CENTER),)),
        Slide(dwell_ticks=0, fade_in=0.0, fade_out=0.0,
              groups=(TextGroup("Two", HslColor(120, 100, 50), TextRole.MAIN),)),
        Slide(dwell_ticks=5, fade_in=0.2, fade_out=0.2,
              groups=(TextGroup("Three", HslColor(240, 100, 50), TextRole.CAPTION),)),
    ]


class FakeMasks:
    """Stand-in for MaskBuilder: one distinct Mask per slide index."""

    def __init__(self, count):
        self._masks = [Mask(groups=(make_group(3),)) for _ in range(count)]

    def mask_for(self, index):
        if 0 <= index < len(self._masks):
            return self._masks[index]
        return None


@pytest.fixture
def fake_masks(scenario_slides):
    return FakeMasks(len(scenario_slides))
