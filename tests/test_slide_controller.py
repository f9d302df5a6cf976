"""Tests for the slide orchestration state machine."""

import math

import pytest

from sparks_app.slide_controller import SlideController, SlideState
from sparks_app.slides import Slide, TextGroup

from conftest import FakeMasks


def run_until(controller, predicate, limit=1000):
    """Step until predicate(controller) holds; return the number of ticks."""
    for ticks in range(1, limit + 1):
        controller.step()
        if predicate(controller):
            return ticks
    raise AssertionError("condition never reached")


class TestLoading:

    def test_initial_state(self, scenario_slides, fake_masks):
        ctl = SlideController(scenario_slides, fake_masks)
        assert ctl.state is SlideState.LOADING
        assert ctl.index == -1
        assert ctl.opacity == 0.0
        assert ctl.mask is None

    def test_first_step_loads_slide_zero(self, scenario_slides, fake_masks):
        ctl = SlideController(scenario_slides, fake_masks)
        ctl.step()
        assert ctl.index == 0
        assert ctl.mask is fake_masks.mask_for(0)
        assert ctl.state is SlideState.FADING_IN
        assert ctl.opacity == 0.0

    def test_load_calls_hook(self, scenario_slides, fake_masks):
        loaded = []
        ctl = SlideController(scenario_slides, fake_masks, on_slide_loaded=loaded.append)
        ctl.step()
        assert loaded == [0]

    def test_no_fade_in_is_instantly_visible(self, fake_masks):
        slides = [Slide(dwell_ticks=3, fade_in=0.0, fade_out=0.0, groups=(TextGroup("a"),))]
        ctl = SlideController(slides, FakeMasks(1))
        ctl.step()
        assert ctl.opacity == 1.0
        assert ctl.state is SlideState.HOLDING

    def test_empty_deck_stays_inert(self, fake_masks):
        ctl = SlideController([], fake_masks)
        for _ in range(5):
            assert ctl.step() is SlideState.LOADING
        assert ctl.mask is None
        assert ctl.opacity == 0.0

    def test_missing_mask_does_not_raise(self, scenario_slides):
        ctl = SlideController(scenario_slides, FakeMasks(0))
        ctl.step()
        assert ctl.index == 0
        assert ctl.mask is None


class TestFades:

    @pytest.mark.parametrize("rate", [0.1, 0.2, 0.25, 0.3, 0.07, 0.5, 1.0])
    def test_fade_in_takes_ceil_one_over_rate_ticks(self, rate):
        slides = [Slide(dwell_ticks=100, fade_in=rate, fade_out=0.1)]
        ctl = SlideController(slides, FakeMasks(1))
        ctl.step()  # load
        ticks = run_until(ctl, lambda c: c.state is not SlideState.FADING_IN)
        assert ticks == math.ceil(1.0 / rate)
        assert ctl.opacity == 1.0

    @pytest.mark.parametrize("rate", [1.7, 5.0, 0.33, 0.9])
    def test_opacity_stays_in_unit_range(self, rate):
        slides = [Slide(dwell_ticks=2, fade_in=rate, fade_out=rate)] * 2
        ctl = SlideController(slides, FakeMasks(2))
        for _ in range(200):
            ctl.step()
            assert 0.0 <= ctl.opacity <= 1.0

    def test_fade_out_reaches_zero_then_loads(self):
        slides = [Slide(dwell_ticks=1, fade_in=1.0, fade_out=0.1)] * 2
        ctl = SlideController(slides, FakeMasks(2))
        ctl.step()  # load
        ctl.step()  # fade in (one tick)
        ctl.step()  # hold
        assert ctl.state is SlideState.FADING_OUT
        ticks = run_until(ctl, lambda c: c.state is SlideState.LOADING)
        assert ticks == 10
        assert ctl.opacity == 0.0

    def test_hold_without_fade_out_goes_straight_to_loading(self):
        slides = [Slide(dwell_ticks=3, fade_in=0.0, fade_out=0.0)] * 2
        ctl = SlideController(slides, FakeMasks(2))
        ctl.step()
        assert run_until(ctl, lambda c: c.state is SlideState.LOADING) == 3
        assert ctl.opacity == 0.0
        ctl.step()
        assert ctl.index == 1


class TestWrapAndAdvance:

    def test_index_wraps_to_zero(self):
        slides = [Slide(dwell_ticks=1, fade_in=0.0, fade_out=0.0)] * 3
        ctl = SlideController(slides, FakeMasks(3))
        seen = []
        for _ in range(12):
            ctl.step()
            if ctl.state is not SlideState.LOADING and (not seen or seen[-1] != ctl.index):
                seen.append(ctl.index)
        assert seen[:4] == [0, 1, 2, 0]
        assert max(seen) == 2

    def test_idle_slide_waits_for_advance(self):
        slides = [Slide(dwell_ticks=0, fade_in=0.0, fade_out=0.0)] * 2
        ctl = SlideController(slides, FakeMasks(2))
        ctl.step()
        assert ctl.state is SlideState.HELD_IDLE
        for _ in range(50):
            ctl.step()
        assert ctl.state is SlideState.HELD_IDLE
        assert ctl.index == 0
        assert ctl.opacity == 1.0

        ctl.advance()
        ctl.step()
        assert ctl.index == 1

    def test_advance_uses_fade_out_when_defined(self):
        slides = [Slide(dwell_ticks=0, fade_in=0.5, fade_out=0.5)] * 2
        ctl = SlideController(slides, FakeMasks(2))
        ctl.step()
        ctl.step()
        ctl.step()
        assert ctl.state is SlideState.HELD_IDLE
        ctl.advance()
        assert ctl.state is SlideState.FADING_OUT

    def test_advance_while_loading_is_ignored(self, scenario_slides, fake_masks):
        ctl = SlideController(scenario_slides, fake_masks)
        ctl.advance()
        ctl.step()
        assert ctl.index == 0


class TestScenario:
    """Dwell [10, 0, 5], fades [(0.1, 0.1), (0, 0), (0.2, 0.2)]."""

    def test_end_to_end(self, scenario_slides, fake_masks):
        ctl = SlideController(scenario_slides, fake_masks)

        # Slide 0: load, 10 fade-in ticks, 10 hold ticks, 10 fade-out ticks.
        ctl.step()
        assert (ctl.index, ctl.state) == (0, SlideState.FADING_IN)
        assert run_until(ctl, lambda c: c.state is SlideState.HOLDING) == 10
        assert run_until(ctl, lambda c: c.state is SlideState.FADING_OUT) == 10
        assert run_until(ctl, lambda c: c.state is SlideState.LOADING) == 10

        # Slide 1: instantly visible, held indefinitely.
        ctl.step()
        assert ctl.index == 1
        assert ctl.opacity == 1.0
        assert ctl.state is SlideState.HELD_IDLE
        for _ in range(100):
            ctl.step()
        assert (ctl.index, ctl.state) == (1, SlideState.HELD_IDLE)

        # External advance, then slide 2: 5 fade-in, 5 hold, 5 fade-out.
        ctl.advance()
        ctl.step()
        assert (ctl.index, ctl.state) == (2, SlideState.FADING_IN)
        assert run_until(ctl, lambda c: c.state is SlideState.HOLDING) == 5
        assert run_until(ctl, lambda c: c.state is SlideState.FADING_OUT) == 5
        assert run_until(ctl, lambda c: c.state is SlideState.LOADING) == 5

        # Wraps back to slide 0.
        ctl.step()
        assert ctl.index == 0
        assert ctl.state is SlideState.FADING_IN
