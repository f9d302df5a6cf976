"""Tests for the shared config helpers."""

import pytest

from sparks_app.config import (
    apply_default_config,
    config_bool,
    config_color,
    config_float,
    config_int,
    config_parameters,
    make_rng,
)


def test_defaults_are_applied():
    config = apply_default_config({})
    for name, param in config_parameters().items():
        assert config[name] == param.default


def test_existing_values_are_kept():
    config = {"spawn_rate": 3, "background_color": "transparent"}
    assert apply_default_config(config) is config
    assert config["spawn_rate"] == 3
    assert config["background_color"] == "transparent"
    assert config["frame_interval_ms"] == 16


class TestReaders:

    def test_int_fallback_and_clamp(self):
        assert config_int({}, "spawn_rate") == 50
        assert config_int({"spawn_rate": "lots"}, "spawn_rate") == 50
        assert config_int({"spawn_rate": "12.7"}, "spawn_rate") == 12
        assert config_int({"spawn_rate": -5}, "spawn_rate") == 0
        assert config_int({"spawn_rate": 10 ** 6}, "spawn_rate") == 2000

    def test_int_unknown_key(self):
        assert config_int({}, "not_a_key", 7) == 7
        assert config_int({"not_a_key": 10 ** 6}, "not_a_key", 7) == 10 ** 6

    def test_float_fallback_and_clamp(self):
        assert config_float({}, "glow_step") == pytest.approx(0.0025)
        assert config_float({"glow_step": None}, "glow_step") == pytest.approx(0.0025)
        assert config_float({"glow_step": float("nan")}, "glow_step") == pytest.approx(0.0025)
        assert config_float({"glow_step": 5}, "glow_step") == pytest.approx(0.1)
        assert config_float({"mask_outline_px": -1}, "mask_outline_px") == 0.0

    @pytest.mark.parametrize("raw,expected", [
        (True, True),
        (0, False),
        ("yes", True),
        ("off", False),
        (" TRUE ", True),
    ])
    def test_bool(self, raw, expected):
        assert config_bool({"expire_out_of_bounds": raw}, "expire_out_of_bounds") is expected

    def test_bool_default(self):
        assert config_bool({}, "expire_out_of_bounds") is True

    def test_readers_reuse_the_parameter_table(self, monkeypatch):
        import sparks_app.config as config_module

        def rebuilt():
            raise AssertionError("parameter table rebuilt on read")

        monkeypatch.setattr(config_module, "config_parameters", rebuilt)
        assert config_int({"spawn_rate": 10 ** 6}, "spawn_rate") == 2000
        assert config_float({}, "glow_step") == pytest.approx(0.0025)
        assert config_bool({}, "expire_out_of_bounds") is True


class TestColor:

    def test_default_background(self):
        color = config_color({}, "background_color")
        assert color.name() == "#111111"

    @pytest.mark.parametrize("raw", ["", "transparent", " Transparent ", None])
    def test_transparent(self, raw):
        assert config_color({"background_color": raw}, "background_color") is None

    def test_invalid_falls_back(self):
        color = config_color({"background_color": "not-a-color"}, "background_color")
        assert color.name() == "#111111"

    def test_named_color(self):
        assert config_color({"background_color": "#ff0000"}, "background_color").red() == 255


class TestRng:

    def test_seeded_rng_is_reproducible(self):
        a = make_rng({"random_seed": 11})
        b = make_rng({"random_seed": 11})
        assert [a.random() for _ in range(5)] == [b.random() for _ in range(5)]

    def test_negative_seed_is_ambient(self):
        a = make_rng({"random_seed": -1})
        b = make_rng({"random_seed": -1})
        assert [a.random() for _ in range(5)] != [b.random() for _ in range(5)]
