"""Tests for the effect registry: registration, argument validation, metadata."""

import pytest

from tempolux.effects import BUILTIN_EFFECTS, BaseEffect, build_registry
from tempolux.effects.blink import BlinkEffect
from tempolux.effects.registry import EffectMetadata, EffectRegistry, ParamSchema
from tempolux.errors import ConfigError, StartupError

BUILTIN_NAMES = {
    "solidColor", "blink", "gradient", "rainbow", "hueshift", "dim", "intensity",
    "shift", "twinkle", "whiteout", "darkwave", "pulse", "cyberfall",
}


class _Noop(BaseEffect):
    name = "noop"

    def process(self, lamps, state, channel_mapping, channels_per_lamp):
        pass


def test_builtin_names(registry):
    assert registry.list_available() == BUILTIN_NAMES
    assert {e.name for e in BUILTIN_EFFECTS} == BUILTIN_NAMES


def test_each_build_is_independent():
    first = build_registry()
    first.register("extra", lambda args: _Noop())
    assert "extra" not in build_registry().list_available()


class TestRegistration:

    def test_duplicate_name_is_startup_error(self, registry):
        with pytest.raises(StartupError):
            registry.register("blink", lambda args: _Noop())

    def test_duplicate_class_is_startup_error(self):
        reg = EffectRegistry()
        reg.register_effect(BlinkEffect)
        with pytest.raises(StartupError):
            reg.register_effect(BlinkEffect)

    def test_unknown_param_type_is_startup_error(self):
        reg = EffectRegistry()
        meta = EffectMetadata("bad", "Bad", params=(ParamSchema("x", "complex"),))
        with pytest.raises(StartupError):
            reg.register("bad", lambda args: _Noop(), meta)

    def test_register_without_metadata(self):
        reg = EffectRegistry()
        reg.register("noop", lambda args: _Noop())
        assert isinstance(reg.construct("noop", {"anything": 1}), _Noop)
        assert reg.get_metadata("noop") is None
        assert reg.defaults("noop") == {}


class TestConstruct:

    def test_unknown_name(self, registry):
        with pytest.raises(ConfigError) as excinfo:
            registry.construct("strobe", {})
        assert "strobe" in str(excinfo.value)

    def test_defaults_fill_missing_args(self, registry):
        effect = registry.construct("blink", {})
        assert effect.divider == 1
        assert effect.duty_cycle == 0.5

    def test_int_param_accepts_integral_float(self, registry):
        # JSON numbers may arrive as floats
        assert registry.construct("blink", {"divider": 2.0}).divider == 2

    @pytest.mark.parametrize("args", [
        {"divider": 0},
        {"divider": 1.5},
        {"divider": "two"},
        {"divider": True},
        {"dutyCycle": 1.5},
        {"dutyCycle": -0.1},
    ])
    def test_invalid_blink_args(self, registry, args):
        with pytest.raises(ConfigError):
            registry.construct("blink", args)

    def test_option_check(self, registry):
        assert registry.construct("shift", {"direction": "right"}).direction == "right"
        with pytest.raises(ConfigError):
            registry.construct("shift", {"direction": "up"})

    def test_color_param(self, registry):
        effect = registry.construct("twinkle", {"color": "#00FF00"})
        assert effect.color.as_tuple() == (0, 255, 0, 0)
        assert registry.construct("twinkle", {"color": "red"}).color.as_tuple() == (255, 0, 0, 0)
        with pytest.raises(ConfigError):
            registry.construct("twinkle", {"color": "not-a-color"})
        with pytest.raises(ConfigError):
            registry.construct("twinkle", {"color": {"r": 1}})

    def test_unknown_extra_args_are_ignored(self, registry):
        effect = registry.construct("dim", {"percentage": 0.25, "legacy": 3})
        assert effect.percentage == 0.25

    def test_required_param_missing(self):
        reg = EffectRegistry()
        meta = EffectMetadata("needs", "Needs", params=(ParamSchema("level", "float", required=True),))
        reg.register("needs", lambda args: _Noop(), meta)
        with pytest.raises(ConfigError):
            reg.construct("needs", {})
        assert isinstance(reg.construct("needs", {"level": 1}), _Noop)

    def test_constructor_value_error_becomes_config_error(self):
        def broken(args):
            raise ValueError("nope")

        reg = EffectRegistry()
        reg.register("broken", broken)
        with pytest.raises(ConfigError):
            reg.construct("broken", {})

    @pytest.mark.parametrize("error", [KeyError("missing"), AttributeError("no attr"), RuntimeError("bad")])
    def test_any_constructor_error_becomes_config_error(self, error):
        def broken(args):
            raise error

        reg = EffectRegistry()
        reg.register("broken", broken)
        with pytest.raises(ConfigError) as excinfo:
            reg.construct("broken", {})
        assert excinfo.value.__cause__ is error

    def test_each_construct_returns_a_new_instance(self, registry):
        assert registry.construct("rainbow", {}) is not registry.construct("rainbow", {})


class TestMetadata:

    def test_get_metadata(self, registry):
        meta = registry.get_metadata("hueshift")
        assert meta.display_name == "Hue Shift"
        assert meta.param("beatspan").default == 1.0
        assert meta.param("missing") is None
        assert registry.get_metadata("missing") is None

    def test_defaults(self, registry):
        assert registry.defaults("dim") == {"percentage": 0.5}
        # seed has no default and is left out
        assert "seed" not in registry.defaults("twinkle")

    def test_to_dict(self, registry):
        data = registry.get_metadata("blink").to_dict()
        assert data["name"] == "blink"
        assert data["params"]["divider"]["min"] == 1

    def test_markdown(self, registry):
        doc = registry.to_markdown()
        assert doc.startswith("# Registered Effects")
        assert "## Blink (`blink`)" in doc
        assert "| dutyCycle | float | 0.5 | 0.0 | 1.0 |" in doc
        # Sorted by registry key
        assert doc.index("(`blink`)") < doc.index("(`whiteout`)")
