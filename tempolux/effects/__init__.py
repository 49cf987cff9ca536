"""
TEMPOLUX Effects Package

Modular effect system for lamp chains.
Each effect is a separate file for easy extension.
"""

from typing import Tuple, Type

# Base effect class and registry
from .base import BaseEffect, BeatTracker
from .registry import EffectMetadata, EffectRegistry, ParamSchema

# Import all effect implementations
from .solid import SolidColorEffect
from .blink import BlinkEffect
from .gradient import GradientEffect
from .rainbow import RainbowEffect
from .hueshift import HueShiftEffect
from .dim import DimEffect, IntensityEffect
from .shift import ShiftEffect
from .twinkle import TwinkleEffect
from .whiteout import WhiteoutEffect
from .darkwave import DarkWaveEffect
from .pulse import PulseEffect
from .cyberfall import CyberfallEffect

# Built-in effects, registered in this order
BUILTIN_EFFECTS: Tuple[Type[BaseEffect], ...] = (
    SolidColorEffect,
    BlinkEffect,
    GradientEffect,
    RainbowEffect,
    HueShiftEffect,
    DimEffect,
    IntensityEffect,
    ShiftEffect,
    TwinkleEffect,
    WhiteoutEffect,
    DarkWaveEffect,
    PulseEffect,
    CyberfallEffect,
)


def build_registry() -> EffectRegistry:
    """
    Build a registry holding every built-in effect.

    Raises:
        StartupError: If two effects share a name
    """
    registry = EffectRegistry()
    for effect_class in BUILTIN_EFFECTS:
        registry.register_effect(effect_class)
    return registry


__all__ = [
    'BaseEffect',
    'BeatTracker',
    'EffectMetadata',
    'EffectRegistry',
    'ParamSchema',
    'BUILTIN_EFFECTS',
    'build_registry',
    # Individual effects
    'SolidColorEffect',
    'BlinkEffect',
    'GradientEffect',
    'RainbowEffect',
    'HueShiftEffect',
    'DimEffect',
    'IntensityEffect',
    'ShiftEffect',
    'TwinkleEffect',
    'WhiteoutEffect',
    'DarkWaveEffect',
    'PulseEffect',
    'CyberfallEffect',
]
