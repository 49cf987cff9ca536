"""Shared fixtures: a controllable clock, the built-in registry and memory-backed chains."""

from typing import List, Optional

import pytest

from tempolux.chain import Chain
from tempolux.clock import BeatClock
from tempolux.colors import Lamp
from tempolux.effects import build_registry
from tempolux.outputs import MemoryOutput
from tempolux.specs import ChainSpec, EffectSpec, OutputSpec


class FakeTime:
    """Manually advanced time source for BeatClock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def fake_time():
    return FakeTime()


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def clock(fake_time):
    return BeatClock(bpm=60, color1=Lamp(255, 0, 0, 0), color2=Lamp(0, 0, 255, 0), time_func=fake_time)


@pytest.fixture
def make_chain(registry, clock):
    """Factory: make_chain(effects, lamp_count=10, ...) -> Chain with a MemoryOutput."""

    def _make(
        effects: Optional[List[EffectSpec]] = None,
        lamp_count: int = 10,
        tick_rate: int = 40,
        chain_id: str = "main",
        channel_mapping: str = "RGBW",
        channels_per_lamp: int = 4,
        output=None,
        send_timeout: float = 0.5,
    ) -> Chain:
        out_spec = OutputSpec(type="memory", channel_mapping=channel_mapping, channels_per_lamp=channels_per_lamp)
        spec = ChainSpec(
            id=chain_id,
            tick_rate=tick_rate,
            lamp_count=lamp_count,
            effects=list(effects or []),
            output=out_spec,
        )
        return Chain(spec, registry, clock, output or MemoryOutput(chain_id, out_spec), send_timeout=send_timeout)

    return _make
