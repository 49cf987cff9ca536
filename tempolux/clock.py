"""
TEMPOLUX Clock - Shared global state and beat phase

One BeatClock per process. Every chain advances it once per tick and reads an
immutable GlobalState snapshot; operators change tempo/palette/intensity
through the setters. All access is serialized by a single lock.
"""

import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Optional

from .colors import Lamp

DEFAULT_BPM = 120.0


def _red() -> Lamp:
    return Lamp(255, 0, 0, 0)


def _blue() -> Lamp:
    return Lamp(0, 0, 255, 0)


@dataclass(frozen=True)
class GlobalState:
    """Snapshot of the global show parameters for one tick."""
    bpm: float = DEFAULT_BPM
    color1: Lamp = field(default_factory=_red)
    color2: Lamp = field(default_factory=_blue)
    intensity: int = 255
    beat_progress: float = 0.0
    # Filled per chain in its own snapshot; never stored in shared state
    tick_rate: int = 0


class BeatClock:
    """Owner of GlobalState; derives beat_progress from wall-clock time and bpm."""

    def __init__(
        self,
        bpm: float = DEFAULT_BPM,
        color1: Optional[Lamp] = None,
        color2: Optional[Lamp] = None,
        intensity: int = 255,
        time_func: Callable[[], float] = time.monotonic,
    ):
        self._time = time_func
        self._lock = Lock()
        self._bpm = float(bpm)
        self._color1 = Lamp(*color1.as_tuple()) if color1 else _red()
        self._color2 = Lamp(*color2.as_tuple()) if color2 else _blue()
        self._intensity = intensity
        self._beat_progress = 0.0
        self._last_beat_start = self._time()

    def update_beat_progress(self) -> float:
        """Advance the beat phase to the current time and return it."""
        with self._lock:
            now = self._time()
            beat_duration = 60.0 / self._bpm
            progress = (now - self._last_beat_start) / beat_duration
            if progress >= 1.0:
                self._last_beat_start = now
                progress = 0.0
            self._beat_progress = progress
            return progress

    def snapshot(self, tick_rate: int = 0) -> GlobalState:
        """Return an immutable copy of the current state."""
        with self._lock:
            return GlobalState(
                bpm=self._bpm,
                color1=Lamp(*self._color1.as_tuple()),
                color2=Lamp(*self._color2.as_tuple()),
                intensity=self._intensity,
                beat_progress=self._beat_progress,
                tick_rate=tick_rate,
            )

    # Setters apply immediately; callers validate

    def set_bpm(self, bpm: float) -> None:
        with self._lock:
            self._bpm = float(bpm)

    def set_color1(self, color: Lamp) -> None:
        with self._lock:
            self._color1 = Lamp(*color.as_tuple())

    def set_color2(self, color: Lamp) -> None:
        with self._lock:
            self._color2 = Lamp(*color.as_tuple())

    def set_intensity(self, intensity: int) -> None:
        with self._lock:
            self._intensity = int(intensity)

    @property
    def bpm(self) -> float:
        with self._lock:
            return self._bpm

    @property
    def beat_progress(self) -> float:
        with self._lock:
            return self._beat_progress
