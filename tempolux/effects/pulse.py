"""
Pulse Effect - Beat-synced breathing
"""

import math
from typing import List

from .base import BaseEffect, BeatTracker
from .registry import ParamSchema
from ..clock import GlobalState
from ..colors import Lamp


class PulseEffect(BaseEffect):
    """
    Pulse/breathing effect - smooth cosine brightness modulation locked to the beat.

    Brightness is full at the start of each cycle and lowest (1 - depth) halfway
    through. One cycle lasts `beats` beats, so tempo changes carry through.

    Parameters:
        - depth: How far brightness drops at the trough (0.0-1.0)
        - beats: Cycle length in beats
    """

    name = "pulse"
    display_name = "Pulse"
    description = "Breathing brightness mask synced to the beat."
    tags = ("bpm_sensitive", "transparent", "brightness_mask")
    params = (
        ParamSchema("depth", "float", default=0.8, min=0.0, max=1.0,
                    description="Brightness drop at the trough."),
        ParamSchema("beats", "float", default=1.0, min=0.001,
                    description="Length of one breath in beats."),
    )

    def __init__(self, depth: float = 0.8, beats: float = 1.0):
        self.depth = depth
        self.beats = beats
        self._tracker = BeatTracker()

    def process(
        self,
        lamps: List[Lamp],
        state: GlobalState,
        channel_mapping: str,
        channels_per_lamp: int,
    ) -> None:
        self._tracker.advance(state.beat_progress)
        phase = (self._tracker.total % self.beats) / self.beats
        factor = 1.0 - self.depth * (1 - math.cos(phase * 2 * math.pi)) / 2
        for lamp in lamps:
            lamp.scale(factor)
