"""
Base Effect Class

All effects inherit from this base class.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

from ..clock import GlobalState
from ..colors import Lamp


class BaseEffect(ABC):
    """
    Base class for all lamp effects.

    Effects transform a chain's lamp buffer in place once per tick, reading
    the global snapshot for tempo, palette and beat position. Each effect must
    implement the process() method.
    """

    # Effect metadata
    name: str = "unknown"
    display_name: str = ""
    description: str = "No description"
    tags: Tuple[str, ...] = ()
    # Parameter schemas (see registry.ParamSchema)
    params: Tuple[Any, ...] = ()

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "BaseEffect":
        """Build an instance from validated, defaulted args."""
        return cls(**args)

    @abstractmethod
    def process(
        self,
        lamps: List[Lamp],
        state: GlobalState,
        channel_mapping: str,
        channels_per_lamp: int,
    ) -> None:
        """
        Transform lamps in place.

        Args:
            lamps: The chain's lamp buffer (any length, including zero)
            state: Read-only global snapshot for this tick
            channel_mapping: Output channel layout, e.g. "RGB" or "RGBW"
            channels_per_lamp: Channels the output uses per lamp

        Later effects in a chain see the output of earlier ones, so an effect
        must not assume it is the first or only one.
        """
        raise NotImplementedError(f"Effect '{self.name}' must implement process()")

    @staticmethod
    def uses_white(channel_mapping: str, channels_per_lamp: int) -> bool:
        """True if the W channel is meaningful for this chain/output pairing."""
        return channels_per_lamp == 4 and channel_mapping == "RGBW"

    def __str__(self) -> str:
        return f"{self.name} effect"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.name}>"


class BeatTracker:
    """
    Monotonic beat-relative progress built from beat_progress samples.

    A sample lower than the previous one means the beat rolled over: the
    remainder of the old beat plus the new progress is added.
    """

    def __init__(self) -> None:
        self.last_progress = 0.0
        self.total = 0.0

    def advance(self, beat_progress: float) -> float:
        """Feed a new sample; return the progress gained since the last one."""
        if beat_progress < self.last_progress:
            delta = (1.0 - self.last_progress) + beat_progress
        else:
            delta = beat_progress - self.last_progress
        self.last_progress = beat_progress
        self.total += delta
        return delta
