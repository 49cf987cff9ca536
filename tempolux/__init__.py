"""
TEMPOLUX - Beat-synced lighting effect engine
"""

__version__ = "0.3.0"

from .colors import COLORS, RGB, Lamp, get_color, list_colors, parse_hex_color
from .clock import BeatClock, GlobalState
from .errors import (
    ConfigError, InvalidArgumentError, NotFoundError, OutputError, StartupError, TempoluxError,
)
from .specs import (
    ActionSpec, AddEffect, ChainSpec, EffectSpec, GlobalsSpec, OutputSpec,
    RemoveEffect, SetGlobal, ToggleEffect,
)
from .effects import BaseEffect, EffectRegistry, build_registry
from .outputs import Output, NullOutput, MemoryOutput, ProxyOutput, GPIOOutput, create_output
from .chain import Chain
from .actions import ActionExecutor
from .config import ShowConfig, load_config, save_config
from .conductor import Conductor

__all__ = [
    "__version__",
    "COLORS", "RGB", "Lamp", "get_color", "list_colors", "parse_hex_color",
    "BeatClock", "GlobalState",
    "TempoluxError", "ConfigError", "InvalidArgumentError", "NotFoundError", "OutputError", "StartupError",
    "ActionSpec", "AddEffect", "ChainSpec", "EffectSpec", "GlobalsSpec", "OutputSpec",
    "RemoveEffect", "SetGlobal", "ToggleEffect",
    "BaseEffect", "EffectRegistry", "build_registry",
    "Output", "NullOutput", "MemoryOutput", "ProxyOutput", "GPIOOutput", "create_output",
    "Chain",
    "ActionExecutor",
    "ShowConfig", "load_config", "save_config",
    "Conductor",
]
