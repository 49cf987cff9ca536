"""
TEMPOLUX Config - Show file loading, defaulting and saving

The show file is JSON:

    {
      "globals":  {"bpm": 174, "color1": "FFA000", "color2": "000000", "intensity": 255},
      "chains":   [{"id": ..., "tickRate": ..., "numLamps": ..., "effects": [...], "output": {...}}],
      "actions":  {"event_name": [{"type": "toggle_effect", "chain_id": ..., ...}]},
      "triggers": [...],
      "midi_port_name": ""
    }

A missing file is created with defaults. Missing globals, top-level sections
and effect args are filled in and written back.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .colors import parse_hex_color
from .effects.registry import EffectRegistry
from .errors import ConfigError
from .specs import ActionSpec, ChainSpec, GlobalsSpec, action_to_dict, actions_from_dict

_logger = logging.getLogger(__name__)


@dataclass
class ShowConfig:
    """A parsed show file. The executor edits these objects in place."""
    globals: GlobalsSpec = field(default_factory=GlobalsSpec)
    chains: List[ChainSpec] = field(default_factory=list)
    actions: Dict[str, List[ActionSpec]] = field(default_factory=dict)
    triggers: List[Dict[str, Any]] = field(default_factory=list)  # kept verbatim for the MIDI adapter
    midi_port_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "globals": self.globals.to_dict(),
            "chains": [c.to_dict() for c in self.chains],
            "actions": {name: [action_to_dict(a) for a in actions] for name, actions in self.actions.items()},
            "triggers": list(self.triggers),
            "midi_port_name": self.midi_port_name,
        }


def default_config() -> ShowConfig:
    """An empty show with default globals."""
    return ShowConfig()


def _parse_globals(data: Any) -> GlobalsSpec:
    if not isinstance(data, dict):
        raise ConfigError(f"'globals' must be an object (got {type(data).__name__})")
    defaults = GlobalsSpec()

    bpm = data.get("bpm")
    if bpm is None:
        bpm = defaults.bpm
    if isinstance(bpm, bool) or not isinstance(bpm, (int, float)) or not math.isfinite(bpm) or bpm <= 0:
        raise ConfigError(f"globals.bpm must be a positive number (got {bpm!r})")

    colors = []
    for key in ("color1", "color2"):
        value = data.get(key) or getattr(defaults, key)
        try:
            parse_hex_color(value)
        except ValueError as e:
            raise ConfigError(f"globals.{key}: {e}") from e
        colors.append(value)

    intensity = data.get("intensity", defaults.intensity)
    # JSON may hand back 128.0; accept it like set_global does
    if (isinstance(intensity, bool) or not isinstance(intensity, (int, float))
            or (isinstance(intensity, float) and not intensity.is_integer())
            or not 0 <= intensity <= 255):
        raise ConfigError(f"globals.intensity must be an integer 0-255 (got {intensity!r})")
    intensity = int(intensity)

    return GlobalsSpec(bpm=float(bpm), color1=colors[0], color2=colors[1], intensity=intensity)


def config_from_dict(data: Dict[str, Any]) -> ShowConfig:
    """
    Build a ShowConfig from the parsed JSON form.

    Raises:
        ConfigError: On malformed entries or duplicate chain/effect ids
    """
    if not isinstance(data, dict):
        raise ConfigError("config root must be a JSON object")

    chains: List[ChainSpec] = []
    seen_chains = set()
    for entry in data.get("chains") or []:
        chain = ChainSpec.from_dict(entry)
        if chain.id in seen_chains:
            raise ConfigError(f"duplicate chain id '{chain.id}'")
        seen_chains.add(chain.id)
        effect_ids = [e.id for e in chain.effects]
        duplicates = {i for i in effect_ids if effect_ids.count(i) > 1}
        if duplicates:
            raise ConfigError(f"chain '{chain.id}': duplicate effect ids {sorted(duplicates)}")
        chains.append(chain)

    actions: Dict[str, List[ActionSpec]] = {}
    for event, entries in (data.get("actions") or {}).items():
        parsed: List[ActionSpec] = []
        for entry in entries or []:
            try:
                parsed.extend(actions_from_dict(entry))
            except ConfigError as e:
                raise ConfigError(f"event '{event}': {e}") from e
        actions[event] = parsed

    return ShowConfig(
        globals=_parse_globals(data.get("globals") or {}),
        chains=chains,
        actions=actions,
        triggers=list(data.get("triggers") or []),
        midi_port_name=data.get("midi_port_name") or "",
    )


def _merge_defaults(data: Dict[str, Any]) -> bool:
    """Fill missing top-level sections and globals in place. Returns True if anything changed."""
    changed = False
    defaults = default_config().to_dict()
    for key in ("chains", "actions", "triggers", "midi_port_name"):
        if data.get(key) is None:
            data[key] = defaults[key]
            changed = True
    globals_data = data.setdefault("globals", {})
    if not isinstance(globals_data, dict):
        return changed
    for key, value in defaults["globals"].items():
        current = globals_data.get(key)
        # bpm 0 is treated as unset
        if current is None or current == "" or (key == "bpm" and current == 0):
            globals_data[key] = value
            changed = True
    return changed


def fill_effect_defaults(config: ShowConfig, registry: EffectRegistry) -> bool:
    """
    Add registry default values for any effect args that are missing.

    Returns True if any spec was changed. Unknown effect types are skipped
    with a warning; they fail later when the chain is built.
    """
    changed = False
    for chain in config.chains:
        for effect in chain.effects:
            if effect.type not in registry.list_available():
                _logger.warning(f"[TEMPOLUX] {chain.id}/{effect.id}: unknown effect type '{effect.type}', skipping defaults")
                continue
            for key, value in registry.defaults(effect.type).items():
                if key not in effect.args:
                    effect.args[key] = value
                    changed = True
    return changed


def load_config(path: str, registry: Optional[EffectRegistry] = None) -> ShowConfig:
    """
    Load a show file, creating it with defaults if it does not exist.

    If defaults had to be filled in, the file is rewritten; a failed rewrite
    is logged and the loaded config is still returned.

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    config_path = Path(path)
    if not config_path.exists():
        _logger.info(f"[TEMPOLUX] Config file not found at {config_path}, creating default config")
        config = default_config()
        save_config(config, path)
        return config

    try:
        data = json.loads(config_path.read_text())
    except json.JSONDecodeError as e:
        raise ConfigError(f"{config_path}: invalid JSON: {e}") from e
    except OSError as e:
        raise ConfigError(f"{config_path}: cannot read config: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: config root must be a JSON object")

    changed = _merge_defaults(data)
    config = config_from_dict(data)
    if registry is not None:
        changed = fill_effect_defaults(config, registry) or changed

    if changed:
        _logger.info(f"[TEMPOLUX] Updating {config_path} with missing default values")
        try:
            save_config(config, path)
        except ConfigError as e:
            _logger.error(f"[TEMPOLUX] {e}")

    return config


def save_config(config: ShowConfig, path: str) -> None:
    """
    Write the config as indented JSON.

    Raises:
        ConfigError: If the file cannot be written
    """
    try:
        Path(path).write_text(json.dumps(config.to_dict(), indent=2) + "\n")
    except OSError as e:
        raise ConfigError(f"{path}: cannot write config: {e}") from e


def summarize(config: ShowConfig) -> Tuple[int, int, int]:
    """(chain count, effect count, event count)"""
    return (
        len(config.chains),
        sum(len(c.effects) for c in config.chains),
        len(config.actions),
    )
