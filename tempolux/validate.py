"""
TEMPOLUX Configuration Validator

Validates a show file's syntax and settings without starting any output.
Useful for checking a show before a gig or debugging a broken file.

Usage:
    python -m tempolux validate /path/to/show.json

Returns:
    Exit 0 if config is valid
    Exit 1 if errors found
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .actions import ActionExecutor, GLOBAL_KEYS
from .clock import BeatClock
from .effects import build_registry
from .effects.registry import EffectRegistry
from .errors import ConfigError, InvalidArgumentError
from .outputs import OUTPUT_TYPES
from .specs import AddEffect, GlobalsSpec, RemoveEffect, SetGlobal, ToggleEffect, actions_from_dict

# ANSI color codes
GREEN = '\033[0;32m'
YELLOW = '\033[1;33m'
RED = '\033[0;31m'
CYAN = '\033[0;36m'
BOLD = '\033[1m'
NC = '\033[0m'  # No Color


class ConfigValidator:
    """Validates TEMPOLUX show files."""

    VALID_CHANNEL_MAPPINGS = ['RGB', 'RBG', 'GRB', 'GBR', 'BRG', 'BGR', 'RGBW', 'GRBW']
    GPIO_PINS = [12, 13, 18, 19, 21]
    MAX_TICK_RATE = 120

    def __init__(self, config_path: str, registry: Optional[EffectRegistry] = None):
        self.config_path = Path(config_path)
        self.registry = registry or build_registry()
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.data: Dict[str, Any] = {}
        # chain id -> effect ids declared in the file
        self.chain_effects: Dict[str, List[str]] = {}

    def validate(self) -> bool:
        """Run all validation checks."""
        if not self._check_file_exists():
            return False

        self._parse_config()

        if not self.errors:
            self._validate_globals()
            self._validate_chains()
            self._validate_actions()
            self._validate_triggers()

        return len(self.errors) == 0

    def _check_file_exists(self) -> bool:
        """Check if config file exists."""
        if not self.config_path.exists():
            self.errors.append(f"Config file not found: {self.config_path}")
            return False
        if not self.config_path.is_file():
            self.errors.append(f"Path is not a file: {self.config_path}")
            return False
        return True

    def _parse_config(self) -> None:
        """Parse the JSON show file."""
        try:
            data = json.loads(self.config_path.read_text())
        except json.JSONDecodeError as e:
            self.errors.append(f"Invalid JSON: {e}")
            return
        except OSError as e:
            self.errors.append(f"Failed to read config: {e}")
            return
        if not isinstance(data, dict):
            self.errors.append("Config root must be a JSON object")
            return
        self.data = data

    def _validate_globals(self) -> None:
        """Validate global settings using the same rules as set_global."""
        globals_data = self.data.get("globals")
        if not globals_data:
            self.warnings.append("No 'globals' section found (will use defaults)")
            return
        if not isinstance(globals_data, dict):
            self.errors.append("'globals' must be an object")
            return

        for key, value in globals_data.items():
            self._check_global(f"globals.{key}", key, value)

    def _check_global(self, where: str, key: str, value: Any) -> None:
        # A scratch executor applies the real validation without touching anything live
        scratch = ActionExecutor({}, BeatClock(), GlobalsSpec(), {})
        try:
            scratch.set_global(key, value)
        except InvalidArgumentError as e:
            if key in GLOBAL_KEYS:
                self.errors.append(f"{where}: {e}")
            else:
                self.warnings.append(f"{where}: unknown global (ignored)")

    def _validate_chains(self) -> None:
        """Validate chain configurations."""
        chains = self.data.get("chains")
        if not chains:
            self.errors.append("No chains defined")
            return
        if not isinstance(chains, list):
            self.errors.append("'chains' must be a list")
            return

        for index, chain in enumerate(chains):
            if not isinstance(chain, dict) or "id" not in chain:
                self.errors.append(f"Chain #{index + 1}: missing 'id'")
                continue
            chain_id = str(chain["id"])
            if chain_id in self.chain_effects:
                self.errors.append(f"Chain '{chain_id}': duplicate chain id")
                continue
            self.chain_effects[chain_id] = []
            self._validate_chain(chain_id, chain)

        self._check_consistency(chains)

    def _validate_chain(self, chain_id: str, chain: Dict[str, Any]) -> None:
        """Validate a single chain."""
        tick_rate = chain.get("tickRate")
        if tick_rate is None:
            self.warnings.append(f"Chain '{chain_id}': missing 'tickRate' (will use 40)")
        elif isinstance(tick_rate, bool) or not isinstance(tick_rate, int) or tick_rate <= 0:
            self.errors.append(f"Chain '{chain_id}': tickRate must be a positive integer (got {tick_rate!r})")
        elif tick_rate > self.MAX_TICK_RATE:
            self.warnings.append(f"Chain '{chain_id}': tickRate should be 1-{self.MAX_TICK_RATE} (got {tick_rate}), high values may cause issues")

        lamp_count = chain.get("numLamps")
        if lamp_count is None:
            self.errors.append(f"Chain '{chain_id}': missing 'numLamps'")
        elif isinstance(lamp_count, bool) or not isinstance(lamp_count, int) or lamp_count < 0:
            self.errors.append(f"Chain '{chain_id}': numLamps must be an integer >= 0 (got {lamp_count!r})")
        elif lamp_count == 0:
            self.warnings.append(f"Chain '{chain_id}': numLamps is 0 (chain renders nothing)")

        self._validate_output(chain_id, chain.get("output") or {})

        effects = chain.get("effects") or []
        if not effects:
            self.warnings.append(f"Chain '{chain_id}': no effects (lamps stay dark)")
        enabled_groups: Dict[str, List[str]] = {}
        for effect in effects:
            effect_id = self._validate_effect(chain_id, effect)
            if effect_id is None:
                continue
            group = effect.get("group")
            if group and effect.get("enabled", True) is not False:
                enabled_groups.setdefault(group, []).append(effect_id)

        for group, members in enabled_groups.items():
            if len(members) > 1:
                self.warnings.append(
                    f"Chain '{chain_id}': group '{group}' has several enabled effects "
                    f"({', '.join(members)}); only '{members[0]}' will stay enabled"
                )

    def _validate_effect(self, chain_id: str, effect: Any) -> Optional[str]:
        """Validate one effect entry; return its id if usable."""
        if not isinstance(effect, dict) or "id" not in effect or "type" not in effect:
            self.errors.append(f"Chain '{chain_id}': effect entry needs 'id' and 'type': {effect!r}")
            return None

        effect_id = str(effect["id"])
        if effect_id in self.chain_effects[chain_id]:
            self.errors.append(f"Chain '{chain_id}': duplicate effect id '{effect_id}'")
            return None
        self.chain_effects[chain_id].append(effect_id)

        effect_type = effect["type"]
        if effect_type not in self.registry.list_available():
            self.errors.append(
                f"Chain '{chain_id}' effect '{effect_id}': unknown effect '{effect_type}' "
                f"(valid: {', '.join(sorted(self.registry.list_available()))})"
            )
            return effect_id

        try:
            self.registry.construct(effect_type, effect.get("args") or {})
        except ConfigError as e:
            self.errors.append(f"Chain '{chain_id}' effect '{effect_id}': {e}")
        return effect_id

    def _validate_output(self, chain_id: str, output: Dict[str, Any]) -> None:
        """Validate the output binding."""
        if not output:
            self.warnings.append(f"Chain '{chain_id}': no output (frames are discarded)")
            return

        output_type = output.get("type", "null")
        if output_type not in OUTPUT_TYPES:
            self.errors.append(f"Chain '{chain_id}': invalid output type '{output_type}' (valid: {', '.join(OUTPUT_TYPES)})")
            return

        mapping = output.get("channelMapping", "RGBW")
        channels = output.get("numChannelsPerLamp", 4)
        if mapping not in self.VALID_CHANNEL_MAPPINGS:
            self.warnings.append(f"Chain '{chain_id}': uncommon channelMapping '{mapping}' (common: RGB, GRB, RGBW)")
        if isinstance(channels, int) and len(mapping) != channels:
            self.warnings.append(f"Chain '{chain_id}': channelMapping '{mapping}' does not match numChannelsPerLamp {channels}")

        if output_type in ("gpio", "proxy"):
            args = output.get("args") or {}
            pin = args.get("gpio_pin", 18)
            if not isinstance(pin, int):
                self.errors.append(f"Chain '{chain_id}': gpio_pin must be an integer (got {pin!r})")
            elif pin not in self.GPIO_PINS:
                self.warnings.append(f"Chain '{chain_id}': GPIO pin {pin} may not support PWM (valid: {self.GPIO_PINS})")
            start = args.get("index_start", 1)
            if not isinstance(start, int) or start < 1:
                self.errors.append(f"Chain '{chain_id}': index_start must be an integer >= 1 (got {start!r})")

    def _validate_actions(self) -> None:
        """Validate events and the chains/effects their actions refer to."""
        actions = self.data.get("actions") or {}
        if not isinstance(actions, dict):
            self.errors.append("'actions' must be an object mapping event names to action lists")
            return

        for event, entries in actions.items():
            if not isinstance(entries, list):
                self.errors.append(f"Event '{event}': actions must be a list")
                continue
            for entry in entries:
                try:
                    parsed = actions_from_dict(entry)
                except (ConfigError, AttributeError) as e:
                    self.errors.append(f"Event '{event}': {e}")
                    continue
                for action in parsed:
                    self._check_action(event, action)

    def _check_action(self, event: str, action: Any) -> None:
        if isinstance(action, SetGlobal):
            if action.key not in GLOBAL_KEYS:
                self.errors.append(f"Event '{event}': set_global has unknown key '{action.key}' (valid: {', '.join(GLOBAL_KEYS)})")
            else:
                self._check_global(f"Event '{event}' set_global", action.key, action.value)
            return

        if action.chain_id not in self.chain_effects:
            self.errors.append(f"Event '{event}': {action.type} refers to unknown chain '{action.chain_id}'")
            return

        if isinstance(action, AddEffect):
            if action.spec.type not in self.registry.list_available():
                self.errors.append(f"Event '{event}': add_effect uses unknown effect '{action.spec.type}'")
            else:
                try:
                    self.registry.construct(action.spec.type, action.spec.args)
                except ConfigError as e:
                    self.errors.append(f"Event '{event}': add_effect '{action.spec.id}': {e}")
        elif isinstance(action, (RemoveEffect, ToggleEffect)):
            if action.effect_id not in self.chain_effects[action.chain_id]:
                # May be added by another event first, so only a warning
                self.warnings.append(
                    f"Event '{event}': {action.type} refers to effect '{action.effect_id}' "
                    f"not declared in chain '{action.chain_id}'"
                )

    def _validate_triggers(self) -> None:
        """Check that triggers point at defined events."""
        events = self.data.get("actions") or {}
        for trigger in self.data.get("triggers") or []:
            name = trigger.get("event_name") if isinstance(trigger, dict) else None
            if not name:
                self.warnings.append(f"Trigger without 'event_name': {trigger!r}")
            elif name not in events:
                self.warnings.append(f"Trigger refers to unknown event '{name}'")

    def _check_consistency(self, chains: List[Any]) -> None:
        """Check for consistency issues across chains."""
        # Shared GPIO pins are a warning, not an error - could be intentional
        gpio_usage: Dict[int, List[str]] = {}
        for chain in chains:
            if not isinstance(chain, dict):
                continue
            output = chain.get("output") or {}
            if output.get("type") in ("gpio", "proxy"):
                pin = (output.get("args") or {}).get("gpio_pin", 18)
                if isinstance(pin, int):
                    gpio_usage.setdefault(pin, []).append(str(chain.get("id")))

        for pin, chain_ids in gpio_usage.items():
            if len(chain_ids) > 1:
                self.warnings.append(f"GPIO pin {pin} used by multiple chains: {', '.join(chain_ids)} (this is OK if intentional)")

    def print_results(self) -> None:
        """Print validation results."""
        print(f"\n{BOLD}{CYAN}TEMPOLUX Configuration Validator{NC}")
        print(f"Config: {self.config_path}\n")

        if self.errors:
            print(f"{RED}{BOLD}❌ ERRORS ({len(self.errors)}):{NC}")
            for error in self.errors:
                print(f"  {RED}✗{NC} {error}")
            print()

        if self.warnings:
            print(f"{YELLOW}{BOLD}⚠️  WARNINGS ({len(self.warnings)}):{NC}")
            for warning in self.warnings:
                print(f"  {YELLOW}⚠{NC} {warning}")
            print()

        if not self.errors and not self.warnings:
            print(f"{GREEN}{BOLD}✅ Configuration is valid!{NC}\n")
            print(f"  Found {len(self.chain_effects)} chain(s)")
            print(f"  Events: {len(self.data.get('actions') or {})} defined")
        elif not self.errors:
            print(f"{GREEN}{BOLD}✅ Configuration is valid (with warnings){NC}\n")
            print(f"  Found {len(self.chain_effects)} chain(s)")
        else:
            print(f"{RED}{BOLD}❌ Configuration has errors{NC}\n")


def run_validator(config_path: str, quiet: bool = False) -> int:
    """Validate, print the report and return the process exit code."""
    validator = ConfigValidator(config_path)
    is_valid = validator.validate()

    if quiet:
        validator.warnings = []  # Suppress warnings in quiet mode

    validator.print_results()
    return 0 if is_valid else 1
