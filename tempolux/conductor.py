"""
TEMPOLUX Conductor

Wires a show together: builds the beat clock from the globals, one chain (and
output) per chain spec, and the action executor. Runs one asyncio task per
chain and exposes event triggering and a status snapshot.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from .actions import ActionExecutor
from .chain import DEFAULT_SEND_TIMEOUT, Chain
from .clock import BeatClock
from .colors import parse_hex_color, to_hex
from .config import ShowConfig
from .effects import build_registry
from .effects.registry import EffectRegistry
from .errors import ConfigError, OutputError, StartupError
from .outputs import Output, create_output
from .specs import OutputSpec

_logger = logging.getLogger(__name__)

OutputFactory = Callable[[str, OutputSpec, int], Output]


class Conductor:
    """
    TEMPOLUX Conductor

    Owns the clock, chains and executor for one show.
    """

    def __init__(
        self,
        config: ShowConfig,
        registry: Optional[EffectRegistry] = None,
        output_factory: OutputFactory = create_output,
        debug: bool = False,
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
        stop_timeout: float = 2.0,
    ) -> None:
        self.config = config
        self.registry = registry or build_registry()
        self.debug = debug
        self.stop_timeout = stop_timeout

        g = config.globals
        try:
            self.clock = BeatClock(
                bpm=g.bpm,
                color1=parse_hex_color(g.color1),
                color2=parse_hex_color(g.color2),
                intensity=g.intensity,
            )
        except ValueError as e:
            raise StartupError(f"Invalid globals: {e}") from e

        # Chains and outputs
        self.chains: Dict[str, Chain] = {}
        for spec in config.chains:
            if spec.id in self.chains:
                raise StartupError(f"Duplicate chain id '{spec.id}'")
            try:
                output = output_factory(spec.id, spec.output, spec.lamp_count)
            except (ConfigError, OutputError) as e:
                raise StartupError(f"Chain '{spec.id}': cannot create output: {e}") from e
            self.chains[spec.id] = Chain(spec, self.registry, self.clock, output, send_timeout)

        self.executor = ActionExecutor(self.chains, self.clock, config.globals, config.actions)

        self._tasks: Dict[str, asyncio.Task] = {}
        self._stop_event: Optional[asyncio.Event] = None

        self._log_info(f"Initialized with {len(self.chains)} chains, {len(config.actions)} events")

    # ─────────────────────────────────────────────────────────────
    # Task Exception Handling
    # ─────────────────────────────────────────────────────────────

    def _task_exception_handler(self, task: asyncio.Task) -> None:
        """Handle exceptions from chain tasks."""
        try:
            task.result()  # This will raise if task failed
        except asyncio.CancelledError:
            pass  # Expected during shutdown
        except Exception as e:
            _logger.error(f"[TEMPOLUX] Unhandled exception in {task.get_name()}: {e}", exc_info=e)

    # ─────────────────────────────────────────────────────────────
    # Logging Helpers (respects debug setting)
    # ─────────────────────────────────────────────────────────────

    def _log_debug(self, msg: str) -> None:
        """Log debug message (only if debug enabled)."""
        if not self.debug:
            return
        _logger.info(f"[TEMPOLUX] {msg}")

    def _log_info(self, msg: str) -> None:
        """Log info message (always)."""
        _logger.info(f"[TEMPOLUX] {msg}")

    def _log_warning(self, msg: str) -> None:
        """Log warning message (always)."""
        _logger.warning(f"[TEMPOLUX] {msg}")

    def _log_error(self, msg: str) -> None:
        """Log error message (always)."""
        _logger.error(f"[TEMPOLUX] {msg}")

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks.values())

    async def start(self) -> None:
        """Launch one task per chain."""
        if self.running:
            self._log_warning("Already running")
            return
        self._stop_event = asyncio.Event()
        for chain_id, chain in self.chains.items():
            task = asyncio.create_task(chain.run(), name=f"chain-{chain_id}")
            task.add_done_callback(self._task_exception_handler)
            self._tasks[chain_id] = task
        self._log_info(f"Started {len(self._tasks)} chain loops")

    async def stop(self) -> None:
        """Stop every chain loop; each chain closes its output once."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        self._log_info("Stopping chain loops")
        for chain in self.chains.values():
            chain.stop()

        _, pending = await asyncio.wait(tasks, timeout=self.stop_timeout)
        for task in pending:
            self._log_warning(f"{task.get_name()} did not stop in time, cancelling")
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
        if self._stop_event is not None:
            self._stop_event.set()

    def request_stop(self) -> None:
        """Make wait() return (e.g. from a signal handler)."""
        if self._stop_event is not None:
            self._stop_event.set()

    async def wait(self, duration: Optional[float] = None) -> None:
        """Block until request_stop() is called or duration seconds pass."""
        if self._stop_event is None:
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=duration)
        except asyncio.TimeoutError:
            pass

    async def run_forever(self, duration: Optional[float] = None) -> None:
        """Run until request_stop() is called or duration seconds pass."""
        await self.start()
        try:
            await self.wait(duration)
        finally:
            await self.stop()

    # ─────────────────────────────────────────────────────────────
    # Control surface
    # ─────────────────────────────────────────────────────────────

    def trigger_event(self, name: str) -> int:
        """Run an event's actions; returns how many succeeded."""
        self._log_debug(f"Event requested: {name}")
        return self.executor.trigger_event(name)

    def status(self) -> Dict[str, Any]:
        state = self.clock.snapshot()
        return {
            "running": self.running,
            "globals": {
                "bpm": state.bpm,
                "color1": to_hex(state.color1),
                "color2": to_hex(state.color2),
                "intensity": state.intensity,
                "beat_progress": round(state.beat_progress, 3),
            },
            "chains": {
                chain_id: {
                    "tick_rate": chain.tick_rate,
                    "lamp_count": len(chain.lamps),
                    "dirty": chain.dirty,
                    "frames": chain.frame_count,
                    "output": chain.spec.output.type,
                    "enabled_effects": chain.enabled_effect_ids(),
                }
                for chain_id, chain in self.chains.items()
            },
            "events": sorted(self.executor.events),
        }
