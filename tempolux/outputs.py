"""
TEMPOLUX Outputs - Lamp buffer sinks

NullOutput: discards frames (dry runs)
MemoryOutput: keeps the last frame (tests, previews)
ProxyOutput: posts frames to a ws281x proxy server over HTTP
GPIOOutput: rpi_ws281x for Pi GPIO-attached strips
"""

import asyncio
import json
import logging
import time
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

from .colors import Lamp
from .errors import ConfigError, OutputError
from .specs import OutputSpec

_logger = logging.getLogger(__name__)

# Try to import rpi_ws281x (only available on Raspberry Pi)
try:
    from rpi_ws281x import PixelStrip, Color
    RPI_WS281X_AVAILABLE = True
except ImportError:
    RPI_WS281X_AVAILABLE = False
    PixelStrip = None
    Color = None

# Shared pixel strips by GPIO pin (several chains can share one strip)
_gpio_strips: Dict[int, "PixelStrip"] = {}
_gpio_strip_sizes: Dict[int, int] = {}
_gpio_strips_lock = Lock()


class Output(ABC):
    """
    Base class for lamp sinks.

    send() must not keep a reference to the lamp list after it returns; the
    chain mutates the same buffer on its next tick.
    """

    def __init__(self, chain_id: str, spec: OutputSpec):
        self.chain_id = chain_id
        self.spec = spec

    @abstractmethod
    async def send(self, lamps: List[Lamp]) -> None:
        """Push one frame to the device."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release the device. Called once when the chain loop exits."""
        return None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.chain_id}>"


class NullOutput(Output):
    """Discards frames, counting them."""

    def __init__(self, chain_id: str, spec: OutputSpec):
        super().__init__(chain_id, spec)
        self.frame_count = 0

    async def send(self, lamps: List[Lamp]) -> None:
        self.frame_count += 1


class MemoryOutput(Output):
    """Keeps a copy of the most recent frame."""

    def __init__(self, chain_id: str, spec: OutputSpec):
        super().__init__(chain_id, spec)
        self.last_frame: Optional[List[Tuple[int, int, int, int]]] = None
        self.frame_count = 0
        self.close_count = 0

    async def send(self, lamps: List[Lamp]) -> None:
        self.last_frame = [lamp.as_tuple() for lamp in lamps]
        self.frame_count += 1

    async def close(self) -> None:
        self.close_count += 1


class ProxyOutput(Output):
    """
    Output talking to a ws281x proxy server running as root.

    The proxy takes colors as 0.0-1.0 RGB triples starting at a 1-based
    index on a GPIO pin. Requests run in a worker thread.
    """

    def __init__(self, chain_id: str, spec: OutputSpec, lamp_count: int = 0):
        super().__init__(chain_id, spec)
        self.lamp_count = lamp_count
        args = spec.args
        self.gpio_pin = int(args.get("gpio_pin", 18))
        self.index_start = int(args.get("index_start", 1))
        self.proxy_host = args.get("proxy_host", "127.0.0.1")
        self.proxy_port = int(args.get("proxy_port", 3769))
        self.http_timeout = float(args.get("http_timeout", 0.1))
        # Color order for WS281x strips (most common is GRB for WS2812B)
        self.color_order = str(args.get("color_order", "GRB")).upper().strip()

    def _proxy_url(self, path: str) -> str:
        return f"http://{self.proxy_host}:{self.proxy_port}{path}"

    def _payload(self, lamps: List[Lamp]) -> Dict[str, Any]:
        return {
            "gpio_pin": self.gpio_pin,
            "index_start": self.index_start,
            "colors": [[lamp.r / 255.0, lamp.g / 255.0, lamp.b / 255.0] for lamp in lamps],
            "color_order": self.color_order,
        }

    async def _post(self, path: str, payload: Dict[str, Any]) -> None:
        """Blocking HTTP POST to the proxy, run off the event loop."""
        url = self._proxy_url(path)
        data = json.dumps(payload).encode("utf-8")

        def _send() -> None:
            start_time = time.time()
            req = urllib.request.Request(url, data=data, headers={"Content-Type": "application/json"})
            try:
                with urllib.request.urlopen(req, timeout=self.http_timeout):
                    pass
            except (urllib.error.URLError, OSError) as e:
                raise OutputError(f"proxy {url}: {e}") from e
            elapsed = time.time() - start_time
            if elapsed > 0.05:
                _logger.warning(f"[TEMPOLUX] {self.chain_id}: slow proxy response {elapsed * 1000:.1f}ms on {path}")

        await asyncio.to_thread(_send)

    async def send(self, lamps: List[Lamp]) -> None:
        # Serialize before awaiting so the buffer is not referenced afterwards
        await self._post("/set_leds", self._payload(lamps))

    async def close(self) -> None:
        if self.lamp_count <= 0:
            return
        try:
            await self._post("/set_leds", self._payload([Lamp() for _ in range(self.lamp_count)]))
        except OutputError as e:
            _logger.warning(f"[TEMPOLUX] {self.chain_id}: blackout on close failed: {e}")


class GPIOOutput(Output):
    """
    Output for Raspberry Pi GPIO-attached WS281x strips.

    Several chains may share a pin with different index ranges; the strip
    grows to cover the highest index any of them needs.
    """

    # LED strip configuration (WS2812B defaults)
    LED_FREQ_HZ = 800000      # LED signal frequency in hertz
    LED_DMA = 10              # DMA channel for generating signal
    LED_INVERT = False        # True to invert the signal
    LED_BRIGHTNESS = 255      # Global brightness (0-255)
    LED_CHANNEL = 0           # GPIO 18 uses PWM channel 0

    def __init__(self, chain_id: str, spec: OutputSpec, lamp_count: int):
        super().__init__(chain_id, spec)
        if not RPI_WS281X_AVAILABLE:
            raise OutputError(f"{chain_id}: rpi_ws281x not available (install with: pip install rpi_ws281x)")
        self.gpio_pin = int(spec.args.get("gpio_pin", 18))
        self.index_start = int(spec.args.get("index_start", 1))
        self.lamp_count = lamp_count
        self.strip = self._init_strip(self.index_start - 1 + lamp_count)

    def _init_strip(self, size: int) -> "PixelStrip":
        """Get or create the shared PixelStrip for this pin, growing it if needed."""
        with _gpio_strips_lock:
            current = _gpio_strips.get(self.gpio_pin)
            current_size = _gpio_strip_sizes.get(self.gpio_pin, 0)
            if current is not None and size <= current_size:
                return current

            _logger.info(f"[TEMPOLUX] Creating GPIO {self.gpio_pin} strip with {size} LEDs")
            try:
                strip = PixelStrip(
                    size,
                    self.gpio_pin,
                    self.LED_FREQ_HZ,
                    self.LED_DMA,
                    self.LED_INVERT,
                    self.LED_BRIGHTNESS,
                    self.LED_CHANNEL,
                )
                strip.begin()
            except RuntimeError as e:
                raise OutputError(f"{self.chain_id}: failed to initialize GPIO strip: {e}") from e

            if current is not None:
                for i in range(current_size):
                    strip.setPixelColor(i, current.getPixelColor(i))
            _gpio_strips[self.gpio_pin] = strip
            _gpio_strip_sizes[self.gpio_pin] = size
            return strip

    def _write(self, lamps: List[Lamp]) -> None:
        # Another chain on this pin may have grown the strip since we opened it
        strip = _gpio_strips.get(self.gpio_pin, self.strip)
        white = self.spec.channels_per_lamp == 4 and self.spec.channel_mapping == "RGBW"
        for i, lamp in enumerate(lamps):
            color = Color(lamp.r, lamp.g, lamp.b, lamp.w) if white else Color(lamp.r, lamp.g, lamp.b)
            strip.setPixelColor(self.index_start - 1 + i, color)
        strip.show()

    async def send(self, lamps: List[Lamp]) -> None:
        self._write(lamps)

    async def close(self) -> None:
        self._write([Lamp() for _ in range(self.lamp_count)])


def create_output(chain_id: str, spec: OutputSpec, lamp_count: int = 0) -> Output:
    """
    Factory function to create the output named by spec.type.

    Raises:
        ConfigError: If the type is unknown
        OutputError: If the device cannot be opened
    """
    output_type = spec.type

    if output_type == "null":
        return NullOutput(chain_id, spec)
    elif output_type == "memory":
        return MemoryOutput(chain_id, spec)
    elif output_type == "proxy":
        return ProxyOutput(chain_id, spec, lamp_count)
    elif output_type == "gpio":
        return GPIOOutput(chain_id, spec, lamp_count)
    raise ConfigError(f"Unknown output type '{output_type}' for chain {chain_id}")


OUTPUT_TYPES = ("null", "memory", "proxy", "gpio")
