"""Tests for output sinks."""

import asyncio
import json
import urllib.error
import urllib.request

import pytest

from tempolux import outputs
from tempolux.colors import Lamp
from tempolux.errors import ConfigError, OutputError
from tempolux.outputs import GPIOOutput, MemoryOutput, NullOutput, ProxyOutput, create_output
from tempolux.specs import OutputSpec


class _FakeResponse:
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class _FakeStrip:
    """Stands in for rpi_ws281x.PixelStrip."""

    def __init__(self, num, pin, *args):
        self.num = num
        self.pin = pin
        self.pixels = [0] * num
        self.show_count = 0

    def begin(self):
        pass

    def setPixelColor(self, index, color):
        self.pixels[index] = color

    def getPixelColor(self, index):
        return self.pixels[index]

    def show(self):
        self.show_count += 1


@pytest.fixture
def fake_gpio(monkeypatch):
    monkeypatch.setattr(outputs, "RPI_WS281X_AVAILABLE", True)
    monkeypatch.setattr(outputs, "PixelStrip", _FakeStrip)
    monkeypatch.setattr(outputs, "Color", lambda r, g, b, w=0: (r, g, b, w))
    monkeypatch.setattr(outputs, "_gpio_strips", {})
    monkeypatch.setattr(outputs, "_gpio_strip_sizes", {})
    return outputs


class TestFactory:

    def test_known_types(self):
        assert isinstance(create_output("a", OutputSpec(type="null")), NullOutput)
        assert isinstance(create_output("a", OutputSpec(type="memory")), MemoryOutput)
        assert isinstance(create_output("a", OutputSpec(type="proxy"), lamp_count=4), ProxyOutput)

    def test_unknown_type(self):
        with pytest.raises(ConfigError):
            create_output("a", OutputSpec(type="dmx"))

    def test_gpio_unavailable(self, monkeypatch):
        monkeypatch.setattr(outputs, "RPI_WS281X_AVAILABLE", False)
        with pytest.raises(OutputError):
            create_output("a", OutputSpec(type="gpio"), lamp_count=4)


class TestMemoryOutputs:

    def test_null_counts_frames(self):
        out = NullOutput("a", OutputSpec())
        asyncio.run(out.send([Lamp(1)]))
        assert out.frame_count == 1

    def test_memory_copies_the_frame(self):
        out = MemoryOutput("a", OutputSpec(type="memory"))
        lamps = [Lamp(1, 2, 3, 4)]
        asyncio.run(out.send(lamps))
        lamps[0].set(9, 9, 9, 9)
        assert out.last_frame == [(1, 2, 3, 4)]

    def test_memory_counts_closes(self):
        out = MemoryOutput("a", OutputSpec(type="memory"))
        asyncio.run(out.close())
        assert out.close_count == 1


class TestProxyOutput:

    def test_posts_normalized_colors(self, monkeypatch):
        calls = []

        def fake_urlopen(req, timeout):
            calls.append((req.full_url, json.loads(req.data), timeout))
            return _FakeResponse()

        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
        spec = OutputSpec(type="proxy", args={"gpio_pin": 21, "index_start": 5, "proxy_port": 9000})
        out = ProxyOutput("a", spec, lamp_count=2)
        asyncio.run(out.send([Lamp(255, 0, 0), Lamp(0, 51, 255)]))

        url, payload, timeout = calls[0]
        assert url == "http://127.0.0.1:9000/set_leds"
        assert payload["gpio_pin"] == 21
        assert payload["index_start"] == 5
        assert payload["colors"] == [[1.0, 0.0, 0.0], [0.0, 0.2, 1.0]]
        assert payload["color_order"] == "GRB"
        assert timeout == 0.1

    def test_close_sends_blackout(self, monkeypatch):
        calls = []

        def fake_urlopen(req, timeout):
            calls.append(json.loads(req.data))
            return _FakeResponse()

        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
        out = ProxyOutput("a", OutputSpec(type="proxy"), lamp_count=3)
        asyncio.run(out.close())
        assert calls[0]["colors"] == [[0.0, 0.0, 0.0]] * 3

    def test_unreachable_proxy(self, monkeypatch):
        def fake_urlopen(req, timeout):
            raise urllib.error.URLError("connection refused")

        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
        out = ProxyOutput("a", OutputSpec(type="proxy"), lamp_count=1)
        with pytest.raises(OutputError):
            asyncio.run(out.send([Lamp()]))
        # Close swallows the failure, the show is shutting down anyway
        asyncio.run(out.close())

    def test_lamp_count_does_not_leak_into_spec(self):
        spec = OutputSpec(type="proxy")
        create_output("a", spec, lamp_count=8)
        assert spec.args == {}


class TestGPIOOutput:

    def test_writes_at_index_offset(self, fake_gpio):
        spec = OutputSpec(type="gpio", args={"index_start": 3}, channel_mapping="RGB", channels_per_lamp=3)
        out = GPIOOutput("a", spec, lamp_count=2)
        asyncio.run(out.send([Lamp(1, 2, 3, 4), Lamp(5, 6, 7, 8)]))
        assert out.strip.num == 4
        assert out.strip.pixels == [0, 0, (1, 2, 3, 0), (5, 6, 7, 0)]
        assert out.strip.show_count == 1

    def test_rgbw_keeps_white(self, fake_gpio):
        out = GPIOOutput("a", OutputSpec(type="gpio"), lamp_count=1)
        asyncio.run(out.send([Lamp(1, 2, 3, 4)]))
        assert out.strip.pixels[0] == (1, 2, 3, 4)

    def test_chains_share_and_grow_a_pin(self, fake_gpio):
        first = GPIOOutput("a", OutputSpec(type="gpio"), lamp_count=2)
        asyncio.run(first.send([Lamp(9), Lamp(9)]))
        second = GPIOOutput("b", OutputSpec(type="gpio", args={"index_start": 3}), lamp_count=3)
        assert second.strip.num == 5
        # The grown strip keeps what the first chain wrote
        assert second.strip.pixels[:2] == [(9, 0, 0, 0)] * 2

        asyncio.run(first.send([Lamp(7), Lamp(7)]))
        assert second.strip.pixels[:2] == [(7, 0, 0, 0)] * 2

    def test_close_blacks_out(self, fake_gpio):
        out = GPIOOutput("a", OutputSpec(type="gpio"), lamp_count=2)
        asyncio.run(out.send([Lamp(9), Lamp(9)]))
        asyncio.run(out.close())
        assert out.strip.pixels == [(0, 0, 0, 0)] * 2

    def test_strip_init_failure(self, fake_gpio, monkeypatch):
        class _Broken(_FakeStrip):
            def begin(self):
                raise RuntimeError("ws2811_init failed")

        monkeypatch.setattr(outputs, "PixelStrip", _Broken)
        with pytest.raises(OutputError):
            GPIOOutput("a", OutputSpec(type="gpio"), lamp_count=2)
