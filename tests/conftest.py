# tests/conftest.py
"""
Shared fixtures: an in-memory snapshot source, a recording device, and a
sample uiautomator dump.
"""

import pytest

from bochi.actionlogger import ACTION_LOGGER
from bochi.config import TimeConfig
from bochi.context import ActionContextManager
from bochi.device import Device
from bochi.snapshot import SnapshotSource, parse_hierarchy
from bochi.timinglogger import TIMING_LOGGER

SAMPLE_DUMP = """<?xml version='1.0' encoding='UTF-8' standalone='yes' ?>
<hierarchy rotation="0">
  <node index="0" text="" resource-id="" class="android.widget.FrameLayout" package="com.example" content-desc="" checkable="false" checked="false" clickable="false" enabled="true" focusable="false" focused="false" scrollable="false" long-clickable="false" password="false" selected="false" bounds="[0,0][1080,1920]">
    <node index="0" text="" resource-id="com.example:id/content" class="android.widget.LinearLayout" package="com.example" content-desc="" checkable="false" checked="false" clickable="false" enabled="true" focusable="false" focused="false" scrollable="false" long-clickable="false" password="false" selected="false" bounds="[0,0][1080,600]">
      <node index="0" text="Settings" resource-id="com.example:id/title" class="android.widget.TextView" package="com.example" content-desc="" checkable="false" checked="false" clickable="false" enabled="true" focusable="false" focused="false" scrollable="false" long-clickable="false" password="false" selected="false" bounds="[40,40][1040,140]" />
      <node index="1" text="" resource-id="com.example:id/username" class="android.widget.EditText" package="com.example" content-desc="Username" checkable="false" checked="false" clickable="true" enabled="true" focusable="true" focused="false" scrollable="false" long-clickable="true" password="false" selected="false" bounds="[40,200][1040,300]" />
      <node index="2" text="OK" resource-id="com.example:id/ok" class="android.widget.Button" package="com.example" content-desc="" checkable="false" checked="false" clickable="true" enabled="true" focusable="true" focused="false" scrollable="false" long-clickable="false" password="false" selected="false" bounds="[40,400][540,500]" />
      <node index="3" text="Cancel" resource-id="com.example:id/cancel" class="android.widget.Button" package="com.example" content-desc="" checkable="false" checked="false" clickable="true" enabled="false" focusable="true" focused="false" scrollable="false" long-clickable="false" password="false" selected="false" bounds="[540,400][1040,500]" />
    </node>
    <node index="1" text="" resource-id="com.example:id/list" class="android.widget.ListView" package="com.example" content-desc="" checkable="false" checked="false" clickable="false" enabled="true" focusable="true" focused="false" scrollable="true" long-clickable="false" password="false" selected="false" bounds="[0,600][1080,1800]">
      <node index="0" text="Item 1" resource-id="" class="android.widget.TextView" package="com.example" content-desc="" checkable="false" checked="false" clickable="true" enabled="true" focusable="false" focused="false" scrollable="false" long-clickable="false" password="false" selected="false" bounds="[0,600][1080,700]" />
      <node index="1" text="Item 2" resource-id="" class="android.widget.TextView" package="com.example" content-desc="second item" checkable="false" checked="false" clickable="true" enabled="true" focusable="false" focused="false" scrollable="false" long-clickable="false" password="false" selected="false" bounds="[0,700][1080,800]" />
    </node>
  </node>
</hierarchy>
"""


def list_dump(*texts):
    """A dump with a scrollable list showing ``texts``."""
    items = "".join(
        f'<node text="{text}" class="android.widget.TextView" clickable="true" '
        f'bounds="[0,{200 + i * 100}][1080,{300 + i * 100}]" />'
        for i, text in enumerate(texts)
    )
    return (
        '<hierarchy rotation="0">'
        '<node class="android.widget.ListView" resource-id="com.example:id/list" '
        'scrollable="true" bounds="[0,200][1080,1800]">'
        f"{items}"
        "</node></hierarchy>"
    )


class FakeSnapshotSource(SnapshotSource):
    """
    Replays a fixed sequence of snapshots; the last one repeats forever.

    An exception instance in the sequence is raised instead of returned.
    """

    def __init__(self, *snapshots):
        self.snapshots = list(snapshots)
        self.calls = 0

    def acquire(self):
        item = self.snapshots[min(self.calls, len(self.snapshots) - 1)]
        self.calls += 1
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, str):
            return parse_hierarchy(item)
        return item


class RecordingDevice(Device):
    """Records every call; raises ``error`` from each call when set."""

    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def _record(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    def tap(self, x, y):
        self._record("tap", x, y)

    def swipe(self, x1, y1, x2, y2, duration_ms):
        self._record("swipe", x1, y1, x2, y2, duration_ms)

    def input_text(self, text):
        self._record("input_text", text)


@pytest.fixture
def sample_tree():
    return parse_hierarchy(SAMPLE_DUMP)


@pytest.fixture
def device():
    return RecordingDevice()


@pytest.fixture
def quick_config():
    """Timing config with every pause at zero."""
    return TimeConfig.build_from(overrides={
        "resolve": {"interval": 0.01},
        "double_tap_pause": 0,
        "focus_pause": 0,
        "scroll_settle_pause": 0,
        "swipe_duration": 0.3,
    })


class FakeClock:
    """Monotonic clock that only moves when the code under test sleeps."""

    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock(monkeypatch):
    """Freeze time for bochi.waits; sleeping advances the fake clock."""
    fake = FakeClock()
    monkeypatch.setattr("bochi.waits._now", fake)
    monkeypatch.setattr("bochi.waits.time.sleep", fake.sleep)
    return fake


@pytest.fixture(autouse=True)
def _reset_global_state():
    ActionContextManager.clear()
    yield
    ACTION_LOGGER.disable()
    ACTION_LOGGER.configure()
    TIMING_LOGGER.disable()
    TIMING_LOGGER.configure()
    ActionContextManager.clear()
