# tests/test_actions.py
"""
Tests for the command dispatcher.
"""

import pytest
import yaml

from bochi.actionlogger import ACTION_LOGGER
from bochi.actions import COMMANDS, LONG_TAP_DURATION_MS, Actions
from bochi.exceptions import ActionFailure, AdbError, NotFoundError, SelectorSyntaxError
from bochi.resolver import Resolver
from bochi.timinglogger import TIMING_LOGGER
from bochi.tree import build_tree

from conftest import SAMPLE_DUMP, FakeSnapshotSource, RecordingDevice, list_dump


def make_actions(config, device, *snapshots):
    source = FakeSnapshotSource(*snapshots)
    return Actions(Resolver(source, config), device, config), source


class TestTaps:
    """Tests for tap, doubleTap and longTap."""

    def test_tap_at_center(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        result = actions.execute("tap", '[text="OK"]', timeout=5)
        assert device.calls == [("tap", 290, 450)]
        assert result.command == "tap"
        assert result.selector == '[text="OK"]'
        assert result.match.node.get("text") == "OK"

    def test_double_tap(self, clock, quick_config, device):
        config = quick_config.with_overrides({"double_tap_pause": 0.125})
        actions, _ = make_actions(config, device, SAMPLE_DUMP)
        actions.execute("doubleTap", "[text=Cancel]", timeout=5)
        assert device.calls == [("tap", 790, 450), ("tap", 790, 450)]
        assert clock.sleeps == [0.125]

    def test_long_tap_is_zero_distance_swipe(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        actions.execute("longTap", "[text=Settings]", timeout=5)
        assert device.calls == [("swipe", 540, 90, 540, 90, LONG_TAP_DURATION_MS)]
        assert LONG_TAP_DURATION_MS == 1000

    def test_tap_first_of_many(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        actions.execute("tap", "[text^=Item]", timeout=5)
        assert device.calls == [("tap", 540, 650)]

    def test_node_without_bounds(self, clock, quick_config, device):
        tree = build_tree({"attributes": {"class": "Root"}, "children": [{"attributes": {"text": "ghost"}}]})
        actions, _ = make_actions(quick_config, device, tree)
        with pytest.raises(ActionFailure) as exc_info:
            actions.execute("tap", "[text=ghost]", timeout=0)
        assert "no bounds" in str(exc_info.value)
        assert device.calls == []

    def test_not_found_means_no_device_action(self, clock, quick_config, device):
        actions, source = make_actions(quick_config, device, SAMPLE_DUMP)
        with pytest.raises(NotFoundError):
            actions.execute("tap", "[text=Missing]", timeout=0)
        assert device.calls == []
        assert source.calls == 1

    def test_device_failure_is_surfaced(self, clock, quick_config):
        device = RecordingDevice(error=ActionFailure("tap", details="adb exited 1"))
        actions, source = make_actions(quick_config, device, SAMPLE_DUMP)
        with pytest.raises(ActionFailure) as exc_info:
            actions.execute("tap", "[text=OK]", timeout=5)
        assert "adb exited 1" in str(exc_info.value)
        assert source.calls == 1

    def test_unexpected_error_is_wrapped(self, clock, quick_config):
        device = RecordingDevice(error=RuntimeError("boom"))
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        with pytest.raises(ActionFailure) as exc_info:
            actions.execute("tap", "[text=OK]", timeout=5)
        err = exc_info.value
        assert isinstance(err.cause, RuntimeError)
        assert "(cause: RuntimeError: boom)" in str(err)
        assert err.__cause__ is err.cause

    def test_unwritable_log_files_do_not_block_the_tap(self, clock, quick_config, device, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")
        ACTION_LOGGER.configure(console=False, file_path=str(blocker / "actions.log"))
        ACTION_LOGGER.enable()
        TIMING_LOGGER.configure(console=False, file_path=str(blocker / "timing.log"))
        TIMING_LOGGER.enable()
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        actions.execute("tap", "[text=OK]", timeout=0)
        assert device.calls == [("tap", 290, 450)]

    def test_bochi_errors_are_not_wrapped(self, clock, quick_config):
        device = RecordingDevice(error=AdbError("device offline"))
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        with pytest.raises(AdbError):
            actions.execute("tap", "[text=OK]", timeout=5)


class TestInputText:
    """Tests for inputText."""

    def test_focus_then_type(self, clock, quick_config, device):
        config = quick_config.with_overrides({"focus_pause": 0.25})
        actions, _ = make_actions(config, device, SAMPLE_DUMP)
        actions.execute("inputText", "[resource-id$=username]", timeout=5, text="jane doe")
        assert device.calls == [("tap", 540, 250), ("input_text", "jane doe")]
        assert clock.sleeps == [0.25]

    def test_focusable_node_is_accepted(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        actions.execute("inputText", "[scrollable=true]", timeout=0, text="x")
        assert device.calls[-1] == ("input_text", "x")

    def test_edit_text_class_is_accepted(self, clock, quick_config, device):
        tree = build_tree({"attributes": {
            "class": "androidx.appcompat.widget.AppCompatEditText",
            "focusable": "false",
            "bounds": "[0,0][100,100]",
        }})
        actions, _ = make_actions(quick_config, device, tree)
        actions.execute("inputText", "[class$=EditText]", timeout=0, text="x")
        assert device.calls == [("tap", 50, 50), ("input_text", "x")]

    def test_non_focusable_node_rejected(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        with pytest.raises(ActionFailure) as exc_info:
            actions.execute("inputText", "[text=Settings]", timeout=0, text="x")
        assert "not focusable" in str(exc_info.value)
        assert device.calls == []

    def test_missing_text(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        with pytest.raises(ActionFailure):
            actions.execute("inputText", "[resource-id$=username]", timeout=0)

    def test_empty_text_only_focuses(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        actions.execute("inputText", "[resource-id$=username]", timeout=0, text="")
        assert device.calls == [("tap", 540, 250)]


class TestScroll:
    """Tests for scrollUp and scrollDown."""

    def test_target_in_third_snapshot_takes_two_scrolls(self, clock, quick_config, device):
        actions, source = make_actions(
            quick_config, device,
            list_dump("A", "B"), list_dump("C", "D"), list_dump("E", "F"),
        )
        result = actions.execute("scrollDown", "[scrollable=true]", timeout=30, target="[text=F]")
        assert result.scrolls == 2
        assert [c[0] for c in device.calls] == ["swipe", "swipe"]
        assert source.calls == 3
        assert result.match.node.get("text") == "F"
        assert result.selector == "[scrollable=true]"

    def test_scroll_down_geometry(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, list_dump("A"), list_dump("Z"))
        actions.execute("scrollDown", "[scrollable=true]", timeout=5, target="[text=Z]")
        # container [0,200][1080,1800]: height 1600
        assert device.calls == [("swipe", 540, 1400, 540, 600, 300)]

    def test_scroll_up_geometry(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, list_dump("A"), list_dump("Z"))
        actions.execute("scrollUp", "[scrollable=true]", timeout=5, target="[text=Z]")
        assert device.calls == [("swipe", 540, 600, 540, 1400, 300)]

    def test_settle_pause_between_swipe_and_sample(self, clock, quick_config, device):
        config = quick_config.with_overrides({"scroll_settle_pause": 0.5})
        actions, _ = make_actions(config, device, list_dump("A"), list_dump("B"), list_dump("C"))
        actions.execute("scrollDown", "[scrollable=true]", timeout=30, target="[text=C]")
        assert clock.sleeps == [0.5, 0.5]

    def test_container_is_relocated_each_snapshot(self, clock, quick_config, device):
        moved = (
            '<hierarchy><node class="android.widget.ListView" scrollable="true" '
            'bounds="[0,1000][1080,1400]"><node text="B" bounds="[0,1000][1080,1100]" />'
            "</node></hierarchy>"
        )
        actions, _ = make_actions(quick_config, device, list_dump("A"), moved, list_dump("C"))
        actions.execute("scrollDown", "[scrollable=true]", timeout=30, target="[text=C]")
        assert device.calls == [
            ("swipe", 540, 1400, 540, 600, 300),
            ("swipe", 540, 1300, 540, 1100, 300),
        ]

    def test_deadline_is_shared_and_never_reset(self, clock, quick_config, device):
        config = quick_config.with_overrides({"scroll_settle_pause": 1.0})
        actions, source = make_actions(config, device, list_dump("A"))
        with pytest.raises(NotFoundError) as exc_info:
            actions.execute("scrollDown", "[scrollable=true]", timeout=3, target="[text=Z]")
        err = exc_info.value
        assert err.selector == "[text=Z]"
        assert err.attempt_count == 3
        assert len(device.calls) == 3
        assert source.calls == 4

    def test_zero_timeout_scrolls_once(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, list_dump("A"))
        with pytest.raises(NotFoundError):
            actions.execute("scrollDown", "[scrollable=true]", timeout=0, target="[text=Z]")
        assert len(device.calls) == 1

    def test_container_disappears(self, clock, quick_config, device):
        gone = '<hierarchy><node text="loading" bounds="[0,0][10,10]" /></hierarchy>'
        actions, _ = make_actions(quick_config, device, list_dump("A"), gone)
        with pytest.raises(ActionFailure) as exc_info:
            actions.execute("scrollDown", "[scrollable=true]", timeout=30, target="[text=Z]")
        assert "no longer present" in str(exc_info.value)
        assert len(device.calls) == 1

    def test_container_not_found(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, list_dump("A"))
        with pytest.raises(NotFoundError) as exc_info:
            actions.execute("scrollDown", "[class=Pager]", timeout=0, target="[text=A]")
        assert exc_info.value.selector == "[class=Pager]"
        assert device.calls == []

    def test_target_required(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, list_dump("A"))
        with pytest.raises(ActionFailure):
            actions.execute("scrollUp", "[scrollable=true]", timeout=0)

    def test_bad_target_fails_before_scrolling(self, clock, quick_config, device):
        actions, source = make_actions(quick_config, device, list_dump("A"))
        with pytest.raises(SelectorSyntaxError):
            actions.execute("scrollDown", "[scrollable=true]", timeout=5, target="[text=")
        assert source.calls == 0
        assert device.calls == []


class TestWaitFor:
    """Tests for waitFor and dispatch."""

    def test_wait_for_has_no_device_action(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        result = actions.execute("waitFor", "[text=OK]", timeout=5)
        assert device.calls == []
        assert result.dump is None
        assert result.duration_sec >= 0

    def test_wait_for_dump(self, clock, quick_config, device):
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        result = actions.execute("waitFor", "[resource-id$=content]", timeout=5, dump=True)
        data = yaml.safe_load(result.dump)
        assert data["attributes"]["resourceId"] == "com.example:id/content"
        assert len(data["children"]) == 4

    def test_unknown_command_lists_supported(self, clock, quick_config, device):
        actions, source = make_actions(quick_config, device, SAMPLE_DUMP)
        with pytest.raises(ActionFailure) as exc_info:
            actions.execute("swipeLeft", "[text=OK]")
        message = str(exc_info.value)
        for name in COMMANDS:
            assert name in message
        assert source.calls == 0

    def test_action_logger_records_commands(self, clock, quick_config, device, capsys):
        from bochi.actionlogger import ACTION_LOGGER

        ACTION_LOGGER.configure(format="jsonl")
        ACTION_LOGGER.enable()
        actions, _ = make_actions(quick_config, device, SAMPLE_DUMP)
        actions.execute("inputText", "[resource-id$=username]", timeout=0, text="hunter2")
        err = capsys.readouterr().err
        assert "action_finish" in err
        assert "hunter2" not in err
