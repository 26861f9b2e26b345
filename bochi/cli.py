"""
@file cli.py
@brief Command-line interface: resolve one selector on a device and act on it.
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Any, Dict, List, Optional

from .actionlogger import ACTION_LOGGER
from .actions import COMMANDS, Actions
from .config import build_run_config
from .context import ActionContextManager
from .device import AdbDevice
from .exceptions import BochiError
from .resolver import Resolver
from .selector import parse_selector
from .snapshot import AdbSnapshotSource
from .timinglogger import TIMING_LOGGER

_TRUTHY = {"1", "true", "yes", "on"}


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timeout: {value!r} (expected whole seconds)")
    if number < 0:
        raise argparse.ArgumentTypeError(f"invalid timeout: {value!r} (must be >= 0)")
    return number


def _resolve_preset(args: argparse.Namespace) -> Optional[str]:
    """Timing preset chosen on the command line, if any."""
    if args.ci:
        return "ci"
    if args.fast:
        return "fast"
    if args.slow:
        return "slow"
    return None


def _configure_action_logger_from_env() -> None:
    """Configure action logging from environment variables."""
    enabled = os.getenv("BOCHI_ACTION_LOGGING", "").lower() in _TRUTHY
    if not enabled:
        ACTION_LOGGER.disable()
        return

    ACTION_LOGGER.configure(
        console=True,
        file_path=os.getenv("BOCHI_ACTION_LOG_FILE"),
        level=os.getenv("BOCHI_ACTION_LOG_LEVEL", "INFO"),
        format=os.getenv("BOCHI_ACTION_LOG_FORMAT", "line"),
        sample_retry_events=int(os.getenv("BOCHI_ACTION_LOG_SAMPLE_RETRY", "1")),
    )
    ACTION_LOGGER.enable()


def _configure_timing_logger_from_env() -> None:
    """Configure timing logging from environment variables."""
    enabled = os.getenv("BOCHI_TIMING_LOGGING", "").lower() in _TRUTHY
    if not enabled:
        TIMING_LOGGER.disable()
        return

    TIMING_LOGGER.configure(console=True, file_path=os.getenv("BOCHI_TIMING_LOG_FILE"))
    TIMING_LOGGER.enable()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bochi",
        description="Wait for an Android UI element matching a selector and act on it via adb.",
    )
    p.add_argument("--serial", "-s", default=None, help="Device serial (default: adb's only device)")
    p.add_argument("--selector", "-e", required=True, help="Selector, e.g. '[text=\"OK\"]' or 'text=OK'")
    p.add_argument("--command", "-c", required=True, choices=COMMANDS, help="Command to execute")
    p.add_argument("--timeout", "-t", type=_non_negative_int, default=30,
                   help="Timeout in whole seconds; 0 means a single attempt (default: 30)")
    p.add_argument("--text", default=None, help="Text to type (inputText)")
    p.add_argument("--target", default=None, help="Selector to scroll into view (scrollUp/scrollDown)")
    p.add_argument("--dump", action="store_true", help="Print the matched subtree as YAML (waitFor)")
    p.add_argument("--config", default=None, help="Path to a YAML config file")
    p.add_argument("--adb", default=None, help="Path to the adb executable")
    p.add_argument("--ci", action="store_true", help="Use CI-optimized timing settings")
    p.add_argument("--fast", action="store_true", help="Use fast timing settings for local development")
    p.add_argument("--slow", action="store_true", help="Use slow timing settings for unstable devices")
    return p


def _command_params(args: argparse.Namespace) -> Dict[str, Any]:
    if args.command == "waitFor":
        return {"dump": args.dump}
    if args.command == "inputText":
        if args.text is None:
            raise BochiError("--text is required for inputText")
        return {"text": args.text}
    if args.command in ("scrollUp", "scrollDown"):
        if args.target is None:
            raise BochiError(f"--target is required for {args.command}")
        return {"target": parse_selector(args.target)}
    return {}


def run(args: argparse.Namespace) -> int:
    """Execute one parsed invocation. BochiError propagates to the caller."""
    # Selectors are validated before touching the device.
    selector = parse_selector(args.selector)
    params = _command_params(args)

    run_config = build_run_config(
        args.config,
        preset=_resolve_preset(args),
        adb_path=args.adb,
        serial=args.serial,
    )
    device = AdbDevice(
        serial=run_config.serial,
        adb_path=run_config.adb_path,
        command_timeout=run_config.time.adb_command.timeout,
    )
    resolver = Resolver(AdbSnapshotSource(device), run_config.time)
    actions = Actions(resolver, device, run_config.time)

    result = actions.execute(args.command, selector, timeout=args.timeout, **params)
    if result.dump is not None:
        sys.stdout.write(result.dump)
        sys.stdout.flush()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    _configure_action_logger_from_env()
    _configure_timing_logger_from_env()

    try:
        args = build_parser().parse_args(argv)
    except SystemExit as e:
        # Usage errors share the single failure status.
        return 0 if e.code in (0, None) else 1

    # Clear any stale action context
    ActionContextManager.clear()

    try:
        return run(args)
    except BochiError as e:
        print(f"Error: {e}", file=sys.stderr)
        if ACTION_LOGGER.is_enabled() and e.action_trace:
            print(e.action_trace, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
