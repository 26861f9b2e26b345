# bochi/__init__.py
"""
bochi - Android UI automation driven by CSS-like selectors.

This package provides:
- Selector grammar: tokenizer and parser for [attr=value] selectors
- Tree model and matcher over uiautomator hierarchy snapshots
- Resolver: deadline-bounded polling for a matching node
- Actions: tap, doubleTap, longTap, inputText, scroll and waitFor commands
- AdbDevice / AdbSnapshotSource: the adb-backed device and snapshot source
"""

from bochi.actions import Actions, CommandResult
from bochi.config import RunConfig, TimeConfig, build_run_config
from bochi.device import AdbDevice, Device
from bochi.exceptions import (
    ActionFailure,
    AdbError,
    BochiError,
    ConfigError,
    NotFoundError,
    SelectorSyntaxError,
    SnapshotError,
    WaitTimeoutError,
)
from bochi.matcher import first_match, match_all
from bochi.resolver import ResolvedMatch, Resolver
from bochi.selector import SelectorList, parse_selector
from bochi.snapshot import AdbSnapshotSource, SnapshotSource, parse_hierarchy
from bochi.tree import UiNode, UiTree

__version__ = "1.0.0"

__all__ = [
    "Actions",
    "CommandResult",
    "RunConfig",
    "TimeConfig",
    "build_run_config",
    "AdbDevice",
    "Device",
    "ActionFailure",
    "AdbError",
    "BochiError",
    "ConfigError",
    "NotFoundError",
    "SelectorSyntaxError",
    "SnapshotError",
    "WaitTimeoutError",
    "first_match",
    "match_all",
    "ResolvedMatch",
    "Resolver",
    "SelectorList",
    "parse_selector",
    "AdbSnapshotSource",
    "SnapshotSource",
    "parse_hierarchy",
    "UiNode",
    "UiTree",
]
