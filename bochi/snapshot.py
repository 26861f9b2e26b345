"""
@file snapshot.py
@brief Snapshot acquisition: uiautomator dump XML to UiTree.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod

from .device import AdbDevice
from .exceptions import AdbError, SnapshotError
from .tree import TreeBuilder, UiTree

DEFAULT_DUMP_PATH = "/sdcard/window_dump.xml"


def parse_hierarchy(xml_text: str) -> UiTree:
    """
    Parse a uiautomator dump into a UiTree.

    The ``<hierarchy>`` element becomes the root; ``<node>`` elements keep
    document order. Attribute names are normalized once here
    (``content-desc`` -> ``contentDescription`` etc.).

    @throws SnapshotError if the text is not well-formed XML
    """
    start = xml_text.find("<")
    if start < 0:
        raise SnapshotError("UI dump is empty or not XML")
    try:
        root = ET.fromstring(xml_text[start:])
    except ET.ParseError as e:
        raise SnapshotError(f"Failed to parse XML: {e}", cause=e) from e

    builder = TreeBuilder()

    def visit(elem: ET.Element) -> None:
        builder.open(elem.tag, elem.attrib)
        for child in elem:
            visit(child)
        builder.close()

    visit(root)
    return builder.build()


class SnapshotSource(ABC):
    """Supplies a freshly parsed UiTree on every call."""

    @abstractmethod
    def acquire(self) -> UiTree:
        pass


class AdbSnapshotSource(SnapshotSource):
    """Dumps the hierarchy on the device, reads it back, and parses it."""

    def __init__(self, device: AdbDevice, remote_path: str = DEFAULT_DUMP_PATH):
        self.device = device
        self.remote_path = remote_path

    def dump_xml(self) -> str:
        try:
            self.device.shell("uiautomator", "dump", self.remote_path)
        except AdbError as e:
            raise SnapshotError(f"uiautomator dump failed: {e}", cause=e) from e
        try:
            return self.device.shell("cat", self.remote_path)
        except AdbError as e:
            raise SnapshotError(f"Failed to read dump file: {e}", cause=e) from e

    def acquire(self) -> UiTree:
        return parse_hierarchy(self.dump_xml())
