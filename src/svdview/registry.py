# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Lookup of the definition file to use for a debug session.
"""

from __future__ import annotations

import os
import re
import urllib.parse
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Pattern, Union

import svdview


@dataclass(frozen=True)
class _RegistryEntry:
    expression: Pattern[str]
    path: str


class DefinitionRegistry:
    """Maps device names to the definition files that describe them."""

    def __init__(self) -> None:
        self._entries: List[_RegistryEntry] = []

    def register(self, expression: Union[str, Pattern[str]], path: str) -> None:
        """
        Register a definition file for the devices matching an expression.

        :param expression: Regular expression matched against the device name. A string
                           must match the whole device name.
        :param path: Path or URL of the definition file.
        """
        if isinstance(expression, str):
            expression = re.compile(f"^{expression}$")
        self._entries.append(_RegistryEntry(expression, path))

    def lookup(self, device: str) -> Optional[str]:
        """:return: The definition file of the first registration matching the device, if any."""
        for entry in self._entries:
            if entry.expression.search(device):
                return entry.path
        return None

    def __len__(self) -> int:
        return len(self._entries)


def is_url(path: str) -> bool:
    """:return: True if the path is an http or https URL rather than a local path."""
    return urllib.parse.urlsplit(path).scheme in ("http", "https")


def resolve_definition_path(
    svd_path: Optional[str],
    device_name: Optional[str] = None,
    registry: Optional[DefinitionRegistry] = None,
    workspace_dir: Optional[Union[str, Path]] = None,
) -> Optional[str]:
    """
    Resolve the definition file of a debug session.

    An explicit path takes precedence over the device name. Relative local paths are made
    absolute using the workspace directory. URLs are returned unchanged.

    :param svd_path: Configured path or URL of the definition file.
    :param device_name: Configured name of the device.
    :param registry: Registry used to look up the device name.
    :param workspace_dir: Directory that relative paths are relative to.
    :return: The resolved path, or None if the session has no definition file.
    """
    if svd_path:
        if is_url(svd_path) or workspace_dir is None or os.path.isabs(svd_path):
            return svd_path
        return os.path.normpath(os.path.join(workspace_dir, svd_path))

    if device_name and registry is not None:
        path = registry.lookup(device_name)
        if path is None:
            svdview.log.info(f"No definition file registered for device {device_name}")
        return path

    return None
