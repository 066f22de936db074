# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import dataclasses as dc
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

# Peripherals that are skipped unless the ignore list is configured explicitly.
# Reading these on some targets stalls the debug adapter.
DEFAULT_IGNORED_PERIPHERALS: Tuple[str, ...] = ("AXBS0", "CAU3")

DEFAULT_GAP_THRESHOLD = 16
MAX_GAP_THRESHOLD = 32

# Must be a multiple of 4 to keep MMIO reads aligned.
DEFAULT_MAX_CHUNK_BYTES = 4096

# Keys used when building Options from a flat key/value configuration.
CONFIG_GAP_THRESHOLD = "svdAddrGapThreshold"
CONFIG_IGNORE_PERIPHERALS = "ignorePeripherals"
CONFIG_SAVE_LAYOUT = "saveLayout"
CONFIG_MAX_CHUNK_BYTES = "maxChunkBytes"


def normalize_gap_threshold(threshold: Optional[int]) -> int:
    """
    Normalize a register gap threshold.

    Negative values mean that register reads are never merged and are returned as -1.
    Other values are clamped to [0, 32] and rounded up to a multiple of 8.
    None selects the default of 16.

    :param threshold: Configured threshold, in bytes.
    :return: Normalized threshold.
    """
    if threshold is not None and threshold < 0:
        return -1

    if threshold is None:
        threshold = DEFAULT_GAP_THRESHOLD
    else:
        threshold = max(0, min(threshold, MAX_GAP_THRESHOLD))

    return (threshold + 7) & ~0x7


@dataclass(frozen=True)
class Options:
    """Options to configure parsing and the per-session peripheral trees."""

    # Maximum distance in bytes between two register ranges that are still read together.
    # A negative value disables merging of register reads. See normalize_gap_threshold().
    gap_threshold: int = DEFAULT_GAP_THRESHOLD

    # Upper bound on the number of bytes fetched by a single memory read request.
    max_chunk_bytes: int = DEFAULT_MAX_CHUNK_BYTES

    # Names of peripherals to leave out of the parsed device.
    ignored_peripherals: Sequence[str] = DEFAULT_IGNORED_PERIPHERALS

    # Persist the expanded/pinned/format state of nodes between sessions.
    save_layout: bool = True

    @property
    def normalized_gap_threshold(self) -> int:
        return normalize_gap_threshold(self.gap_threshold)

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> Options:
        """
        Build options from a flat key/value configuration, falling back to the defaults
        for missing keys.

        :param config: Mapping using the CONFIG_* keys.
        :return: Options instance.
        """
        changes = {}

        if (gap := config.get(CONFIG_GAP_THRESHOLD)) is not None:
            changes["gap_threshold"] = int(gap)
        if (ignored := config.get(CONFIG_IGNORE_PERIPHERALS)) is not None:
            changes["ignored_peripherals"] = tuple(ignored)
        if (save_layout := config.get(CONFIG_SAVE_LAYOUT)) is not None:
            changes["save_layout"] = bool(save_layout)
        if (chunk := config.get(CONFIG_MAX_CHUNK_BYTES)) is not None:
            changes["max_chunk_bytes"] = int(chunk)

        return dc.replace(cls(), **changes)
