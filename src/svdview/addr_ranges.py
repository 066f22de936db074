# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Planning of memory reads: the byte ranges covered by the registers of a peripheral are merged
when they are close together and split again into chunks that are small enough for a single
debug adapter read request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Protocol

from .config import DEFAULT_MAX_CHUNK_BYTES


@dataclass
class AddrRange:
    """Contiguous range of bytes in target memory."""

    base: int
    length: int

    @property
    def next_address(self) -> int:
        """Address of the first byte after the range."""
        return self.base + self.length

    @property
    def end_address(self) -> int:
        """Address of the last byte in the range."""
        return self.next_address - 1


class RangeSource(Protocol):
    """Peripheral whose registers cover a set of byte ranges."""

    base_address: int

    def register_ranges(self) -> List[AddrRange]:
        """:return: One range per register, with the base relative to base_address."""
        ...


def merge_ranges(ranges: Iterable[AddrRange], gap_threshold: int) -> List[AddrRange]:
    """
    Sort the ranges by base address and merge ranges that are at most gap_threshold bytes apart.
    Overlapping and adjacent ranges are always merged unless merging is disabled.

    :param ranges: Ranges to merge. These are not modified.
    :param gap_threshold: Maximum number of bytes between two ranges that are merged.
                          Merging is disabled if this is negative.
    :return: New list of ranges.
    """
    ordered = sorted((AddrRange(r.base, r.length) for r in ranges), key=lambda r: r.base)

    if gap_threshold < 0:
        return ordered

    merged: List[AddrRange] = []
    for addr_range in ordered:
        if merged and merged[-1].next_address + gap_threshold >= addr_range.base:
            last = merged[-1]
            last.length = max(last.next_address, addr_range.next_address) - last.base
        else:
            merged.append(addr_range)

    return merged


def split_into_chunks(ranges: Iterable[AddrRange], max_bytes: int) -> List[AddrRange]:
    """
    Split ranges into chunks that are at most max_bytes long.
    Ranges with a length of zero or less are dropped.

    :param ranges: Ranges to split. These are not modified.
    :param max_bytes: Maximum length of a chunk.
    :return: New list of chunks, in the order of the input ranges.
    """
    if max_bytes <= 0:
        raise ValueError(f"Invalid chunk size: {max_bytes}")

    chunks: List[AddrRange] = []
    for addr_range in ranges:
        base, length = addr_range.base, addr_range.length
        while length > max_bytes:
            chunks.append(AddrRange(base, max_bytes))
            base += max_bytes
            length -= max_bytes
        if length > 0:
            chunks.append(AddrRange(base, length))

    return chunks


def collect_ranges(
    peripheral: RangeSource,
    gap_threshold: int,
    max_chunk_bytes: int = DEFAULT_MAX_CHUNK_BYTES,
) -> List[AddrRange]:
    """
    Compute the read requests needed to refresh all the registers of a peripheral.

    :param peripheral: Peripheral to collect register ranges from.
    :param gap_threshold: See merge_ranges().
    :param max_chunk_bytes: See split_into_chunks().
    :return: List of absolute address ranges.
    """
    ranges = [
        AddrRange(peripheral.base_address + r.base, r.length)
        for r in peripheral.register_ranges()
    ]
    return split_into_chunks(merge_ranges(ranges, gap_threshold), max_chunk_bytes)
