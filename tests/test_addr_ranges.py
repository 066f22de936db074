# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from typing import List

import pytest

from svdview.addr_ranges import AddrRange, collect_ranges, merge_ranges, split_into_chunks


class _Peripheral:
    def __init__(self, base_address: int, ranges: List[AddrRange]) -> None:
        self.base_address = base_address
        self._ranges = ranges

    def register_ranges(self) -> List[AddrRange]:
        return self._ranges


def test_addr_range_properties():
    r = AddrRange(0x100, 0x10)
    assert r.next_address == 0x110
    assert r.end_address == 0x10F


def test_split_into_chunks():
    chunks = split_into_chunks([AddrRange(0, 10000)], 4096)
    assert chunks == [AddrRange(0, 4096), AddrRange(4096, 4096), AddrRange(8192, 1808)]


def test_split_does_not_modify_input():
    ranges = [AddrRange(0, 100)]
    split_into_chunks(ranges, 16)
    assert ranges == [AddrRange(0, 100)]


def test_split_drops_empty_ranges():
    assert split_into_chunks([AddrRange(0, 0), AddrRange(8, -1), AddrRange(16, 4)], 8) == [
        AddrRange(16, 4)
    ]


def test_split_invalid_chunk_size():
    with pytest.raises(ValueError):
        split_into_chunks([AddrRange(0, 4)], 0)


def test_merge_within_gap():
    assert merge_ranges([AddrRange(0, 4), AddrRange(6, 4)], 4) == [AddrRange(0, 10)]


def test_merge_disabled():
    assert merge_ranges([AddrRange(0, 4), AddrRange(6, 4)], -1) == [
        AddrRange(0, 4),
        AddrRange(6, 4),
    ]


def test_merge_adjacent_with_zero_gap():
    assert merge_ranges([AddrRange(4, 4), AddrRange(0, 4), AddrRange(9, 4)], 0) == [
        AddrRange(0, 8),
        AddrRange(9, 4),
    ]


def test_merge_overlapping_and_contained():
    merged = merge_ranges([AddrRange(0, 16), AddrRange(4, 4), AddrRange(12, 8)], 0)
    assert merged == [AddrRange(0, 20)]


def test_merge_does_not_modify_input():
    ranges = [AddrRange(0, 4), AddrRange(4, 4)]
    merge_ranges(ranges, 8)
    assert ranges == [AddrRange(0, 4), AddrRange(4, 4)]


def test_collect_ranges_empty():
    assert collect_ranges(_Peripheral(0x1000, []), 16) == []


def test_collect_ranges_single_byte():
    assert collect_ranges(_Peripheral(0x1000, [AddrRange(3, 1)]), 16) == [AddrRange(0x1003, 1)]


def test_collect_ranges_absolute_merged_and_split():
    peripheral = _Peripheral(
        0x4000_0000,
        [AddrRange(0x20, 4), AddrRange(0x0, 4), AddrRange(0x4, 4), AddrRange(0x100, 4)],
    )

    assert collect_ranges(peripheral, 16) == [
        AddrRange(0x4000_0000, 8),
        AddrRange(0x4000_0020, 4),
        AddrRange(0x4000_0100, 4),
    ]
    assert collect_ranges(peripheral, 32) == [
        AddrRange(0x4000_0000, 0x24),
        AddrRange(0x4000_0100, 4),
    ]
    assert collect_ranges(peripheral, 32, max_chunk_bytes=16) == [
        AddrRange(0x4000_0000, 16),
        AddrRange(0x4000_0010, 16),
        AddrRange(0x4000_0020, 4),
        AddrRange(0x4000_0100, 4),
    ]
