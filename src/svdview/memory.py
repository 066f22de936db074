# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Chunked reads and writes of target memory through a memory access collaborator, such as a
debug adapter.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Protocol, Sequence

import svdview

from .addr_ranges import AddrRange, split_into_chunks
from .config import DEFAULT_MAX_CHUNK_BYTES
from .errors import SvdMemoryError
from .memory_block import MemoryBlock


class MemoryAccessor(Protocol):
    """
    Access to the memory of a running target.
    Addresses are passed as "0x" prefixed hexadecimal strings.
    Failures are reported by raising an exception.
    """

    async def read_memory(self, address: str, count: int) -> bytes:
        ...

    async def write_memory(self, address: str, data: bytes) -> None:
        ...


def to_memory_reference(address: int) -> str:
    """:return: The address in the form used in memory access requests."""
    return f"0x{address:x}"


async def _read_chunk(
    memory: MemoryAccessor, base_address: int, chunk: AddrRange, dest: MemoryBlock
) -> Optional[SvdMemoryError]:
    reference = to_memory_reference(chunk.base)
    offset = chunk.base - base_address

    try:
        data = await memory.read_memory(reference, chunk.length)
    except Exception as e:
        dest.mark_stale(offset, chunk.length)
        return SvdMemoryError(
            f"readMemory failed @ {reference} for {chunk.length} bytes: {e}"
        )

    dest.store(offset, data or b"", chunk.length)
    return None


async def read_chunks(
    memory: MemoryAccessor,
    base_address: int,
    ranges: Sequence[AddrRange],
    dest: MemoryBlock,
) -> List[SvdMemoryError]:
    """
    Read a set of address ranges into a memory block.

    All chunks are requested concurrently. A failed chunk does not affect the other chunks:
    its slice of the block keeps its previous content and is marked stale.

    :param memory: Memory access collaborator.
    :param base_address: Address that corresponds to offset 0 in dest.
    :param ranges: Absolute address ranges to read.
    :param dest: Memory block to store the results in.
    :return: One error per failed chunk, in the order of the ranges.
    """
    results = await asyncio.gather(
        *(_read_chunk(memory, base_address, chunk, dest) for chunk in ranges)
    )
    return [error for error in results if error is not None]


async def read_memory(
    memory: MemoryAccessor,
    start_address: int,
    length: int,
    dest: MemoryBlock,
    max_chunk_bytes: int = DEFAULT_MAX_CHUNK_BYTES,
) -> List[SvdMemoryError]:
    """
    Read one contiguous region into a memory block, split into chunks of at most
    max_chunk_bytes.

    :return: One error per failed chunk.
    """
    chunks = split_into_chunks([AddrRange(start_address, length)], max_chunk_bytes)
    return await read_chunks(memory, start_address, chunks, dest)


async def write_value(
    memory: MemoryAccessor, address: int, value: int, width_bits: int
) -> bool:
    """
    Write a value to target memory as width_bits / 8 little endian bytes.

    :param memory: Memory access collaborator.
    :param address: Address to write to.
    :param value: Unsigned value to write. Bits beyond the width are discarded.
    :param width_bits: Width of the value in bits.
    :return: True on success, False if the write failed. The failure is logged.
    """
    reference = to_memory_reference(address)
    num_bytes = width_bits // 8
    data = (value & ((1 << (num_bytes * 8)) - 1)).to_bytes(num_bytes, "little")

    try:
        await memory.write_memory(reference, data)
    except Exception as e:
        svdview.log.error(f"Failed to write @ {reference}: {e}")
        return False

    return True
