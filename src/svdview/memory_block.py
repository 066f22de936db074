# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Mapping, Tuple

import numpy as np
import numpy.ma as ma

from .errors import SvdMemoryError

# Target memory is little endian.
SIZE_TO_DTYPE: Mapping[int, np.dtype] = {
    1: np.dtype(np.uint8),
    2: np.dtype("<u2"),
    4: np.dtype("<u4"),
    8: np.dtype("<u8"),
}


def _get_dtype_for_size(item_size: int) -> np.dtype:
    try:
        return SIZE_TO_DTYPE[item_size]
    except KeyError:
        raise SvdMemoryError(f"Unsupported item size: {item_size}")


class MemoryBlock:
    """
    Copy of the memory of a peripheral, starting at the peripheral base address.

    Each byte carries a validity flag. Bytes start out invalid, become valid when a read stores
    them and become invalid again, while keeping their last known content, when a later read
    of them fails.
    """

    def __init__(self, length: int, default_content: int = 0) -> None:
        """
        :param length: Length of the block in bytes.
        :param default_content: Byte value of memory that has never been read.
        """
        data = _numpy_full(length, default_content)
        # Masked bytes are bytes whose content is not known to be current.
        self._array: ma.MaskedArray = ma.MaskedArray(
            data=data, mask=np.ones(length, dtype=bool), dtype=np.uint8, shrink=False
        )

    def copy(self) -> MemoryBlock:
        """:return: Independent copy of the block."""
        block = MemoryBlock.__new__(MemoryBlock)
        block._array = ma.MaskedArray(
            data=self._array.data.copy(),
            mask=ma.getmaskarray(self._array).copy(),
            dtype=np.uint8,
            shrink=False,
        )
        return block

    def store(self, offset: int, data: bytes, length: int) -> None:
        """
        Store the result of reading length bytes at the given offset.
        If fewer bytes than requested were returned, the rest of the range is marked stale.

        :param offset: Offset of the first byte.
        :param data: Bytes that were read.
        :param length: Number of bytes that were requested.
        """
        start, end = self._check_range(offset, min(len(data), length))
        self._array.data[start:end] = np.frombuffer(data, dtype=np.uint8, count=end - start)
        self._array.mask[start:end] = False

        if end - start < length:
            self.mark_stale(end, length - (end - start))

    def mark_stale(self, offset: int, length: int) -> None:
        """Mark a range as not current. The content of the range is kept."""
        start = max(offset, 0)
        end = min(offset + length, len(self))
        if start < end:
            self._array.mask[start:end] = True

    def is_valid(self, offset: int, length: int) -> bool:
        """:return: True if every byte in the range holds the result of the latest read."""
        start, end = self._check_range(offset, length)
        return not bool(self._array.mask[start:end].any())

    def get_bytes(self, offset: int, length: int) -> bytes:
        """
        :return: The content of the range, or fewer bytes if the range extends past the
                 end of the block.
        """
        start = max(offset, 0)
        end = min(offset + length, len(self))
        if start >= end:
            return b""
        return self._array.data[start:end].tobytes()

    def at(self, offset: int, item_size: int = 4) -> int:
        """
        Get the little endian value at a given offset.

        :param offset: Offset of the value.
        :param item_size: Size in bytes of the value, one of 1, 2, 4 or 8.
        :raises SvdMemoryError: If the size is unsupported or the value is outside the block.
        :return: The value.
        """
        dtype = _get_dtype_for_size(item_size)
        start, end = self._check_range(offset, item_size)
        if end - start != item_size:
            raise SvdMemoryError(
                f"Value at offset {offset} with size {item_size} is outside the memory "
                f"block of length {len(self)}"
            )
        return int(self._array.data[start:end].view(dtype)[0])

    def __len__(self) -> int:
        """Length of the memory block."""
        return len(self._array)

    def _check_range(self, offset: int, length: int) -> Tuple[int, int]:
        if offset < 0 or length < 0 or offset > len(self):
            raise SvdMemoryError(
                f"Range at offset {offset} with length {length} is outside the memory "
                f"block of length {len(self)}"
            )
        return offset, min(offset + length, len(self))


def _numpy_full(length: int, value: int) -> np.ndarray:
    """
    Replacement for np.full() with special handling for the zero case.
    Using np.zeros() for that case here provides a significant speedup for large arrays.
    """
    if value == 0:
        return np.zeros(length, dtype=np.uint8)
    else:
        return np.full(length, value, dtype=np.uint8)
