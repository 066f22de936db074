# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Bit manipulation and number formatting utilities shared by the parser and the node hierarchy.
"""

from __future__ import annotations

import enum
import re
from typing import List, Optional

from .errors import SvdParseError, SvdRangeError

# Word size used when no explicit word width is given.
WORD_BITS = 32


@enum.unique
class NumberFormat(enum.IntEnum):
    """Display format of a node value."""

    # Inherit the format from the parent node.
    AUTO = 0
    HEXADECIMAL = 1
    DECIMAL = 2
    BINARY = 3


def create_mask(offset: int, width: int, word_bits: int = WORD_BITS) -> int:
    """
    Create a mask with the bits [offset, offset + width - 1] set.

    The bit positions are clamped to the word. A mask that would reach past the most
    significant bit of the word saturates to all ones.

    :param offset: Bit offset of the least significant bit in the mask.
    :param width: Number of bits in the mask.
    :param word_bits: Width of the word the mask applies to.

    :return: The mask.
    """
    word_mask = (1 << word_bits) - 1

    if width <= 0:
        return 0
    if offset + width > word_bits:
        return word_mask

    offset = max(offset, 0)
    return (((1 << width) - 1) << offset) & word_mask


def extract_bits(value: int, offset: int, width: int, word_bits: int = WORD_BITS) -> int:
    """
    Extract the bits [offset, offset + width - 1] from a value.

    :param value: Value to extract the bits from.
    :param offset: Bit offset of the range.
    :param width: Bit width of the range.
    :param word_bits: Width of the word the value is stored in.

    :return: The extracted bits, shifted down to bit 0.
    """
    return (value & create_mask(offset, width, word_bits)) >> max(offset, 0)


def update_bits(
    current: int, offset: int, width: int, value: int, word_bits: int = WORD_BITS
) -> int:
    """
    Replace the bits [offset, offset + width - 1] of a value.

    :param current: The value to update.
    :param offset: Bit offset of the range.
    :param width: Bit width of the range.
    :param value: New content of the bit range.
    :param word_bits: Width of the word the value is stored in.

    :raises SvdRangeError: If value does not fit in the bit range.

    :return: The updated value.
    """
    limit = 1 << width
    if value < 0 or value >= limit:
        raise SvdRangeError(
            f"Value entered is invalid. Maximum value for this field is {limit - 1} "
            f"({hex_format(limit - 1, 0)})"
        )

    mask = create_mask(offset, width, word_bits)
    return ((current & ~mask) | (value << offset)) & ((1 << word_bits) - 1)


def hex_length(bit_width: int) -> int:
    """:return: Number of hex digits needed to show a value of the given bit width."""
    return (bit_width + 3) // 4


def hex_format(value: int, padding: int = 8, include_prefix: bool = True) -> str:
    """
    Format an unsigned value as a hexadecimal string.

    :param value: Value to format.
    :param padding: Minimum number of digits, zero padded.
    :param include_prefix: Prepend "0x" if True.
    """
    digits = f"{value:0{padding}x}" if padding > 0 else f"{value:x}"
    return f"0x{digits}" if include_prefix else digits


def binary_format(
    value: int, padding: int = 0, include_prefix: bool = True, group: bool = False
) -> str:
    """
    Format an unsigned value as a binary string.

    :param value: Value to format.
    :param padding: Minimum number of digits, zero padded.
    :param include_prefix: Prepend "0b" if True.
    :param group: Separate the digits into space separated groups of four.
    """
    digits = f"{value:0{padding}b}" if padding > 0 else f"{value:b}"

    if group:
        head = len(digits) % 4
        groups = [digits[:head]] if head else []
        groups.extend(digits[i : i + 4] for i in range(head, len(digits), 4))
        digits = " ".join(groups)

    return f"0b{digits}" if include_prefix else digits


def format_value(value: int, bit_width: int, number_format: NumberFormat) -> str:
    """
    Format a register or field value for display.
    NumberFormat.AUTO is shown as hexadecimal.

    :param value: Value to format.
    :param bit_width: Bit width of the value, used for zero padding.
    :param number_format: Format to use.
    """
    if number_format == NumberFormat.DECIMAL:
        return str(value)
    if number_format == NumberFormat.BINARY:
        return binary_format(value, bit_width)
    return hex_format(value, hex_length(bit_width))


_BIN_RE = re.compile(r"0b([01]+)", re.IGNORECASE)
_HEX_RE = re.compile(r"0x([0-9a-f]+)", re.IGNORECASE)
_DEC_RE = re.compile(r"[0-9]+")
_HASH_BIN_RE = re.compile(r"#([01]+)")


def parse_integer(text: Optional[str]) -> Optional[int]:
    """
    Parse an integer literal in one of the formats used by SVD documents and user input:
    "0x" prefixed hexadecimal, "0b" or "#" prefixed binary, or decimal.

    :param text: String to parse.

    :return: The parsed integer, or None if the string is empty or not a valid literal.
    """
    if not text:
        return None

    text = text.strip()

    if match := _BIN_RE.fullmatch(text):
        return int(match[1], 2)
    if match := _HEX_RE.fullmatch(text):
        return int(match[1], 16)
    if _DEC_RE.fullmatch(text):
        return int(text, 10)
    if match := _HASH_BIN_RE.fullmatch(text):
        return int(match[1], 2)

    return None


_NUMERIC_RANGE_RE = re.compile(r"([0-9]+)-([0-9]+)")
_LETTER_RANGE_RE = re.compile(r"([a-zA-Z])-([a-zA-Z])")


def parse_dim_index(spec: str, count: int) -> List[str]:
    """
    Expand a dimIndex specification into one index token per array element.

    The specification is either a comma separated list, a numeric range like "0-7",
    or a letter range like "A-F". The number of tokens must match the array length.

    :param spec: dimIndex string.
    :param count: Number of array elements (the dim value).

    :raises SvdParseError: If the specification is invalid or does not match the count.

    :return: List of index tokens.
    """
    spec = spec.strip()

    if "," in spec:
        components = [c.strip() for c in spec.split(",")]
        if len(components) != count:
            raise SvdParseError(
                f"dimIndex element has invalid specification '{spec}': "
                f"expected {count} elements, got {len(components)}"
            )
        return components

    if match := _NUMERIC_RANGE_RE.fullmatch(spec):
        start, end = int(match[1]), int(match[2])
        _check_dim_range(spec, end - start + 1, count)
        return [str(start + i) for i in range(count)]

    if match := _LETTER_RANGE_RE.fullmatch(spec):
        start, end = ord(match[1]), ord(match[2])
        _check_dim_range(spec, end - start + 1, count)
        return [chr(start + i) for i in range(count)]

    raise SvdParseError(f"dimIndex element has invalid specification '{spec}'")


def _check_dim_range(spec: str, num_elements: int, count: int) -> None:
    if num_elements != count:
        raise SvdParseError(
            f"dimIndex element has invalid specification '{spec}': "
            f"range has {num_elements} elements but dim is {count}"
        )


_NEWLINE_RE = re.compile(r"\n\s*")


def cleanup_description(text: Optional[str]) -> str:
    """Normalize the whitespace in a description text from the SVD document."""
    if not text:
        return ""
    return _NEWLINE_RE.sub(" ", text.replace("\r", ""))
