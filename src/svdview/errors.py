# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from typing import Any, Iterable


class SvdError(Exception):
    """Base class for errors raised by the library."""

    ...


class SvdParseError(SvdError):
    """
    Raised when a definition document could not be turned into a resolved device definition.
    This covers malformed elements, unresolved 'derivedFrom' references and unresolved
    enumeration references.
    """

    ...


class SvdDefinitionError(SvdParseError, ValueError):
    """Raised when an element in the SVD document has an invalid definition."""

    def __init__(self, bindings: Iterable[Any], explanation: str):
        bindings_str = "\n".join(f"  * {b!r}" for b in bindings)
        if bindings_str:
            super().__init__(f"{explanation}\nInvalid SVD file element(s):\n{bindings_str}")
        else:
            super().__init__(explanation)


class SvdRangeError(SvdError, ValueError):
    """Raised when a value does not fit in the bit range it is written to."""

    ...


class SvdMemoryError(SvdError, OSError):
    """Raised when a read or write of target memory failed."""

    ...


class SvdInternalError(SvdError, RuntimeError):
    """
    Raised when an operation violates an internal invariant, such as updating a node that
    belongs to a session which has already ended.
    """

    ...
