# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Typed, fully resolved description of a device, produced by the parser.

Everything in this module is immutable. Array elements are already expanded, 'derivedFrom'
references are merged and the size/access/reset value of each register is the effective value
inherited from its nearest ancestor. The only thing left for a consumer to resolve is
UnresolvedEnumeration, which refers to a named enumeration that is looked up in
DeviceDefinition.enum_table once the node tree has been built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, NamedTuple, Optional, Tuple, Union

from .bindings import AccessMode, ReadAction


@dataclass(frozen=True)
class DeviceDefaults:
    """Register properties used when no element in the hierarchy specifies them."""

    access: AccessMode = AccessMode.READ_WRITE
    size: int = 32
    reset_value: int = 0


@dataclass(frozen=True)
class EnumValue:
    """A single named value of a field enumeration."""

    name: str
    description: str
    value: int


# Maps a field value to its enumerated value.
EnumerationMap = Mapping[int, EnumValue]


class UnresolvedEnumeration(NamedTuple):
    """Reference to a named enumeration that was not yet defined at the point of use."""

    name: str


FieldEnumeration = Union[None, EnumerationMap, UnresolvedEnumeration]


@dataclass(frozen=True)
class FieldDef:
    name: str
    description: str
    # Bit offset of the least significant bit of the field.
    offset: int
    # Number of bits in the field.
    width: int
    access: AccessMode
    read_action: Optional[ReadAction] = None
    enumeration: FieldEnumeration = None

    @property
    def msb(self) -> int:
        return self.offset + self.width - 1


@dataclass(frozen=True)
class RegisterDef:
    name: str
    description: str
    # Address offset relative to the parent peripheral or cluster.
    offset: int
    size: int
    access: AccessMode
    reset_value: int
    read_action: Optional[ReadAction] = None
    fields: Tuple[FieldDef, ...] = ()
    # Name of the register this one was derived from, kept for debugging.
    derived_from: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return (self.size + 7) // 8


@dataclass(frozen=True)
class ClusterDef:
    name: str
    description: str
    # Address offset relative to the parent peripheral or cluster.
    offset: int
    size: int
    access: AccessMode
    reset_value: int
    children: Tuple[Union[ClusterDef, RegisterDef], ...] = ()
    derived_from: Optional[str] = None


@dataclass(frozen=True)
class PeripheralDef:
    name: str
    description: str
    base_address: int
    # Length of the address space covered by the address blocks of the peripheral.
    total_length: int
    group_name: str
    size: int
    access: AccessMode
    reset_value: int
    # Clusters and registers, in document order.
    children: Tuple[Union[ClusterDef, RegisterDef], ...] = ()
    derived_from: Optional[str] = None


@dataclass(frozen=True)
class DeviceDefinition:
    """Result of parsing a device description document."""

    name: Optional[str]
    defaults: DeviceDefaults
    # Peripherals, in document order, with ignored peripherals left out.
    peripherals: Tuple[PeripheralDef, ...]
    # Named enumerations, keyed by every dotted scope they are visible under.
    enum_table: Mapping[str, EnumerationMap] = field(default_factory=dict)
    ignored_peripherals: Tuple[str, ...] = ()
