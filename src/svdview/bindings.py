# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Read-only bindings for the SVD elements needed to build a register view of a device.
Element classes are assigned by tag when the document is parsed, and their properties map to
the child elements and attributes of the same name in the SVD schema.

Values are converted leniently: unknown access strings become read-only, unknown read actions
are ignored and integer literals accept the "0x", "0b", "#" and decimal forms.
"""

from __future__ import annotations

import enum
import typing
from typing import Iterator, NamedTuple, Optional, Union

from lxml.objectify import StringElement

from ._bindings import (
    SELF_CLASS,
    Attr,
    BindingRegistry,
    CaseInsensitiveStrEnum,
    Elem,
    NamedSvdElement,
    SvdElement,
    SvdIntElement,
    iter_element_children,
    make_converter_element,
)
from .util import parse_integer

# Element classes of the SVD document, keyed by tag.
BINDING_REGISTRY = BindingRegistry()

binding = BINDING_REGISTRY.add

# Attribute set on elements that were merged with the element they derive from.
RESOLVED_FROM_ATTR = "resolvedFrom"


@enum.unique
class AccessMode(enum.IntEnum):
    """
    Access rights for a register or field, reduced to the three modes that matter
    for reading and writing target memory.
    """

    READ_ONLY = 1
    READ_WRITE = 2
    WRITE_ONLY = 3

    @classmethod
    def from_svd(cls, text: str) -> AccessMode:
        """
        Map an SVD "accessType" string to an access mode.
        Strings that are not write-only or read-write variants are treated as read-only.
        """
        if text in ("write-only", "writeOnce"):
            return cls.WRITE_ONLY
        if text in ("read-write", "read-writeOnce"):
            return cls.READ_WRITE
        return cls.READ_ONLY

    def intersect(self, parent: AccessMode) -> AccessMode:
        """
        Combine the access of a field with the access of the register containing it.
        A read-only or write-only register forces the same mode on its fields.
        """
        if parent in (AccessMode.READ_ONLY, AccessMode.WRITE_ONLY):
            return parent
        return self

    def __str__(self) -> str:
        return self.name.lower().replace("_", "-")


AccessModeElement = make_converter_element(AccessMode.from_svd, "AccessModeElement")


@enum.unique
class ReadAction(CaseInsensitiveStrEnum):
    """Side effect of reading a register or field ("readActionType" in the SVD schema)."""

    CLEAR = "clear"
    SET = "set"
    MODIFY = "modify"
    MODIFY_EXTERNAL = "modifyExternal"

    @classmethod
    def from_svd(cls, text: str) -> Optional[ReadAction]:
        try:
            return cls(text)
        except ValueError:
            return None


ReadActionElement = make_converter_element(ReadAction.from_svd, "ReadActionElement")

RegisterOrCluster = Union["RegisterElement", "ClusterElement"]


def _registers_of(element: Optional[SvdElement]) -> Iterator[RegisterOrCluster]:
    it = iter_element_children(element, RegisterElement.TAG, ClusterElement.TAG)
    return typing.cast(Iterator[RegisterOrCluster], it)


class BitRange(NamedTuple):
    offset: int
    width: int


class DerivedMixin(SvdElement):
    derived_from: Attr[str] = Attr("derivedFrom")

    # Name of the base element, set on elements that were merged with their base.
    resolved_from: Attr[str] = Attr(RESOLVED_FROM_ATTR)


class DimMixin(SvdElement):
    """Elements that may be repeated as an array ("dimElementGroup")."""

    dim: Elem[Optional[int]] = Elem("dim", SvdIntElement, default=None)
    dim_increment: Elem[Optional[int]] = Elem("dimIncrement", SvdIntElement, default=None)
    # Comma separated list or range of index tokens.
    dim_index: Elem[Optional[str]] = Elem("dimIndex", StringElement, default=None)


class RegisterPropertiesMixin(SvdElement):
    """
    Register properties ("registerPropertiesGroup") that elements pass on to the registers
    they contain. Each property is None if the element does not set it.
    """

    size: Elem[Optional[int]] = Elem("size", SvdIntElement, default=None)
    access: Elem[Optional[AccessMode]] = Elem("access", AccessModeElement, default=None)
    reset_value: Elem[Optional[int]] = Elem("resetValue", SvdIntElement, default=None)


@binding
class AddressBlock(SvdElement):
    TAG: str = "addressBlock"

    # Relative to the peripheral base address.
    offset: Elem[int] = Elem("offset", SvdIntElement)
    size: Elem[int] = Elem("size", SvdIntElement)


@binding
class EnumeratedValue(NamedSvdElement):
    TAG: str = "enumeratedValue"

    name: Elem[str] = Elem("name", StringElement)
    description: Elem[Optional[str]] = Elem("description", StringElement, default=None)
    _value: Elem[Optional[str]] = Elem("value", StringElement, default=None)

    @property
    def value(self) -> Optional[int]:
        """Value of the enumerated value, or None if it is missing or has "x" digits."""
        return parse_integer(self._value)


@binding
class Enumeration(DerivedMixin):
    TAG: str = "enumeratedValues"

    # Name used by other fields to refer to the enumeration.
    name: Elem[Optional[str]] = Elem("name", StringElement, default=None)
    _enumerated_value: Elem[EnumeratedValue] = Elem("enumeratedValue", EnumeratedValue)

    @property
    def enums(self) -> Iterator[EnumeratedValue]:
        it = iter_element_children(self, EnumeratedValue.TAG)
        return typing.cast(Iterator[EnumeratedValue], it)

    def __repr__(self) -> str:
        return self.describe(name=self.findtext("name"))


@binding
class FieldElement(NamedSvdElement, DimMixin, DerivedMixin):
    TAG: str = "field"

    name: Elem[str] = Elem("name", StringElement)
    description: Elem[Optional[str]] = Elem("description", StringElement, default=None)
    access: Elem[Optional[AccessMode]] = Elem("access", AccessModeElement, default=None)
    read_action: Elem[Optional[ReadAction]] = Elem("readAction", ReadActionElement, default=None)
    enumerated_values: Elem[Optional[Enumeration]] = Elem(
        "enumeratedValues", Enumeration, default=None
    )

    # The three ways of giving the position of a field.
    _bit_offset: Elem[Optional[int]] = Elem("bitOffset", SvdIntElement, default=None)
    _bit_width: Elem[Optional[int]] = Elem("bitWidth", SvdIntElement, default=None)
    _bit_range: Elem[Optional[str]] = Elem("bitRange", StringElement, default=None)
    _lsb: Elem[Optional[int]] = Elem("lsb", SvdIntElement, default=None)
    _msb: Elem[Optional[int]] = Elem("msb", SvdIntElement, default=None)

    @property
    def bit_range(self) -> Optional[BitRange]:
        """
        Position of the field, or None if the field does not give it.
        bitOffset/bitWidth take precedence over bitRange, which takes precedence over msb/lsb.
        """
        if self._bit_offset is not None and self._bit_width is not None:
            return BitRange(offset=self._bit_offset, width=self._bit_width)

        if self._bit_range is not None:
            msb_text, _, lsb_text = self._bit_range.strip()[1:-1].partition(":")
            msb = parse_integer(msb_text) or 0
            lsb = parse_integer(lsb_text) or 0
            return BitRange(offset=lsb, width=msb - lsb + 1)

        if self._msb is not None and self._lsb is not None:
            return BitRange(offset=self._lsb, width=self._msb - self._lsb + 1)

        return None


@binding
class FieldsElement(SvdElement):
    TAG: str = "fields"

    field: Elem[FieldElement] = Elem("field", FieldElement)


@binding
class RegisterElement(NamedSvdElement, DimMixin, RegisterPropertiesMixin, DerivedMixin):
    TAG: str = "register"

    name: Elem[str] = Elem("name", StringElement)
    description: Elem[Optional[str]] = Elem("description", StringElement, default=None)
    # Relative to the containing peripheral or cluster.
    offset: Elem[Optional[int]] = Elem("addressOffset", SvdIntElement, default=None)
    read_action: Elem[Optional[ReadAction]] = Elem("readAction", ReadActionElement, default=None)
    _fields: Elem[Optional[FieldsElement]] = Elem("fields", FieldsElement, default=None)

    @property
    def fields(self) -> Iterator[FieldElement]:
        it = iter_element_children(self._fields, FieldElement.TAG)
        return typing.cast(Iterator[FieldElement], it)


@binding
class ClusterElement(NamedSvdElement, DimMixin, RegisterPropertiesMixin, DerivedMixin):
    TAG: str = "cluster"

    name: Elem[str] = Elem("name", StringElement)
    description: Elem[Optional[str]] = Elem("description", StringElement, default=None)
    offset: Elem[Optional[int]] = Elem("addressOffset", SvdIntElement, default=None)
    _register: Elem[Optional[RegisterElement]] = Elem("register", RegisterElement, default=None)
    _cluster: Elem[Optional[ClusterElement]] = Elem("cluster", SELF_CLASS, default=None)

    @property
    def registers(self) -> Iterator[RegisterOrCluster]:
        """Registers and clusters directly contained in the cluster, in document order."""
        return _registers_of(self)


@binding
class RegistersElement(SvdElement):
    TAG: str = "registers"

    _register: Elem[Optional[RegisterElement]] = Elem("register", RegisterElement, default=None)
    _cluster: Elem[Optional[ClusterElement]] = Elem("cluster", ClusterElement, default=None)


@binding
class PeripheralElement(NamedSvdElement, RegisterPropertiesMixin, DerivedMixin):
    TAG: str = "peripheral"

    name: Elem[str] = Elem("name", StringElement)
    description: Elem[Optional[str]] = Elem("description", StringElement, default=None)
    base_address: Elem[int] = Elem("baseAddress", SvdIntElement, default=0)
    group_name: Elem[Optional[str]] = Elem("groupName", StringElement, default=None)
    _address_block: Elem[Optional[AddressBlock]] = Elem(
        "addressBlock", AddressBlock, default=None
    )
    _registers: Elem[Optional[RegistersElement]] = Elem(
        "registers", RegistersElement, default=None
    )

    @property
    def address_blocks(self) -> Iterator[AddressBlock]:
        it = iter_element_children(self, AddressBlock.TAG)
        return typing.cast(Iterator[AddressBlock], it)

    @property
    def registers(self) -> Iterator[RegisterOrCluster]:
        """Registers and clusters directly contained in the peripheral, in document order."""
        return _registers_of(self._registers)

    def __repr__(self) -> str:
        props = {"name": self.findtext("name")}
        if self.derived_from is not None:
            props["derived_from"] = self.derived_from
        return self.describe(**props)


@binding
class PeripheralsElement(SvdElement):
    TAG: str = "peripherals"

    _peripheral: Elem[Optional[PeripheralElement]] = Elem(
        "peripheral", PeripheralElement, default=None
    )


@binding
class DeviceElement(NamedSvdElement, RegisterPropertiesMixin):
    TAG: str = "device"

    name: Elem[Optional[str]] = Elem("name", StringElement, default=None)
    description: Elem[Optional[str]] = Elem("description", StringElement, default=None)
    _peripherals: Elem[Optional[PeripheralsElement]] = Elem(
        "peripherals", PeripheralsElement, default=None
    )

    @property
    def peripherals(self) -> Iterator[PeripheralElement]:
        it = iter_element_children(self._peripherals, PeripheralElement.TAG)
        return typing.cast(Iterator[PeripheralElement], it)
