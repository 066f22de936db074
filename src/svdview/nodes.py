# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Live view of the peripherals of a device.

The nodes in this module wrap the immutable definitions produced by the parser and add the
state that changes while a debug session runs: the current and previous register values, and
the display state (expanded, pinned and number format) of each node.

Each node is owned by its parent. Nodes only keep a weak reference to their parent, which is
used to resolve addresses, formats and the peripheral memory buffer.
"""

from __future__ import annotations

import asyncio
import re
import weakref
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import svdview

from . import dto
from .addr_ranges import AddrRange, collect_ranges
from .bindings import AccessMode, ReadAction
from .config import DEFAULT_MAX_CHUNK_BYTES
from .definitions import (
    ClusterDef,
    EnumerationMap,
    FieldDef,
    FieldEnumeration,
    PeripheralDef,
    RegisterDef,
    UnresolvedEnumeration,
)
from .errors import (
    SvdError,
    SvdInternalError,
    SvdMemoryError,
    SvdParseError,
    SvdRangeError,
)
from .memory import MemoryAccessor, read_chunks, write_value
from .memory_block import MemoryBlock
from .util import NumberFormat, extract_bits, format_value, hex_length, parse_integer, update_bits

# Rendered value of nodes that cannot be read.
WRITE_ONLY_LABEL = "(Write Only)"


@dataclass
class NodeSetting:
    """Persisted display state of a node, identified by its dotted name path."""

    node: str
    expanded: Optional[bool] = None
    pinned: Optional[bool] = None
    format: Optional[NumberFormat] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"node": self.node}
        if self.expanded is not None:
            result["expanded"] = self.expanded
        if self.pinned is not None:
            result["pinned"] = self.pinned
        if self.format is not None:
            result["format"] = int(self.format)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NodeSetting:
        """:raises ValueError: If data does not describe a node setting."""
        if not isinstance(data, Mapping) or not isinstance(data.get("node"), str):
            raise ValueError(f"Invalid node setting: {data!r}")

        fmt = data.get("format")
        return cls(
            node=data["node"],
            expanded=data.get("expanded"),
            pinned=data.get("pinned"),
            format=NumberFormat(fmt) if fmt is not None else None,
        )


class BaseNode:
    """Common state and behavior of all the nodes in a peripheral tree."""

    KIND: str

    def __init__(self, name: str, parent: Optional[BaseNode] = None) -> None:
        self.name: str = name
        self.expanded: bool = False
        self.pinned: bool = False
        self.format: NumberFormat = NumberFormat.AUTO
        self._parent_ref: Optional[weakref.ReferenceType[BaseNode]] = (
            weakref.ref(parent) if parent is not None else None
        )

    @property
    def parent(self) -> Optional[BaseNode]:
        """Parent node, or None for a root node."""
        if self._parent_ref is None:
            return None

        parent = self._parent_ref()
        if parent is None:
            raise SvdInternalError(f"Parent of node {self.name} no longer exists")
        return parent

    @property
    def id(self) -> str:
        parent = self.parent
        if parent is None:
            return self.name
        return f"{parent.id}{dto.NODE_ID_SEP}{self.name}"

    def get_format(self) -> NumberFormat:
        """
        :return: The format of the node, inherited from the closest ancestor with a format
                 other than NumberFormat.AUTO. Defaults to hexadecimal.
        """
        if self.format != NumberFormat.AUTO:
            return self.format

        parent = self.parent
        if parent is not None:
            return parent.get_format()

        return NumberFormat.HEXADECIMAL

    def get_peripheral(self) -> PeripheralNode:
        parent = self.parent
        if parent is None:
            raise SvdInternalError(f"Node {self.name} is not part of a peripheral")
        return parent.get_peripheral()

    def find_by_path(self, path: Sequence[str]) -> Optional[BaseNode]:
        """
        Find a descendant by the names along the path to it.

        :param path: Names of the nodes below this node, outermost first.
        :return: The node, or None if no node matches.
        """
        if not path:
            return self

        for child in self.get_children():
            if child.name == path[0]:
                return child.find_by_path(path[1:])

        return None

    def get_children(self) -> Sequence[BaseNode]:
        return ()

    def save_state(self, path: Optional[str] = None) -> List[NodeSetting]:
        raise NotImplementedError

    def resolve_deferred_enums(self, enum_table: Mapping[str, EnumerationMap]) -> None:
        for child in self.get_children():
            child.resolve_deferred_enums(enum_table)

    def _base_dto(self) -> Dict[str, Any]:
        parent = self.parent
        return {
            "kind": self.KIND,
            "id": self.id,
            "parent_id": parent.id if parent is not None else None,
            "name": self.name,
            "expanded": self.expanded,
            "pinned": self.pinned,
            "format": int(self.format),
            "session": self.get_peripheral().session_id,
        }

    def _child_path(self, path: Optional[str]) -> str:
        return f"{path}.{self.name}" if path else self.name

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"


ChildNode = Union["ClusterNode", "RegisterNode"]


class _ContainerNode(BaseNode):
    """Node that contains clusters and registers, kept sorted by offset."""

    def __init__(self, name: str, parent: Optional[BaseNode] = None) -> None:
        super().__init__(name, parent)
        self.children: List[ChildNode] = []

    def add_child(self, child: ChildNode) -> None:
        self.children.append(child)
        self.children.sort(key=lambda c: c.offset)

    def get_children(self) -> Sequence[BaseNode]:
        return self.children

    def _build_children(self, definitions: Sequence[Union[ClusterDef, RegisterDef]]) -> None:
        for definition in definitions:
            if isinstance(definition, ClusterDef):
                ClusterNode(self, definition)
            else:
                RegisterNode(self, definition)

    def get_address(self, offset: int) -> int:
        raise NotImplementedError

    def get_offset(self, offset: int) -> int:
        raise NotImplementedError

    def collect_register_ranges(self, ranges: List[AddrRange]) -> None:
        for child in self.children:
            child.collect_register_ranges(ranges)

    def update_data(self) -> None:
        for child in self.children:
            child.update_data()

    def reset(self) -> None:
        for child in self.children:
            child.reset()


class PeripheralNode(_ContainerNode):
    """
    Root node of a peripheral.

    The peripheral owns a copy of its memory, which is refreshed by update_data() using the
    read plan computed by collect_ranges(). Reads and writes of the peripheral are serialized
    by io_lock.
    """

    KIND = "peripheral"

    def __init__(
        self,
        definition: PeripheralDef,
        gap_threshold: int,
        max_chunk_bytes: int = DEFAULT_MAX_CHUNK_BYTES,
    ) -> None:
        """
        :param definition: Parsed definition of the peripheral.
        :param gap_threshold: Normalized gap threshold used when merging register reads.
        :param max_chunk_bytes: Maximum number of bytes in a single read request.
        """
        super().__init__(definition.name)

        self.definition: PeripheralDef = definition
        self.description: str = definition.description
        self.base_address: int = definition.base_address
        self.total_length: int = definition.total_length
        self.group_name: str = definition.group_name
        self.size: int = definition.size
        self.access: AccessMode = definition.access
        self.reset_value: int = definition.reset_value
        self.gap_threshold: int = gap_threshold
        self.max_chunk_bytes: int = max_chunk_bytes

        self.addr_ranges: List[AddrRange] = []
        self.session_id: Optional[str] = None

        self._memory: Optional[MemoryAccessor] = None
        self._is_alive: Callable[[], bool] = lambda: True
        self._io_lock: Optional[asyncio.Lock] = None

        self._build_children(definition.children)
        self._block = MemoryBlock(0)
        self.collect_ranges()

    def attach(
        self,
        memory: Optional[MemoryAccessor],
        is_alive: Callable[[], bool] = lambda: True,
        session_id: Optional[str] = None,
    ) -> None:
        """
        Connect the peripheral to the memory of a debug session.

        :param memory: Memory access collaborator of the session.
        :param is_alive: Returns False once the session has ended. Checked before the results
                         of a read are applied.
        :param session_id: Identifier of the session.
        """
        self._memory = memory
        self._is_alive = is_alive
        self.session_id = session_id

    @property
    def memory(self) -> Optional[MemoryAccessor]:
        return self._memory

    @property
    def io_lock(self) -> asyncio.Lock:
        if self._io_lock is None:
            self._io_lock = asyncio.Lock()
        return self._io_lock

    @property
    def parent(self) -> Optional[BaseNode]:
        return None

    def get_peripheral(self) -> PeripheralNode:
        return self

    def get_address(self, offset: int) -> int:
        return self.base_address + offset

    def get_offset(self, offset: int) -> int:
        return offset

    def get_bytes(self, offset: int, size: int) -> bytes:
        """:return: The last read content of size bytes at an offset into the peripheral."""
        return self._block.get_bytes(offset, size)

    def get_value(self, offset: int, num_bytes: int) -> int:
        """
        :raises SvdMemoryError: If num_bytes is not a supported value size.
        :return: The little endian value of num_bytes bytes at an offset into the peripheral.
        """
        return self._block.at(offset, num_bytes)

    def is_valid(self, offset: int, size: int) -> bool:
        """:return: True if the last read of the given range succeeded."""
        try:
            return self._block.is_valid(offset, size)
        except SvdMemoryError:
            return False

    def register_ranges(self) -> List[AddrRange]:
        ranges: List[AddrRange] = []
        self.collect_register_ranges(ranges)
        return ranges

    def collect_ranges(self) -> List[AddrRange]:
        """
        Compute the read requests that refresh the peripheral and size the memory buffer
        to cover them.

        :return: The absolute address ranges to read.
        """
        self.addr_ranges = collect_ranges(self, self.gap_threshold, self.max_chunk_bytes)

        length = self.total_length
        for addr_range in self.addr_ranges:
            length = max(length, addr_range.next_address - self.base_address)
        if length != len(self._block):
            self._block = MemoryBlock(length)

        return self.addr_ranges

    async def update_data(self, force: bool = False) -> List[SvdError]:  # type: ignore[override]
        """
        Read the memory of the peripheral and recompute the register values.
        Nothing is read unless the peripheral is expanded or force is set.

        :param force: Read even if the peripheral is collapsed.
        :return: Errors of the reads that failed.
        """
        if not self.expanded and not force:
            return []

        async with self.io_lock:
            return await self.refresh_locked()

    async def refresh_locked(self) -> List[SvdError]:
        """
        Read the memory of the peripheral and recompute the register values.
        The caller must hold io_lock.
        """
        if self._memory is None:
            svdview.log.debug(f"Peripheral {self.name} has no memory to read")
            return []

        scratch = self._block.copy()
        errors: List[SvdError] = list(
            await read_chunks(self._memory, self.base_address, self.addr_ranges, scratch)
        )
        for error in errors:
            svdview.log.warning(f"Failed to update peripheral {self.name}: {error}")

        if not self._is_alive():
            svdview.log.error(f"Peripheral {self.name} was refreshed after its session ended")
            return []

        self._block = scratch
        _ContainerNode.update_data(self)
        return errors

    def save_state(self, path: Optional[str] = None) -> List[NodeSetting]:
        results: List[NodeSetting] = []

        if self.format != NumberFormat.AUTO or self.expanded or self.pinned:
            results.append(
                NodeSetting(
                    node=self.name,
                    expanded=self.expanded,
                    format=self.format,
                    pinned=self.pinned,
                )
            )

        for child in self.children:
            results.extend(child.save_state(self.name))

        return results

    def serialize(self) -> dto.PeripheralNodeDTO:
        return dto.PeripheralNodeDTO(
            **self._base_dto(),
            description=self.description,
            base_address=self.base_address,
            total_length=self.total_length,
            group_name=self.group_name,
            size=self.size,
            access=str(self.access),
            reset_value=self.reset_value,
            children=[child.serialize() for child in self.children],
        )


def sort_key(peripheral: PeripheralNode) -> Tuple[bool, str, str]:
    """Order peripherals with the pinned ones first, then by group name and name."""
    return (not peripheral.pinned, peripheral.group_name, peripheral.name)


class ClusterNode(_ContainerNode):
    """Group of registers and clusters at an offset within the parent."""

    KIND = "cluster"

    def __init__(self, parent: _ContainerNode, definition: ClusterDef) -> None:
        super().__init__(definition.name, parent)

        self.definition: ClusterDef = definition
        self.description: str = definition.description
        self.offset: int = definition.offset
        self.size: int = definition.size
        self.access: AccessMode = definition.access
        self.reset_value: int = definition.reset_value

        parent.add_child(self)
        self._build_children(definition.children)

    @property
    def _container(self) -> _ContainerNode:
        return self.parent  # type: ignore

    def get_address(self, offset: int = 0) -> int:
        return self._container.get_address(self.offset + offset)

    def get_offset(self, offset: int = 0) -> int:
        return self._container.get_offset(self.offset + offset)

    def get_bytes(self, offset: int, size: int) -> bytes:
        return self.get_peripheral().get_bytes(self.get_offset(offset), size)

    @property
    def address(self) -> int:
        return self.get_address()

    def save_state(self, path: Optional[str] = None) -> List[NodeSetting]:
        results: List[NodeSetting] = []
        node_path = self._child_path(path)

        if self.format != NumberFormat.AUTO or self.expanded:
            results.append(
                NodeSetting(node=node_path, expanded=self.expanded, format=self.format)
            )

        for child in self.children:
            results.extend(child.save_state(node_path))

        return results

    def serialize(self) -> dto.ClusterNodeDTO:
        return dto.ClusterNodeDTO(
            **self._base_dto(),
            description=self.description,
            offset=self.offset,
            address=self.address,
            size=self.size,
            access=str(self.access),
            reset_value=self.reset_value,
            children=[child.serialize() for child in self.children],
        )


class RegisterNode(BaseNode):
    """Register with its current value and fields."""

    KIND = "register"

    def __init__(self, parent: _ContainerNode, definition: RegisterDef) -> None:
        super().__init__(definition.name, parent)

        self.definition: RegisterDef = definition
        self.description: str = definition.description
        self.offset: int = definition.offset
        self.size: int = definition.size
        self.access: AccessMode = definition.access
        self.reset_value: int = definition.reset_value
        self.read_action: Optional[ReadAction] = definition.read_action
        self.hex_length: int = hex_length(self.size)

        self.current_value: int = self.reset_value
        self.previous_value: Optional[int] = None
        self._stale: bool = False

        self.children: List[FieldNode] = []
        parent.add_child(self)

        for field_definition in definition.fields:
            FieldNode(self, field_definition)

        self._hex_re = re.compile(rf"0x[0-9a-f]{{1,{self.hex_length}}}", re.IGNORECASE)
        self._binary_re = re.compile(rf"0b[01]{{1,{self.size}}}", re.IGNORECASE)

    @property
    def _container(self) -> _ContainerNode:
        return self.parent  # type: ignore

    def add_child(self, child: FieldNode) -> None:
        self.children.append(child)
        self.children.sort(key=lambda f: f.offset)

    def get_children(self) -> Sequence[BaseNode]:
        return self.children

    @property
    def address(self) -> int:
        return self._container.get_address(self.offset)

    @property
    def peripheral_offset(self) -> int:
        """Offset of the register from the peripheral base address."""
        return self._container.get_offset(self.offset)

    @property
    def size_bytes(self) -> int:
        return (self.size + 7) // 8

    @property
    def has_changed(self) -> bool:
        return self.previous_value is not None and self.previous_value != self.current_value

    @property
    def stale(self) -> bool:
        """True if the latest read of the register failed and the value is outdated."""
        return self._stale

    def extract_bits(self, offset: int, width: int) -> int:
        return extract_bits(self.current_value, offset, width, self.size)

    def extract_bits_from_reset(self, offset: int, width: int) -> int:
        return extract_bits(self.reset_value, offset, width, self.size)

    def collect_register_ranges(self, ranges: List[AddrRange]) -> None:
        ranges.append(AddrRange(self.peripheral_offset, self.size_bytes))

    def update_data(self) -> None:
        """Shift the current value into the previous value and decode the new current value."""
        peripheral = self.get_peripheral()
        self.previous_value = self.current_value

        num_bytes = self.size // 8 if self.size % 8 == 0 else 0
        try:
            self.current_value = peripheral.get_value(self.peripheral_offset, num_bytes)
        except SvdMemoryError:
            svdview.log.error(
                f"Register {self.name} has invalid size: {self.size}. "
                "Should be 8, 16, 32 or 64."
            )
            return

        self._stale = not peripheral.is_valid(self.peripheral_offset, num_bytes)

    def reset(self) -> None:
        self.current_value = self.reset_value

    def parse_value(self, text: str) -> int:
        """
        Parse a register value entered by a user.
        Hexadecimal values need a "0x" prefix and binary values a "0b" prefix.

        :raises SvdRangeError: If a decimal value does not fit in the register.
        :raises ValueError: If the text is not in any of the accepted formats.
        """
        text = text.strip()

        if self._hex_re.fullmatch(text):
            return int(text[2:], 16)
        if self._binary_re.fullmatch(text):
            return int(text[2:], 2)
        if text.isdigit():
            value = int(text, 10)
            if value >= 1 << self.size:
                raise SvdRangeError(
                    f"Value entered ({value}) is greater than the maximum value of "
                    f"{1 << self.size}"
                )
            return value

        raise ValueError("Value entered is not a valid format.")

    async def update_bits(self, offset: int, width: int, value: int) -> bool:
        """
        Write a new value to a bit range of the register and read back the peripheral.

        :raises SvdRangeError: If value does not fit in width bits. Nothing is written.
        :return: True if the write succeeded.
        """
        peripheral = self.get_peripheral()
        async with peripheral.io_lock:
            new_value = update_bits(self.current_value, offset, width, value, self.size)
            return await self._write_locked(new_value)

    async def write(self, value: int) -> bool:
        """
        Write a new value to the register and read back the peripheral.

        :raises SvdRangeError: If value does not fit in the register. Nothing is written.
        :return: True if the write succeeded.
        """
        if value < 0 or value >= 1 << self.size:
            raise SvdRangeError(
                f"Value entered ({value}) is greater than the maximum value of {1 << self.size}"
            )

        peripheral = self.get_peripheral()
        async with peripheral.io_lock:
            return await self._write_locked(value)

    async def _write_locked(self, value: int) -> bool:
        peripheral = self.get_peripheral()

        if peripheral.memory is None:
            svdview.log.error(f"Unable to write register {self.name}: no active session")
            return False

        success = await write_value(peripheral.memory, self.address, value, self.size)
        if success:
            await peripheral.refresh_locked()
        return success

    def format_value(self, value: int, number_format: Optional[NumberFormat] = None) -> str:
        if self.access == AccessMode.WRITE_ONLY:
            return WRITE_ONLY_LABEL
        if number_format is None:
            number_format = self.get_format()
        return format_value(value, self.size, number_format)

    @property
    def formatted_value(self) -> str:
        return self.format_value(self.current_value)

    def save_state(self, path: Optional[str] = None) -> List[NodeSetting]:
        results: List[NodeSetting] = []
        node_path = self._child_path(path)

        if self.format != NumberFormat.AUTO or self.expanded:
            results.append(
                NodeSetting(node=node_path, expanded=self.expanded, format=self.format)
            )

        for child in self.children:
            results.extend(child.save_state(node_path))

        return results

    def find_by_path(self, path: Sequence[str]) -> Optional[BaseNode]:
        if not path:
            return self
        if len(path) == 1:
            return next((f for f in self.children if f.name == path[0]), None)
        return None

    def serialize(self) -> dto.RegisterNodeDTO:
        return dto.RegisterNodeDTO(
            **self._base_dto(),
            description=self.description,
            offset=self.offset,
            address=self.address,
            size=self.size,
            access=str(self.access),
            reset_value=self.reset_value,
            current_value=self.current_value,
            previous_value=self.previous_value,
            hex_length=self.hex_length,
            has_changed=self.has_changed,
            stale=self.stale,
            formatted_value=self.formatted_value,
            children=[child.serialize() for child in self.children],
        )


class FieldNode(BaseNode):
    """Bit range of a register, optionally with enumerated values."""

    KIND = "field"

    def __init__(self, parent: RegisterNode, definition: FieldDef) -> None:
        super().__init__(definition.name, parent)

        self.definition: FieldDef = definition
        self.description: str = definition.description
        self.offset: int = definition.offset
        self.width: int = definition.width
        self.access: AccessMode = definition.access
        self.read_action: Optional[ReadAction] = definition.read_action
        self._enumeration: FieldEnumeration = definition.enumeration

        parent.add_child(self)

    @property
    def register(self) -> RegisterNode:
        return self.parent  # type: ignore

    @property
    def enumeration(self) -> Optional[EnumerationMap]:
        """
        :raises SvdInternalError: If the field refers to an enumeration that has not been
                                  resolved yet.
        """
        if isinstance(self._enumeration, UnresolvedEnumeration):
            raise SvdInternalError(
                f"Enumeration {self._enumeration.name} of field {self.name} is not resolved"
            )
        return self._enumeration

    def resolve_deferred_enums(self, enum_table: Mapping[str, EnumerationMap]) -> None:
        if not isinstance(self._enumeration, UnresolvedEnumeration):
            return

        name = self._enumeration.name
        found = enum_table.get(name)
        if found is None:
            raise SvdParseError(
                f"Invalid derivedFrom={name} for enumeratedValues of field {self.name}"
            )
        self._enumeration = found

    @property
    def bit_range(self) -> str:
        return f"[{self.offset + self.width - 1}:{self.offset}]"

    @property
    def current_value(self) -> int:
        return self.register.extract_bits(self.offset, self.width)

    @property
    def previous_value(self) -> Optional[int]:
        previous = self.register.previous_value
        if previous is None:
            return None
        return extract_bits(previous, self.offset, self.width, self.register.size)

    @property
    def reset_value(self) -> int:
        return self.register.extract_bits_from_reset(self.offset, self.width)

    @property
    def has_changed(self) -> bool:
        previous = self.previous_value
        return previous is not None and previous != self.current_value

    def format_value(
        self,
        value: int,
        number_format: Optional[NumberFormat] = None,
        include_enumeration: bool = True,
    ) -> str:
        """
        Render a value of the field.
        Values of enumerated fields are shown as "<name> (<value>)".
        """
        if self.access == AccessMode.WRITE_ONLY:
            return WRITE_ONLY_LABEL

        if number_format is None:
            number_format = self.get_format()

        formatted = format_value(value, self.width, number_format)

        enumeration = self.enumeration
        if include_enumeration and enumeration is not None:
            if (enum_value := enumeration.get(value)) is not None:
                formatted = f"{enum_value.name} ({formatted})"
            else:
                formatted = f"Unknown Enumeration ({formatted})"

        return formatted

    @property
    def formatted_value(self) -> str:
        return self.format_value(self.current_value)

    def parse_value(self, text: str) -> int:
        """
        Parse a field value entered by a user: the name of an enumerated value
        or an integer literal.

        :raises ValueError: If the text is neither.
        """
        text = text.strip()

        enumeration = self.enumeration
        if enumeration is not None:
            for enum_value in enumeration.values():
                if enum_value.name == text:
                    return enum_value.value

        value = parse_integer(text)
        if value is None:
            raise ValueError("Value entered is not a valid format.")
        return value

    async def write(self, value: int) -> bool:
        """
        Write a new value to the field.

        :raises SvdRangeError: If value does not fit in the field. Nothing is written.
        :return: True if the write succeeded.
        """
        return await self.register.update_bits(self.offset, self.width, value)

    def find_by_path(self, path: Sequence[str]) -> Optional[BaseNode]:
        return self if not path else None

    def save_state(self, path: Optional[str] = None) -> List[NodeSetting]:
        if self.format != NumberFormat.AUTO:
            return [NodeSetting(node=self._child_path(path), format=self.format)]
        return []

    def serialize(self) -> dto.FieldNodeDTO:
        enumeration = self.enumeration
        return dto.FieldNodeDTO(
            **self._base_dto(),
            description=self.description,
            offset=self.offset,
            width=self.width,
            bit_range=self.bit_range,
            access=str(self.access),
            parent_address=self.register.address,
            current_value=self.current_value,
            previous_value=self.previous_value,
            reset_value=self.reset_value,
            formatted_value=self.formatted_value,
            enumeration=(
                [
                    dto.EnumValueDTO(name=e.name, description=e.description, value=e.value)
                    for e in enumeration.values()
                ]
                if enumeration is not None
                else None
            ),
        )


class MessageNode:
    """Placeholder node that shows a message instead of a peripheral tree."""

    KIND = "message"

    def __init__(self, message: str) -> None:
        self.message: str = message

    @property
    def id(self) -> str:
        return f"{self.KIND}{dto.NODE_ID_SEP}{self.message}"

    def serialize(self) -> dto.MessageNodeDTO:
        return dto.MessageNodeDTO(kind="message", id=self.id, message=self.message)

    def __repr__(self) -> str:
        return f"MessageNode({self.message!r})"
