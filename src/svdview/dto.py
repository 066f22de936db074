# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Plain data shapes used to hand snapshots of a peripheral tree to a display layer.
All values are JSON serializable.
"""

from __future__ import annotations

from typing import List, Literal, Optional, Union

from typing_extensions import TypedDict

# Separator between the names in a node id.
NODE_ID_SEP = "-"


class BaseNodeDTO(TypedDict):
    kind: str
    id: str
    parent_id: Optional[str]
    name: str
    expanded: bool
    pinned: bool
    # Value of NumberFormat set on the node itself.
    format: int
    session: Optional[str]


class EnumValueDTO(TypedDict):
    name: str
    description: str
    value: int


class FieldNodeDTO(BaseNodeDTO):
    description: str
    offset: int
    width: int
    # "[msb:lsb]"
    bit_range: str
    access: str
    parent_address: int
    current_value: int
    previous_value: Optional[int]
    reset_value: int
    formatted_value: str
    enumeration: Optional[List[EnumValueDTO]]


class RegisterNodeDTO(BaseNodeDTO):
    description: str
    offset: int
    address: int
    size: int
    access: str
    reset_value: int
    current_value: int
    previous_value: Optional[int]
    hex_length: int
    has_changed: bool
    # True if the last read of the register failed and current_value is outdated.
    stale: bool
    formatted_value: str
    children: List[FieldNodeDTO]


class ClusterNodeDTO(BaseNodeDTO):
    description: str
    offset: int
    address: int
    size: int
    access: str
    reset_value: int
    children: List[Union[ClusterNodeDTO, RegisterNodeDTO]]


class PeripheralNodeDTO(BaseNodeDTO):
    description: str
    base_address: int
    total_length: int
    group_name: str
    size: int
    access: str
    reset_value: int
    children: List[Union[ClusterNodeDTO, RegisterNodeDTO]]


class MessageNodeDTO(TypedDict):
    kind: Literal["message"]
    id: str
    message: str


NodeDTO = Union[PeripheralNodeDTO, ClusterNodeDTO, RegisterNodeDTO, FieldNodeDTO, MessageNodeDTO]


class TreeDTO(TypedDict):
    session_id: str
    session_name: str
    # Value of SessionState.
    state: str
    message: Optional[str]
    children: List[Union[PeripheralNodeDTO, MessageNodeDTO]]
