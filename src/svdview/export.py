# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Export of peripheral values to a simple XML module table:

.. code-block:: xml

    <moduletable>
      <module name="TIMER0" address="0x40008000">
        <register name="CTRL" address="0x40008000" size="32" value="0x00000001">
          <bitfield name="EN" bitrange="[0:0]" value="0x00000001"/>
        </register>
      </module>
    </moduletable>
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Union

import lxml.etree as ET

from .nodes import BaseNode, ClusterNode, FieldNode, PeripheralNode, RegisterNode
from .util import hex_format


def _add_module(node: BaseNode, parent: ET._Element) -> None:
    if isinstance(node, (PeripheralNode, ClusterNode)):
        module = ET.SubElement(parent, "module")
        module.set("name", node.name)
        module.set("address", hex_format(node.get_address(0)))
        for child in node.children:
            _add_module(child, module)

    elif isinstance(node, RegisterNode):
        _add_register(node, parent)


def _add_register(node: RegisterNode, parent: ET._Element) -> None:
    register = ET.SubElement(parent, "register")
    register.set("name", node.name)
    register.set("address", hex_format(node.address))
    register.set("size", str(node.size))
    register.set("value", hex_format(node.current_value))

    for field in node.children:
        _add_field(field, register)


def _add_field(node: FieldNode, parent: ET._Element) -> None:
    bitfield = ET.SubElement(parent, "bitfield")
    bitfield.set("name", node.name)
    bitfield.set("bitrange", node.bit_range)
    bitfield.set("value", hex_format(node.current_value))


def export_xml(nodes: Iterable[BaseNode]) -> bytes:
    """
    Export the current values of a set of nodes.

    :param nodes: Peripherals, clusters or registers to export.
    :return: UTF-8 encoded XML document.
    """
    root = ET.Element("moduletable")
    for node in nodes:
        _add_module(node, root)

    return ET.tostring(root, pretty_print=True, xml_declaration=True, encoding="UTF-8")


def export_xml_file(nodes: Iterable[BaseNode], path: Union[str, Path]) -> None:
    """Export the current values of a set of nodes to an XML file."""
    Path(path).write_bytes(export_xml(nodes))
