# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

import asyncio
import json
import logging

import pytest

from svdview import (
    AccessMode,
    FieldDef,
    NodeSetting,
    NumberFormat,
    PeripheralDef,
    RegisterDef,
    SvdInternalError,
    SvdParseError,
    SvdRangeError,
    UnresolvedEnumeration,
)
from svdview.addr_ranges import AddrRange
from svdview.definitions import EnumValue
from svdview.nodes import ClusterNode, MessageNode, PeripheralNode, RegisterNode, sort_key

from conftest import FakeMemory


def _peripheral_def(*children, name="P", base_address=0x1000, total_length=0):
    return PeripheralDef(
        name=name,
        description="",
        base_address=base_address,
        total_length=total_length,
        group_name="",
        size=32,
        access=AccessMode.READ_WRITE,
        reset_value=0,
        children=tuple(children),
    )


def _register_def(name, offset, size=32, fields=(), access=AccessMode.READ_WRITE, reset_value=0):
    return RegisterDef(
        name=name,
        description="",
        offset=offset,
        size=size,
        access=access,
        reset_value=reset_value,
        fields=tuple(fields),
    )


def _timer(device, memory=None, index=0):
    peripheral = PeripheralNode(device.peripherals[index], 16)
    peripheral.resolve_deferred_enums(device.enum_table)
    peripheral.attach(memory, session_id="s1")
    return peripheral


def _find(peripheral, path):
    node = peripheral.find_by_path(path.split("."))
    assert node is not None
    return node


def test_ids_and_addresses(basic_device):
    timer = _timer(basic_device)
    ctrl = _find(timer, "CTRL")
    val = _find(timer, "CC1.VAL")

    assert timer.id == "TIMER0"
    assert ctrl.id == "TIMER0-CTRL"
    assert _find(timer, "CTRL.EN").id == "TIMER0-CTRL-EN"
    assert val.id == "TIMER0-CC1-VAL"

    assert ctrl.address == 0x4000_0000
    assert val.address == 0x4000_0050
    assert val.peripheral_offset == 0x50
    assert _find(timer, "CC1").address == 0x4000_0050
    assert isinstance(_find(timer, "CC1"), ClusterNode)


def test_children_sorted_by_offset():
    peripheral = PeripheralNode(
        _peripheral_def(_register_def("C", 8), _register_def("A", 0), _register_def("B", 4)), 16
    )
    assert [c.name for c in peripheral.children] == ["A", "B", "C"]


def test_find_by_path(basic_device):
    timer = _timer(basic_device)
    assert timer.find_by_path([]) is timer
    assert _find(timer, "CTRL.MODE").name == "MODE"
    assert timer.find_by_path(["CTRL", "EN", "X"]) is None
    assert timer.find_by_path(["NOPE"]) is None


def test_collect_ranges(basic_device):
    timer = _timer(basic_device)
    assert timer.addr_ranges == [
        AddrRange(0x4000_0000, 12),
        AddrRange(0x4000_0040, 0x15),
    ]

    timer.gap_threshold = -1
    assert len(timer.collect_ranges()) == 7


def test_reset_values(basic_device):
    timer = _timer(basic_device)
    ctrl = _find(timer, "CTRL")
    assert ctrl.current_value == 0x21
    assert ctrl.previous_value is None
    assert not ctrl.has_changed
    assert _find(timer, "CTRL.MODE").current_value == 2
    assert _find(timer, "CTRL.MODE").reset_value == 2
    assert _find(timer, "CC0.CFG").current_value == 5


def test_format_inheritance(basic_device):
    timer = _timer(basic_device)
    ctrl = _find(timer, "CTRL")
    mode = _find(timer, "CTRL.MODE")

    assert ctrl.formatted_value == "0x00000021"

    timer.format = NumberFormat.BINARY
    assert ctrl.get_format() == NumberFormat.BINARY
    assert ctrl.formatted_value == "0b" + format(0x21, "032b")
    assert mode.formatted_value == "0b0010"

    ctrl.format = NumberFormat.HEXADECIMAL
    assert ctrl.formatted_value == "0x00000021"
    assert mode.formatted_value == "0x2"

    mode.format = NumberFormat.DECIMAL
    assert mode.formatted_value == "2"
    assert _find(timer, "CC0.VAL").formatted_value == "0b" + "0" * 16


def test_enumerated_field_format(basic_device):
    timer = _timer(basic_device)
    ctrl = _find(timer, "CTRL")
    en = _find(timer, "CTRL.EN")

    assert en.formatted_value == "Enabled (0x1)"
    ctrl.current_value = 0x20
    assert en.formatted_value == "Disabled (0x0)"
    assert en.format_value(5) == "Unknown Enumeration (0x5)"
    assert en.format_value(1, include_enumeration=False) == "0x1"


def test_write_only_format(basic_device):
    timer = _timer(basic_device)
    assert _find(timer, "TASK").formatted_value == "(Write Only)"


def test_register_parse_value(basic_device):
    timer = _timer(basic_device)
    ctrl = _find(timer, "CTRL")
    cfg = _find(timer, "CC0.CFG")

    assert ctrl.parse_value("0x1F") == 0x1F
    assert ctrl.parse_value("0B101") == 5
    assert ctrl.parse_value(" 42 ") == 42
    assert cfg.parse_value("255") == 255

    with pytest.raises(SvdRangeError, match=r"Value entered \(256\) is greater than the maximum value of 256"):
        cfg.parse_value("256")
    with pytest.raises(ValueError, match="not a valid format"):
        cfg.parse_value("0x123")
    with pytest.raises(ValueError, match="not a valid format"):
        ctrl.parse_value("abc")


def test_field_parse_value(basic_device):
    timer = _timer(basic_device)
    en = _find(timer, "CTRL.EN")
    assert en.parse_value("Enabled") == 1
    assert en.parse_value("0x0") == 0
    with pytest.raises(ValueError):
        en.parse_value("Maybe")


def test_update_data_only_when_expanded(basic_device):
    memory = FakeMemory()
    memory.set_word(0x4000_0000, 0x0000_00F1)
    timer = _timer(basic_device, memory)

    assert asyncio.run(timer.update_data()) == []
    assert memory.reads == []

    timer.expanded = True
    assert asyncio.run(timer.update_data()) == []
    assert sorted(memory.reads) == [(0x4000_0000, 12), (0x4000_0040, 0x15)]

    ctrl = _find(timer, "CTRL")
    assert ctrl.current_value == 0xF1
    assert ctrl.previous_value == 0x21
    assert ctrl.has_changed
    assert _find(timer, "CTRL.MODE").current_value == 0xF
    assert _find(timer, "CTRL.MODE").previous_value == 2
    assert not ctrl.stale


def test_update_data_force(basic_device):
    memory = FakeMemory()
    memory.set_word(0x4000_0050, 0xBEEF, size=2)
    timer = _timer(basic_device, memory)

    asyncio.run(timer.update_data(force=True))
    assert _find(timer, "CC1.VAL").current_value == 0xBEEF
    assert timer.get_bytes(0x50, 2) == b"\xef\xbe"


def test_update_data_partial_failure(basic_device):
    memory = FakeMemory()
    memory.set_word(0x4000_0000, 0x7)
    memory.set_word(0x4000_0050, 0x1234, size=2)
    timer = _timer(basic_device, memory)
    timer.expanded = True

    asyncio.run(timer.update_data())
    memory.set_word(0x4000_0000, 0x8)
    memory.set_word(0x4000_0050, 0x5678, size=2)
    memory.fail_reads.add(0x4000_0040)

    errors = asyncio.run(timer.update_data())

    assert len(errors) == 1
    assert "0x40000040" in str(errors[0])
    assert _find(timer, "CTRL").current_value == 0x8
    assert not _find(timer, "CTRL").stale
    val = _find(timer, "CC1.VAL")
    assert val.current_value == 0x1234
    assert val.stale
    assert val.serialize()["stale"]


def test_update_data_after_session_ended(basic_device, caplog):
    memory = FakeMemory()
    memory.set_word(0x4000_0000, 0xFF)
    timer = _timer(basic_device)
    timer.attach(memory, is_alive=lambda: False)

    with caplog.at_level(logging.ERROR, logger="svdview"):
        assert asyncio.run(timer.update_data(force=True)) == []

    assert _find(timer, "CTRL").current_value == 0x21
    assert "after its session ended" in caplog.text


def test_update_data_without_memory(basic_device):
    timer = _timer(basic_device)
    assert asyncio.run(timer.update_data(force=True)) == []


def test_invalid_register_size(caplog):
    peripheral = PeripheralNode(_peripheral_def(_register_def("ODD", 0, size=24, reset_value=7)), 16)
    peripheral.attach(FakeMemory())

    with caplog.at_level(logging.ERROR, logger="svdview"):
        asyncio.run(peripheral.update_data(force=True))

    assert peripheral.children[0].current_value == 7
    assert "Register ODD has invalid size: 24" in caplog.text


def test_field_write(basic_device):
    memory = FakeMemory()
    timer = _timer(basic_device, memory)
    ctrl = _find(timer, "CTRL")
    mode = _find(timer, "CTRL.MODE")

    assert asyncio.run(mode.write(5))

    assert memory.writes == [(0x4000_0000, (0x51).to_bytes(4, "little"))]
    # The peripheral is read back after the write even when collapsed
    assert ctrl.current_value == 0x51
    assert mode.current_value == 5


def test_field_write_out_of_range(basic_device):
    memory = FakeMemory()
    timer = _timer(basic_device, memory)
    mode = _find(timer, "CTRL.MODE")

    with pytest.raises(SvdRangeError, match="Maximum value for this field is 15"):
        asyncio.run(mode.write(16))

    assert memory.writes == []
    assert _find(timer, "CTRL").current_value == 0x21


def test_register_write(basic_device):
    memory = FakeMemory()
    timer = _timer(basic_device, memory)
    cfg = _find(timer, "CC1.CFG")

    assert asyncio.run(cfg.write(0xAB))
    assert memory.writes == [(0x4000_0054, b"\xab")]
    assert cfg.current_value == 0xAB

    with pytest.raises(SvdRangeError):
        asyncio.run(cfg.write(0x100))


def test_write_failure(basic_device):
    memory = FakeMemory()
    memory.fail_writes.add(0x4000_0000)
    timer = _timer(basic_device, memory)

    assert not asyncio.run(_find(timer, "CTRL.EN").write(0))
    assert memory.reads == []


def test_write_without_session(basic_device):
    timer = _timer(basic_device)
    assert not asyncio.run(_find(timer, "CTRL").write(1))


def test_concurrent_field_writes_are_serialized(basic_device):
    memory = FakeMemory()
    timer = _timer(basic_device, memory)

    async def write_both():
        return await asyncio.gather(
            _find(timer, "CTRL.EN").write(0),
            _find(timer, "CTRL.MODE").write(3),
        )

    assert asyncio.run(write_both()) == [True, True]
    assert memory.get_word(0x4000_0000) == 0x30
    assert _find(timer, "CTRL").current_value == 0x30


def test_reset(basic_device):
    timer = _timer(basic_device)
    ctrl = _find(timer, "CTRL")
    ctrl.current_value = 0
    timer.reset()
    assert ctrl.current_value == 0x21


def test_deferred_enumeration():
    field = FieldDef(
        name="F",
        description="",
        offset=0,
        width=2,
        access=AccessMode.READ_WRITE,
        enumeration=UnresolvedEnumeration("Later"),
    )
    definition = _peripheral_def(_register_def("R", 0, fields=[field]))

    peripheral = PeripheralNode(definition, 16)
    node = _find(peripheral, "R.F")
    with pytest.raises(SvdInternalError):
        node.formatted_value

    with pytest.raises(SvdParseError, match="Invalid derivedFrom=Later"):
        PeripheralNode(definition, 16).resolve_deferred_enums({})

    peripheral.resolve_deferred_enums({"Later": {0: EnumValue("Off", "", 0)}})
    assert node.formatted_value == "Off (0x0)"


def test_save_state(basic_device):
    timer = _timer(basic_device)
    timer.expanded = True
    _find(timer, "CTRL").format = NumberFormat.DECIMAL
    _find(timer, "CTRL.EN").format = NumberFormat.BINARY
    _find(timer, "CC1").expanded = True

    assert timer.save_state() == [
        NodeSetting("TIMER0", expanded=True, pinned=False, format=NumberFormat.AUTO),
        NodeSetting("TIMER0.CTRL", expanded=False, format=NumberFormat.DECIMAL),
        NodeSetting("TIMER0.CTRL.EN", format=NumberFormat.BINARY),
        NodeSetting("TIMER0.CC1", expanded=True, format=NumberFormat.AUTO),
    ]


def test_save_state_empty(basic_device):
    assert _timer(basic_device).save_state() == []


def test_node_setting_dict():
    setting = NodeSetting("A.B", expanded=True, format=NumberFormat.HEXADECIMAL)
    assert setting.to_dict() == {"node": "A.B", "expanded": True, "format": 1}
    assert NodeSetting.from_dict(setting.to_dict()) == setting


def test_sort_key(basic_device):
    peripherals = [_timer(basic_device, index=i) for i in range(3)]
    uart = peripherals[2]
    uart.pinned = True
    assert [p.name for p in sorted(peripherals, key=sort_key)] == ["UART0", "TIMER0", "TIMER1"]


def test_serialize(basic_device):
    timer = _timer(basic_device)
    data = timer.serialize()

    assert data["kind"] == "peripheral"
    assert data["id"] == "TIMER0"
    assert data["parent_id"] is None
    assert data["session"] == "s1"
    assert data["base_address"] == 0x4000_0000
    assert [c["kind"] for c in data["children"]] == [
        "register",
        "register",
        "register",
        "cluster",
        "cluster",
    ]

    ctrl = data["children"][0]
    assert ctrl["parent_id"] == "TIMER0"
    assert ctrl["access"] == "read-write"
    assert ctrl["formatted_value"] == "0x00000021"
    assert ctrl["hex_length"] == 8

    en = ctrl["children"][0]
    assert en["kind"] == "field"
    assert en["bit_range"] == "[0:0]"
    assert en["enumeration"] == [
        {"name": "Disabled", "description": "", "value": 0},
        {"name": "Enabled", "description": "", "value": 1},
    ]

    # All values are JSON serializable
    json.dumps(data)


def test_message_node():
    node = MessageNode("No SVD file loaded")
    assert node.serialize() == {
        "kind": "message",
        "id": "message-No SVD file loaded",
        "message": "No SVD file loaded",
    }


def test_weak_parent_reference(basic_device):
    timer = _timer(basic_device)
    ctrl = _find(timer, "CTRL")
    assert isinstance(ctrl, RegisterNode)
    del timer
    with pytest.raises(SvdInternalError):
        ctrl.address
