# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pathlib import Path
from textwrap import dedent
from typing import Callable, Dict, List, Optional, Set, Tuple

import pytest

from svdview import Options, parse_document
from svdview.session import MemoryStateStore


def make_svd(peripherals: str, device_properties: str = "") -> bytes:
    """Wrap a set of <peripheral> elements in a minimal device document."""
    return (
        dedent(
            """\
            <?xml version="1.0" encoding="utf-8"?>
            <device schemaVersion="1.3" xmlns:xs="http://www.w3.org/2001/XMLSchema-instance">
              <name>TESTDEV</name>
              <addressUnitBits>8</addressUnitBits>
              <width>32</width>
            {device_properties}
              <peripherals>
            {peripherals}
              </peripherals>
            </device>
            """
        )
        .format(device_properties=device_properties, peripherals=peripherals)
        .encode()
    )


BASIC_PERIPHERALS = dedent(
    """\
    <peripheral>
      <name>TIMER0</name>
      <description>Timer
          zero</description>
      <groupName>TIMER</groupName>
      <baseAddress>0x40000000</baseAddress>
      <addressBlock>
        <offset>0</offset>
        <size>0x100</size>
        <usage>registers</usage>
      </addressBlock>
      <registers>
        <register>
          <name>CTRL</name>
          <description>Control register</description>
          <addressOffset>0x0</addressOffset>
          <resetValue>0x00000021</resetValue>
          <fields>
            <field>
              <name>EN</name>
              <bitOffset>0</bitOffset>
              <bitWidth>1</bitWidth>
              <enumeratedValues>
                <name>EnState</name>
                <enumeratedValue>
                  <name>Disabled</name>
                  <value>0</value>
                </enumeratedValue>
                <enumeratedValue>
                  <name>Enabled</name>
                  <value>1</value>
                </enumeratedValue>
              </enumeratedValues>
            </field>
            <field>
              <name>MODE</name>
              <bitRange>[7:4]</bitRange>
            </field>
          </fields>
        </register>
        <register>
          <name>STATUS</name>
          <addressOffset>0x4</addressOffset>
          <access>read-only</access>
          <fields>
            <field>
              <name>BUSY</name>
              <lsb>0</lsb>
              <msb>0</msb>
              <access>read-write</access>
            </field>
          </fields>
        </register>
        <register>
          <name>TASK</name>
          <addressOffset>0x8</addressOffset>
          <access>write-only</access>
        </register>
        <cluster>
          <name>CC%s</name>
          <addressOffset>0x40</addressOffset>
          <dim>2</dim>
          <dimIncrement>0x10</dimIncrement>
          <register>
            <name>VAL</name>
            <addressOffset>0x0</addressOffset>
            <size>16</size>
          </register>
          <register>
            <name>CFG</name>
            <addressOffset>0x4</addressOffset>
            <size>8</size>
            <resetValue>0x5</resetValue>
          </register>
        </cluster>
      </registers>
    </peripheral>
    <peripheral derivedFrom="TIMER0">
      <name>TIMER1</name>
      <baseAddress>0x40001000</baseAddress>
    </peripheral>
    <peripheral>
      <name>UART0</name>
      <groupName>UART</groupName>
      <baseAddress>0x40002000</baseAddress>
      <addressBlock>
        <offset>0</offset>
        <size>0x10</size>
        <usage>registers</usage>
      </addressBlock>
      <registers>
        <register>
          <name>DATA</name>
          <addressOffset>0x0</addressOffset>
          <size>8</size>
          <fields>
            <field>
              <name>BYTE</name>
              <bitOffset>0</bitOffset>
              <bitWidth>8</bitWidth>
            </field>
          </fields>
        </register>
        <register>
          <name>FLAGS</name>
          <addressOffset>0x4</addressOffset>
          <fields>
            <field>
              <name>STATE</name>
              <bitOffset>0</bitOffset>
              <bitWidth>1</bitWidth>
              <enumeratedValues derivedFrom="EnState"/>
            </field>
          </fields>
        </register>
      </registers>
    </peripheral>
    """
)

BASIC_SVD = make_svd(BASIC_PERIPHERALS)


class FakeMemory:
    """
    Memory accessor backed by a sparse byte map.
    Reads of addresses in fail_reads and writes of addresses in fail_writes raise OSError.
    """

    def __init__(self, content: Optional[Dict[int, int]] = None) -> None:
        self.content: Dict[int, int] = dict(content or {})
        self.fail_reads: Set[int] = set()
        self.fail_writes: Set[int] = set()
        self.reads: List[Tuple[int, int]] = []
        self.writes: List[Tuple[int, bytes]] = []
        self.on_read: Optional[Callable[[int, int], None]] = None

    def set_word(self, address: int, value: int, size: int = 4) -> None:
        for i, b in enumerate(value.to_bytes(size, "little")):
            self.content[address + i] = b

    def get_word(self, address: int, size: int = 4) -> int:
        return int.from_bytes(
            bytes(self.content.get(address + i, 0) for i in range(size)), "little"
        )

    async def read_memory(self, address: str, count: int) -> bytes:
        start = int(address, 16)
        self.reads.append((start, count))
        if self.on_read is not None:
            self.on_read(start, count)
        if start in self.fail_reads:
            raise OSError("target not responding")
        return bytes(self.content.get(start + i, 0) for i in range(count))

    async def write_memory(self, address: str, data: bytes) -> None:
        start = int(address, 16)
        if start in self.fail_writes:
            raise OSError("write rejected")
        self.writes.append((start, data))
        for i, b in enumerate(data):
            self.content[start + i] = b


class FakeDocumentSource:
    """Document source serving in-memory documents with a fixed modification time."""

    def __init__(self, documents: Dict[str, bytes], mtime: Optional[float] = 1.0) -> None:
        self.documents = documents
        self.mtime = mtime
        self.reads: List[str] = []

    async def read(self, path: str) -> bytes:
        self.reads.append(path)
        try:
            return self.documents[path]
        except KeyError:
            raise FileNotFoundError(path)

    async def modification_time(self, path: str) -> Optional[float]:
        return self.mtime


@pytest.fixture
def basic_svd() -> bytes:
    return BASIC_SVD


@pytest.fixture
def basic_device():
    return parse_document(BASIC_SVD, Options())


@pytest.fixture
def basic_svd_file(tmp_path: Path) -> Path:
    path = tmp_path / "basic.svd"
    path.write_bytes(BASIC_SVD)
    return path


@pytest.fixture
def memory() -> FakeMemory:
    return FakeMemory()


@pytest.fixture
def state_store() -> MemoryStateStore:
    return MemoryStateStore()
