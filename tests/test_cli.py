# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

import json
import sys

import lxml.etree as ET
import pytest

from svdview.__main__ import cli


def _run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["svdview", *args])
    with pytest.raises(SystemExit) as exc_info:
        cli()
    return exc_info.value.code


def test_dump(monkeypatch, capsys, basic_svd_file):
    assert _run(monkeypatch, "dump", str(basic_svd_file)) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["state"] == "loaded"
    assert [p["name"] for p in data["children"]] == ["TIMER0", "TIMER1", "UART0"]
    assert data["children"][0]["children"][0]["current_value"] == 0x21


def test_dump_with_options(monkeypatch, capsys, basic_svd_file):
    assert (
        _run(
            monkeypatch,
            "-v",
            "dump",
            str(basic_svd_file),
            "--ignore",
            "TIMER1",
            "--options",
            '{"gap_threshold": -1}',
        )
        == 0
    )
    data = json.loads(capsys.readouterr().out)
    assert [p["name"] for p in data["children"]] == ["TIMER0", "UART0"]


def test_dump_invalid_file(monkeypatch, capsys, tmp_path):
    path = tmp_path / "bad.svd"
    path.write_text("<device>")

    assert _run(monkeypatch, "dump", str(path)) == 1
    assert "Unable to parse definition file" in capsys.readouterr().err


def test_export_xml(monkeypatch, basic_svd_file, tmp_path):
    out = tmp_path / "out.xml"
    assert _run(monkeypatch, "export-xml", str(basic_svd_file), "-p", "UART0", "-o", str(out)) == 0

    root = ET.parse(str(out)).getroot()
    assert [m.get("name") for m in root] == ["UART0"]
    assert [r.get("name") for r in root[0]] == ["DATA", "FLAGS"]


def test_export_xml_unknown_peripheral(monkeypatch, capsys, basic_svd_file):
    assert _run(monkeypatch, "export-xml", str(basic_svd_file), "-p", "NOPE") == 1
    assert "Unknown peripheral(s): NOPE" in capsys.readouterr().err


def test_no_command(monkeypatch):
    assert _run(monkeypatch) == 2
