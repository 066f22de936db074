# Copyright (c) 2022 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pathlib import Path
from time import perf_counter_ns
from typing import Union

import lxml.etree as ET
from lxml import objectify

import svdview

from . import bindings
from ._parsing import DeviceTranslator
from .config import Options
from .definitions import DeviceDefinition
from .errors import SvdParseError


def parse(svd_path: Union[str, Path], options: Options = Options()) -> DeviceDefinition:
    """
    Parse a device described by a SVD file.

    :param svd_path: Path to the SVD file.
    :param options: Parsing options. The gap threshold and the ignored peripherals are used.

    :raises SvdParseError: If the file could not be read or an error occurred while parsing it.

    :return: Resolved definition of the device.
    """
    svd_file = Path(svd_path)

    try:
        data = svd_file.read_bytes()
    except OSError as e:
        raise SvdParseError(f"Error reading SVD file {svd_file}: {e}") from e

    return parse_document(data, options, source=str(svd_file))


def parse_document(
    data: bytes, options: Options = Options(), source: str = "<document>"
) -> DeviceDefinition:
    """
    Parse a device described by an in-memory SVD document.

    :param data: Contents of the SVD document.
    :param options: Parsing options.
    :param source: Name of the document, used in error messages.

    :raises SvdParseError: If an error occurred while parsing the document.

    :return: Resolved definition of the device.
    """
    t_start = perf_counter_ns()

    try:
        xml_device = objectify.fromstring(data, parser=_make_parser())
        if not isinstance(xml_device, bindings.DeviceElement):
            raise SvdParseError(f"Root element of {source} is <{xml_device.tag}>, expected <device>")

        device = DeviceTranslator(xml_device, options).translate()

    except SvdParseError:
        raise
    except Exception as e:
        raise SvdParseError(f"Error parsing SVD file {source}: {e}") from e

    t_parse = (perf_counter_ns() - t_start) / 1_000_000
    svdview.log.debug(
        f"Parsed {source} with {len(device.peripherals)} peripherals in {t_parse:.1f} ms"
    )

    return device


def _make_parser() -> ET.XMLParser:
    # Comments would otherwise show up as children of the bound elements
    parser = objectify.makeparser(remove_comments=True)
    parser.set_element_class_lookup(bindings.BINDING_REGISTRY.class_lookup())
    return parser
