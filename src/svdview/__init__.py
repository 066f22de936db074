# Copyright (c) 2022 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from . import util
from .bindings import (
    AccessMode,
    ReadAction,
)
from .config import Options
from .definitions import (
    ClusterDef,
    DeviceDefaults,
    DeviceDefinition,
    EnumValue,
    FieldDef,
    PeripheralDef,
    RegisterDef,
    UnresolvedEnumeration,
)
from .errors import (
    SvdError,
    SvdParseError,
    SvdDefinitionError,
    SvdRangeError,
    SvdMemoryError,
    SvdInternalError,
)
from .parsing import (
    parse,
    parse_document,
)
from .util import NumberFormat
from .addr_ranges import AddrRange
from .memory_block import MemoryBlock
from .nodes import (
    ClusterNode,
    FieldNode,
    MessageNode,
    NodeSetting,
    PeripheralNode,
    RegisterNode,
)
from .session import (
    DefinitionCache,
    FileDocumentSource,
    JsonStateStore,
    MemoryStateStore,
    PeripheralTree,
    SessionState,
    TreeManager,
)
from .registry import DefinitionRegistry, resolve_definition_path
from .export import export_xml, export_xml_file

import importlib.metadata
import logging

__version__ = importlib.metadata.version("svdview")


def _init_logger() -> logging.Logger:
    formatter = logging.Formatter("{message}", style="{")
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    logger = logging.getLogger("svdview")
    logger.setLevel(logging.ERROR)
    logger.addHandler(handler)

    return logger


# logging.Logger instance used for log output from svdview
log = _init_logger()

__all__ = [
    # from bindings
    "AccessMode",
    "ReadAction",
    # from config
    "Options",
    # from definitions
    "ClusterDef",
    "DeviceDefaults",
    "DeviceDefinition",
    "EnumValue",
    "FieldDef",
    "PeripheralDef",
    "RegisterDef",
    "UnresolvedEnumeration",
    # from errors
    "SvdError",
    "SvdParseError",
    "SvdDefinitionError",
    "SvdRangeError",
    "SvdMemoryError",
    "SvdInternalError",
    # from parsing
    "parse",
    "parse_document",
    # from util
    "NumberFormat",
    # from addr_ranges
    "AddrRange",
    # from memory_block
    "MemoryBlock",
    # from nodes
    "ClusterNode",
    "FieldNode",
    "MessageNode",
    "NodeSetting",
    "PeripheralNode",
    "RegisterNode",
    # from session
    "DefinitionCache",
    "FileDocumentSource",
    "JsonStateStore",
    "MemoryStateStore",
    "PeripheralTree",
    "SessionState",
    "TreeManager",
    # from registry
    "DefinitionRegistry",
    "resolve_definition_path",
    # from export
    "export_xml",
    "export_xml_file",
    # other
    "log",
    "util",
    "__version__",
]
