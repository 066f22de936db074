# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Per debug session peripheral trees, and the cache of parsed definition documents that is
shared between sessions.
"""

from __future__ import annotations

import asyncio
import enum
import json
import os
import urllib.request
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
)

import svdview

from . import dto
from .config import Options
from .definitions import DeviceDefinition
from .errors import SvdError, SvdParseError
from .memory import MemoryAccessor
from .nodes import BaseNode, MessageNode, NodeSetting, PeripheralNode, sort_key
from .parsing import parse_document
from .registry import DefinitionRegistry, is_url, resolve_definition_path

NO_FILE_MESSAGE = "No SVD file loaded"


class SessionState(enum.Enum):
    EMPTY = "empty"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class DocumentSource(Protocol):
    """Provides the contents of definition documents."""

    async def read(self, path: str) -> bytes:
        ...

    async def modification_time(self, path: str) -> Optional[float]:
        """:return: Modification time of the document, or None if it is unknown."""
        ...


class FileDocumentSource:
    """Reads documents from the local file system, or fetches them if the path is a URL."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._timeout = timeout

    async def read(self, path: str) -> bytes:
        if is_url(path):
            return await asyncio.to_thread(self._fetch, path)
        return await asyncio.to_thread(Path(path).read_bytes)

    async def modification_time(self, path: str) -> Optional[float]:
        if is_url(path):
            return None
        try:
            stat = await asyncio.to_thread(os.stat, path)
        except OSError:
            return None
        return stat.st_mtime

    def _fetch(self, url: str) -> bytes:
        with urllib.request.urlopen(url, timeout=self._timeout) as response:
            return response.read()


class StateStore(Protocol):
    """Persists the display state of peripheral trees between sessions."""

    def get(self, key: str) -> List[NodeSetting]:
        ...

    def set(self, key: str, settings: Sequence[NodeSetting]) -> None:
        ...


def _parse_settings(entries: Any, key: str) -> List[NodeSetting]:
    if not isinstance(entries, list):
        svdview.log.warning(f"Ignoring invalid saved state {key}")
        return []

    settings = []
    for entry in entries:
        try:
            settings.append(NodeSetting.from_dict(entry))
        except ValueError as e:
            svdview.log.warning(f"Ignoring saved state of node: {e}")
    return settings


class MemoryStateStore:
    def __init__(self) -> None:
        self._state: Dict[str, List[Dict]] = {}

    def get(self, key: str) -> List[NodeSetting]:
        return _parse_settings(self._state.get(key, []), key)

    def set(self, key: str, settings: Sequence[NodeSetting]) -> None:
        self._state[key] = [s.to_dict() for s in settings]


class JsonStateStore:
    """State store backed by a JSON file holding one list of settings per key."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    def get(self, key: str) -> List[NodeSetting]:
        return _parse_settings(self._load().get(key, []), key)

    def set(self, key: str, settings: Sequence[NodeSetting]) -> None:
        state = self._load()
        state[key] = [s.to_dict() for s in settings]
        self._path.write_text(json.dumps(state, indent=2), encoding="utf-8")

    def _load(self) -> Dict[str, List[Dict]]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}

        try:
            state = json.loads(text)
        except json.JSONDecodeError as e:
            svdview.log.warning(f"Ignoring invalid state file {self._path}: {e}")
            return {}

        if not isinstance(state, dict):
            svdview.log.warning(f"Ignoring state file {self._path}: not a JSON object")
            return {}
        return state


CacheKey = Tuple[str, float, FrozenSet[str]]
ParseFunction = Callable[[bytes, Options, str], DeviceDefinition]


class DefinitionCache:
    """
    Cache of parsed definition documents.

    Entries are keyed by the identity of the document, its modification time and the set of
    ignored peripherals. Documents without a modification time are never cached.
    Concurrent loads of the same document are serialized so that the document is only
    parsed once.
    """

    def __init__(self, parse_fn: ParseFunction = parse_document) -> None:
        self._parse_fn = parse_fn
        self._entries: Dict[CacheKey, DeviceDefinition] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def get_or_load(
        self, identity: str, source: DocumentSource, options: Options
    ) -> DeviceDefinition:
        """
        Get the parsed definition of a document, parsing it if there is no up to date entry.

        :param identity: Path or URL of the document.
        :param source: Source to read the document from.
        :param options: Parsing options.
        :raises SvdParseError: If the document could not be parsed.
        :raises OSError: If the document could not be read.
        :return: The parsed definition.
        """
        lock = self._locks.setdefault(identity, asyncio.Lock())

        async with lock:
            mtime = await source.modification_time(identity)
            key: Optional[CacheKey] = None
            if mtime is not None:
                key = (identity, mtime, frozenset(options.ignored_peripherals))
                definition = self._entries.get(key)
                if definition is not None:
                    svdview.log.debug(f"Using cached definition of {identity}")
                    return definition

            data = await source.read(identity)
            definition = await asyncio.to_thread(self._parse_fn, data, options, identity)

            if key is not None:
                self._drop_stale_entries(identity, key[1])
                self._entries[key] = definition

            return definition

    def clear(self) -> None:
        self._entries.clear()

    def _drop_stale_entries(self, identity: str, mtime: float) -> None:
        for key in [k for k in self._entries if k[0] == identity and k[1] != mtime]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


class PeripheralTree:
    """
    Peripherals of the device targeted by one debug session.

    The tree is created empty and loaded by start(). Loading never raises: failures leave the
    tree in the ERROR state with a message that explains the failure.
    """

    def __init__(
        self,
        session_id: str,
        session_name: str = "",
        memory: Optional[MemoryAccessor] = None,
        options: Options = Options(),
        cache: Optional[DefinitionCache] = None,
        source: Optional[DocumentSource] = None,
        state_store: Optional[StateStore] = None,
        workspace: Optional[str] = None,
    ) -> None:
        """
        :param session_id: Identifier of the debug session.
        :param session_name: Display name of the debug session.
        :param memory: Memory of the debug target.
        :param options: Configuration options.
        :param cache: Cache of parsed documents, usually shared with other trees.
        :param source: Source of definition documents.
        :param state_store: Store used to persist the display state of the tree.
        :param workspace: Name of the workspace, used as part of the persisted state key.
        """
        self.session_id: str = session_id
        self.session_name: str = session_name
        self.memory: Optional[MemoryAccessor] = memory
        self.options: Options = options
        self.workspace: Optional[str] = workspace

        self._cache = cache if cache is not None else DefinitionCache()
        self._source: DocumentSource = source if source is not None else FileDocumentSource()
        self._state_store = state_store

        self.state: SessionState = SessionState.EMPTY
        self.message: str = NO_FILE_MESSAGE
        self.peripherals: List[PeripheralNode] = []
        self.definition: Optional[DeviceDefinition] = None
        self._alive: bool = True

    @property
    def state_key(self) -> str:
        return f"{self.workspace or '*unknown*'}-SVDstate"

    def is_alive(self) -> bool:
        return self._alive

    async def start(self, svd_path: Optional[str]) -> SessionState:
        """
        Load the peripherals described by a definition document.

        :param svd_path: Path or URL of the document. If None, the tree stays empty.
        :return: The resulting state of the tree.
        """
        if svd_path is None:
            self.state = SessionState.EMPTY
            self.message = NO_FILE_MESSAGE
            return self.state

        self.peripherals = []
        self.state = SessionState.LOADING
        self.message = f"Loading {svd_path} ..."

        try:
            definition = await self._cache.get_or_load(svd_path, self._source, self.options)
            peripherals = self._build_peripherals(definition)
            if not peripherals:
                raise SvdParseError("No peripherals found")
        except Exception as e:
            # Document sources are injected, so any failure ends up in the error message
            self.state = SessionState.ERROR
            self.message = f"Unable to parse definition file {svd_path}: {e}"
            svdview.log.error(self.message)
            return self.state

        if not self._alive:
            svdview.log.debug(f"Session {self.session_id} ended while loading {svd_path}")
            return self.state

        self.definition = definition
        self.peripherals = peripherals
        self._restore_state()
        self.peripherals.sort(key=sort_key)

        self.state = SessionState.LOADED
        self.message = ""
        svdview.log.info(f"Loaded {len(peripherals)} peripherals from {svd_path}")
        return self.state

    def _build_peripherals(self, definition: DeviceDefinition) -> List[PeripheralNode]:
        peripherals = []
        gap_threshold = self.options.normalized_gap_threshold

        for peripheral_definition in definition.peripherals:
            peripheral = PeripheralNode(
                peripheral_definition, gap_threshold, self.options.max_chunk_bytes
            )
            peripheral.resolve_deferred_enums(definition.enum_table)
            peripheral.attach(self.memory, self.is_alive, self.session_id)
            peripherals.append(peripheral)

        return peripherals

    def _restore_state(self) -> None:
        if self._state_store is None or not self.options.save_layout:
            return

        try:
            settings = self._state_store.get(self.state_key)
        except Exception as e:
            svdview.log.warning(f"Unable to restore the layout of {self.session_name}: {e}")
            return

        for setting in settings:
            node = self.find_node_by_path(setting.node)
            if node is None:
                continue
            node.expanded = bool(setting.expanded)
            node.pinned = bool(setting.pinned)
            if setting.format is not None:
                node.format = setting.format

    def children(self) -> Sequence[Union[PeripheralNode, MessageNode]]:
        if self.state == SessionState.LOADED:
            return self.peripherals
        return [MessageNode(self.message)]

    async def refresh(self, force: bool = False) -> List[SvdError]:
        """
        Read the memory of the peripherals.

        :param force: Read all the peripherals, not only the expanded ones.
        :return: Errors of the reads that failed.
        """
        if self.state != SessionState.LOADED or not self._alive:
            return []

        results = await asyncio.gather(*(p.update_data(force) for p in self.peripherals))
        if not self._alive:
            return []

        return [error for errors in results for error in errors]

    def find_node_by_path(self, path: Union[str, Sequence[str]]) -> Optional[BaseNode]:
        """
        :param path: Dotted name path of the node, or the list of names in it.
        :return: The node, or None if there is no such node.
        """
        parts = path.split(".") if isinstance(path, str) else list(path)
        if not parts:
            return None

        for peripheral in self.peripherals:
            if peripheral.name == parts[0]:
                return peripheral.find_by_path(parts[1:])

        return None

    def toggle_pin(self, peripheral: PeripheralNode) -> None:
        peripheral.pinned = not peripheral.pinned
        self.peripherals.sort(key=sort_key)

    def save_state(self) -> List[NodeSetting]:
        return [s for p in self.peripherals for s in p.save_state()]

    def terminate(self) -> None:
        """Persist the display state of the tree and discard it."""
        if not self._alive:
            return

        if (
            self._state_store is not None
            and self.options.save_layout
            and self.state == SessionState.LOADED
        ):
            self._state_store.set(self.state_key, self.save_state())

        self._alive = False
        for peripheral in self.peripherals:
            peripheral.attach(None, self.is_alive, self.session_id)
        self.peripherals = []
        self.state = SessionState.EMPTY
        self.message = NO_FILE_MESSAGE

    def serialize(self) -> dto.TreeDTO:
        return dto.TreeDTO(
            session_id=self.session_id,
            session_name=self.session_name,
            state=self.state.value,
            message=self.message or None,
            children=[child.serialize() for child in self.children()],
        )


class TreeManager:
    """Creates a peripheral tree for each debug session and discards it when the session ends."""

    def __init__(
        self,
        options: Options = Options(),
        cache: Optional[DefinitionCache] = None,
        source: Optional[DocumentSource] = None,
        state_store: Optional[StateStore] = None,
        registry: Optional[DefinitionRegistry] = None,
        workspace_dir: Optional[str] = None,
    ) -> None:
        self.options = options
        self.cache = cache if cache is not None else DefinitionCache()
        self.registry = registry if registry is not None else DefinitionRegistry()
        self.workspace_dir = workspace_dir
        self._source = source
        self._state_store = state_store
        self._trees: Dict[str, PeripheralTree] = {}

    async def session_started(
        self,
        session_id: str,
        session_name: str,
        memory: MemoryAccessor,
        svd_path: Optional[str] = None,
        device_name: Optional[str] = None,
    ) -> PeripheralTree:
        """
        Create and load the tree of a new debug session.

        :param svd_path: Configured definition file of the session.
        :param device_name: Configured device name, looked up in the registry if no
                            definition file is configured.
        """
        tree = PeripheralTree(
            session_id,
            session_name,
            memory=memory,
            options=self.options,
            cache=self.cache,
            source=self._source,
            state_store=self._state_store,
            workspace=self.workspace_dir,
        )
        self._trees[session_id] = tree

        path = resolve_definition_path(svd_path, device_name, self.registry, self.workspace_dir)
        await tree.start(path)
        return tree

    def session_ended(self, session_id: str) -> None:
        tree = self._trees.pop(session_id, None)
        if tree is not None:
            tree.terminate()

    def get(self, session_id: str) -> Optional[PeripheralTree]:
        return self._trees.get(session_id)

    @property
    def trees(self) -> List[PeripheralTree]:
        return list(self._trees.values())
