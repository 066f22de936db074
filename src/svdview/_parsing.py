# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Internals of the SVD parser: ordering and merging of derived elements, array expansion and
translation of the XML bindings into the immutable definitions.
"""

from __future__ import annotations

import copy
from collections import defaultdict
from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    TypeVar,
    Union,
)

from lxml import objectify

import svdview

from . import bindings
from .bindings import AccessMode
from .config import Options
from .definitions import (
    ClusterDef,
    DeviceDefaults,
    DeviceDefinition,
    EnumerationMap,
    EnumValue,
    FieldDef,
    FieldEnumeration,
    PeripheralDef,
    RegisterDef,
    UnresolvedEnumeration,
)
from .errors import SvdDefinitionError
from .util import cleanup_description, parse_dim_index

E = TypeVar("E", bound=objectify.ObjectifiedElement)

RegisterOrCluster = bindings.RegisterOrCluster


def topo_sort_derived_peripherals(
    peripherals: Iterable[bindings.PeripheralElement],
) -> List[bindings.PeripheralElement]:
    """
    Topologically sort the peripherals based on 'derivedFrom' attributes using Kahn's algorithm.
    The returned list has the property that the peripheral element at index i does not derive from
    any of the peripherals at indices 0..(i - 1).

    :param peripherals: List of peripheral elements to sort
    :raises SvdDefinitionError: If a peripheral derives from an unknown peripheral or the
                                'derivedFrom' attributes form a cycle.
    :return: List of peripheral elements topologically sorted based on the 'derivedFrom' attribute.
    """

    sorted_peripherals: List[bindings.PeripheralElement] = []
    no_dep_peripherals: List[bindings.PeripheralElement] = []
    dep_graph: Dict[str, List[bindings.PeripheralElement]] = defaultdict(list)

    for peripheral in peripherals:
        if peripheral.derived_from is not None:
            dep_graph[peripheral.derived_from].append(peripheral)
        else:
            no_dep_peripherals.append(peripheral)

    while no_dep_peripherals:
        peripheral = no_dep_peripherals.pop()
        sorted_peripherals.append(peripheral)
        # Each peripheral has a maximum of one in-edge since they can only derive from one
        # peripheral. Therefore, once they are encountered here they have no remaining dependencies.
        no_dep_peripherals.extend(dep_graph[peripheral.name])
        dep_graph.pop(peripheral.name, None)

    if dep_graph:
        unresolved = [p for dependents in dep_graph.values() for p in dependents]
        raise SvdDefinitionError(
            unresolved,
            "Unable to determine order in which peripherals are derived. "
            "This is caused either by a cycle in the 'derivedFrom' attributes, "
            "or a 'derivedFrom' attribute pointing to a nonexistent peripheral.",
        )

    return sorted_peripherals


def merge_derived_element(base: E, derived: E) -> E:
    """
    Merge an element that has a 'derivedFrom' attribute with the element it derives from.

    The result is a copy of the base element where each child tag present in the derived
    element replaces all the base children with that tag. A "registers" container is merged
    by name instead, so that registers and clusters of the base are kept unless the derived
    element declares one with the same name.

    :param base: Element that is derived from.
    :param derived: Element with the 'derivedFrom' attribute.
    :return: New merged element, not attached to any tree.
    """
    merged = copy.deepcopy(base)

    for key in list(merged.attrib):
        del merged.attrib[key]
    for key, value in derived.attrib.items():
        if key != "derivedFrom":
            merged.set(key, value)
    if (derived_from := derived.get("derivedFrom")) is not None:
        merged.set(bindings.RESOLVED_FROM_ATTR, derived_from)

    derived_tags: List[str] = []
    for child in derived.iterchildren():
        if isinstance(child.tag, str) and child.tag not in derived_tags:
            derived_tags.append(child.tag)

    for tag in derived_tags:
        new_children = [copy.deepcopy(c) for c in derived.iterchildren(tag)]
        old_children = list(merged.iterchildren(tag))

        if tag == bindings.RegistersElement.TAG and len(old_children) == 1:
            for new_container in new_children:
                _merge_named_children(old_children[0], new_container)
            continue

        if old_children:
            anchor = old_children[0]
            for new_child in new_children:
                anchor.addprevious(new_child)
            for old_child in old_children:
                merged.remove(old_child)
        else:
            for new_child in new_children:
                merged.append(new_child)

    return merged


def _merge_named_children(
    container: objectify.ObjectifiedElement, overlay: objectify.ObjectifiedElement
) -> None:
    """Add the children of overlay to container, replacing children with the same name."""
    for new_child in list(overlay.iterchildren()):
        if not isinstance(new_child.tag, str):
            continue

        name = new_child.findtext("name")
        existing = next(
            (c for c in container.iterchildren() if c.findtext("name") == name), None
        )
        if existing is not None:
            container.replace(existing, new_child)
        else:
            container.append(new_child)


def resolve_derived_peripherals(device: bindings.DeviceElement) -> None:
    """
    Replace every derived peripheral element in the device with the result of merging it with
    its base peripheral. Chains of derived peripherals are resolved regardless of their order
    in the document.
    """
    resolved: Dict[str, bindings.PeripheralElement] = {}

    for peripheral in topo_sort_derived_peripherals(device.peripherals):
        if peripheral.derived_from is None:
            resolved[peripheral.name] = peripheral
            continue

        merged = merge_derived_element(resolved[peripheral.derived_from], peripheral)
        peripheral.getparent().replace(peripheral, merged)
        resolved[peripheral.name] = merged


class DerivedRegisterResolver:
    """
    Resolves 'derivedFrom' attributes of register and cluster elements.

    References are first looked up among the siblings of the element, then in a global index of
    the registers and clusters of the containers that have already been resolved. The global
    index is keyed both by "<parent name>.<name>" and by the full dotted path from the
    peripheral.
    """

    def __init__(self) -> None:
        self._global_index: Dict[str, RegisterOrCluster] = {}

    def resolve_siblings(
        self, elements: Sequence[RegisterOrCluster], parent_name: str, parent_path: str
    ) -> List[RegisterOrCluster]:
        """
        Resolve the derived elements in a list of siblings, replacing them in the XML tree by
        the merged elements. Forward references and chains within the list are supported.

        :param elements: Register and cluster elements with a common parent.
        :param parent_name: Name of the parent peripheral or cluster.
        :param parent_path: Dotted path of the parent from the peripheral.
        :return: The resolved siblings, in the original order.
        """
        local_index: Dict[str, int] = {}
        for i, element in enumerate(elements):
            local_index[element.name] = i

        result: List[Optional[RegisterOrCluster]] = [None] * len(elements)
        in_progress: Set[int] = set()

        def resolve(i: int) -> RegisterOrCluster:
            if (done := result[i]) is not None:
                return done

            element = elements[i]
            base_name = element.derived_from

            if base_name is None:
                result[i] = element
                return element

            if i in in_progress:
                raise SvdDefinitionError(
                    [element], f"Cycle in 'derivedFrom' of register \"{element.name}\""
                )
            in_progress.add(i)

            base: Optional[RegisterOrCluster]
            if (base_index := local_index.get(base_name)) is not None and base_index != i:
                base = resolve(base_index)
            else:
                base = self._global_index.get(base_name)

            if base is None:
                raise SvdDefinitionError(
                    [element],
                    f"SVD error: Invalid 'derivedFrom' \"{base_name}\" for register "
                    f"\"{element.name}\"",
                )

            merged = merge_derived_element(base, element)
            element.getparent().replace(element, merged)
            svdview.log.debug(f"Register {element.name} derived from {base_name}")

            result[i] = merged
            return merged

        for i in range(len(elements)):
            resolve(i)

        resolved = [e for e in result if e is not None]

        for element in resolved:
            self._global_index[f"{parent_name}.{element.name}"] = element
            self._global_index[f"{parent_path}.{element.name}"] = element

        return resolved


class EnumScopeTable:
    """
    Global table of named enumerations.

    Each named enumeration is visible under its own name, under "<field>.<name>" and under each
    form prefixed with the names of the enclosing register, clusters and peripheral.
    A later definition with the same key replaces an earlier one.
    """

    def __init__(self) -> None:
        self._table: Dict[str, EnumerationMap] = {}

    def add(self, name: str, field_name: str, scope: Sequence[str], values: EnumerationMap) -> None:
        """
        :param name: Name of the enumeration.
        :param field_name: Name of the field declaring the enumeration.
        :param scope: Names of the enclosing elements, outermost first.
        :param values: Enumerated values.
        """
        key = name
        self._table[key] = values
        key = f"{field_name}.{key}"
        self._table[key] = values
        for parent in reversed(scope):
            key = f"{parent}.{key}"
            self._table[key] = values

    def get(self, name: str) -> Optional[EnumerationMap]:
        return self._table.get(name)

    def freeze(self) -> Mapping[str, EnumerationMap]:
        return MappingProxyType(dict(self._table))


@dataclass(frozen=True)
class DimInstance:
    """One element of an expanded array."""

    name: str
    description: str
    # Offset of the element, in bytes for registers/clusters and bits for fields.
    offset: int


def expand_dim(
    element: Union[RegisterOrCluster, bindings.FieldElement],
    kind: str,
    description: str,
    offset: int,
) -> List[DimInstance]:
    """
    Expand an element that may be an array into its concrete instances.

    :param element: Register, cluster or field element.
    :param kind: Kind of element, used in error messages.
    :param description: Cleaned up description of the element.
    :param offset: Offset of the first instance.
    :raises SvdDefinitionError: If the array dimensions are invalid.
    :return: A single instance if the element is not an array, otherwise one per index.
    """
    name = element.name
    count = element.dim

    if count is None:
        return [DimInstance(name, description, offset)]

    if count < 1:
        raise SvdDefinitionError(
            [element],
            f"Unable to parse SVD file: {kind} {name} has dim element, "
            "with no/invalid dimensions.",
        )

    increment = element.dim_increment or 0
    if not increment and count > 1:
        raise SvdDefinitionError(
            [element],
            f"Unable to parse SVD file: {kind} {name} has dim element, "
            "with no/invalid dimIncrement element.",
        )

    if element.dim_index is not None:
        tokens = parse_dim_index(element.dim_index, count)
    else:
        tokens = [str(i) for i in range(count)]

    return [
        DimInstance(
            name=name.replace("%s", token),
            description=description.replace("%s", token),
            offset=offset + increment * i,
        )
        for i, token in enumerate(tokens)
    ]


@dataclass(frozen=True)
class _Properties:
    """Effective register properties at some level of the hierarchy."""

    size: int
    access: AccessMode
    reset_value: int

    def inherit(self, element: bindings.RegisterPropertiesMixin) -> _Properties:
        return _Properties(
            size=element.size if element.size is not None else self.size,
            access=element.access if element.access is not None else self.access,
            reset_value=(
                element.reset_value if element.reset_value is not None else self.reset_value
            ),
        )


class DeviceTranslator:
    """Translates a device element tree into a DeviceDefinition."""

    def __init__(self, device: bindings.DeviceElement, options: Options) -> None:
        self._device = device
        self._options = options
        self._derived = DerivedRegisterResolver()
        self._enums = EnumScopeTable()

    def translate(self) -> DeviceDefinition:
        device = self._device
        defaults = DeviceDefaults(
            access=device.access if device.access is not None else AccessMode.READ_WRITE,
            size=device.size if device.size is not None else 32,
            reset_value=device.reset_value if device.reset_value is not None else 0,
        )
        device_props = _Properties(defaults.size, defaults.access, defaults.reset_value)

        resolve_derived_peripherals(device)

        ignored = set(self._options.ignored_peripherals)
        peripherals: List[PeripheralDef] = []

        for peripheral in device.peripherals:
            if peripheral.name in ignored:
                svdview.log.info(f"Ignoring peripheral {peripheral.name}")
                continue
            peripherals.append(self._translate_peripheral(peripheral, device_props))

        return DeviceDefinition(
            name=device.name,
            defaults=defaults,
            peripherals=tuple(peripherals),
            enum_table=self._enums.freeze(),
            ignored_peripherals=tuple(sorted(ignored)),
        )

    def _translate_peripheral(
        self, peripheral: bindings.PeripheralElement, device_props: _Properties
    ) -> PeripheralDef:
        props = device_props.inherit(peripheral)

        total_length = 0
        for block in peripheral.address_blocks:
            total_length = max(total_length, block.offset + block.size)

        children = self._translate_children(
            list(peripheral.registers), props, scope=(peripheral.name,)
        )

        return PeripheralDef(
            name=peripheral.name,
            description=cleanup_description(peripheral.description),
            base_address=peripheral.base_address,
            total_length=total_length,
            group_name=peripheral.group_name or "",
            size=props.size,
            access=props.access,
            reset_value=props.reset_value,
            children=tuple(children),
            derived_from=peripheral.resolved_from,
        )

    def _translate_children(
        self,
        elements: Sequence[RegisterOrCluster],
        props: _Properties,
        scope: Tuple[str, ...],
    ) -> List[Union[ClusterDef, RegisterDef]]:
        resolved = self._derived.resolve_siblings(elements, scope[-1], ".".join(scope))

        children: List[Union[ClusterDef, RegisterDef]] = []
        for element in resolved:
            if isinstance(element, bindings.ClusterElement):
                children.extend(self._translate_cluster(element, props, scope))
            else:
                children.extend(self._translate_register(element, props, scope))

        return children

    def _translate_cluster(
        self,
        cluster: bindings.ClusterElement,
        parent_props: _Properties,
        scope: Tuple[str, ...],
    ) -> List[ClusterDef]:
        props = parent_props.inherit(cluster)
        offset = cluster.offset if cluster.offset is not None else 0
        instances = expand_dim(
            cluster, "cluster", cleanup_description(cluster.description), offset
        )

        clusters = []
        for instance in instances:
            children = self._translate_children(
                list(cluster.registers), props, scope=(*scope, instance.name)
            )
            clusters.append(
                ClusterDef(
                    name=instance.name,
                    description=instance.description,
                    offset=instance.offset,
                    size=props.size,
                    access=props.access,
                    reset_value=props.reset_value,
                    children=tuple(children),
                    derived_from=cluster.resolved_from,
                )
            )

        return clusters

    def _translate_register(
        self,
        register: bindings.RegisterElement,
        parent_props: _Properties,
        scope: Tuple[str, ...],
    ) -> List[RegisterDef]:
        props = parent_props.inherit(register)

        if register.offset is None:
            raise SvdDefinitionError(
                [register],
                f"Unable to parse SVD file: register {register.name} has invalid addressOffset",
            )

        instances = expand_dim(
            register, "register", cleanup_description(register.description), register.offset
        )

        registers = []
        for instance in instances:
            fields: List[FieldDef] = []
            for field in register.fields:
                fields.extend(
                    self._translate_field(field, props.access, (*scope, instance.name))
                )

            registers.append(
                RegisterDef(
                    name=instance.name,
                    description=instance.description,
                    offset=instance.offset,
                    size=props.size,
                    access=props.access,
                    reset_value=props.reset_value,
                    read_action=register.read_action,
                    fields=tuple(fields),
                    derived_from=register.resolved_from,
                )
            )

        return registers

    def _translate_field(
        self,
        field: bindings.FieldElement,
        register_access: AccessMode,
        scope: Tuple[str, ...],
    ) -> List[FieldDef]:
        bit_range = field.bit_range
        if bit_range is None:
            raise SvdDefinitionError(
                [field],
                f"Unable to parse SVD file: field {field.name} must have either bitOffset and "
                "bitWidth elements, bitRange Element, or msb and lsb elements.",
            )

        access = (
            field.access.intersect(register_access)
            if field.access is not None
            else register_access
        )
        enumeration = self._translate_enumeration(field, scope)

        instances = expand_dim(
            field, "field", cleanup_description(field.description), bit_range.offset
        )

        return [
            FieldDef(
                name=instance.name,
                description=instance.description,
                offset=instance.offset,
                width=bit_range.width,
                access=access,
                read_action=field.read_action,
                enumeration=enumeration,
            )
            for instance in instances
        ]

    def _translate_enumeration(
        self, field: bindings.FieldElement, scope: Tuple[str, ...]
    ) -> FieldEnumeration:
        enum_element = field.enumerated_values
        if enum_element is None:
            return None

        if (derived_from := enum_element.derived_from) is not None:
            found = self._enums.get(derived_from)
            if found is not None:
                return found
            return UnresolvedEnumeration(derived_from)

        values: Dict[int, EnumValue] = {}
        for enum_value in enum_element.enums:
            value = enum_value.value
            if value is None:
                continue
            values[value] = EnumValue(
                name=enum_value.name,
                description=cleanup_description(enum_value.description),
                value=value,
            )

        value_map = MappingProxyType(values)

        if enum_element.name:
            self._enums.add(enum_element.name, field.name, scope, value_map)

        return value_map
