# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Small framework for binding lxml.objectify element classes to the SVD elements read by
the parser.
"""

from __future__ import annotations

import enum
import inspect
import typing
from collections import defaultdict
from typing import Any, Callable, Dict, Generic, Iterable, Optional, Set, Type, TypeVar

import lxml.etree as ET
from lxml import objectify
from typing_extensions import Self

from .util import parse_integer


class CaseInsensitiveStrEnum(enum.Enum):
    """String enum that accepts its values in any letter case."""

    @classmethod
    def _missing_(cls, value: object) -> Optional[Self]:
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None


def to_int(text: str) -> int:
    """
    Parse the text of an SVD integer element.

    :raises ValueError: If the text is not an integer literal.
    """
    value = parse_integer(text)
    if value is None:
        raise ValueError(f"Invalid integer value: '{text}'")
    return value


class SvdElement(objectify.ObjectifiedElement):
    """Base class of the bound SVD elements."""

    TAG: str

    def describe(self, **props: Any) -> str:
        """Location of the element in the document, for use in error messages."""
        props_str = f" {props}" if props else ""
        location = f"[{self.tag}{props_str}]"

        parent = self.getparent()
        if parent is None:
            return location
        return f"{location} in {parent!r}"

    def __repr__(self) -> str:
        return self.describe()


class NamedSvdElement(SvdElement):
    """SVD element identified by its <name> child."""

    def __repr__(self) -> str:
        return self.describe(name=self.findtext("name"))


class SvdIntElement(objectify.IntElement):
    """Integer element accepting the SVD integer literal forms."""

    def _init(self) -> None:
        self._setValueParser(to_int)


T = TypeVar("T")

# Element class placeholder for elements that contain elements of their own type.
SELF_CLASS: Any = object()

_NO_DEFAULT: Any = object()


class Elem(Generic[T]):
    """
    Descriptor giving access to the first child element with a given tag.
    Data elements are returned as their Python value, other elements as the element itself.
    """

    def __init__(self, tag: str, element_class: Any, default: Any = _NO_DEFAULT) -> None:
        """
        :param tag: Tag of the child element.
        :param element_class: Class the parser uses for the child element.
        :param default: Value returned if the element is missing. If not given, a missing
                        element raises AttributeError.
        """
        self.tag: str = tag
        self.element_class: Type[objectify.ObjectifiedElement] = element_class
        self.default: Any = default

    def __get__(self, node: Optional[objectify.ObjectifiedElement], owner: Any = None) -> Any:
        if node is None:
            return self

        try:
            child = node.__getattr__(self.tag)
        except AttributeError:
            if self.default is _NO_DEFAULT:
                raise
            return self.default

        if issubclass(self.element_class, objectify.ObjectifiedDataElement):
            return child.pyval
        return child


class Attr(Generic[T]):
    """Descriptor giving access to an attribute string, or a default if it is missing."""

    def __init__(self, name: str, default: Optional[T] = None) -> None:
        self.name: str = name
        self.default: Optional[T] = default

    def __get__(self, node: Optional[objectify.ObjectifiedElement], owner: Any = None) -> Any:
        if node is None:
            return self

        value = node.get(self.name)
        return self.default if value is None else value


C = TypeVar("C", bound=SvdElement)


class BindingRegistry:
    """Collection of element classes used to build the class lookup of the XML parser."""

    def __init__(self) -> None:
        self._tag_classes: Dict[str, Set[type]] = defaultdict(set)

    def add(self, element_class: Type[C]) -> Type[C]:
        """
        Register an element class along with the classes of its child elements.
        This is intended to be used as a class decorator.
        """
        self._tag_classes[element_class.TAG].add(element_class)

        for _, prop in inspect.getmembers(element_class, lambda m: isinstance(m, Elem)):
            if prop.element_class is SELF_CLASS:
                prop.element_class = element_class
            self._tag_classes[prop.tag].add(prop.element_class)

        return element_class

    def class_lookup(self) -> ET.ElementNamespaceClassLookup:
        """
        Make an element class lookup mapping each registered tag to its class.
        Elements with other tags get the default objectify classes.

        :raises RuntimeError: If a tag is bound to more than one class.
        """
        lookup = ET.ElementNamespaceClassLookup(objectify.ObjectifyElementClassLookup())
        namespace = lookup.get_namespace(None)

        for tag, classes in self._tag_classes.items():
            if len(classes) != 1:
                raise RuntimeError(f"Tag <{tag}> is bound to multiple classes: {classes}")
            namespace[tag] = next(iter(classes))

        return lookup


def make_converter_element(converter: Callable[[str], Any], name: str) -> Type[SvdElement]:
    """
    Make an objectify data element class whose Python value is the stripped element text
    passed through a converter.
    """

    class ConverterElement(SvdElement, objectify.ObjectifiedDataElement):
        @property
        def pyval(self) -> Any:
            return converter((self.text or "").strip())

        def __repr__(self) -> str:
            return self.describe(text=self.text)

    ConverterElement.__name__ = name
    ConverterElement.__qualname__ = name
    return ConverterElement


def iter_element_children(
    element: Optional[objectify.ObjectifiedElement], *tags: str
) -> Iterable[objectify.ObjectifiedElement]:
    """Iterate over the children of an element with the given tags. None has no children."""
    if element is None:
        return iter(())
    return typing.cast(Iterable[objectify.ObjectifiedElement], element.iterchildren(*tags))
