from dataclasses import dataclass
from enum import Enum
from typing import Union

from cms.errors import FilterParseError


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class FieldSort:
    field_name: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class AttributeSort:
    attr_name: str
    direction: SortDirection = SortDirection.ASC


Sort = Union[FieldSort, AttributeSort]


def asc_sort(name: str, attribute: bool = False) -> Sort:
    if attribute:
        return AttributeSort(name, SortDirection.ASC)
    return FieldSort(name, SortDirection.ASC)


def desc_sort(name: str, attribute: bool = False) -> Sort:
    if attribute:
        return AttributeSort(name, SortDirection.DESC)
    return FieldSort(name, SortDirection.DESC)


def parse_sort(text: str) -> Sort:
    """Parse ``name[:asc|desc]``; a leading ``@`` sorts by an EAV attribute."""
    name, _, direction = text.strip().partition(":")
    attribute = name.startswith("@")
    if attribute:
        name = name[1:]
    if not name:
        raise FilterParseError(text, "missing sort name")
    try:
        parsed = SortDirection((direction or "asc").strip().lower())
    except ValueError as exc:
        raise FilterParseError(text, f"unknown sort direction {direction!r}") from exc
    if attribute:
        return AttributeSort(name, parsed)
    return FieldSort(name, parsed)
