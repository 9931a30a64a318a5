"""Filter expressions for repository queries.

A filter targets either a fixed column (``PropertyFilter``), a dynamic EAV
attribute (``AttributeFilter``) or performs a free-text search
(``SearchFilter``). Values are tagged scalars so the storage layer never has
to guess what a raw string from a query string was meant to be.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Union

from cms.errors import FilterParseError, InvalidFilterError


class ScalarKind(str, Enum):
    STRING = "String"
    INT = "Int"
    FLOAT = "Float"
    BOOL = "Bool"
    DATE = "Date"
    DATETIME = "DateTime"
    TIME = "Time"


class ScalarType(str, Enum):
    BOOL = "Bool"
    INT = "Int"
    FLOAT = "Float"
    DATE = "Date"
    DATETIME = "Datetime"
    STRING = "String"


SCALAR_TYPE_KINDS = {
    ScalarType.BOOL: ScalarKind.BOOL,
    ScalarType.INT: ScalarKind.INT,
    ScalarType.FLOAT: ScalarKind.FLOAT,
    ScalarType.DATE: ScalarKind.DATE,
    ScalarType.DATETIME: ScalarKind.DATETIME,
    ScalarType.STRING: ScalarKind.STRING,
}

NUMERIC_KINDS = frozenset({ScalarKind.INT, ScalarKind.FLOAT})
TEMPORAL_KINDS = frozenset({ScalarKind.DATE, ScalarKind.DATETIME, ScalarKind.TIME})


@dataclass(frozen=True)
class ScalarValue:
    kind: ScalarKind
    value: Any

    @property
    def is_numeric(self) -> bool:
        return self.kind in NUMERIC_KINDS

    @property
    def is_temporal(self) -> bool:
        return self.kind in TEMPORAL_KINDS

    @property
    def is_comparable(self) -> bool:
        return self.is_numeric or self.is_temporal


def string_val(value: str) -> ScalarValue:
    return ScalarValue(ScalarKind.STRING, value)


def int_val(value: int) -> ScalarValue:
    return ScalarValue(ScalarKind.INT, value)


def float_val(value: float) -> ScalarValue:
    return ScalarValue(ScalarKind.FLOAT, value)


def bool_val(value: bool) -> ScalarValue:
    return ScalarValue(ScalarKind.BOOL, value)


def date_val(value: date) -> ScalarValue:
    return ScalarValue(ScalarKind.DATE, value)


def datetime_val(value: datetime) -> ScalarValue:
    return ScalarValue(ScalarKind.DATETIME, value)


def time_val(value: time) -> ScalarValue:
    return ScalarValue(ScalarKind.TIME, value)


def to_scalar(value: Any) -> ScalarValue:
    """Wrap a plain Python value into the matching tagged scalar."""
    if isinstance(value, ScalarValue):
        return value
    # bool before int, datetime before date: both are subclasses
    if isinstance(value, bool):
        return bool_val(value)
    if isinstance(value, int):
        return int_val(value)
    if isinstance(value, float):
        return float_val(value)
    if isinstance(value, str):
        return string_val(value)
    if isinstance(value, datetime):
        return datetime_val(value)
    if isinstance(value, date):
        return date_val(value)
    if isinstance(value, time):
        return time_val(value)
    raise TypeError(f"unsupported filter value type: {type(value).__name__}")


@dataclass(frozen=True)
class Single:
    value: ScalarValue


@dataclass(frozen=True)
class ListValue:
    values: tuple[ScalarValue, ...]


@dataclass(frozen=True)
class Range:
    start: ScalarValue
    end: ScalarValue


@dataclass(frozen=True)
class NoValue:
    pass


FilterValue = Union[Single, ListValue, Range, NoValue]


class FilterOperator(str, Enum):
    EQUAL = "Equal"
    NOT_EQUAL = "NotEqual"
    GREATER_THAN = "GreaterThan"
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqual"
    LESS_THAN = "LessThan"
    LESS_THAN_OR_EQUAL = "LessThanOrEqual"
    LIKE = "Like"
    NOT_LIKE = "NotLike"
    IN = "In"
    NOT_IN = "NotIn"
    IS_NULL = "IsNull"
    NOT_NULL = "NotNull"
    BETWEEN = "Between"
    NOT_BETWEEN = "NotBetween"


@dataclass(frozen=True)
class PropertyFilter:
    property_name: str
    operator: FilterOperator
    value: FilterValue


@dataclass(frozen=True)
class AttributeFilter:
    attr_name: str
    operator: FilterOperator
    value: FilterValue


@dataclass(frozen=True)
class SearchFilter:
    value: str


Filter = Union[PropertyFilter, AttributeFilter, SearchFilter]

EQUALITY_OPERATORS = frozenset({FilterOperator.EQUAL, FilterOperator.NOT_EQUAL})
ORDERING_OPERATORS = frozenset(
    {
        FilterOperator.GREATER_THAN,
        FilterOperator.GREATER_THAN_OR_EQUAL,
        FilterOperator.LESS_THAN,
        FilterOperator.LESS_THAN_OR_EQUAL,
    }
)
LIKE_OPERATORS = frozenset({FilterOperator.LIKE, FilterOperator.NOT_LIKE})
LIST_OPERATORS = frozenset({FilterOperator.IN, FilterOperator.NOT_IN})
NULL_OPERATORS = frozenset({FilterOperator.IS_NULL, FilterOperator.NOT_NULL})
RANGE_OPERATORS = frozenset({FilterOperator.BETWEEN, FilterOperator.NOT_BETWEEN})

LIST_KINDS = frozenset({ScalarKind.INT, ScalarKind.FLOAT, ScalarKind.STRING})


def _incompatibility(operator: FilterOperator, value: FilterValue) -> Optional[str]:
    if operator in EQUALITY_OPERATORS:
        if not isinstance(value, Single):
            return "expected a single value"
        return None
    if operator in ORDERING_OPERATORS:
        if not isinstance(value, Single):
            return "expected a single value"
        if not value.value.is_comparable:
            return f"{value.value.kind.value} is neither numeric nor temporal"
        return None
    if operator in LIKE_OPERATORS:
        if not isinstance(value, Single):
            return "expected a single value"
        if value.value.kind is not ScalarKind.STRING:
            return "pattern must be a String"
        return None
    if operator in LIST_OPERATORS:
        if not isinstance(value, ListValue):
            return "expected a list of values"
        if not value.values:
            return "list must not be empty"
        kinds = {v.kind for v in value.values}
        if len(kinds) != 1 or not kinds <= LIST_KINDS:
            return "list must be all Int, all Float or all String"
        return None
    if operator in NULL_OPERATORS:
        if not isinstance(value, NoValue):
            return "takes no value"
        return None
    if operator in RANGE_OPERATORS:
        if not isinstance(value, Range):
            return "expected a range"
        if value.start.kind is not value.end.kind:
            return "range bounds must share a type"
        if not value.start.is_comparable:
            return f"{value.start.kind.value} is neither numeric nor temporal"
        return None
    return "unknown operator"


def is_value_compatible(operator: FilterOperator, value: FilterValue) -> bool:
    return _incompatibility(operator, value) is None


def validate_filter(filter_: Filter) -> Filter:
    if isinstance(filter_, SearchFilter):
        if not isinstance(filter_.value, str):
            raise InvalidFilterError("Search", "search text must be a string")
        return filter_
    reason = _incompatibility(filter_.operator, filter_.value)
    if reason is not None:
        raise InvalidFilterError(filter_.operator.value, reason)
    return filter_


def _build(name: str, operator: FilterOperator, value: FilterValue, attribute: bool) -> Filter:
    if attribute:
        return AttributeFilter(name, operator, value)
    return PropertyFilter(name, operator, value)


def equal(name: str, value: Any, attribute: bool = False) -> Filter:
    return _build(name, FilterOperator.EQUAL, Single(to_scalar(value)), attribute)


def not_equal(name: str, value: Any, attribute: bool = False) -> Filter:
    return _build(name, FilterOperator.NOT_EQUAL, Single(to_scalar(value)), attribute)


def greater_than(name: str, value: Any, attribute: bool = False) -> Filter:
    return _build(name, FilterOperator.GREATER_THAN, Single(to_scalar(value)), attribute)


def greater_than_or_equal(name: str, value: Any, attribute: bool = False) -> Filter:
    return _build(
        name, FilterOperator.GREATER_THAN_OR_EQUAL, Single(to_scalar(value)), attribute
    )


def less_than(name: str, value: Any, attribute: bool = False) -> Filter:
    return _build(name, FilterOperator.LESS_THAN, Single(to_scalar(value)), attribute)


def less_than_or_equal(name: str, value: Any, attribute: bool = False) -> Filter:
    return _build(
        name, FilterOperator.LESS_THAN_OR_EQUAL, Single(to_scalar(value)), attribute
    )


def like(name: str, pattern: str, attribute: bool = False) -> Filter:
    return _build(name, FilterOperator.LIKE, Single(to_scalar(pattern)), attribute)


def not_like(name: str, pattern: str, attribute: bool = False) -> Filter:
    return _build(name, FilterOperator.NOT_LIKE, Single(to_scalar(pattern)), attribute)


def in_(name: str, values: Sequence[Any], attribute: bool = False) -> Filter:
    scalars = tuple(to_scalar(v) for v in values)
    return _build(name, FilterOperator.IN, ListValue(scalars), attribute)


def not_in(name: str, values: Sequence[Any], attribute: bool = False) -> Filter:
    scalars = tuple(to_scalar(v) for v in values)
    return _build(name, FilterOperator.NOT_IN, ListValue(scalars), attribute)


def is_null(name: str, attribute: bool = False) -> Filter:
    return _build(name, FilterOperator.IS_NULL, NoValue(), attribute)


def not_null(name: str, attribute: bool = False) -> Filter:
    return _build(name, FilterOperator.NOT_NULL, NoValue(), attribute)


def between(name: str, start: Any, end: Any, attribute: bool = False) -> Filter:
    value = Range(to_scalar(start), to_scalar(end))
    return _build(name, FilterOperator.BETWEEN, value, attribute)


def not_between(name: str, start: Any, end: Any, attribute: bool = False) -> Filter:
    value = Range(to_scalar(start), to_scalar(end))
    return _build(name, FilterOperator.NOT_BETWEEN, value, attribute)


def search(text: str) -> Filter:
    return SearchFilter(text)


OPERATOR_TOKENS: dict[str, FilterOperator] = {
    "eq": FilterOperator.EQUAL,
    "ne": FilterOperator.NOT_EQUAL,
    "gt": FilterOperator.GREATER_THAN,
    "gte": FilterOperator.GREATER_THAN_OR_EQUAL,
    "lt": FilterOperator.LESS_THAN,
    "lte": FilterOperator.LESS_THAN_OR_EQUAL,
    "like": FilterOperator.LIKE,
    "nlike": FilterOperator.NOT_LIKE,
    "in": FilterOperator.IN,
    "nin": FilterOperator.NOT_IN,
    "null": FilterOperator.IS_NULL,
    "nnull": FilterOperator.NOT_NULL,
    "between": FilterOperator.BETWEEN,
    "nbetween": FilterOperator.NOT_BETWEEN,
}
OPERATOR_TOKENS.update({op.value.lower(): op for op in FilterOperator})

DATA_TYPE_TOKENS: dict[str, ScalarKind] = {kind.value.lower(): kind for kind in ScalarKind}

_TRUE_TOKENS = frozenset({"true", "1", "yes", "on"})
_FALSE_TOKENS = frozenset({"false", "0", "no", "off"})


def parse_scalar(raw: str, kind: ScalarKind) -> ScalarValue:
    try:
        if kind is ScalarKind.STRING:
            return string_val(raw)
        if kind is ScalarKind.INT:
            return int_val(int(raw))
        if kind is ScalarKind.FLOAT:
            return float_val(float(raw))
        if kind is ScalarKind.BOOL:
            token = raw.strip().lower()
            if token in _TRUE_TOKENS:
                return bool_val(True)
            if token in _FALSE_TOKENS:
                return bool_val(False)
            raise ValueError(f"not a boolean: {raw!r}")
        if kind is ScalarKind.DATE:
            return date_val(date.fromisoformat(raw))
        if kind is ScalarKind.DATETIME:
            return datetime_val(datetime.fromisoformat(raw))
        return time_val(time.fromisoformat(raw))
    except ValueError as exc:
        raise FilterParseError(raw, f"invalid {kind.value} value") from exc


def parse_filter(
    text: str, type_hints: Optional[Mapping[str, ScalarType]] = None
) -> Filter:
    """Parse ``name:operator:value[:dataType]`` into a filter.

    A leading ``@`` on the name targets an EAV attribute. ``In``/``NotIn``
    values and ``Between`` bounds are comma separated. When the data type is
    omitted the value is a String, unless ``type_hints`` maps the property to a
    declared type. A value that itself contains ``:`` needs an explicit
    data type.
    """
    parts = text.split(":", 2)
    if len(parts) < 2:
        raise FilterParseError(text, "expected name:operator[:value[:dataType]]")
    name, op_token = parts[0].strip(), parts[1].strip().lower()
    rest = parts[2] if len(parts) == 3 else None

    attribute = name.startswith("@")
    if attribute:
        name = name[1:]
    if not name:
        raise FilterParseError(text, "missing name")

    operator = OPERATOR_TOKENS.get(op_token)
    if operator is None:
        raise FilterParseError(text, f"unknown operator {parts[1]!r}")

    if operator in NULL_OPERATORS:
        if rest:
            raise FilterParseError(text, f"{operator.value} takes no value")
        return _build(name, operator, NoValue(), attribute)
    if rest is None:
        raise FilterParseError(text, "missing value")

    raw = rest
    kind = ScalarKind.STRING
    if type_hints and not attribute and name in type_hints:
        kind = SCALAR_TYPE_KINDS[ScalarType(type_hints[name])]
    if ":" in rest:
        raw, type_token = rest.rsplit(":", 1)
        declared = DATA_TYPE_TOKENS.get(type_token.strip().lower())
        if declared is None:
            raise FilterParseError(text, f"unknown data type {type_token!r}")
        kind = declared

    if operator in LIST_OPERATORS:
        value: FilterValue = ListValue(tuple(parse_scalar(p, kind) for p in raw.split(",")))
    elif operator in RANGE_OPERATORS:
        bounds = raw.split(",")
        if len(bounds) != 2:
            raise FilterParseError(text, "range needs exactly two bounds")
        value = Range(parse_scalar(bounds[0], kind), parse_scalar(bounds[1], kind))
    else:
        value = Single(parse_scalar(raw, kind))
    return validate_filter(_build(name, operator, value, attribute))
