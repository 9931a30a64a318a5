from datetime import date, datetime, time

import pytest

from cms.errors import FilterParseError, InvalidFilterError
from cms.filters import (
    AttributeFilter,
    FilterOperator,
    ListValue,
    NoValue,
    PropertyFilter,
    Range,
    ScalarKind,
    ScalarType,
    SearchFilter,
    Single,
    between,
    bool_val,
    date_val,
    datetime_val,
    equal,
    float_val,
    in_,
    int_val,
    is_value_compatible,
    like,
    parse_filter,
    string_val,
    time_val,
    to_scalar,
    validate_filter,
)
from cms.sorts import AttributeSort, FieldSort, SortDirection, asc_sort, desc_sort, parse_sort

ALL_SCALARS = [
    string_val("a"),
    int_val(1),
    float_val(1.5),
    bool_val(True),
    date_val(date(2024, 1, 1)),
    datetime_val(datetime(2024, 1, 1, 12, 0)),
    time_val(time(9, 30)),
]
COMPARABLE = {ScalarKind.INT, ScalarKind.FLOAT, ScalarKind.DATE, ScalarKind.DATETIME, ScalarKind.TIME}


@pytest.mark.parametrize("scalar", ALL_SCALARS, ids=lambda s: s.kind.value)
def test_single_value_operators(scalar) -> None:
    value = Single(scalar)
    assert is_value_compatible(FilterOperator.EQUAL, value)
    assert is_value_compatible(FilterOperator.NOT_EQUAL, value)
    for op in (
        FilterOperator.GREATER_THAN,
        FilterOperator.GREATER_THAN_OR_EQUAL,
        FilterOperator.LESS_THAN,
        FilterOperator.LESS_THAN_OR_EQUAL,
    ):
        assert is_value_compatible(op, value) == (scalar.kind in COMPARABLE)
    for op in (FilterOperator.LIKE, FilterOperator.NOT_LIKE):
        assert is_value_compatible(op, value) == (scalar.kind is ScalarKind.STRING)
    for op in (FilterOperator.IN, FilterOperator.IS_NULL, FilterOperator.BETWEEN):
        assert not is_value_compatible(op, value)


@pytest.mark.parametrize("scalar", ALL_SCALARS, ids=lambda s: s.kind.value)
def test_range_operators(scalar) -> None:
    value = Range(scalar, scalar)
    expected = scalar.kind in COMPARABLE
    assert is_value_compatible(FilterOperator.BETWEEN, value) == expected
    assert is_value_compatible(FilterOperator.NOT_BETWEEN, value) == expected
    assert not is_value_compatible(FilterOperator.EQUAL, value)


def test_range_bounds_must_share_type() -> None:
    assert not is_value_compatible(FilterOperator.BETWEEN, Range(int_val(1), float_val(2.0)))


def test_list_operators_need_homogeneous_values() -> None:
    for values in ([int_val(1), int_val(2)], [float_val(1.0)], [string_val("a"), string_val("b")]):
        assert is_value_compatible(FilterOperator.IN, ListValue(tuple(values)))
        assert is_value_compatible(FilterOperator.NOT_IN, ListValue(tuple(values)))
    assert not is_value_compatible(FilterOperator.IN, ListValue(()))
    assert not is_value_compatible(FilterOperator.IN, ListValue((int_val(1), string_val("a"))))
    assert not is_value_compatible(FilterOperator.IN, ListValue((bool_val(True),)))
    assert not is_value_compatible(FilterOperator.IN, ListValue((date_val(date(2024, 1, 1)),)))


def test_null_operators_take_no_value() -> None:
    assert is_value_compatible(FilterOperator.IS_NULL, NoValue())
    assert is_value_compatible(FilterOperator.NOT_NULL, NoValue())
    assert not is_value_compatible(FilterOperator.IS_NULL, Single(int_val(1)))
    assert not is_value_compatible(FilterOperator.EQUAL, NoValue())


def test_validate_filter_names_operator() -> None:
    bad = PropertyFilter("name", FilterOperator.LIKE, Single(int_val(3)))
    with pytest.raises(InvalidFilterError) as exc:
        validate_filter(bad)
    assert exc.value.operator == "Like"
    assert "Like" in exc.value.message
    assert validate_filter(SearchFilter("blog")) == SearchFilter("blog")


def test_helpers_wrap_python_values() -> None:
    assert to_scalar(True).kind is ScalarKind.BOOL
    assert to_scalar(3).kind is ScalarKind.INT
    assert to_scalar(datetime(2024, 1, 1)).kind is ScalarKind.DATETIME
    assert to_scalar(date(2024, 1, 1)).kind is ScalarKind.DATE
    assert equal("code", "blog") == PropertyFilter("code", FilterOperator.EQUAL, Single(string_val("blog")))
    assert like("color", "re", attribute=True) == AttributeFilter(
        "color", FilterOperator.LIKE, Single(string_val("re"))
    )
    assert between("id", 1, 10).value == Range(int_val(1), int_val(10))
    assert in_("id", [1, 2]).value == ListValue((int_val(1), int_val(2)))
    with pytest.raises(TypeError):
        to_scalar(object())


def test_parse_filter_defaults_to_string() -> None:
    parsed = parse_filter("code:eq:blog")
    assert parsed == PropertyFilter("code", FilterOperator.EQUAL, Single(string_val("blog")))


def test_parse_filter_with_data_types() -> None:
    assert parse_filter("id:gt:5:int").value == Single(int_val(5))
    assert parse_filter("id:between:1,1000000:int").value == Range(int_val(1), int_val(1000000))
    assert parse_filter("code:in:blog,news").value == ListValue((string_val("blog"), string_val("news")))
    assert parse_filter("published_at:lt:2024-05-01T10:00:00:datetime").value == Single(
        datetime_val(datetime(2024, 5, 1, 10, 0))
    )
    assert parse_filter("active:eq:yes:bool").value == Single(bool_val(True))
    assert parse_filter("summary:null") == PropertyFilter("summary", FilterOperator.IS_NULL, NoValue())


def test_parse_filter_attribute_and_operator_names() -> None:
    parsed = parse_filter("@rating:GreaterThanOrEqual:4:float")
    assert parsed == AttributeFilter(
        "rating", FilterOperator.GREATER_THAN_OR_EQUAL, Single(float_val(4.0))
    )


def test_parse_filter_uses_type_hints() -> None:
    parsed = parse_filter("id:gte:3", type_hints={"id": ScalarType.INT})
    assert parsed.value == Single(int_val(3))


@pytest.mark.parametrize(
    "text",
    [
        "code",
        "code:approx:blog",
        "code:eq:blog:color",
        "id:eq:abc:int",
        "id:between:1:int",
        "code:eq",
        "summary:null:x",
        ":eq:blog",
        "flag:eq:maybe:bool",
    ],
)
def test_parse_filter_rejects_bad_input(text) -> None:
    with pytest.raises(FilterParseError):
        parse_filter(text)


def test_parse_filter_rejects_incompatible_combination() -> None:
    with pytest.raises(InvalidFilterError):
        parse_filter("name:like:5:int")
    with pytest.raises(InvalidFilterError):
        parse_filter("id:gt:5")


def test_sorts() -> None:
    assert asc_sort("name") == FieldSort("name", SortDirection.ASC)
    assert desc_sort("rating", attribute=True) == AttributeSort("rating", SortDirection.DESC)
    assert parse_sort("name") == FieldSort("name", SortDirection.ASC)
    assert parse_sort("created_at:DESC") == FieldSort("created_at", SortDirection.DESC)
    assert parse_sort("@rating:desc") == AttributeSort("rating", SortDirection.DESC)
    with pytest.raises(FilterParseError):
        parse_sort("name:sideways")
