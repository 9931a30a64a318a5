"""SQLAlchemy implementation of the repository contract.

Concrete repositories name their model, their pydantic entity class and the
domain fields they expose. Those names form an explicit field -> column map
that filters, sorts and type inference resolve against; anything outside it
is rejected with ``FieldNotFoundError``.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Sequence
from uuid import UUID

import uuid_utils
from sqlalchemy import (
    ColumnElement,
    String,
    Uuid,
    and_,
    cast,
    delete,
    exists,
    func,
    not_,
    or_,
    select,
    update,
)
from sqlalchemy.orm import InstrumentedAttribute

from cms.cache import ATTRIBUTE_TYPE_MAP, TypeMapCache
from cms.errors import BadRequestError, ConflictError, FieldNotFoundError, InvalidFilterError
from cms.filters import (
    LIKE_OPERATORS,
    SCALAR_TYPE_KINDS,
    AttributeFilter,
    Filter,
    FilterOperator,
    FilterValue,
    ListValue,
    NoValue,
    PropertyFilter,
    Range,
    ScalarKind,
    ScalarType,
    ScalarValue,
    SearchFilter,
    Single,
    validate_filter,
)
from cms.models import Attribute, AttributeValue
from cms.repository.base import C, Repository, T
from cms.sorts import AttributeSort, FieldSort, Sort, SortDirection
from cms.transaction import UnitOfWork

logger = logging.getLogger(__name__)

BASE_FIELDS = ("id", "uid", "version", "created_at", "updated_at")

NAME_TYPES = {
    "id": ScalarType.INT,
    "version": ScalarType.INT,
    "created_at": ScalarType.DATETIME,
    "updated_at": ScalarType.DATETIME,
    "createdAt": ScalarType.DATETIME,
    "updatedAt": ScalarType.DATETIME,
    "uid": ScalarType.STRING,
}

FLOAT_TOKENS = ("real", "double", "float", "numeric", "decimal")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_uid() -> UUID:
    return UUID(str(uuid_utils.uuid7()))


def column_map(model: type, fields: Sequence[str]) -> dict[str, InstrumentedAttribute]:
    return {name: getattr(model, name) for name in (*BASE_FIELDS, *fields)}


def infer_scalar_type(name: str, type_name: str) -> ScalarType:
    """Map a storage type name to a scalar type; first match wins."""
    type_name = type_name.lower()
    if "bool" in type_name:
        return ScalarType.BOOL
    if "int" in type_name or "serial" in type_name:
        return ScalarType.INT
    if any(token in type_name for token in FLOAT_TOKENS):
        return ScalarType.FLOAT
    # SQLAlchemy renders timestamps as DATETIME outside PostgreSQL
    if "timestamp" in type_name or "datetime" in type_name:
        return ScalarType.DATETIME
    if "date" in type_name:
        return ScalarType.DATE
    return NAME_TYPES.get(name, ScalarType.STRING)


def _raw(value: FilterValue) -> Any:
    return value.value.value


def _like_pattern(pattern: str) -> str:
    if "%" in pattern:
        return pattern
    return f"%{pattern}%"


def build_condition(
    expr: ColumnElement, operator: FilterOperator, value: FilterValue
) -> ColumnElement:
    if operator is FilterOperator.EQUAL:
        return expr == _raw(value)
    if operator is FilterOperator.NOT_EQUAL:
        return expr != _raw(value)
    if operator is FilterOperator.GREATER_THAN:
        return expr > _raw(value)
    if operator is FilterOperator.GREATER_THAN_OR_EQUAL:
        return expr >= _raw(value)
    if operator is FilterOperator.LESS_THAN:
        return expr < _raw(value)
    if operator is FilterOperator.LESS_THAN_OR_EQUAL:
        return expr <= _raw(value)
    if operator is FilterOperator.LIKE:
        return expr.like(_like_pattern(_raw(value)))
    if operator is FilterOperator.NOT_LIKE:
        return expr.not_like(_like_pattern(_raw(value)))
    if operator is FilterOperator.IN:
        return expr.in_([v.value for v in value.values])
    if operator is FilterOperator.NOT_IN:
        return expr.not_in([v.value for v in value.values])
    if operator is FilterOperator.IS_NULL:
        return expr.is_(None)
    if operator is FilterOperator.NOT_NULL:
        return expr.is_not(None)
    if operator is FilterOperator.BETWEEN:
        return expr.between(value.start.value, value.end.value)
    if operator is FilterOperator.NOT_BETWEEN:
        return not_(expr.between(value.start.value, value.end.value))
    raise InvalidFilterError(str(operator), "unsupported operator")


def _scalars(value: FilterValue) -> list:
    if isinstance(value, Single):
        return [value.value]
    if isinstance(value, ListValue):
        return list(value.values)
    if isinstance(value, Range):
        return [value.start, value.end]
    return []


def _as_uuid(operator: FilterOperator, scalar: ScalarValue) -> ScalarValue:
    try:
        return ScalarValue(scalar.kind, UUID(str(scalar.value)))
    except ValueError:
        raise InvalidFilterError(
            operator.value, f"{scalar.value!r} is not a valid uid"
        ) from None


def uuid_value(operator: FilterOperator, value: FilterValue) -> FilterValue:
    """Bind string scalars as UUIDs for comparison against a ``Uuid`` column."""
    if isinstance(value, Single):
        return Single(_as_uuid(operator, value.value))
    if isinstance(value, ListValue):
        return ListValue(tuple(_as_uuid(operator, v) for v in value.values))
    if isinstance(value, Range):
        return Range(_as_uuid(operator, value.start), _as_uuid(operator, value.end))
    return value


class SqlAlchemyRepository(Repository[T, C]):
    model: type
    entity_class: type[T]
    fields: tuple[str, ...] = ()
    search_fields: tuple[str, ...] = ()

    def __init__(self, cache: Optional[TypeMapCache] = None) -> None:
        self.cache = cache
        self.columns = column_map(self.model, self.fields)

    def to_entity(self, row: Any) -> T:
        return self.entity_class.model_validate(row)

    def map_create(self, data: C) -> dict:
        values = data.model_dump()
        return {name: values[name] for name in self.fields if name in values}

    def map_update(self, entity: T) -> dict:
        return {name: getattr(entity, name) for name in self.fields}

    def get_table_name(self) -> str:
        return self.model.__tablename__

    def get_column_type_map(self) -> dict[str, ScalarType]:
        return {
            name: infer_scalar_type(name, str(column.expression.type))
            for name, column in self.columns.items()
        }

    def _column(self, name: str) -> InstrumentedAttribute:
        column = self.columns.get(name)
        if column is None:
            raise FieldNotFoundError(name, self.get_table_name())
        return column

    def exist(self, uow: UnitOfWork, id: int) -> bool:
        return bool(uow.session.scalar(select(exists().where(self.model.id == id))))

    def find_by_id(self, uow: UnitOfWork, id: int) -> Optional[T]:
        row = uow.session.scalars(select(self.model).where(self.model.id == id)).first()
        return self.to_entity(row) if row is not None else None

    def find_by_ids(self, uow: UnitOfWork, ids: Sequence[int]) -> list[T]:
        if not ids:
            return []
        rows = uow.session.scalars(select(self.model).where(self.model.id.in_(list(ids))))
        return [self.to_entity(row) for row in rows]

    def find_by_uid(self, uow: UnitOfWork, uid: UUID) -> Optional[T]:
        row = uow.session.scalars(select(self.model).where(self.model.uid == uid)).first()
        return self.to_entity(row) if row is not None else None

    def find_by_uids(self, uow: UnitOfWork, uids: Sequence[UUID]) -> list[T]:
        if not uids:
            return []
        rows = uow.session.scalars(select(self.model).where(self.model.uid.in_(list(uids))))
        return [self.to_entity(row) for row in rows]

    def insert(self, uow: UnitOfWork, data: C) -> T:
        now = _now()
        row = self.model(
            uid=new_uid(),
            version=0,
            created_at=now,
            updated_at=now,
            **self.map_create(data),
        )
        uow.session.add(row)
        uow.session.flush()
        uow.session.refresh(row)
        logger.debug("inserted %s id=%s", self.get_table_name(), row.id)
        return self.to_entity(row)

    def update(self, uow: UnitOfWork, entity: T) -> T:
        stmt = (
            update(self.model)
            .where(self.model.id == entity.id, self.model.version == entity.version)
            .values(
                **self.map_update(entity),
                version=entity.version + 1,
                updated_at=_now(),
            )
        )
        result = uow.session.execute(stmt)
        if result.rowcount == 0:
            logger.warning(
                "stale update on %s id=%s version=%s",
                self.get_table_name(),
                entity.id,
                entity.version,
            )
            raise ConflictError(
                "Version conflict", details={"id": entity.id, "version": entity.version}
            )
        row = uow.session.get(self.model, entity.id, populate_existing=True)
        return self.to_entity(row)

    def _delete_where(self, uow: UnitOfWork, condition: ColumnElement) -> int:
        result = uow.session.execute(delete(self.model).where(condition))
        logger.debug("deleted %s rows from %s", result.rowcount, self.get_table_name())
        return result.rowcount

    def delete_by_id(self, uow: UnitOfWork, id: int) -> int:
        return self._delete_where(uow, self.model.id == id)

    def delete_by_ids(self, uow: UnitOfWork, ids: Sequence[int]) -> int:
        if not ids:
            return 0
        return self._delete_where(uow, self.model.id.in_(list(ids)))

    def delete_by_uid(self, uow: UnitOfWork, uid: UUID) -> int:
        return self._delete_where(uow, self.model.uid == uid)

    def delete_by_uids(self, uow: UnitOfWork, uids: Sequence[UUID]) -> int:
        if not uids:
            return 0
        return self._delete_where(uow, self.model.uid.in_(list(uids)))

    def to_condition(self, uow: UnitOfWork, filter_: Filter) -> ColumnElement:
        validate_filter(filter_)
        if isinstance(filter_, SearchFilter):
            return self.search_condition(filter_.value)
        if isinstance(filter_, AttributeFilter):
            return self.attribute_condition(uow, filter_)
        column = self._column(filter_.property_name)
        if isinstance(column.expression.type, Uuid):
            if filter_.operator in LIKE_OPERATORS:
                return build_condition(cast(column, String), filter_.operator, filter_.value)
            return build_condition(
                column, filter_.operator, uuid_value(filter_.operator, filter_.value)
            )
        return build_condition(column, filter_.operator, filter_.value)

    def search_condition(self, text: str) -> ColumnElement:
        if not self.search_fields:
            raise BadRequestError(f"search not supported for {self.get_table_name()}")
        pattern = f"%{text}%"
        return or_(*(self._column(name).ilike(pattern) for name in self.search_fields))

    def attribute_condition(self, uow: UnitOfWork, filter_: AttributeFilter) -> ColumnElement:
        raise BadRequestError("EAV filtering not supported", details={"attribute": filter_.attr_name})

    def to_order(self, uow: UnitOfWork, sort: Sort) -> ColumnElement:
        if isinstance(sort, AttributeSort):
            expr = self.attribute_order(uow, sort.attr_name)
        else:
            expr = self._column(sort.field_name)
        return expr.desc() if sort.direction is SortDirection.DESC else expr.asc()

    def attribute_order(self, uow: UnitOfWork, name: str) -> ColumnElement:
        raise BadRequestError("EAV sorting not supported", details={"attribute": name})

    def _where(self, uow: UnitOfWork, stmt: Any, filters: Sequence[Filter]) -> Any:
        conditions = [self.to_condition(uow, f) for f in filters]
        if conditions:
            stmt = stmt.where(and_(*conditions))
        return stmt

    def find_many(
        self, uow: UnitOfWork, filters: Sequence[Filter] = (), sorts: Sequence[Sort] = ()
    ) -> list[T]:
        stmt = self._where(uow, select(self.model), filters)
        for sort in sorts:
            stmt = stmt.order_by(self.to_order(uow, sort))
        return [self.to_entity(row) for row in uow.session.scalars(stmt)]

    def find_page(
        self,
        uow: UnitOfWork,
        filters: Sequence[Filter] = (),
        sorts: Sequence[Sort] = (),
        limit: int = 50,
        offset: int = 0,
    ) -> list[T]:
        stmt = self._where(uow, select(self.model), filters)
        for sort in sorts:
            stmt = stmt.order_by(self.to_order(uow, sort))
        # id as last key keeps pages stable
        stmt = stmt.order_by(self.model.id).offset(offset).limit(limit)
        return [self.to_entity(row) for row in uow.session.scalars(stmt)]

    def count(self, uow: UnitOfWork, filters: Sequence[Filter] = ()) -> int:
        stmt = self._where(uow, select(func.count()).select_from(self.model), filters)
        return uow.session.scalar(stmt) or 0


VALUE_COLUMNS = {
    ScalarType.BOOL: AttributeValue.boolean_value,
    ScalarType.INT: AttributeValue.int_value,
    ScalarType.FLOAT: AttributeValue.double_value,
    ScalarType.DATE: AttributeValue.date_value,
    ScalarType.DATETIME: AttributeValue.datetime_value,
    ScalarType.STRING: AttributeValue.string_value,
}

NUMERIC_TYPES = frozenset({ScalarType.INT, ScalarType.FLOAT})


class EavRepositoryMixin:
    """Attribute filtering and sorting over the attribute value table.

    Mixed into a ``SqlAlchemyRepository`` whose rows can carry dynamic
    attributes declared in ``attributes`` for ``entity_type``.
    """

    entity_type: str

    def get_attribute_type_map(self, uow: UnitOfWork) -> dict[str, ScalarType]:
        rows = uow.session.execute(
            select(Attribute.name, Attribute.data_type).where(
                Attribute.entity_type == self.entity_type
            )
        )
        return {name: ScalarType(data_type) for name, data_type in rows}

    def attribute_types(self, uow: UnitOfWork) -> dict[str, ScalarType]:
        if self.cache is None:
            return self.get_attribute_type_map(uow)
        return self.cache.get_or_compute(
            ATTRIBUTE_TYPE_MAP,
            self.get_table_name(),
            lambda: self.get_attribute_type_map(uow),
        )

    def _declared_type(self, uow: UnitOfWork, name: str) -> ScalarType:
        declared = self.attribute_types(uow).get(name)
        if declared is None:
            raise FieldNotFoundError(name, self.get_table_name())
        return declared

    def _value_rows(self, name: str) -> Any:
        return (
            select(AttributeValue.id)
            .join(Attribute, Attribute.id == AttributeValue.attribute_id)
            .where(
                AttributeValue.entity_type == self.entity_type,
                AttributeValue.entity_id == self.model.id,
                Attribute.entity_type == self.entity_type,
                Attribute.name == name,
            )
        )

    def attribute_condition(self, uow: UnitOfWork, filter_: AttributeFilter) -> ColumnElement:
        declared = self._declared_type(uow, filter_.attr_name)
        expected = SCALAR_TYPE_KINDS[declared]
        for scalar in _scalars(filter_.value):
            numeric_pair = declared in NUMERIC_TYPES and scalar.is_numeric
            if scalar.kind is not expected and not numeric_pair:
                raise InvalidFilterError(
                    filter_.operator.value,
                    f"{scalar.kind.value} does not match attribute type {declared.value}",
                )
        column = VALUE_COLUMNS[declared]
        rows = self._value_rows(filter_.attr_name)
        # an attribute without a stored value counts as null
        if filter_.operator is FilterOperator.IS_NULL:
            return not_(exists(rows.where(column.is_not(None))))
        if filter_.operator is FilterOperator.NOT_NULL:
            return exists(rows.where(column.is_not(None)))
        return exists(rows.where(build_condition(column, filter_.operator, filter_.value)))

    def attribute_order(self, uow: UnitOfWork, name: str) -> ColumnElement:
        column = VALUE_COLUMNS[self._declared_type(uow, name)]
        return (
            select(column)
            .join(Attribute, Attribute.id == AttributeValue.attribute_id)
            .where(
                AttributeValue.entity_type == self.entity_type,
                AttributeValue.entity_id == self.model.id,
                Attribute.name == name,
            )
            .limit(1)
            .scalar_subquery()
        )

    def _delete_where(self, uow: UnitOfWork, condition: ColumnElement) -> int:
        uow.session.execute(
            delete(AttributeValue).where(
                AttributeValue.entity_type == self.entity_type,
                AttributeValue.entity_id.in_(select(self.model.id).where(condition)),
            )
        )
        return super()._delete_where(uow, condition)
