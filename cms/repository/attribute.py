from typing import Any, Optional

from sqlalchemy import select

from cms import models
from cms.entities import Attribute, AttributeCreate, AttributeValue, AttributeValueCreate
from cms.filters import ScalarType
from cms.repository.sql import VALUE_COLUMNS, SqlAlchemyRepository
from cms.transaction import UnitOfWork


class AttributeRepository(SqlAlchemyRepository[Attribute, AttributeCreate]):
    model = models.Attribute
    entity_class = Attribute
    fields = ("name", "entity_type", "data_type")
    search_fields = ("name",)

    def map_create(self, data: AttributeCreate) -> dict:
        values = super().map_create(data)
        values["data_type"] = ScalarType(values["data_type"]).value
        return values

    def map_update(self, entity: Attribute) -> dict:
        values = super().map_update(entity)
        values["data_type"] = ScalarType(values["data_type"]).value
        return values

    def get_by_name(self, uow: UnitOfWork, entity_type: str, name: str) -> Optional[Attribute]:
        row = uow.session.scalars(
            select(models.Attribute).where(
                models.Attribute.entity_type == entity_type, models.Attribute.name == name
            )
        ).first()
        return self.to_entity(row) if row is not None else None


class AttributeValueRepository(SqlAlchemyRepository[AttributeValue, AttributeValueCreate]):
    model = models.AttributeValue
    entity_class = AttributeValue
    fields = (
        "attribute_id",
        "entity_id",
        "entity_type",
        "int_value",
        "double_value",
        "string_value",
        "boolean_value",
        "date_value",
        "datetime_value",
        "time_value",
    )

    def find_value(
        self, uow: UnitOfWork, attribute_id: int, entity_id: int
    ) -> Optional[AttributeValue]:
        row = uow.session.scalars(
            select(models.AttributeValue).where(
                models.AttributeValue.attribute_id == attribute_id,
                models.AttributeValue.entity_id == entity_id,
            )
        ).first()
        return self.to_entity(row) if row is not None else None

    def set_value(
        self, uow: UnitOfWork, attribute: Attribute, entity_id: int, value: Any
    ) -> AttributeValue:
        column = VALUE_COLUMNS[attribute.data_type].key
        current = self.find_value(uow, attribute.id, entity_id)
        if current is None:
            return self.insert(
                uow,
                AttributeValueCreate(
                    attribute_id=attribute.id,
                    entity_id=entity_id,
                    entity_type=attribute.entity_type,
                    **{column: value},
                ),
            )
        return self.update(uow, current.model_copy(update={column: value}))

    def values_for(self, uow: UnitOfWork, entity_type: str, entity_id: int) -> dict[str, Any]:
        rows = uow.session.execute(
            select(models.Attribute.name, models.Attribute.data_type, models.AttributeValue)
            .join(models.AttributeValue, models.AttributeValue.attribute_id == models.Attribute.id)
            .where(
                models.AttributeValue.entity_type == entity_type,
                models.AttributeValue.entity_id == entity_id,
            )
            .order_by(models.Attribute.name)
        )
        return {
            name: getattr(value_row, VALUE_COLUMNS[ScalarType(data_type)].key)
            for name, data_type, value_row in rows
        }
