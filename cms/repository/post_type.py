from typing import Optional

from sqlalchemy import select

from cms import models
from cms.entities import PostType, PostTypeCreate
from cms.repository.sql import SqlAlchemyRepository
from cms.transaction import UnitOfWork


class PostTypeRepository(SqlAlchemyRepository[PostType, PostTypeCreate]):
    model = models.PostType
    entity_class = PostType
    fields = ("code", "name")
    search_fields = ("code", "name")

    def get_by_code(self, uow: UnitOfWork, code: str) -> Optional[PostType]:
        row = uow.session.scalars(
            select(models.PostType).where(models.PostType.code == code)
        ).first()
        return self.to_entity(row) if row is not None else None
