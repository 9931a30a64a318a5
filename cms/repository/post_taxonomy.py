from typing import Optional

from sqlalchemy import select

from cms import models
from cms.entities import PostTaxonomy, PostTaxonomyCreate
from cms.repository.sql import SqlAlchemyRepository
from cms.transaction import UnitOfWork


class PostTaxonomyRepository(SqlAlchemyRepository[PostTaxonomy, PostTaxonomyCreate]):
    model = models.PostTaxonomy
    entity_class = PostTaxonomy
    fields = ("code", "name")
    search_fields = ("code", "name")

    def get_by_code(self, uow: UnitOfWork, code: str) -> Optional[PostTaxonomy]:
        row = uow.session.scalars(
            select(models.PostTaxonomy).where(models.PostTaxonomy.code == code)
        ).first()
        return self.to_entity(row) if row is not None else None
