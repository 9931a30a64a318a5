from typing import Optional

from sqlalchemy import select

from cms import models
from cms.entities import Term, TermCreate
from cms.repository.sql import SqlAlchemyRepository
from cms.transaction import UnitOfWork


class TermRepository(SqlAlchemyRepository[Term, TermCreate]):
    model = models.Term
    entity_class = Term
    fields = ("taxonomy_id", "parent_id", "slug", "name", "description")
    search_fields = ("slug", "name", "description")

    def get_by_slug(self, uow: UnitOfWork, taxonomy_id: int, slug: str) -> Optional[Term]:
        row = uow.session.scalars(
            select(models.Term).where(
                models.Term.taxonomy_id == taxonomy_id, models.Term.slug == slug
            )
        ).first()
        return self.to_entity(row) if row is not None else None

    def children_of(self, uow: UnitOfWork, term_id: int) -> list[Term]:
        rows = uow.session.scalars(
            select(models.Term).where(models.Term.parent_id == term_id).order_by(models.Term.id)
        )
        return [self.to_entity(row) for row in rows]
