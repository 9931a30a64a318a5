from typing import Optional, Sequence

from sqlalchemy import delete, insert, select

from cms import models
from cms.entities import Post, PostCreate
from cms.repository.sql import EavRepositoryMixin, SqlAlchemyRepository
from cms.transaction import UnitOfWork


class PostRepository(EavRepositoryMixin, SqlAlchemyRepository[Post, PostCreate]):
    model = models.Post
    entity_class = Post
    entity_type = "post"
    fields = (
        "slug",
        "title",
        "summary",
        "content",
        "status",
        "visibility",
        "format",
        "published_at",
        "user_id",
        "type_id",
    )
    search_fields = ("title", "summary", "content")

    def get_by_slug(self, uow: UnitOfWork, type_id: int, slug: str) -> Optional[Post]:
        row = uow.session.scalars(
            select(models.Post).where(models.Post.type_id == type_id, models.Post.slug == slug)
        ).first()
        return self.to_entity(row) if row is not None else None

    def term_ids(self, uow: UnitOfWork, post_id: int) -> list[int]:
        return list(
            uow.session.scalars(
                select(models.PostTerm.term_id)
                .where(models.PostTerm.post_id == post_id)
                .order_by(models.PostTerm.term_id)
            )
        )

    def replace_terms(self, uow: UnitOfWork, post_id: int, term_ids: Sequence[int]) -> None:
        uow.session.execute(delete(models.PostTerm).where(models.PostTerm.post_id == post_id))
        unique_ids = sorted(set(term_ids))
        if unique_ids:
            uow.session.execute(
                insert(models.PostTerm),
                [{"post_id": post_id, "term_id": term_id} for term_id in unique_ids],
            )
