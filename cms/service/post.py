from typing import Any, Optional, Sequence

from cms.cache import TypeMapCache
from cms.entities import Post, PostCreate
from cms.errors import BadRequestError, ConflictError, NotFoundError
from cms.filters import NUMERIC_KINDS, SCALAR_TYPE_KINDS, ScalarKind, to_scalar
from cms.repository.attribute import AttributeRepository, AttributeValueRepository
from cms.repository.post import PostRepository
from cms.repository.post_type import PostTypeRepository
from cms.repository.term import TermRepository
from cms.service.base import BaseService
from cms.service.validation import (
    POST_FORMATS,
    POST_STATUSES,
    POST_VISIBILITIES,
    validate_choice,
    validate_slug,
)
from cms.transaction import TransactionManager, UnitOfWork


class PostService(BaseService[Post, PostCreate]):
    repo: PostRepository

    def __init__(
        self,
        repo: PostRepository,
        transactions: TransactionManager,
        cache: TypeMapCache,
        post_types: PostTypeRepository,
        terms: TermRepository,
        attributes: AttributeRepository,
        attribute_values: AttributeValueRepository,
    ) -> None:
        super().__init__(repo, transactions, cache)
        self.post_types = post_types
        self.terms = terms
        self.attributes = attributes
        self.attribute_values = attribute_values

    def _ensure_unique_slug(
        self, uow: UnitOfWork, type_id: int, slug: str, own_id: Optional[int] = None
    ) -> None:
        existing = self.repo.get_by_slug(uow, type_id, slug)
        if existing is not None and existing.id != own_id:
            raise ConflictError("Slug already exists", details={"slug": slug})

    def _validate_fields(self, status: str, visibility: str, format: str) -> None:
        validate_choice("status", status, POST_STATUSES)
        validate_choice("visibility", visibility, POST_VISIBILITIES)
        validate_choice("format", format, POST_FORMATS)

    def validate_create(self, uow: UnitOfWork, data: PostCreate) -> None:
        validate_slug(data.slug)
        self._validate_fields(data.status, data.visibility, data.format)
        if not self.post_types.exist(uow, data.type_id):
            raise BadRequestError("Unknown post type", details={"type_id": data.type_id})
        self._ensure_unique_slug(uow, data.type_id, data.slug)

    def validate_update(self, uow: UnitOfWork, current: Post, updated: Post) -> None:
        if updated.type_id != current.type_id or updated.user_id != current.user_id:
            raise BadRequestError("type_id and user_id cannot change")
        self._validate_fields(updated.status, updated.visibility, updated.format)
        if updated.slug != current.slug:
            validate_slug(updated.slug)
            self._ensure_unique_slug(uow, updated.type_id, updated.slug, own_id=current.id)

    def set_attribute(
        self, post_id: int, name: str, value: Any, uow: Optional[UnitOfWork] = None
    ) -> None:
        with self.transactions.transaction(uow) as uow:
            post = self.get_by_id(post_id, uow=uow)
            attribute = self.attributes.get_by_name(uow, self.repo.entity_type, name)
            if attribute is None:
                raise NotFoundError(f"attribute {name!r} not found")
            scalar = to_scalar(value)
            expected = SCALAR_TYPE_KINDS[attribute.data_type]
            numeric = expected in NUMERIC_KINDS and scalar.is_numeric
            if scalar.kind is not expected and not numeric:
                raise BadRequestError(
                    f"attribute {name!r} expects {attribute.data_type.value}",
                    details={"given": scalar.kind.value},
                )
            raw = scalar.value
            if expected is ScalarKind.FLOAT:
                raw = float(raw)
            elif expected is ScalarKind.INT:
                if raw != int(raw):
                    raise BadRequestError(f"attribute {name!r} expects a whole number")
                raw = int(raw)
            self.attribute_values.set_value(uow, attribute, post.id, raw)

    def get_attributes(self, post_id: int, uow: Optional[UnitOfWork] = None) -> dict[str, Any]:
        with self.transactions.transaction(uow) as uow:
            post = self.get_by_id(post_id, uow=uow)
            return self.attribute_values.values_for(uow, self.repo.entity_type, post.id)

    def set_terms(
        self, post_id: int, term_ids: Sequence[int], uow: Optional[UnitOfWork] = None
    ) -> list[int]:
        with self.transactions.transaction(uow) as uow:
            post = self.get_by_id(post_id, uow=uow)
            wanted = set(term_ids)
            found = {term.id for term in self.terms.find_by_ids(uow, list(wanted))}
            missing = sorted(wanted - found)
            if missing:
                raise BadRequestError("Unknown terms", details={"term_ids": missing})
            self.repo.replace_terms(uow, post.id, sorted(wanted))
            return self.repo.term_ids(uow, post.id)
