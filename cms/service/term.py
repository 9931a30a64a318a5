from typing import Optional

from cms.cache import TypeMapCache
from cms.entities import Term, TermCreate
from cms.errors import BadRequestError, ConflictError
from cms.repository.post_taxonomy import PostTaxonomyRepository
from cms.repository.term import TermRepository
from cms.service.base import BaseService
from cms.service.validation import validate_slug
from cms.transaction import TransactionManager, UnitOfWork


class TermService(BaseService[Term, TermCreate]):
    repo: TermRepository

    def __init__(
        self,
        repo: TermRepository,
        transactions: TransactionManager,
        cache: TypeMapCache,
        taxonomies: PostTaxonomyRepository,
    ) -> None:
        super().__init__(repo, transactions, cache)
        self.taxonomies = taxonomies

    def _ensure_unique_slug(
        self, uow: UnitOfWork, taxonomy_id: int, slug: str, own_id: Optional[int] = None
    ) -> None:
        existing = self.repo.get_by_slug(uow, taxonomy_id, slug)
        if existing is not None and existing.id != own_id:
            raise ConflictError("Slug already exists", details={"slug": slug})

    def _check_parent(
        self, uow: UnitOfWork, taxonomy_id: int, parent_id: int, own_id: Optional[int] = None
    ) -> None:
        seen = set()
        cursor: Optional[int] = parent_id
        while cursor is not None:
            if cursor == own_id or cursor in seen:
                raise BadRequestError("Term hierarchy would contain a cycle")
            seen.add(cursor)
            parent = self.repo.find_by_id(uow, cursor)
            if parent is None:
                raise BadRequestError("Unknown parent term", details={"parent_id": cursor})
            if parent.taxonomy_id != taxonomy_id:
                raise BadRequestError("Parent term belongs to another taxonomy")
            cursor = parent.parent_id

    def validate_create(self, uow: UnitOfWork, data: TermCreate) -> None:
        validate_slug(data.slug)
        if not self.taxonomies.exist(uow, data.taxonomy_id):
            raise BadRequestError("Unknown taxonomy", details={"taxonomy_id": data.taxonomy_id})
        self._ensure_unique_slug(uow, data.taxonomy_id, data.slug)
        if data.parent_id is not None:
            self._check_parent(uow, data.taxonomy_id, data.parent_id)

    def validate_update(self, uow: UnitOfWork, current: Term, updated: Term) -> None:
        if updated.taxonomy_id != current.taxonomy_id:
            raise BadRequestError("taxonomy_id cannot change")
        if updated.slug != current.slug:
            validate_slug(updated.slug)
            self._ensure_unique_slug(uow, updated.taxonomy_id, updated.slug, own_id=current.id)
        if updated.parent_id is not None and updated.parent_id != current.parent_id:
            self._check_parent(uow, updated.taxonomy_id, updated.parent_id, own_id=current.id)

    def children(self, term_id: int, uow: Optional[UnitOfWork] = None) -> list[Term]:
        with self.transactions.transaction(uow) as uow:
            self.get_by_id(term_id, uow=uow)
            return self.repo.children_of(uow, term_id)
