from typing import Optional

from cms.entities import PostType, PostTypeCreate
from cms.errors import ConflictError, NotFoundError
from cms.repository.post_type import PostTypeRepository
from cms.service.base import BaseService
from cms.service.validation import validate_code
from cms.transaction import UnitOfWork


class PostTypeService(BaseService[PostType, PostTypeCreate]):
    repo: PostTypeRepository

    def _ensure_unique_code(self, uow: UnitOfWork, code: str, own_id: Optional[int] = None) -> None:
        existing = self.repo.get_by_code(uow, code)
        if existing is not None and existing.id != own_id:
            raise ConflictError("Code already exists", details={"code": code})

    def validate_create(self, uow: UnitOfWork, data: PostTypeCreate) -> None:
        validate_code(data.code)
        self._ensure_unique_code(uow, data.code)

    def validate_update(self, uow: UnitOfWork, current: PostType, updated: PostType) -> None:
        if updated.code != current.code:
            validate_code(updated.code)
            self._ensure_unique_code(uow, updated.code, own_id=current.id)

    def get_by_code(self, code: str, uow: Optional[UnitOfWork] = None) -> PostType:
        with self.transactions.transaction(uow) as uow:
            item = self.repo.get_by_code(uow, code)
            if item is None:
                raise NotFoundError(f"post type {code!r} not found")
            return item
