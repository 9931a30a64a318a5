import logging
from typing import Any, Callable, Generic, Mapping, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, ValidationError

from cms.cache import ATTRIBUTE_TYPE_MAP, FIELD_TYPE_MAP, TypeMapCache
from cms.entities import IMMUTABLE_FIELDS
from cms.errors import BadRequestError, ConflictError, NotFoundError
from cms.filters import Filter, ScalarType, validate_filter
from cms.repository.base import C, Repository, T
from cms.sorts import Sort
from cms.transaction import TransactionManager, UnitOfWork

logger = logging.getLogger(__name__)


def _changes(data: Any) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    if isinstance(data, Mapping):
        return dict(data)
    raise BadRequestError(f"unsupported update payload: {type(data).__name__}")


def _merge(current: T, changes: dict) -> T:
    try:
        return type(current).model_validate({**current.model_dump(), **changes})
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        raise BadRequestError("Invalid field values", details={"errors": errors}) from exc


class BaseService(Generic[T, C]):
    """CRUD over one repository with every call inside a unit of work.

    Each method takes an optional ``uow``. When given, the call joins it and
    leaves commit/rollback to whoever opened it; otherwise the call opens its
    own. Subclasses hook business rules in through ``validate_create`` and
    ``validate_update``.
    """

    def __init__(
        self,
        repo: Repository[T, C],
        transactions: TransactionManager,
        cache: TypeMapCache,
    ) -> None:
        self.repo = repo
        self.transactions = transactions
        self.cache = cache

    @property
    def entity_name(self) -> str:
        return self.repo.get_table_name()

    def validate_create(self, uow: UnitOfWork, data: C) -> None:
        pass

    def validate_update(self, uow: UnitOfWork, current: T, updated: T) -> None:
        pass

    def get_by_id(self, id: int, uow: Optional[UnitOfWork] = None) -> T:
        with self.transactions.transaction(uow) as uow:
            item = self.repo.find_by_id(uow, id)
            if item is None:
                raise NotFoundError(f"{self.entity_name} {id} not found")
            return item

    def get_by_ids(self, ids: Sequence[int], uow: Optional[UnitOfWork] = None) -> list[T]:
        with self.transactions.transaction(uow) as uow:
            return self.repo.find_by_ids(uow, ids)

    def get_by_uid(self, uid: UUID, uow: Optional[UnitOfWork] = None) -> T:
        with self.transactions.transaction(uow) as uow:
            item = self.repo.find_by_uid(uow, uid)
            if item is None:
                raise NotFoundError(f"{self.entity_name} {uid} not found")
            return item

    def get_by_uids(self, uids: Sequence[UUID], uow: Optional[UnitOfWork] = None) -> list[T]:
        with self.transactions.transaction(uow) as uow:
            return self.repo.find_by_uids(uow, uids)

    def create(self, data: C, uow: Optional[UnitOfWork] = None) -> T:
        with self.transactions.transaction(uow) as uow:
            self.validate_create(uow, data)
            entity = self.repo.insert(uow, data)
            logger.info("created %s id=%s", self.entity_name, entity.id)
            return entity

    def update(self, id: int, data: Any, uow: Optional[UnitOfWork] = None) -> T:
        with self.transactions.transaction(uow) as uow:
            current = self.repo.find_by_id(uow, id)
            if current is None:
                raise NotFoundError(f"{self.entity_name} {id} not found")
            changes = _changes(data)
            if "version" not in changes:
                raise BadRequestError("version is required")
            if changes["version"] != current.version:
                raise ConflictError(
                    "Version conflict",
                    details={"id": id, "expected": changes["version"], "actual": current.version},
                )
            fields = type(current).model_fields
            unknown = sorted(k for k in changes if k not in fields)
            if unknown:
                raise BadRequestError(f"unknown fields: {', '.join(unknown)}")
            merged = _merge(
                current, {k: v for k, v in changes.items() if k not in IMMUTABLE_FIELDS}
            )
            self.validate_update(uow, current, merged)
            return self.repo.update(uow, merged)

    def delete_by_id(self, id: int, uow: Optional[UnitOfWork] = None) -> int:
        with self.transactions.transaction(uow) as uow:
            return self.repo.delete_by_id(uow, id)

    def delete_by_ids(self, ids: Sequence[int], uow: Optional[UnitOfWork] = None) -> int:
        with self.transactions.transaction(uow) as uow:
            return self.repo.delete_by_ids(uow, ids)

    def delete_by_uid(self, uid: UUID, uow: Optional[UnitOfWork] = None) -> int:
        with self.transactions.transaction(uow) as uow:
            return self.repo.delete_by_uid(uow, uid)

    def delete_by_uids(self, uids: Sequence[UUID], uow: Optional[UnitOfWork] = None) -> int:
        with self.transactions.transaction(uow) as uow:
            return self.repo.delete_by_uids(uow, uids)

    def update_multiple(
        self, updates: Sequence[tuple[int, Any]], uow: Optional[UnitOfWork] = None
    ) -> list[T]:
        """Apply ``update`` to each ``(id, data)`` pair; one failure undoes all."""
        with self.transactions.transaction(uow) as uow:
            return [self.update(id, data, uow=uow) for id, data in updates]

    def create_with_related_operations(
        self,
        data: C,
        related_operation: Callable[[T, UnitOfWork], Any],
        uow: Optional[UnitOfWork] = None,
    ) -> T:
        with self.transactions.transaction(uow) as uow:
            entity = self.create(data, uow=uow)
            related_operation(entity, uow)
            return entity

    def get_many(
        self,
        filters: Sequence[Filter] = (),
        sorts: Sequence[Sort] = (),
        uow: Optional[UnitOfWork] = None,
    ) -> list[T]:
        for filter_ in filters:
            validate_filter(filter_)
        with self.transactions.transaction(uow) as uow:
            return self.repo.find_many(uow, filters, sorts)

    def list_page(
        self,
        filters: Sequence[Filter] = (),
        sorts: Sequence[Sort] = (),
        limit: int = 50,
        offset: int = 0,
        uow: Optional[UnitOfWork] = None,
    ) -> tuple[list[T], int]:
        for filter_ in filters:
            validate_filter(filter_)
        with self.transactions.transaction(uow) as uow:
            items = self.repo.find_page(uow, filters, sorts, limit=limit, offset=offset)
            return items, self.repo.count(uow, filters)

    def get_property_type_map(self) -> dict[str, ScalarType]:
        return self.cache.get_or_compute(
            FIELD_TYPE_MAP, self.repo.get_table_name(), self.repo.get_column_type_map
        )

    def get_attribute_type_map(self, uow: Optional[UnitOfWork] = None) -> dict[str, ScalarType]:
        def load() -> dict[str, ScalarType]:
            with self.transactions.transaction(uow) as unit:
                return self.repo.get_attribute_type_map(unit)

        return self.cache.get_or_compute(ATTRIBUTE_TYPE_MAP, self.repo.get_table_name(), load)
