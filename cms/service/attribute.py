from typing import Mapping, Optional, Sequence
from uuid import UUID

from cms.cache import ATTRIBUTE_TYPE_MAP, TypeMapCache
from cms.entities import Attribute, AttributeCreate
from cms.errors import BadRequestError, ConflictError
from cms.repository.attribute import AttributeRepository
from cms.service.base import BaseService
from cms.service.validation import validate_code
from cms.transaction import TransactionManager, UnitOfWork


class AttributeService(BaseService[Attribute, AttributeCreate]):
    """Attribute definitions for the EAV extension.

    ``entity_tables`` maps an entity type (``"post"``) to the table its
    repository reports, which is the key its attribute type map is cached
    under.
    """

    repo: AttributeRepository

    def __init__(
        self,
        repo: AttributeRepository,
        transactions: TransactionManager,
        cache: TypeMapCache,
        entity_tables: Mapping[str, str],
    ) -> None:
        super().__init__(repo, transactions, cache)
        self.entity_tables = dict(entity_tables)

    def validate_create(self, uow: UnitOfWork, data: AttributeCreate) -> None:
        if data.entity_type not in self.entity_tables:
            raise BadRequestError(
                "Entity type does not support attributes",
                details={"entity_type": data.entity_type},
            )
        validate_code(data.name)
        if self.repo.get_by_name(uow, data.entity_type, data.name) is not None:
            raise ConflictError("Attribute already exists", details={"name": data.name})

    def validate_update(self, uow: UnitOfWork, current: Attribute, updated: Attribute) -> None:
        if updated.entity_type != current.entity_type or updated.data_type != current.data_type:
            raise BadRequestError("entity_type and data_type cannot change")
        if updated.name != current.name:
            raise BadRequestError("name cannot change")

    def create(self, data: AttributeCreate, uow: Optional[UnitOfWork] = None) -> Attribute:
        attribute = super().create(data, uow=uow)
        table = self.entity_tables[attribute.entity_type]
        # only extend a map that was already loaded; a missing one loads lazily
        if (ATTRIBUTE_TYPE_MAP, table) in self.cache:
            known = self.cache.get(ATTRIBUTE_TYPE_MAP, table)
            self.cache.update(
                ATTRIBUTE_TYPE_MAP, table, lambda: {**known, attribute.name: attribute.data_type}
            )
        return attribute

    def _forget(self, attributes: Sequence[Attribute]) -> None:
        for attribute in attributes:
            table = self.entity_tables.get(attribute.entity_type)
            if table is None or (ATTRIBUTE_TYPE_MAP, table) not in self.cache:
                continue
            known = self.cache.get(ATTRIBUTE_TYPE_MAP, table)
            self.cache.update(
                ATTRIBUTE_TYPE_MAP,
                table,
                lambda: {name: kind for name, kind in known.items() if name != attribute.name},
            )

    def delete_by_id(self, id: int, uow: Optional[UnitOfWork] = None) -> int:
        with self.transactions.transaction(uow) as uow:
            removed = self.repo.find_by_ids(uow, [id])
            count = self.repo.delete_by_id(uow, id)
        self._forget(removed)
        return count

    def delete_by_ids(self, ids: Sequence[int], uow: Optional[UnitOfWork] = None) -> int:
        with self.transactions.transaction(uow) as uow:
            removed = self.repo.find_by_ids(uow, ids)
            count = self.repo.delete_by_ids(uow, ids)
        self._forget(removed)
        return count

    def delete_by_uid(self, uid: UUID, uow: Optional[UnitOfWork] = None) -> int:
        with self.transactions.transaction(uow) as uow:
            removed = self.repo.find_by_uids(uow, [uid])
            count = self.repo.delete_by_uid(uow, uid)
        self._forget(removed)
        return count

    def delete_by_uids(self, uids: Sequence[UUID], uow: Optional[UnitOfWork] = None) -> int:
        with self.transactions.transaction(uow) as uow:
            removed = self.repo.find_by_uids(uow, uids)
            count = self.repo.delete_by_uids(uow, uids)
        self._forget(removed)
        return count
