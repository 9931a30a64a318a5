from abc import ABC, abstractmethod
from typing import Generic, Optional, Sequence, TypeVar
from uuid import UUID

from pydantic import BaseModel

from cms.entities import Entity
from cms.filters import Filter, ScalarType
from cms.sorts import Sort
from cms.transaction import UnitOfWork

T = TypeVar("T", bound=Entity)
C = TypeVar("C", bound=BaseModel)


class Repository(ABC, Generic[T, C]):
    """Persistence boundary for one entity kind.

    Every call runs inside the unit of work it is handed. ``update`` is
    conditioned on the entity's version and raises ``ConflictError`` when the
    stored row has moved on.
    """

    @abstractmethod
    def exist(self, uow: UnitOfWork, id: int) -> bool: ...

    @abstractmethod
    def find_by_id(self, uow: UnitOfWork, id: int) -> Optional[T]: ...

    @abstractmethod
    def find_by_ids(self, uow: UnitOfWork, ids: Sequence[int]) -> list[T]: ...

    @abstractmethod
    def find_by_uid(self, uow: UnitOfWork, uid: UUID) -> Optional[T]: ...

    @abstractmethod
    def find_by_uids(self, uow: UnitOfWork, uids: Sequence[UUID]) -> list[T]: ...

    @abstractmethod
    def insert(self, uow: UnitOfWork, data: C) -> T: ...

    @abstractmethod
    def update(self, uow: UnitOfWork, entity: T) -> T: ...

    @abstractmethod
    def delete_by_id(self, uow: UnitOfWork, id: int) -> int: ...

    @abstractmethod
    def delete_by_ids(self, uow: UnitOfWork, ids: Sequence[int]) -> int: ...

    @abstractmethod
    def delete_by_uid(self, uow: UnitOfWork, uid: UUID) -> int: ...

    @abstractmethod
    def delete_by_uids(self, uow: UnitOfWork, uids: Sequence[UUID]) -> int: ...

    @abstractmethod
    def find_many(
        self, uow: UnitOfWork, filters: Sequence[Filter] = (), sorts: Sequence[Sort] = ()
    ) -> list[T]: ...

    @abstractmethod
    def find_page(
        self,
        uow: UnitOfWork,
        filters: Sequence[Filter] = (),
        sorts: Sequence[Sort] = (),
        limit: int = 50,
        offset: int = 0,
    ) -> list[T]: ...

    @abstractmethod
    def count(self, uow: UnitOfWork, filters: Sequence[Filter] = ()) -> int: ...

    @abstractmethod
    def get_table_name(self) -> str: ...

    @abstractmethod
    def get_column_type_map(self) -> dict[str, ScalarType]: ...

    def get_attribute_type_map(self, uow: UnitOfWork) -> dict[str, ScalarType]:
        return {}
