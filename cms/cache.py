"""Process-local memo of per-table type maps.

Entries are keyed by ``(namespace, table)`` and never expire: the schema the
maps are computed from does not change while the process runs. Two callers
racing on the same missing key may both run the loader; the later result
wins, which is harmless while loaders are deterministic.
"""

import logging
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

FIELD_TYPE_MAP = "FIELD_TYPE_MAP"
ATTRIBUTE_TYPE_MAP = "ATTRIBUTE_TYPE_MAP"


class TypeMapCache:
    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], Any] = {}

    def get_or_compute(self, namespace: str, key: str, loader: Callable[[], V]) -> V:
        entry_key = (namespace, key)
        if entry_key in self._entries:
            return self._entries[entry_key]
        # a raising loader leaves nothing behind, so the next call retries
        value = loader()
        self._entries[entry_key] = value
        logger.info("cached %s for %s", namespace, key)
        return value

    def update(self, namespace: str, key: str, supplier: Callable[[], V]) -> V:
        value = supplier()
        self._entries[(namespace, key)] = value
        logger.debug("replaced %s for %s", namespace, key)
        return value

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        return self._entries.get((namespace, key), default)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, entry_key: object) -> bool:
        return entry_key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
