"""Capacity-bounded containers for long-running ingestion state."""

import logging
from collections import OrderedDict
from typing import Generic, Hashable, Iterator, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class BoundedMap(Generic[K, V]):
    """
    Mapping that evicts its least recently touched entry once full.

    Reads and writes both count as a touch.
    """

    def __init__(self, max_size: int, name: str = "map"):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.name = name
        self._data: "OrderedDict[K, V]" = OrderedDict()
        self.evictions = 0

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        if key not in self._data:
            return default
        self._data.move_to_end(key)
        return self._data[key]

    def __setitem__(self, key: K, value: V) -> None:
        if key in self._data:
            self._data.move_to_end(key)
        self._data[key] = value
        while len(self._data) > self.max_size:
            evicted, _ = self._data.popitem(last=False)
            self.evictions += 1
            logger.debug(f"Evicted {evicted} from {self.name}")

    def __getitem__(self, key: K) -> V:
        value = self._data[key]
        self._data.move_to_end(key)
        return value

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[K]:
        return iter(self._data)


class BoundedSet(Generic[K]):
    """Set with the same eviction policy as BoundedMap."""

    def __init__(self, max_size: int, name: str = "set"):
        self._map: BoundedMap[K, None] = BoundedMap(max_size, name)

    def add(self, item: K) -> None:
        self._map[item] = None

    def __contains__(self, item: object) -> bool:
        return item in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __iter__(self) -> Iterator[K]:
        return iter(self._map)

    @property
    def evictions(self) -> int:
        return self._map.evictions
