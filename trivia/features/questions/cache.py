import threading
import time
from typing import Callable, Generic, Hashable, Optional, Tuple, TypeVar

from cachetools import TTLCache as _TTLStore

V = TypeVar("V")

_MISSING = object()


class TTLCache(Generic[V]):
    """
    Cache mémoire à durée de vie, partagé entre requêtes.

    - get(key) -> (value, hit) : hit=False si absent ou expiré
    - taille bornée : au-delà de maxsize, les entrées les plus anciennes sortent
    - l'horloge est injectée (time.monotonic par défaut) pour les tests
    """

    def __init__(self, ttl_seconds: float, *, maxsize: int = 1024, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        # cachetools n'est pas thread-safe
        self._lock = threading.Lock()
        self._store: Optional[_TTLStore] = None
        if ttl_seconds > 0:
            self._store = _TTLStore(maxsize=maxsize, ttl=ttl_seconds, timer=clock)

    def get(self, key: Hashable) -> Tuple[Optional[V], bool]:
        if self._store is None:
            return None, False
        with self._lock:
            value = self._store.get(key, _MISSING)
        if value is _MISSING:
            return None, False
        return value, True

    def set(self, key: Hashable, value: V) -> None:
        if self._store is None:
            return
        with self._lock:
            self._store[key] = value

    def clear(self) -> int:
        if self._store is None:
            return 0
        with self._lock:
            self._store.expire()
            count = len(self._store)
            self._store.clear()
            return count

    def __len__(self) -> int:
        if self._store is None:
            return 0
        with self._lock:
            self._store.expire()
            return len(self._store)
