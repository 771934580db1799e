"""
Límite de intentos en memoria con ventana deslizante, por (identificador, ruta).

Vale por proceso: con varias réplicas cada una lleva su propia cuenta.
Hoy lo usa el login por IP: allow((ip, "/auth/login"), limit=10).
"""
import math
from collections import deque
from threading import Lock
from time import monotonic
from typing import Callable, Deque, Dict, Tuple

Key = Tuple[str, str]


class SlidingWindowLimiter:
    def __init__(self, clock: Callable[[], float] = monotonic) -> None:
        self._clock = clock
        self._hits: Dict[Key, Deque[float]] = {}
        self._lock = Lock()

    def allow(self, key: Key, limit: int, window_seconds: int = 60) -> bool:
        """Registra el intento si cabe en la ventana; False si ya se llegó a `limit`."""
        now = self._clock()
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and now - hits[0] >= window_seconds:
                hits.popleft()
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def retry_after(self, key: Key, window_seconds: int = 60) -> int:
        """Segundos hasta que caduque el intento más viejo de la ventana."""
        with self._lock:
            hits = self._hits.get(key)
            if not hits:
                return 0
            return max(0, math.ceil(window_seconds - (self._clock() - hits[0])))

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


_default = SlidingWindowLimiter()

allow = _default.allow
retry_after = _default.retry_after
reset = _default.reset
