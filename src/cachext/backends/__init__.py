"""Built-in cache backends.

Importing this package registers every built-in engine in the default
registry: ``"memory"`` and ``"redis"``.
"""

from cachext.backends.memory import CacheEntry, MemoryBackend
from cachext.backends.redis import RedisBackend

__all__ = [
    "CacheEntry",
    "MemoryBackend",
    "RedisBackend",
]
