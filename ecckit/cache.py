"""
Process-local caches for imported keys and derived symmetric keys.

Every cache is an explicit object owned by a facade instance. Population is
insert-if-absent: the value is built outside the lock, and when two threads
race on the same entry the first stored object wins and is returned to both.
"""

import logging
import threading
from collections import OrderedDict
from typing import Callable, Dict, Hashable, Optional, Tuple, TypeVar

from .curves import PublicKey, SecretKey
from .keys import KeyCodec, KeyRole

logger = logging.getLogger(__name__)

V = TypeVar('V')


class KeyCache:
    """
    Thread-safe mapping with optional LRU bound.

    Attributes:
        max_size: Maximum number of entries, None for unbounded
        hits: Number of lookups served from the cache
        misses: Number of lookups that had to build a value
    """

    def __init__(self, name: str, max_size: Optional[int] = None):
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.name = name
        self.max_size = max_size
        self.hits = 0
        self.misses = 0
        self._entries: "OrderedDict[Hashable, object]" = OrderedDict()
        self._lock = threading.Lock()

    def get_or_create(self, key: Hashable, factory: Callable[[], V]) -> V:
        """
        Return the cached value for key, building it with factory on a miss.

        Exceptions from factory propagate and leave the cache untouched.
        """
        with self._lock:
            if key in self._entries:
                self.hits += 1
                self._entries.move_to_end(key)
                return self._entries[key]
            self.misses += 1

        logger.debug("%s cache miss (%d entries)", self.name, len(self._entries))
        value = factory()

        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                return self._entries[key]
            self._entries[key] = value
            if self.max_size is not None:
                while len(self._entries) > self.max_size:
                    self._entries.popitem(last=False)
            return value

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries


class ImportCache:
    """
    Parsed key objects per encoded string, in one namespace per role.

    A string imported as an encryption key never satisfies a signing-key
    lookup, even when the same string is passed for both.
    """

    def __init__(self, codec: KeyCodec, max_size: Optional[int] = None):
        self.codec = codec
        self.namespaces: Dict[KeyRole, KeyCache] = {
            role: KeyCache(f"import.{role.value}", max_size) for role in KeyRole
        }

    def import_public(self, role: KeyRole, encoded: str) -> PublicKey:
        if not role.is_public:
            raise ValueError(f"Role {role.value} does not take a public key")
        return self.namespaces[role].get_or_create(
            encoded, lambda: self._load(role, self.codec.import_public, encoded)
        )

    def import_secret(self, role: KeyRole, encoded: str) -> SecretKey:
        if role.is_public:
            raise ValueError(f"Role {role.value} does not take a secret key")
        return self.namespaces[role].get_or_create(
            encoded, lambda: self._load(role, self.codec.import_secret, encoded)
        )

    @staticmethod
    def _load(role: KeyRole, importer, encoded: str):
        key = importer(encoded)
        logger.debug("Imported %s key on curve %s", role.value, key.curve.curve_id)
        return key

    def clear(self):
        for namespace in self.namespaces.values():
            namespace.clear()


class DecapCache:
    """
    Symmetric keys recovered by decapsulation, keyed by
    (encoded secret key, tag hex).
    """

    def __init__(self, max_size: Optional[int] = None):
        self.entries = KeyCache("decap", max_size)

    def lookup_or_derive(self, encoded_secret: str, tag_hex: str, derive: Callable[[], bytes]) -> bytes:
        key: Tuple[str, str] = (encoded_secret, tag_hex)
        return self.entries.get_or_create(key, derive)

    def clear(self):
        self.entries.clear()
