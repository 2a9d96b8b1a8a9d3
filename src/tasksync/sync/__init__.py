"""
Passphrase sync -- one remote document per sync code.

The sync code never travels. It is hashed into a key, the key names a
remote document, and every device holding the code converges on it.

Backends: JSON blob store, Firestore, local filesystem.
"""

from .backends import RemoteStore, create_backend
from .engine import SyncEngine
from .identity import derive_key, is_valid_sync_code

__all__ = [
    "RemoteStore",
    "SyncEngine",
    "create_backend",
    "derive_key",
    "is_valid_sync_code",
]
