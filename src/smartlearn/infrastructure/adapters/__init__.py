# Persistence Adapters Package
from .memory import InMemoryAdapter
from .vault_store import VaultStoreAdapter

__all__ = ["InMemoryAdapter", "VaultStoreAdapter"]
