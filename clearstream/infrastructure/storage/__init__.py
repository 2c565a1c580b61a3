"""
Temporary resource storage.

In-memory handles standing in for browser object URLs.
"""

from .client import InMemoryResourceStore, StorageError, StoredResource, create_resource_store

__all__ = ["InMemoryResourceStore", "StorageError", "StoredResource", "create_resource_store"]
