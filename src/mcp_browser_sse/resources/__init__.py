from .store import ResourceStore, StoredResource

__all__ = ["ResourceStore", "StoredResource"]
