# Infrastructure Stats Adapters Package
from .http_source import HttpSessionSource
from .json_store import JsonFileStore
from .memory_cache import InMemoryCache

__all__ = ["HttpSessionSource", "JsonFileStore", "InMemoryCache"]
