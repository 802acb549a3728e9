# Infrastructure Adapters Package
from .card_sources import InMemoryCardSource, YamlCardSource
from .json_store import JsonFileStateStore
from .memory_store import InMemoryStateStore

__all__ = ["InMemoryCardSource", "YamlCardSource", "InMemoryStateStore", "JsonFileStateStore"]
