"""Store implementations."""

from gmail2tg.infrastructure.stores.json_state_store import JsonFileStateStore

__all__ = [
    "JsonFileStateStore",
]
