from .base import RegistrySaveError, RegistryStore
from .json_file import JsonFileRegistryStore
from .memory import InMemoryRegistryStore

__all__ = [
    "InMemoryRegistryStore",
    "JsonFileRegistryStore",
    "RegistrySaveError",
    "RegistryStore",
]
