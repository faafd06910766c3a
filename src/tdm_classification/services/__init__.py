from .classification_service import ClassificationService
from .registry_admin import AdminError, AdminResult, RegistryConsole
from .registry_service import RegistryService, SaveResult, persist_console

__all__ = [
    "AdminError",
    "AdminResult",
    "ClassificationService",
    "RegistryConsole",
    "RegistryService",
    "SaveResult",
    "persist_console",
]
