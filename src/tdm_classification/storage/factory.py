"""
Storage factory for the TDM classification service.

Creates the registry store selected by configuration.
"""

import logging
from typing import Optional

from ..config import SUPPORTED_BACKENDS
from .base import RegistryStore
from .json_file import JsonFileRegistryStore
from .memory import InMemoryRegistryStore

logger = logging.getLogger(__name__)


def create_store(backend: str, registry_path: Optional[str] = None, seed_defaults: bool = True,
                 max_retries: int = 3) -> RegistryStore:
    """
    Create a registry store for a backend name.

    Args:
        backend: "memory" or "json_file" ("json-file" is accepted too)
        registry_path: Path of the registry file for the JSON backend
        seed_defaults: Seed new registries with the default groups
        max_retries: Write attempts for the JSON backend

    Returns:
        An uninitialized RegistryStore
    """
    backend = backend.lower().replace("-", "_")
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(f"Unknown registry backend: {backend!r}, expected one of {SUPPORTED_BACKENDS}")
    if backend == "memory":
        logger.info("Using in-memory registry store")
        return InMemoryRegistryStore(seed_defaults=seed_defaults)

    if not registry_path:
        raise ValueError("The json_file registry backend requires a registry path")
    logger.info(f"Using JSON file registry store at {registry_path}")
    return JsonFileRegistryStore(registry_path, seed_defaults=seed_defaults, max_retries=max_retries)


async def create_store_instance() -> RegistryStore:
    """Create and initialize the store configured in settings."""
    from ..config import REGISTRY_BACKEND, REGISTRY_PATH, REGISTRY_SAVE_MAX_RETRIES, REGISTRY_SEED_DEFAULTS

    store = create_store(
        REGISTRY_BACKEND,
        registry_path=REGISTRY_PATH,
        seed_defaults=REGISTRY_SEED_DEFAULTS,
        max_retries=REGISTRY_SAVE_MAX_RETRIES,
    )
    await store.initialize()
    logger.info(f"Registry store {store.backend_name} initialized successfully")
    return store
