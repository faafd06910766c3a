"""
In-memory registry store, used for tests and for ephemeral servers.
"""

import logging
from typing import Optional

from ..data.default_registry import build_default_registry
from ..models.registry import Registry
from .base import RegistryStore

logger = logging.getLogger(__name__)


class InMemoryRegistryStore(RegistryStore):
    """Keeps the last saved snapshot in process memory."""

    def __init__(self, registry: Optional[Registry] = None, seed_defaults: bool = True):
        self._registry = registry
        self._seed_defaults = seed_defaults
        self.save_count = 0

    @property
    def backend_name(self) -> str:
        return "memory"

    async def initialize(self) -> None:
        if self._registry is None:
            self._registry = build_default_registry() if self._seed_defaults else Registry.empty()
            logger.info(f"In-memory registry initialized with {len(self._registry.group_keys())} groups")

    async def load(self) -> Registry:
        if self._registry is None:
            await self.initialize()
        return self._registry

    async def save(self, registry: Registry) -> None:
        self._registry = registry
        self.save_count += 1
