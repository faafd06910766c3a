#!/usr/bin/env python3
"""
Shared registry manager for the TDM classification service.

Provides a singleton RegistryService so the HTTP and MCP interfaces work
against one store and one cached registry snapshot.
"""

import asyncio
import logging
from threading import Lock
from typing import Optional

from .services.registry_service import RegistryService
from .storage.factory import create_store_instance

logger = logging.getLogger(__name__)


class RegistryManager:
    """Manages a singleton registry service for shared access."""

    _instance: Optional["RegistryManager"] = None
    _lock: Lock = Lock()

    def __init__(self):
        self._service: Optional[RegistryService] = None
        self._initialization_lock: asyncio.Lock = asyncio.Lock()

    @classmethod
    def get_instance(cls) -> "RegistryManager":
        """Get singleton instance of RegistryManager.

        Returns:
            RegistryManager: The singleton instance
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
                    logger.info("Created new RegistryManager singleton instance")
        return cls._instance

    async def get_service(self) -> RegistryService:
        """Get or create the shared registry service.

        Multiple concurrent calls result in only one store initialization.
        """
        # Fast path - already initialized
        if self._service is not None:
            return self._service

        async with self._initialization_lock:
            # Double-check after acquiring lock
            if self._service is not None:
                return self._service

            logger.info("Initializing shared registry store...")
            store = await create_store_instance()
            self._service = RegistryService(store)
            logger.info(f"Shared registry initialized: {store.backend_name}")
            return self._service

    async def close(self) -> None:
        """Close the store if it exists. Safe to call before initialization."""
        if self._service is not None:
            try:
                logger.info("Closing shared registry store...")
                await self._service.store.close()
            except Exception as e:
                logger.error(f"Error closing shared registry store: {e}")
            finally:
                self._service = None

    def is_initialized(self) -> bool:
        return self._service is not None


_manager = RegistryManager.get_instance()


async def get_shared_registry_service() -> RegistryService:
    """Get the shared registry service."""
    return await _manager.get_service()


async def close_shared_registry() -> None:
    """Close the shared registry store."""
    await _manager.close()


def is_registry_initialized() -> bool:
    return _manager.is_initialized()
