# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Registry Service - cached loading and saving of the rule/recipe registry.

The registry is loaded once from the store and cached. Every consumer (the
classification editor, the suggestion engine, the administration console)
receives the same immutable snapshot. Saving writes a full snapshot and
invalidates the cache; a failed save keeps the previous snapshot and reports
the error instead of raising.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..models.registry import Registry
from ..storage.base import RegistryStore
from .registry_admin import AdminResult, RegistryConsole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveResult:
    """Outcome of a registry save."""

    success: bool
    registry: Optional[Registry] = None
    error: Optional[str] = None


class RegistryService:
    """Shared access to the registry for the HTTP and MCP interfaces."""

    def __init__(self, store: RegistryStore):
        self.store = store
        self._registry: Optional[Registry] = None
        self._load_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._registry is not None

    async def load(self) -> Registry:
        """Return the cached registry, loading it from the store on first use."""
        # Fast path - already cached
        if self._registry is not None:
            return self._registry

        async with self._load_lock:
            # Double-check after acquiring lock
            if self._registry is not None:
                return self._registry
            registry = await self.store.load()
            self._registry = registry
            logger.info(f"Loaded registry with {len(registry.group_keys())} groups from {self.store.backend_name}")
            return registry

    def invalidate(self) -> None:
        """Drop the cached snapshot; the next load reads the store again."""
        self._registry = None

    async def save(self, registry: Registry) -> SaveResult:
        """
        Persist a full registry snapshot.

        Returns:
            SaveResult with success=False and the error message when the store
            fails; the previously cached snapshot stays in place
        """
        try:
            await self.store.save(registry)
        except Exception as e:
            logger.exception(f"Failed to save registry: {e}")
            return SaveResult(success=False, registry=self._registry, error=f"Failed to save registry: {str(e)}")

        self.invalidate()
        logger.info(f"Saved registry with {len(registry.group_keys())} groups")
        return SaveResult(success=True, registry=registry)

    async def update(self, operation: Callable[[Registry], AdminResult]) -> Dict[str, Any]:
        """
        Apply an administration operation to the current registry and save it.

        Read-modify-write cycles are serialized so concurrent updates do not
        overwrite each other.

        Returns:
            Dictionary with "success", the AdminResult under "result" and,
            for saved changes, the new "registry"; failures carry "error"
            ("admin" for rejections, "save" for store failures)
        """
        async with self._write_lock:
            current = await self.load()
            result = operation(current)
            if not result.ok:
                return {"success": False, "error": "admin", "result": result}

            saved = await self.save(result.registry)
            if not saved.success:
                return {"success": False, "error": "save", "message": saved.error, "result": result}
            return {"success": True, "result": result, "registry": result.registry}

    async def replace(self, registry: Registry) -> SaveResult:
        """Save a complete snapshot supplied by a client."""
        async with self._write_lock:
            return await self.save(registry)


async def persist_console(console: RegistryConsole, service: RegistryService) -> SaveResult:
    """
    Save the console's registry; on failure roll the console back.

    After a failed save the console shows the last persisted snapshot and
    ``console.last_error`` is set, so the operator sees the change was lost.
    """
    result = await service.save(console.registry)
    if result.success:
        console.mark_persisted()
    else:
        logger.warning("Rolling registry console back to the last persisted snapshot")
        console.rollback()
    return result
