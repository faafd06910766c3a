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
JSON file registry store.

The registry is kept as one JSON document following the load contract
({"grouped", "recipesGrouped", "recipeGroupsLob"}). Writes go to a temporary file in
the same directory which then replaces the target, so readers never see a
half-written registry. Transient OS errors are retried with exponential
backoff.
"""

import asyncio
import json
import logging
import os
import tempfile
from typing import Any, Dict

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..data.default_registry import build_default_registry
from ..models.registry import Registry, RegistryFormatError
from .base import RegistrySaveError, RegistryStore

logger = logging.getLogger(__name__)


class JsonFileRegistryStore(RegistryStore):
    """Registry persisted as a single JSON file."""

    def __init__(
        self,
        path: str,
        seed_defaults: bool = True,
        max_retries: int = 3,
        retry_delay: float = 0.1,
    ):
        self.path = os.path.abspath(os.path.expanduser(path))
        self.seed_defaults = seed_defaults
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay

    @property
    def backend_name(self) -> str:
        return "json_file"

    async def initialize(self) -> None:
        """Create the directory and, when the file is missing, write the initial registry."""
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if os.path.exists(self.path):
            logger.info(f"Using registry file {self.path}")
            return

        initial = build_default_registry() if self.seed_defaults else Registry.empty()
        await self.save(initial)
        logger.info(f"Created registry file {self.path} with {len(initial.group_keys())} groups")

    async def load(self) -> Registry:
        loop = asyncio.get_running_loop()
        payload = await loop.run_in_executor(None, self._read_payload)
        return Registry.from_dict(payload)

    async def save(self, registry: Registry) -> None:
        data = registry.to_dict()
        payload = {key: data[key] for key in ("grouped", "recipesGrouped", "recipeGroupsLob")}
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write_with_retry, payload)
        except OSError as e:
            raise RegistrySaveError(f"Failed to write registry file {self.path}: {e}") from e
        logger.debug(f"Saved registry to {self.path}")

    def _read_payload(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise RegistryFormatError(f"Registry file {self.path} is not valid JSON: {e}") from e

    def _write_with_retry(self, payload: Dict[str, Any]) -> None:
        for attempt in Retrying(
            retry=retry_if_exception_type(OSError),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_delay, max=2),
            reraise=True,
        ):
            with attempt:
                self._atomic_write(payload)

    def _atomic_write(self, payload: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path) or "."
        fd, tmp_path = tempfile.mkstemp(prefix=".registry-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
