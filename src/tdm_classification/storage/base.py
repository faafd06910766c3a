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
Persistence boundary for the rule/recipe registry.
"""

from abc import ABC, abstractmethod

from ..models.registry import Registry, RegistryError


class RegistrySaveError(RegistryError):
    """Raised by a store when a registry snapshot could not be written."""


class RegistryStore(ABC):
    """Abstract base class for registry storage implementations."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Short backend name used in logs and health output."""
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend (create files, seed defaults)."""
        pass

    @abstractmethod
    async def load(self) -> Registry:
        """
        Load the current registry snapshot.

        Raises:
            RegistryFormatError: If the stored payload does not follow the load contract
        """
        pass

    @abstractmethod
    async def save(self, registry: Registry) -> None:
        """
        Persist a full registry snapshot.

        Raises:
            RegistrySaveError: If the snapshot could not be written
        """
        pass

    async def close(self) -> None:
        """Release backend resources. Default implementation does nothing."""
        pass
