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
FastAPI dependencies for the HTTP interface.
"""

import logging
from typing import Optional

from fastapi import HTTPException

from ..services.classification_service import ClassificationService
from ..services.registry_service import RegistryService

logger = logging.getLogger(__name__)

# Global service instances
_registry_service: Optional[RegistryService] = None
_classification_service: Optional[ClassificationService] = None


def set_registry_service(service: RegistryService, default_lob: str = "BANK") -> None:
    """Set the global registry service and the classification service built on it."""
    global _registry_service, _classification_service
    _registry_service = service
    _classification_service = ClassificationService(service, default_lob=default_lob)
    logger.debug(f"Registry service set (default line of business {default_lob})")


def clear_registry_service() -> None:
    global _registry_service, _classification_service
    _registry_service = None
    _classification_service = None


def get_registry_service() -> RegistryService:
    """Get the global registry service."""
    if _registry_service is None:
        raise HTTPException(status_code=503, detail="Registry not initialized")
    return _registry_service


def get_classification_service() -> ClassificationService:
    """Get the global classification service."""
    if _classification_service is None:
        raise HTTPException(status_code=503, detail="Registry not initialized")
    return _classification_service
