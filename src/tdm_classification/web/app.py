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
FastAPI application for the TDM classification service.
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..services.registry_service import RegistryService
from .api import classifications, dsls
from .dependencies import clear_registry_service, get_registry_service, set_registry_service

logger = logging.getLogger(__name__)


def create_app(
    registry_service: Optional[RegistryService] = None,
    default_lob: Optional[str] = None,
    cors_origins: Optional[List[str]] = None,
) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        registry_service: Service to serve; when omitted the shared registry
            configured in settings is opened on startup and closed on shutdown
        default_lob: Line of business for requests that do not name one
        cors_origins: Allowed origins; settings are used when omitted
    """
    owns_registry = registry_service is None

    if owns_registry:
        from ..config import CORS_ORIGINS, DEFAULT_LOB
        default_lob = default_lob or DEFAULT_LOB
        cors_origins = cors_origins if cors_origins is not None else CORS_ORIGINS
    else:
        set_registry_service(registry_service, default_lob=default_lob or "BANK")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_registry:
            from ..shared_registry import close_shared_registry, get_shared_registry_service
            service = await get_shared_registry_service()
            set_registry_service(service, default_lob=default_lob)
            await service.load()
            logger.info("HTTP interface ready")
            try:
                yield
            finally:
                clear_registry_service()
                await close_shared_registry()
        else:
            yield

    app = FastAPI(
        title="TDM Classification Service",
        description="Semantic classification tags, rule registry and registry administration",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(dsls.router, prefix="/api", tags=["dsls"])
    app.include_router(classifications.router, prefix="/api", tags=["classifications"])

    @app.get("/api/health", tags=["health"])
    async def health(service: RegistryService = Depends(get_registry_service)):
        return {
            "status": "healthy",
            "version": __version__,
            "backend": service.store.backend_name,
            "registry_loaded": service.is_loaded,
        }

    return app
