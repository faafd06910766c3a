"""
Fixtures for the HTTP API tests.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from tdm_classification.services.registry_service import RegistryService
from tdm_classification.storage.base import RegistrySaveError, RegistryStore
from tdm_classification.storage.memory import InMemoryRegistryStore
from tdm_classification.web.app import create_app
from tdm_classification.web.dependencies import clear_registry_service


@pytest.fixture
def store():
    return InMemoryRegistryStore()


@pytest.fixture
def client(store):
    """Test client backed by an in-memory registry seeded with the default groups."""
    app = create_app(RegistryService(store), default_lob="BANK", cors_origins=["*"])
    yield TestClient(app)
    clear_registry_service()


@pytest.fixture
def failing_client(default_registry):
    """Test client whose store rejects every save."""
    store = AsyncMock(spec=RegistryStore)
    store.backend_name = "failing"
    store.load.return_value = default_registry
    store.save.side_effect = RegistrySaveError("disk full")
    app = create_app(RegistryService(store), default_lob="BANK", cors_origins=["*"])
    yield TestClient(app)
    clear_registry_service()
