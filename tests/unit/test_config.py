"""
Unit tests for environment-driven settings.
"""

import os

import pytest
from pydantic import ValidationError

from tdm_classification import config
from tdm_classification.config import RegistrySettings, Settings, reset_settings


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch, temp_dir):
    monkeypatch.setenv("TDM_BASE_DIR", temp_dir)
    for name in ("TDM_REGISTRY_PATH", "TDM_REGISTRY_BACKEND", "TDM_REGISTRY_DEFAULT_LOB", "TDM_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


class TestRegistrySettings:

    def test_json_file_is_default_with_path_under_base_dir(self, temp_dir):
        settings = Settings()
        assert settings.registry.backend == "json_file"
        assert settings.paths.registry_path == os.path.join(temp_dir, "registry.json")

    def test_backend_name_normalized(self, monkeypatch):
        monkeypatch.setenv("TDM_REGISTRY_BACKEND", "json-file")
        assert RegistrySettings().backend == "json_file"

    def test_memory_backend_needs_no_path(self, monkeypatch):
        monkeypatch.setenv("TDM_REGISTRY_BACKEND", "memory")
        assert Settings().paths.registry_path is None

    def test_explicit_registry_path(self, monkeypatch, temp_dir):
        path = os.path.join(temp_dir, "sub", "dsls.json")
        monkeypatch.setenv("TDM_REGISTRY_PATH", path)
        assert Settings().paths.registry_path == path
        assert os.path.isdir(os.path.join(temp_dir, "sub"))

    def test_unknown_line_of_business_rejected(self, monkeypatch):
        monkeypatch.setenv("TDM_REGISTRY_DEFAULT_LOB", "RETAIL")
        with pytest.raises(ValidationError):
            RegistrySettings()

    def test_retries_bounded(self, monkeypatch):
        monkeypatch.setenv("TDM_REGISTRY_SAVE_MAX_RETRIES", "0")
        with pytest.raises(ValidationError):
            RegistrySettings()


class TestModuleConstants:
    """Module-level names resolve lazily from the environment"""

    def test_constants_follow_environment(self, monkeypatch):
        monkeypatch.setenv("TDM_REGISTRY_BACKEND", "memory")
        monkeypatch.setenv("TDM_REGISTRY_DEFAULT_LOB", "CARD")
        monkeypatch.setenv("TDM_LOG_LEVEL", "debug")
        reset_settings()

        assert config.REGISTRY_BACKEND == "memory"
        assert config.DEFAULT_LOB == "CARD"
        assert config.LOG_LEVEL == "DEBUG"

    def test_unknown_constant(self):
        with pytest.raises(AttributeError):
            config.NOT_A_SETTING
