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
TDM Classification Service Configuration using Pydantic Settings

All configuration is type-safe, validated, and loaded from environment variables
or a .env file.
"""

import logging
import os
from typing import List, Literal, Optional

from platformdirs import user_data_dir
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


# =============================================================================
# Path Utilities
# =============================================================================

def validate_and_create_path(path: str) -> str:
    """Expand a directory path and make sure it exists and is a directory."""
    abs_path = os.path.abspath(os.path.expanduser(path))
    os.makedirs(abs_path, exist_ok=True)
    if not os.path.isdir(abs_path):
        raise PermissionError(f"Path is not a directory: {abs_path}")
    logger.debug(f"Using directory: {abs_path}")
    return abs_path


def get_default_base_directory() -> str:
    """Platform-specific data directory (XDG on Linux, Application Support on macOS)."""
    return user_data_dir("tdm-classification", appauthor=False)


# =============================================================================
# Settings Models
# =============================================================================

class PathSettings(BaseSettings):
    """File system paths configuration."""

    model_config = SettingsConfigDict(
        env_prefix='TDM_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    base_dir: str = Field(
        default_factory=get_default_base_directory,
        description="Base directory for registry data"
    )

    registry_path: Optional[str] = Field(
        default=None,
        description="Path of the JSON registry file (env: TDM_REGISTRY_PATH)"
    )


class ServerSettings(BaseSettings):
    """Server identification and version."""

    model_config = SettingsConfigDict(
        env_prefix='TDM_SERVER_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'
    )

    name: str = Field(default="tdm-classification", description="Server name")

    @property
    def version(self) -> str:
        from . import __version__
        return __version__


class RegistrySettings(BaseSettings):
    """Registry storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix='TDM_REGISTRY_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    backend: Literal['memory', 'json_file', 'json-file'] = Field(
        default='json_file',
        description="Registry store to use (env: TDM_REGISTRY_BACKEND)"
    )

    seed_defaults: bool = Field(
        default=True,
        description="Seed a new registry with the default rule and recipe groups"
    )

    save_max_retries: int = Field(
        default=3, ge=1, le=10,
        description="Write attempts before a registry save is reported as failed"
    )

    default_lob: Literal['CARD', 'BANK', 'FS', 'DFS'] = Field(
        default='BANK',
        description="Line of business used when a request does not name one"
    )

    @field_validator('backend')
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        """Normalize backend names."""
        return v.replace('-', '_')


class HTTPSettings(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(
        env_prefix='TDM_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    http_enabled: bool = Field(default=True)
    http_port: int = Field(default=8000, ge=1024, le=65535)
    http_host: str = Field(default='0.0.0.0')
    cors_origins: List[str] = Field(default=['*'])

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse comma-separated CORS origins."""
        if isinstance(v, str):
            return v.split(',')
        return v


class MCPSettings(BaseSettings):
    """MCP tool server configuration."""

    model_config = SettingsConfigDict(
        env_prefix='TDM_MCP_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    enabled: bool = Field(default=False)
    transport: Literal['stdio', 'streamable-http'] = Field(default='stdio')


class DebugSettings(BaseSettings):
    """Debug and development configuration."""

    model_config = SettingsConfigDict(
        env_prefix='TDM_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    log_level: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR'] = Field(default='INFO')

    @field_validator('log_level', mode='before')
    @classmethod
    def upper_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v


# =============================================================================
# Main Settings Class
# =============================================================================

class Settings(BaseSettings):
    """
    Main TDM classification service settings.

    Combines all configuration sections into a single, validated settings object.
    Automatically loads from .env file and environment variables.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
        validate_default=True
    )

    paths: PathSettings = Field(default_factory=PathSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    http: HTTPSettings = Field(default_factory=HTTPSettings)
    mcp: MCPSettings = Field(default_factory=MCPSettings)
    debug: DebugSettings = Field(default_factory=DebugSettings)

    @model_validator(mode='after')
    def validate_backend_requirements(self) -> 'Settings':
        """Resolve the registry file for the JSON backend."""
        if self.registry.backend == 'json_file':
            if not self.paths.registry_path:
                base_dir = validate_and_create_path(self.paths.base_dir)
                self.paths.registry_path = os.path.join(base_dir, 'registry.json')
                logger.info(f"Using default registry path: {self.paths.registry_path}")

            registry_dir = os.path.dirname(self.paths.registry_path)
            if registry_dir:
                os.makedirs(registry_dir, exist_ok=True)

        return self

    def log_configuration(self):
        """Log current configuration."""
        logger.info("=" * 80)
        logger.info("TDM Classification Service Configuration")
        logger.info("=" * 80)
        logger.info(f"Server: {self.server.name} v{self.server.version}")
        logger.info(f"Registry Backend: {self.registry.backend}")
        if self.registry.backend == 'json_file':
            logger.info(f"Registry Path: {self.paths.registry_path}")
        logger.info(f"Default Line of Business: {self.registry.default_lob}")

        if self.http.http_enabled:
            logger.info(f"HTTP Server: {self.http.http_host}:{self.http.http_port}")
        if self.mcp.enabled:
            logger.info(f"MCP Server: transport={self.mcp.transport}")

        logger.info("=" * 80)


# =============================================================================
# Global Settings Instance
# =============================================================================

class _SettingsProxy:
    """
    Lazy settings proxy that defers Settings instantiation until first access.

    Environment variables are read at runtime, not import time.
    """
    _instance: Optional[Settings] = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = Settings()
            self._instance.log_configuration()
        return getattr(self._instance, name)


settings = _SettingsProxy()


def reset_settings() -> None:
    """Drop the cached Settings so the next access re-reads the environment."""
    _SettingsProxy._instance = None
    settings.__dict__.pop('_instance', None)


def __getattr__(name: str):
    """
    Module-level __getattr__ to provide lazy config value access.

    Settings are only instantiated when a value is first requested.
    """
    _settings = settings._instance if settings._instance else Settings()
    if settings._instance is None:
        settings._instance = _settings
        _settings.log_configuration()

    mapping = {
        # Paths
        'BASE_DIR': lambda: _settings.paths.base_dir,
        'REGISTRY_PATH': lambda: _settings.paths.registry_path,

        # Server
        'SERVER_NAME': lambda: _settings.server.name,
        'SERVER_VERSION': lambda: _settings.server.version,

        # Registry
        'REGISTRY_BACKEND': lambda: _settings.registry.backend,
        'REGISTRY_SEED_DEFAULTS': lambda: _settings.registry.seed_defaults,
        'REGISTRY_SAVE_MAX_RETRIES': lambda: _settings.registry.save_max_retries,
        'DEFAULT_LOB': lambda: _settings.registry.default_lob,

        # HTTP
        'HTTP_ENABLED': lambda: _settings.http.http_enabled,
        'HTTP_PORT': lambda: _settings.http.http_port,
        'HTTP_HOST': lambda: _settings.http.http_host,
        'CORS_ORIGINS': lambda: _settings.http.cors_origins,

        # MCP
        'MCP_ENABLED': lambda: _settings.mcp.enabled,
        'MCP_TRANSPORT': lambda: _settings.mcp.transport,

        # Debug
        'LOG_LEVEL': lambda: _settings.debug.log_level,
    }

    if name in mapping:
        return mapping[name]()

    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


SUPPORTED_BACKENDS = ['memory', 'json_file']
