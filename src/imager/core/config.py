"""Configuration management for the Imager studio.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the IMAGER_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (IMAGER_* prefix)
2. .env file in the project root
3. Default values defined in ImagerConfig

Example .env file:
    IMAGER_API_KEY=AIza...
    IMAGER_DEFAULT_MODEL_NAME=gemini-2.5-flash-image
    IMAGER_DATA_DIR=data
    IMAGER_ADMIN_PASSWORD=change-me

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Components that need configuration accept an ``ImagerConfig`` argument and
fall back to this instance, so tests can hand in their own copy.

Usage Example
-------------
    from imager.core.config import config

    print(config.default_model_name)
    print(config.data_dir)

Directory Management
--------------------
The configuration automatically creates required directories on initialization:
- data_dir: For the JSON configuration store (site config, models, admin flag)
- outputs_dir: For generated images saved to disk

Credentials
-----------
``api_key`` only seeds the bootstrap model entry the first time the model
collection is read from an empty store.  After that the credential lives in
the store and is edited through the model registry.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ImagerConfig(BaseSettings):
    """Main configuration for the Imager studio.

    Attributes
    ----------
    Storage:
        data_dir : Path
            Directory holding the JSON configuration store
        outputs_dir : Path
            Directory where saved generation results are written

    Generation:
        default_model_name : str
            Provider model identifier used for the bootstrap entry
        api_key : str
            Credential given to the bootstrap entry (may be empty)
        provider_base_url : str
            Base URL of the generation provider REST API

    Admin gate:
        admin_username : str
        admin_password : str

    Server:
        server_host : str
            Bind address for the HTTP surface
        server_port : int
            Port for the HTTP surface (1024-65535)
        log_level : Literal["DEBUG", "INFO", "WARNING", "ERROR"]

    Examples
    --------
        >>> custom_config = ImagerConfig(
        ...     data_dir="/tmp/imager-data",
        ...     api_key="test-key",
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="IMAGER_",
        case_sensitive=False,
    )

    # Storage
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the JSON configuration store",
    )
    outputs_dir: Path = Field(
        default=Path("outputs"),
        description="Directory to save generated images",
    )

    # Generation provider
    default_model_name: str = Field(
        default="gemini-2.5-flash-image",
        min_length=1,
        description="Provider model identifier for the bootstrap model entry",
    )
    api_key: str = Field(
        default="",
        repr=False,
        description="Credential for the bootstrap model entry",
    )
    provider_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the generation provider REST API",
    )

    # Admin gate
    admin_username: str = Field(default="admin")
    admin_password: str = Field(default="123", repr=False)

    # Server settings
    server_host: str = Field(
        default="127.0.0.1",
        description="Server bind address (localhost only by default)",
    )
    server_port: int = Field(
        default=8000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    def __init__(self, **kwargs):
        """Initialize configuration and create required directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.outputs_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance, loaded from IMAGER_* variables and .env.
config = ImagerConfig()
