"""Configuration management for Firebase Account."""

import json
import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

ADMIN_TOKEN_ENV = "FIREBASE_ADMIN_TOKEN"
USER_ENV = "FIREBASE_USER"
PASSWORD_ENV = "FIREBASE_PASS"


class FirebaseConfig(BaseModel):
    """Hosts and HTTP settings for the Firebase admin API."""

    admin_url: str = Field(
        default="https://admin.firebase.com",
        description="Host for login, database provisioning and token issuance",
    )
    auth_url: str = Field(
        default="https://auth.firebase.com",
        description="Host for the Simple Login user directory",
    )
    database_domain: str = Field(
        default="firebaseio.com",
        description="Domain under which each database gets its own subdomain",
    )
    # None means requests may hang indefinitely; the CLI opts in to a timeout
    timeout: Optional[float] = Field(
        default=None, description="Request timeout in seconds"
    )
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")

    @field_validator("admin_url", "auth_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("database_domain")
    @classmethod
    def strip_domain_dots(cls, v: str) -> str:
        return v.strip("./")

    def database_url(self, name: str) -> str:
        """Public endpoint of the database called ``name``."""
        return f"https://{name}.{self.database_domain}/"


class Credentials(BaseModel):
    """Account credentials sourced from options or the environment."""

    admin_token: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

    @property
    def has_token(self) -> bool:
        return bool(self.admin_token)

    @property
    def has_login(self) -> bool:
        return bool(self.email and self.password)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Credentials":
        """Read credentials from FIREBASE_ADMIN_TOKEN, FIREBASE_USER and FIREBASE_PASS."""
        env = os.environ if environ is None else environ
        return cls(
            admin_token=env.get(ADMIN_TOKEN_ENV) or None,
            email=env.get(USER_ENV) or None,
            password=env.get(PASSWORD_ENV) or None,
        )


class ConfigManager:
    """Manages configuration loading and saving."""

    DEFAULT_CONFIG_PATH = Path(".firebase-account/config.json")

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config: Optional[FirebaseConfig] = None

    def load(self) -> FirebaseConfig:
        """Load configuration from file or fall back to defaults."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)
                self._config = FirebaseConfig(**data)
            except Exception as e:
                raise ValueError(f"Failed to load config from {self.config_path}: {e}")
            logger.debug(f"Loaded configuration from {self.config_path}")
        else:
            self._config = FirebaseConfig()

        return self._config

    def save(self, config: Optional[FirebaseConfig] = None) -> None:
        """Write configuration to file."""
        if config:
            self._config = config

        if not self._config:
            raise ValueError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            json.dump(self._config.model_dump(), f, indent=2)

    def get_config(self) -> FirebaseConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            return self.load()
        return self._config
