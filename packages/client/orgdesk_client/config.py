"""
Configuration loading and validation.

Loads client configuration from a YAML file. Access tokens are never stored
in the file: they come from an environment variable or an external command
(for example ``az account get-access-token``).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field


class ApiConfig(BaseModel):
    url: str = "http://localhost:8000"
    verify_tls: bool = True
    request_timeout_seconds: int = 30


class AuthConfig(BaseModel):
    token_env: str = "ORGDESK_TOKEN"
    token_command: Optional[str] = None

    @property
    def token(self) -> str | None:
        return os.environ.get(self.token_env)


class LoggingConfig(BaseModel):
    level: str = "warning"
    format: Literal["json", "text"] = "text"


class ClientConfig(BaseModel):
    api: ApiConfig = Field(default_factory=ApiConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: str | Path) -> ClientConfig:
    """Load and validate client configuration from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return ClientConfig.model_validate(raw)
