"""
Configuration loader for the STK push relay
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/api/payments/callback"


class ProviderConfig(BaseModel):
    """Lipia API endpoints"""

    base_url: str = "https://lipia-api.kreativelabske.com/api/v2"
    stk_push_path: str = "/payments/stk-push"
    status_path: str = "/payments/status"
    timeout_seconds: float = Field(default=15.0, gt=0.0, le=300.0)


class StoreConfig(BaseModel):
    transaction_ttl_seconds: int = Field(default=86400, ge=0)


class CallbackConfig(BaseModel):
    pending_fallback: bool = True


class ServerConfig(BaseModel):
    static_dir: str = "public"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class PaymentsConfig(BaseModel):
    """Complete relay configuration, YAML settings merged with environment secrets"""

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    callback: CallbackConfig = Field(default_factory=CallbackConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    api_key: str = ""
    public_base_url: str = ""
    integrations_mode: str = ""
    redis_url: Optional[str] = None

    @property
    def callback_url(self) -> str:
        return f"{self.public_base_url.rstrip('/')}{CALLBACK_PATH}"

    @property
    def use_real_provider(self) -> bool:
        mode = self.integrations_mode.strip().lower()
        if mode in {"real", "live"}:
            return True
        if mode in {"mock", "test"}:
            return False
        return bool(self.api_key)


def load_payments_config(config_path: Optional[Path] = None) -> PaymentsConfig:
    """
    Load and validate relay configuration

    Args:
        config_path: Path to config file. Defaults to PAYMENTS_CONFIG_PATH or
            config/payments_config.yml. A missing file falls back to defaults.

    Returns:
        Validated PaymentsConfig object

    Raises:
        ValidationError: If config doesn't match schema
    """
    if config_path is None:
        env_path = os.getenv("PAYMENTS_CONFIG_PATH")
        config_path = Path(env_path) if env_path else Path(__file__).parent.parent.parent / "config" / "payments_config.yml"

    data = {}
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        logger.warning("Payments config file not found: %s (using defaults)", config_path)

    data.update(
        {
            "api_key": os.getenv("LIPIA_API_KEY", ""),
            "public_base_url": os.getenv("PUBLIC_BASE_URL") or os.getenv("NGROK_URL", ""),
            "integrations_mode": os.getenv("INTEGRATIONS_MODE", ""),
            "redis_url": os.getenv("REDIS_URL") or None,
        }
    )

    try:
        cfg = PaymentsConfig(**data)
        logger.info("Successfully loaded payments config from %s", config_path)
        return cfg
    except ValidationError as e:
        logger.error("Payments config validation failed: %s", e)
        raise
