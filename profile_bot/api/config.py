"""API configuration loader."""

import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from profile_bot.core.orchestrator import ChatSettings, DEFAULT_SUGGESTIONS, NO_MATCH_RESPONSE
from profile_bot.core.llm_connector import FALLBACK_RESPONSE, PROVIDERS

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "server": {
        "host": "0.0.0.0",
        "port": 8787,
        "workers": 1,
        "reload": False,
    },
    "provider": {
        "name": "openai",
        "model": None,
    },
    "generation": {
        "timeout_seconds": 15.0,
        "temperature": 0.7,
        "max_tokens": 500,
        "persona_name": "the site owner",
    },
    "cors": {
        "allowed_origins": [
            "https://yoursite.com",
            "https://www.yoursite.com",
            "http://localhost:3000",
            "http://localhost:8000",
        ],
    },
    "rate_limiting": {
        "backend": "memory",
        "redis_url": "redis://localhost:6379/0",
        "session_limit": 10,
        "session_window_seconds": 3600,
        "ip_limit": 100,
        "ip_window_seconds": 86400,
    },
    "knowledge": {
        "path": "data/knowledge.jsonl",
        "top_n": 5,
    },
    "chat": {
        "no_match_response": NO_MATCH_RESPONSE,
        "fallback_response": FALLBACK_RESPONSE,
        "suggestions": list(DEFAULT_SUGGESTIONS),
    },
    "logging": {
        "level": "INFO",
        "structured": False,
        "file": None,
    },
}

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    "AI_PROVIDER": "provider.name",
    "AI_MODEL": "provider.model",
    "KNOWLEDGE_PATH": "knowledge.path",
    "RATE_LIMIT_BACKEND": "rate_limiting.backend",
    "REDIS_URL": "rate_limiting.redis_url",
    "LOG_LEVEL": "logging.level",
}

API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class APIConfig:
    """Load and manage API configuration from api.yaml and the environment."""

    def __init__(self, config_path: str | None = None, overrides: dict[str, Any] | None = None):
        """Initialize configuration.

        Args:
            config_path: Path to api.yaml config file (default: config/api.yaml)
            overrides: Nested values applied last (used by tests and the CLI)
        """
        if config_path is None:
            config_path = os.path.join("config", "api.yaml")

        self.config_path = Path(config_path)
        self.config: dict[str, Any] = {}

        self._load_config()
        self._apply_env()
        if overrides:
            self.config = _deep_merge(self.config, overrides)

    def _load_config(self):
        """Load configuration from YAML file over the defaults."""
        if not self.config_path.exists():
            logger.warning(f"Config file not found: {self.config_path}, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return

        try:
            with open(self.config_path) as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config: {e}")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return

        self.config = _deep_merge(DEFAULT_CONFIG, loaded)
        logger.info(f"Loaded API configuration from {self.config_path}")

    def _apply_env(self):
        """Apply environment variable overrides."""
        for env_var, key in ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if value:
                self.set(key, value)

        origins = os.getenv("ALLOWED_ORIGINS")
        if origins:
            self.set(
                "cors.allowed_origins",
                [origin.strip() for origin in origins.split(",") if origin.strip()],
            )

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-separated key.

        Args:
            key: Dot-separated key path (e.g., "server.port")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value by dot-separated key."""
        keys = key.split(".")
        target = self.config
        for k in keys[:-1]:
            target = target.setdefault(k, {})
        target[keys[-1]] = value

    def get_provider_name(self) -> str:
        return str(self.get("provider.name", "openai")).lower()

    def get_model_override(self) -> str | None:
        return self.get("provider.model")

    def get_effective_model(self) -> str:
        """Model that requests will use: the override, else the provider default."""
        override = self.get_model_override()
        if override:
            return override
        profile = PROVIDERS.get(self.get_provider_name())
        return profile.default_model if profile else "default"

    def get_api_key(self, provider: str) -> str | None:
        """Get a provider API key from the environment.

        Args:
            provider: Provider name

        Returns:
            API key or None if not set
        """
        env_var = API_KEY_ENV_VARS.get(provider.lower())
        return os.getenv(env_var) if env_var else None

    def get_allowed_origins(self) -> list[str]:
        return list(self.get("cors.allowed_origins", []))

    def chat_settings(self) -> ChatSettings:
        """Build request-time chat settings."""
        return ChatSettings(
            provider=self.get_provider_name(),
            model=self.get_model_override(),
            api_key_resolver=self.get_api_key,
            top_n=int(self.get("knowledge.top_n", 5)),
            suggestions=list(self.get("chat.suggestions", DEFAULT_SUGGESTIONS)),
            no_match_response=self.get("chat.no_match_response", NO_MATCH_RESPONSE),
            fallback_response=self.get("chat.fallback_response", FALLBACK_RESPONSE),
        )

    def check_provider(self) -> bool:
        """Log whether the selected provider is usable.

        Returns:
            True if the provider is known and its key is set
        """
        provider = self.get_provider_name()
        if provider not in PROVIDERS:
            logger.error(f"Unknown AI provider '{provider}'. Supported: {', '.join(sorted(PROVIDERS))}")
            return False

        if not self.get_api_key(provider):
            logger.warning(
                f"{API_KEY_ENV_VARS[provider]} not set, chat replies will use the fallback message"
            )
            return False

        return True
