"""Configuration parsing for ai-readline.

Loads settings from ~/.config/ai-readline/config.toml with env var overrides.
"""

from __future__ import annotations

import math
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from aireadline.errors import ConfigError
from aireadline.prompts import DEFAULT_SYSTEM_TEMPLATE, PROGRAM_SLOT, count_slots
from aireadline.shots import ShotSet, shots_from_dict

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

API_KEY_ENV = "AI_READLINE_API_KEY"


def _config_dir() -> Path:
    """Return the ai-readline config directory (~/.config/ai-readline)."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "ai-readline"


def _default_config_path() -> Path:
    return _config_dir() / "config.toml"


def _as_float(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ConfigError(f"{key} must be a finite number, got {value!r}")
    return float(value)


def _as_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _as_str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string, got {value!r}")
    return value


def _as_table(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{key}] must be a table, got {value!r}")
    return value


@dataclass
class ProviderConfig:
    endpoint: str = "https://api.openai.com/v1/chat/completions"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    timeout: float = 30.0


@dataclass
class PromptConfig:
    system: str = DEFAULT_SYSTEM_TEMPLATE
    # Number of past history lines sent as context
    context: int = 3
    redact_history: bool = True


@dataclass
class AIReadlineConfig:
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    prompt: PromptConfig = field(default_factory=PromptConfig)
    shots: dict[str, ShotSet] = field(default_factory=dict)
    verbose: bool = False
    config_path: Path = field(default_factory=_default_config_path)

    @classmethod
    def load(cls, path: Path | None = None) -> AIReadlineConfig:
        """Load config from TOML file with env var overrides."""
        config_path = path or _default_config_path()
        raw: dict[str, Any] = {}

        if config_path.exists():
            try:
                raw = tomllib.loads(config_path.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"{config_path}: {e}") from e

        return cls._from_dict(raw, config_path)

    @classmethod
    def _from_dict(cls, raw: dict[str, Any], config_path: Path) -> AIReadlineConfig:
        provider_raw = _as_table(raw, "provider")
        prompt_raw = _as_table(raw, "prompt")

        provider = ProviderConfig(
            endpoint=_as_str(
                provider_raw.get("endpoint", ProviderConfig.endpoint), "provider.endpoint"
            ),
            api_key=_as_str(provider_raw.get("api_key", ""), "provider.api_key"),
            model=_as_str(provider_raw.get("model", ProviderConfig.model), "provider.model"),
            temperature=_as_float(
                provider_raw.get("temperature", ProviderConfig.temperature),
                "provider.temperature",
            ),
            timeout=_as_float(
                provider_raw.get("timeout", ProviderConfig.timeout), "provider.timeout"
            ),
        )

        # Env var override for API key (highest priority)
        env_key = os.environ.get(API_KEY_ENV)
        if env_key:
            provider.api_key = env_key

        prompt = PromptConfig(
            system=prompt_raw.get("system", DEFAULT_SYSTEM_TEMPLATE),
            context=prompt_raw.get("context", PromptConfig.context),
            redact_history=_as_bool(
                prompt_raw.get("redact_history", True), "prompt.redact_history"
            ),
        )
        if not isinstance(prompt.system, str) or count_slots(prompt.system) != 1:
            raise ConfigError(
                f"prompt.system must contain exactly one {PROGRAM_SLOT} placeholder"
            )
        context = prompt.context
        if isinstance(context, bool) or not isinstance(context, int) or context < 0:
            raise ConfigError(f"prompt.context must be a non-negative integer, got {context!r}")

        return cls(
            provider=provider,
            prompt=prompt,
            shots=shots_from_dict(_as_table(raw, "shots")),
            verbose=_as_bool(raw.get("verbose", False), "verbose"),
            config_path=config_path,
        )

    def masked_api_key(self) -> str:
        key = self.provider.api_key
        if not key:
            return ""
        return key[:4] + "..." + key[-4:] if len(key) > 8 else "****"
