"""Configuration system for dualsub.

Layered config loading (lowest to highest priority):
1. config/default.toml (shipped with package)
2. ~/.config/dualsub/config.toml (user-level)
3. ./dualsub.toml (project-level)
4. Environment variables (DUALSUB_PROVIDERS__PROVIDER, etc.)
5. CLI flags

At runtime the loaded config lives in a ``ConfigStore``. Updates replace
the whole snapshot and notify subscribers, so readers never observe a
half-applied change.
"""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_ROOT = Path(__file__).resolve().parent.parent.parent.parent
_DEFAULT_CONFIG = _PACKAGE_ROOT / "config" / "default.toml"
_USER_CONFIG = Path.home() / ".config" / "dualsub" / "config.toml"
_PROJECT_CONFIG = Path("dualsub.toml")

KIMI_DEFAULT_BASE_URL = "https://api.kimi.com/coding"
KIMI_DEFAULT_MODEL = "kimi-coding/k2p5"

KEY_PROVIDERS = ("deepl", "claude", "gemini", "grok", "kimi")


def normalize_kimi_base_url(raw_url: str | None) -> str:
    """Reduce a pasted Kimi endpoint to its base URL.

    Moonshot bases are forced onto the coding endpoint.
    """
    base_url = (raw_url or "").strip()
    if not base_url:
        return KIMI_DEFAULT_BASE_URL
    base_url = base_url.rstrip("/")
    for suffix in ("/v1/messages", "/messages", "/v1"):
        if base_url.endswith(suffix):
            base_url = base_url[: -len(suffix)]
            break
    if re.search(r"api\.moonshot\.(ai|cn)", base_url, re.IGNORECASE):
        return KIMI_DEFAULT_BASE_URL
    return base_url


def normalize_kimi_model(raw_model: str | None) -> str:
    model = (raw_model or "").strip()
    if not model or not model.lower().startswith("kimi-coding/"):
        return KIMI_DEFAULT_MODEL
    return model


class ProviderConfig(BaseModel):
    """Immutable snapshot of the active provider."""

    model_config = ConfigDict(frozen=True)

    provider_id: str = "google"
    api_key: str = ""
    base_url: str | None = None
    model: str | None = None

    @property
    def requires_key(self) -> bool:
        return self.provider_id in KEY_PROVIDERS


class ProvidersConfig(BaseModel):
    provider: str = "google"
    deepl_api_key: str = ""
    claude_api_key: str = ""
    gemini_api_key: str = ""
    grok_api_key: str = ""
    kimi_api_key: str = ""
    kimi_base_url: str = ""
    kimi_model: str = ""

    def snapshot(self) -> ProviderConfig:
        """Build the provider snapshot the router works from."""
        api_key = getattr(self, f"{self.provider}_api_key", "") or ""
        if self.provider == "kimi":
            return ProviderConfig(
                provider_id="kimi",
                api_key=api_key,
                base_url=normalize_kimi_base_url(self.kimi_base_url),
                model=normalize_kimi_model(self.kimi_model),
            )
        return ProviderConfig(provider_id=self.provider, api_key=api_key)

    def has_valid_provider(self) -> bool:
        """Google needs no key; every other provider needs a non-blank one."""
        if self.provider not in KEY_PROVIDERS:
            return True
        return bool(getattr(self, f"{self.provider}_api_key", "").strip())


class TranslationConfig(BaseModel):
    enabled: bool = True  # dual subtitles on/off
    source_language: str = "FI"
    target_language: str = "EN-US"
    batch_size: int = 7
    retry_cooldown: float = 30.0  # seconds before a failed line is retried


class CacheConfig(BaseModel):
    subtitle_retention_days: int = 30
    word_retention_days: int = 60


class AutoPauseConfig(BaseModel):
    enabled: bool = False
    lead: float = 0.05  # seconds before cue end
    lookup_retries: int = 3
    lookup_retry_delay: float = 0.12


class PlayerConfig(BaseModel):
    backend: str = "mpv"
    sub_font_size: int = 40
    osd_duration: float = 10.0


class DualSubConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DUALSUB_",
        env_nested_delimiter="__",
    )

    providers: ProvidersConfig = ProvidersConfig()
    translation: TranslationConfig = TranslationConfig()
    cache: CacheConfig = CacheConfig()
    autopause: AutoPauseConfig = AutoPauseConfig()
    player: PlayerConfig = PlayerConfig()
    workspace_dir: Path = Path("./dualsub_workspace")

    @property
    def cache_dir(self) -> Path:
        """Durable translation cache directory, under the workspace."""
        return self.workspace_dir / ".cache"


def _load_toml(path: Path) -> dict:
    """Load a TOML file if it exists, return empty dict otherwise."""
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _apply_dotted(data: dict, overrides: dict[str, object]) -> dict:
    """Apply dot-separated overrides (e.g. providers.provider="deepl")."""
    for key, value in overrides.items():
        if value is None:
            continue
        parts = key.split(".")
        target = data
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value
    return data


def load_config(**cli_overrides: object) -> DualSubConfig:
    """Load configuration from all layers and merge.

    Args:
        **cli_overrides: Direct overrides from CLI flags. Keys can be
            dot-separated (e.g. translation.target_language="DE").
    """
    # Layer 1-3: TOML files
    config_data: dict = {}
    for path in (_DEFAULT_CONFIG, _USER_CONFIG, _PROJECT_CONFIG):
        layer = _load_toml(path)
        config_data = _deep_merge(config_data, layer)

    # Flatten 'general' section into top-level
    if "general" in config_data:
        general = config_data.pop("general")
        config_data = _deep_merge(config_data, general)

    config_data = _apply_dotted(config_data, cli_overrides)

    # Layer 4: env vars are handled by Pydantic BaseSettings
    return DualSubConfig(**config_data)


ConfigListener = Callable[[DualSubConfig, DualSubConfig], None]


class ConfigStore:
    """Holds the live configuration and fans out changes.

    Listeners receive ``(old, new)`` after every update.
    """

    def __init__(self, config: DualSubConfig | None = None) -> None:
        self._config = config if config is not None else DualSubConfig()
        self._listeners: list[ConfigListener] = []

    @property
    def current(self) -> DualSubConfig:
        return self._config

    def subscribe(self, listener: ConfigListener) -> None:
        self._listeners.append(listener)

    def update(self, **changes: object) -> DualSubConfig:
        """Replace the snapshot with ``changes`` applied (dot-separated keys)."""
        old = self._config
        data = _apply_dotted(old.model_dump(), changes)
        new = DualSubConfig(**data)
        self._config = new
        for listener in list(self._listeners):
            listener(old, new)
        return new
