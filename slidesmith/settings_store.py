# slidesmith/settings_store.py
"""
Persisted user settings: last provider/model, per-provider API keys and the
UI theme, kept in a small JSON file. API keys are stored locally only and
never logged.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .config import DEFAULT_MODEL, DEFAULT_PROVIDER, LLM_CONFIG, SETTINGS_PATH
from .schemas import AiConfig, Provider

logger = logging.getLogger(__name__)

PROVIDER_KEY = "llm_provider"
MODEL_KEY = "llm_model"
API_KEYS_KEY = "llm_api_keys"
THEME_KEY = "theme"

THEMES = ("light", "dark", "system")
DEFAULT_THEME = "system"


class SettingsStore:
    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or SETTINGS_PATH)
        self._data: Dict[str, Any] = self._read()
        self.provider, self.model = self._load_model_selection()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    def _set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._write()

    def _load_model_selection(self) -> Tuple[str, str]:
        provider = self._data.get(PROVIDER_KEY) or DEFAULT_PROVIDER
        model = self._data.get(MODEL_KEY)
        provider_config = LLM_CONFIG.get(provider) if isinstance(provider, str) else None
        if provider_config and model in provider_config["models"]:
            return provider, model

        # stale or unknown pair: fall back and remember the fallback
        logger.info("Stored model selection %r/%r is not available; using defaults", provider, model)
        self._data[PROVIDER_KEY] = DEFAULT_PROVIDER
        self._data[MODEL_KEY] = DEFAULT_MODEL
        self._write()
        return DEFAULT_PROVIDER, DEFAULT_MODEL

    def select_provider(self, provider: str) -> None:
        if provider not in LLM_CONFIG:
            raise ValueError(f"Unsupported AI provider: {provider}")
        self.provider = provider
        self.model = LLM_CONFIG[provider]["models"][0]
        self._data[PROVIDER_KEY] = self.provider
        self._data[MODEL_KEY] = self.model
        self._write()

    def select_model(self, model: str) -> None:
        if model not in LLM_CONFIG[self.provider]["models"]:
            raise ValueError(f"Model {model!r} is not offered by {self.provider}")
        self.model = model
        self._set(MODEL_KEY, model)

    @property
    def api_keys(self) -> Dict[str, str]:
        keys = self._data.get(API_KEYS_KEY)
        return dict(keys) if isinstance(keys, dict) else {}

    def api_key(self, provider: Optional[str] = None) -> Optional[str]:
        return self.api_keys.get(provider or self.provider) or None

    def set_api_key(self, provider: str, key: str) -> None:
        if provider not in LLM_CONFIG:
            raise ValueError(f"Unsupported AI provider: {provider}")
        keys = self.api_keys
        keys[provider] = key.strip()
        self._set(API_KEYS_KEY, keys)

    @property
    def theme(self) -> str:
        theme = self._data.get(THEME_KEY)
        return theme if theme in THEMES else DEFAULT_THEME

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        self._set(THEME_KEY, theme)

    def ai_config(self) -> AiConfig:
        return AiConfig(provider=Provider(self.provider), model=self.model, api_key=self.api_key())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "providers": LLM_CONFIG,
            "configured_keys": sorted(p for p, k in self.api_keys.items() if k),
            "theme": self.theme,
        }
