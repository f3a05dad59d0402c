import json

import pytest

from slidesmith.schemas import Provider
from slidesmith.settings_store import SettingsStore


def _stored(path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_fresh_store_uses_defaults(tmp_path):
    path = tmp_path / "settings.json"
    store = SettingsStore(str(path))
    assert (store.provider, store.model) == ("gemini", "gemini-2.5-flash")
    assert store.theme == "system"
    assert store.api_key() is None
    assert _stored(path)["llm_model"] == "gemini-2.5-flash"


def test_selection_survives_restart(tmp_path):
    path = tmp_path / "settings.json"
    store = SettingsStore(str(path))
    store.select_provider("openai")
    store.select_model("gpt-5")
    store.set_api_key("openai", "  sk-test  ")
    store.set_theme("dark")

    again = SettingsStore(str(path))
    assert (again.provider, again.model) == ("openai", "gpt-5")
    assert again.api_key() == "sk-test"
    assert again.theme == "dark"


def test_stale_model_is_replaced_and_persisted(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"llm_provider": "openai", "llm_model": "gpt-3"}), encoding="utf-8")
    store = SettingsStore(str(path))
    assert (store.provider, store.model) == ("gemini", "gemini-2.5-flash")
    assert _stored(path)["llm_provider"] == "gemini"
    assert _stored(path)["llm_model"] == "gemini-2.5-flash"


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", json.dumps({"llm_provider": ["x"]})])
def test_unreadable_file_falls_back(tmp_path, content):
    path = tmp_path / "settings.json"
    path.write_text(content, encoding="utf-8")
    store = SettingsStore(str(path))
    assert store.provider == "gemini"


def test_select_provider_resets_model(settings):
    settings.select_provider("anthropic")
    assert settings.model == "claude-3-7-sonnet-latest"
    with pytest.raises(ValueError):
        settings.select_provider("llama")


def test_select_model_must_belong_to_provider(settings):
    with pytest.raises(ValueError):
        settings.select_model("gpt-4o")
    assert settings.model == "gemini-2.5-flash"


def test_keys_are_per_provider(settings):
    settings.set_api_key("gemini", "g-key")
    settings.set_api_key("grok", "x-key")
    assert settings.api_key() == "g-key"
    assert settings.api_key("grok") == "x-key"
    assert settings.api_key("openai") is None
    assert settings.to_dict()["configured_keys"] == ["gemini", "grok"]


def test_ai_config_reflects_current_selection(settings):
    settings.set_api_key("grok", "x-key")
    settings.select_provider("grok")
    config = settings.ai_config()
    assert config.provider == Provider.GROK
    assert config.model == "grok-3"
    assert config.api_key == "x-key"


def test_invalid_theme(settings):
    with pytest.raises(ValueError):
        settings.set_theme("sepia")
