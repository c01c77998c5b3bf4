from pathlib import Path

from termlevel.application.config import resolve_config


def test_defaults(mock_home):
    config = resolve_config()
    assert config.openai_model == "gpt-4o-mini"
    assert config.server_port == 3000
    assert config.openai_api_key == ""


def test_openai_api_key_from_env(mock_home, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    assert resolve_config().openai_api_key == "sk-env"


def test_prefixed_env(mock_home, monkeypatch, tmp_path):
    monkeypatch.setenv("TERMLEVEL_DATA_FILE", str(tmp_path / "x.json"))
    monkeypatch.setenv("TERMLEVEL_SERVER_PORT", "8123")
    config = resolve_config()
    assert config.data_file == tmp_path / "x.json"
    assert config.server_port == 8123


def test_cli_overrides_win_and_none_is_ignored(mock_home, monkeypatch, tmp_path):
    monkeypatch.setenv("TERMLEVEL_OPENAI_MODEL", "env-model")
    config = resolve_config({"openai_model": "cli-model", "data_file": None})
    assert config.openai_model == "cli-model"
    assert config.data_file.name == "data.json"


def test_data_file_expands_user(mock_home):
    config = resolve_config({"data_file": Path("~/terms.json")})
    assert config.data_file == mock_home / "terms.json"
