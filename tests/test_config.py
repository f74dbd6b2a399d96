import logging

from mapforge.config import Settings, configure_logging


def test_settings_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("MAPFORGE_STORAGE_DIR", "MAPFORGE_LOG_LEVEL", "MAPFORGE_SERVER_NAME", "MAPFORGE_SERVER_PORT"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings()
    assert settings.storage_dir == ".mapforge"
    assert settings.log_level == "INFO"
    assert settings.server_port is None


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MAPFORGE_STORAGE_DIR", str(tmp_path / "slots"))
    monkeypatch.setenv("MAPFORGE_SERVER_PORT", "7861")
    settings = Settings()
    assert settings.storage_dir == str(tmp_path / "slots")
    assert settings.server_port == 7861


def test_settings_from_env_file(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MAPFORGE_LOG_LEVEL", raising=False)
    (tmp_path / ".env").write_text("MAPFORGE_LOG_LEVEL=DEBUG\nUNRELATED=1\n", encoding="utf-8")
    assert Settings().log_level == "DEBUG"


def test_configure_logging_accepts_unknown_level():
    """Test that an unknown level name falls back instead of raising."""
    configure_logging("nonsense")
    assert logging.getLogger("mapforge").getEffectiveLevel() >= logging.NOTSET
