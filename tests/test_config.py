import json

import pytest
from pydantic import ValidationError

from ytproxy.config.settings import Config, YtDlpConfig


def test_defaults():
    cfg = Config()
    assert cfg.ytdlp.strategies == ["library", "local", "system", "python"]
    assert cfg.ytdlp.cookie_file is None
    assert cfg.playlist.batch_size == 3
    assert cfg.redis.enabled is False


def test_legacy_environment_variables(monkeypatch, tmp_path):
    monkeypatch.setenv("YTDLP_COOKIE_FILE", str(tmp_path / "cookies.txt"))
    monkeypatch.setenv("YTDLP_TIMEOUT", "30")
    monkeypatch.setenv("PLAYLIST_BATCH_SIZE", "5")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")

    cfg = Config.load_from_env()

    assert cfg.ytdlp.cookie_file == str(tmp_path / "cookies.txt")
    assert cfg.ytdlp.timeout_seconds == 30.0
    assert cfg.playlist.batch_size == 5
    assert cfg.redis.enabled is True
    assert cfg.redis.url == "redis://cache:6379/1"


def test_prefixed_nested_environment_variables(monkeypatch):
    monkeypatch.setenv("YTPROXY_PLAYLIST__BATCH_SIZE", "7")
    assert Config().playlist.batch_size == 7


def test_load_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"ytdlp": {"strategies": ["python"]}, "proxy": {"chunk_size": 4096}}))

    cfg = Config.load_from_file(str(path))

    assert cfg.ytdlp.strategies == ["python"]
    assert cfg.proxy.chunk_size == 4096


def test_unreadable_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{broken")
    assert Config.load_from_file(str(path)).playlist.batch_size == 3


@pytest.mark.parametrize("strategies", [[], ["library", "node"]])
def test_invalid_strategies_rejected(strategies):
    with pytest.raises(ValidationError):
        YtDlpConfig(strategies=strategies)
