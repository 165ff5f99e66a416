from __future__ import annotations

import os

import pytest

from nc_exporter.config import ConfigProvider, ExporterConfig, find_config_file, load_config
from nc_exporter.config.watcher import OP_WRITE
from nc_exporter.utils.exceptions import ConfigError


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


def _bump_mtime(path, seconds=5):
    st = os.stat(path)
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + seconds * 1_000_000_000))


def test_defaults_without_file():
    cfg = load_config(None, env={})
    assert cfg == ExporterConfig()
    assert cfg.port == 9205
    assert cfg.url == "http://localhost/"


def test_file_values(tmp_path):
    p = _write(tmp_path / "config.yaml", (
        "port: 9300\n"
        "url: https://cloud.example.org/\n"
        "token: abc\n"
        "exclude_php: true\n"
        "filter:\n  - nextcloud_users\n  - nextcloud_files\n"
    ))
    cfg = load_config(p, env={})
    assert cfg.port == 9300
    assert cfg.url == "https://cloud.example.org/"
    assert cfg.token == "abc"
    assert cfg.exclude_php is True
    assert cfg.exclude_strings is False
    assert cfg.filter_metrics == ("nextcloud_users", "nextcloud_files")


def test_env_overrides_win_over_file(tmp_path):
    p = _write(tmp_path / "config.yaml", "port: 9300\nexclude_strings: false\n")
    env = {"NC_PORT": "9400", "NC_EXCLUDE_STRINGS": "yes", "NC_FILTER": "nextcloud_users, nextcloud_files", "NC_TOKEN": "t"}
    cfg = load_config(p, env=env)
    assert cfg.port == 9400
    assert cfg.exclude_strings is True
    assert cfg.filter_metrics == ("nextcloud_users", "nextcloud_files")
    assert cfg.token == "t"


@pytest.mark.parametrize("text", [
    "unknown_key: 1\n",
    "port: not-a-port\n",
    "port: 70000\n",
    "url: ftp://example.org/\n",
    "exclude_php: maybe\n",
    "filter: [1, 2]\n",
    "timeout: 0\n",
    "- just\n- a list\n",
    "port: [unclosed\n",
])
def test_invalid_config_raises(tmp_path, text):
    p = _write(tmp_path / "config.yaml", text)
    with pytest.raises(ConfigError):
        load_config(p, env={})


def test_empty_file_uses_defaults(tmp_path):
    p = _write(tmp_path / "config.yaml", "")
    assert load_config(p, env={}) == ExporterConfig()


def test_find_config_file(tmp_path):
    assert find_config_file([tmp_path]) is None
    _write(tmp_path / "config.yml", "port: 1\n")
    assert find_config_file([tmp_path]) == str(tmp_path / "config.yml")


def test_provider_publishes_reload_to_subscribers(tmp_path):
    p = _write(tmp_path / "config.yaml", "port: 9300\n")
    provider = ConfigProvider(p, env={})
    events = []
    provider.notify(events.append)
    assert provider.check() is False  # unchanged

    _write(p, "port: 9301\n")
    _bump_mtime(p)
    assert provider.check() is True
    assert provider.get_config().port == 9301
    assert len(events) == 1
    assert events[0].path == str(p)
    assert events[0].op == OP_WRITE


def test_provider_keeps_previous_config_on_bad_reload(tmp_path, caplog):
    p = _write(tmp_path / "config.yaml", "port: 9300\n")
    provider = ConfigProvider(p, env={})
    events = []
    provider.notify(events.append)
    _write(p, "port: [broken\n")
    _bump_mtime(p)
    assert provider.check() is False
    assert provider.get_config().port == 9300
    assert events == []
    assert "failed to reload config" in caplog.text


def test_provider_subscriber_failure_does_not_block_others(tmp_path):
    p = _write(tmp_path / "config.yaml", "port: 9300\n")
    provider = ConfigProvider(p, env={})
    seen = []

    def broken(event):
        raise RuntimeError("subscriber bug")

    provider.notify(broken)
    provider.notify(seen.append)
    _write(p, "port: 9302\n")
    _bump_mtime(p)
    assert provider.check() is True
    assert len(seen) == 1


def test_watcher_thread_detects_change(tmp_path, wait_for):
    p = _write(tmp_path / "config.yaml", "port: 9300\n")
    provider = ConfigProvider(p, poll_interval=0.02, env={})
    events = []
    provider.notify(events.append)
    provider.start()
    try:
        _write(p, "port: 9303\n")
        _bump_mtime(p)
        assert wait_for(lambda: len(events) == 1)
        assert provider.get_config().port == 9303
    finally:
        provider.stop()


def test_provider_without_file_never_reloads():
    provider = ConfigProvider(None, env={})
    provider.start()
    assert provider.check() is False
    provider.stop()
