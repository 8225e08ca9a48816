"""Tests for settings, output dir resolution and record log paths."""

from pathlib import Path

import pytest

from symtabuploader import config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for name in ("APP_ID", "APP_KEY", "EXECUTE", "UPLOAD", "OUTPUT_DIR", "LOG_LEVEL"):
        monkeypatch.delenv(f"BUGLY_{name}", raising=False)


def test_settings_defaults() -> None:
    """Defaults: execute and upload on, Bugly endpoints, no credentials."""
    s = config.get_settings()
    assert s.execute is True
    assert s.upload is True
    assert s.app_id is None and s.app_key is None
    assert s.mapping_upload_url == "http://bugly.qq.com/upload/map"
    assert s.symbol_upload_url == "http://bugly.qq.com/upload/symbol"


def test_settings_from_env(monkeypatch) -> None:
    """BUGLY_* environment variables populate settings."""
    monkeypatch.setenv("BUGLY_APP_ID", "900001")
    monkeypatch.setenv("BUGLY_APP_KEY", "k")
    monkeypatch.setenv("BUGLY_UPLOAD", "false")
    s = config.get_settings()
    assert s.app_id == "900001"
    assert s.app_key == "k"
    assert s.upload is False


def test_overrides_win_and_none_is_ignored(monkeypatch) -> None:
    """Explicit overrides beat env; None overrides leave env values alone."""
    monkeypatch.setenv("BUGLY_APP_ID", "from-env")
    monkeypatch.setenv("BUGLY_APP_KEY", "env-key")
    s = config.get_settings(app_id="from-cli", app_key=None)
    assert s.app_id == "from-cli"
    assert s.app_key == "env-key"


def test_empty_env_values_are_none(monkeypatch) -> None:
    """Blank app id / output dir are treated as unset."""
    monkeypatch.setenv("BUGLY_APP_ID", "  ")
    monkeypatch.setenv("BUGLY_OUTPUT_DIR", "")
    s = config.get_settings()
    assert s.app_id is None
    assert s.output_dir is None


def test_resolve_output_dir_unset_returns_none(tmp_path: Path) -> None:
    """No output dir configured: None."""
    assert config.resolve_output_dir(None, tmp_path) is None


def test_resolve_output_dir_creates_directory(tmp_path: Path) -> None:
    """Missing output dir is created and returned absolute."""
    out = tmp_path / "a" / "b"
    got = config.resolve_output_dir(out, tmp_path)
    assert got == out.absolute()
    assert out.is_dir()


def test_resolve_output_dir_falls_back_to_project_dir(tmp_path: Path) -> None:
    """A path that cannot be created as given is retried under the project dir."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a dir")
    project = tmp_path / "project"
    project.mkdir()
    # blocker is a file, and an absolute path joined to the project dir stays the same path
    assert config.resolve_output_dir(blocker / "out", project) is None


def test_log_paths_use_output_dir(tmp_path: Path) -> None:
    """Both logs live in the resolved output dir when set."""
    out = config.resolve_output_dir(tmp_path / "out", tmp_path)
    log_dir = config.get_log_dir(out, tmp_path)
    assert log_dir == out
    assert config.get_symbol_log_path(log_dir) == out / "BuglySymbolLog.txt"
    assert config.get_upload_log_path(log_dir) == out / "BuglyUploadLog.txt"


def test_log_paths_default_to_project_dir(tmp_path: Path) -> None:
    """Without output dir the logs are written to the project dir."""
    log_dir = config.get_log_dir(None, tmp_path)
    assert log_dir == tmp_path.absolute()
    assert config.get_symbol_log_path(log_dir) == tmp_path.absolute() / config.SYMBOL_LOG_FILE_NAME
    assert config.get_upload_log_path(log_dir) == tmp_path.absolute() / config.UPLOAD_LOG_FILE_NAME


def test_get_log_dir_does_not_touch_disk(tmp_path: Path) -> None:
    """get_log_dir only picks a directory; it never creates one."""
    out = tmp_path / "not-created"
    assert config.get_log_dir(out, tmp_path) == out
    assert not out.exists()


def test_record_constants() -> None:
    """Record format constants."""
    assert config.LOG_RECORD_MAXIMUM_NUMBER == 200
    assert config.LOG_RECORD_SEPARATOR == " --> "
