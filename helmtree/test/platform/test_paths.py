"""Tests for helmtree.platform.paths module."""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from helmtree.platform.paths import APP_NAME, clear_caches, default_config_path, user_config_dir


@pytest.fixture(autouse=True)
def clear_path_caches() -> Iterator[None]:
    clear_caches()
    yield
    clear_caches()


@pytest.mark.skipif(os.name == "nt", reason="XDG layout only applies off Windows")
class TestUserConfigDir:
    def test_xdg_config_home(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert user_config_dir() == tmp_path / APP_NAME

    def test_home_fallback(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert user_config_dir() == tmp_path / ".config" / APP_NAME

    def test_default_config_path(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert default_config_path() == tmp_path / "helmtree" / "config.toml"
