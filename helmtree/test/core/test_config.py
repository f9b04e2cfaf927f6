"""Tests for helmtree.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from helmtree.core.config import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_MAX_DEPTH,
    Config,
    ConfigError,
    ResolveConfig,
    ToolsConfig,
    load_config,
    load_config_or_default,
)
from helmtree.core.result import Err, Ok


class TestDefaults:
    def test_resolve_defaults(self) -> None:
        config = ResolveConfig()
        assert config.recursive is False
        assert config.max_depth == DEFAULT_MAX_DEPTH == 10
        assert config.fetch_timeout == DEFAULT_FETCH_TIMEOUT

    def test_tools_defaults(self) -> None:
        config = ToolsConfig()
        assert config.helm == "helm"
        assert config.kubectl == "kubectl"
        assert config.command_timeout == DEFAULT_COMMAND_TIMEOUT

    def test_frozen(self) -> None:
        config = Config()
        with pytest.raises(AttributeError):
            config.resolve = ResolveConfig()  # type: ignore[misc]


class TestFromDict:
    def test_empty(self) -> None:
        assert Config.from_dict({}) == Config()

    def test_full(self) -> None:
        config = Config.from_dict(
            {
                "resolve": {"recursive": True, "max_depth": 3, "fetch_timeout": 5},
                "tools": {"helm": "/opt/helm", "kubectl": "kc", "command_timeout": 2.5},
            }
        )
        assert config.resolve == ResolveConfig(recursive=True, max_depth=3, fetch_timeout=5.0)
        assert config.tools == ToolsConfig(helm="/opt/helm", kubectl="kc", command_timeout=2.5)

    def test_unlimited_clears_max_depth(self) -> None:
        config = Config.from_dict({"resolve": {"max_depth": 3, "unlimited": True}})
        assert config.resolve.max_depth is None

    def test_negative_depth_rejected(self) -> None:
        with pytest.raises(ValueError, match="max_depth"):
            Config.from_dict({"resolve": {"max_depth": -1}})

    def test_negative_timeout_rejected(self) -> None:
        with pytest.raises(ValueError, match="timeouts"):
            Config.from_dict({"tools": {"command_timeout": -1}})

    def test_wrong_types_fall_back_to_defaults(self) -> None:
        config = Config.from_dict({"resolve": {"recursive": "yes", "max_depth": "3"}})
        assert config.resolve.recursive is False
        assert config.resolve.max_depth == DEFAULT_MAX_DEPTH


class TestWithOverrides:
    def test_none_keeps_values(self) -> None:
        base = Config(resolve=ResolveConfig(recursive=True, max_depth=4))
        assert base.with_overrides() == base

    def test_overrides_apply(self) -> None:
        config = Config().with_overrides(recursive=True, max_depth=2, fetch_timeout=9.0)
        assert config.resolve == ResolveConfig(recursive=True, max_depth=2, fetch_timeout=9.0)

    def test_unlimited_wins_over_max_depth(self) -> None:
        config = Config().with_overrides(max_depth=2, unlimited=True)
        assert config.resolve.max_depth is None

    def test_zero_depth_is_an_override(self) -> None:
        config = Config().with_overrides(max_depth=0)
        assert config.resolve.max_depth == 0


class TestLoadConfig:
    def test_valid_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text(
            '[resolve]\nrecursive = true\nmax_depth = 2\n\n[tools]\nhelm = "helm3"\n',
            encoding="utf-8",
        )
        result = load_config(path)
        assert isinstance(result, Ok)
        assert result.value.resolve.recursive is True
        assert result.value.resolve.max_depth == 2
        assert result.value.tools.helm == "helm3"

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "nope.toml")
        assert isinstance(result, Err)
        assert isinstance(result.error, ConfigError)
        assert "not found" in result.error.message

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[resolve\n", encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message

    def test_invalid_values(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[resolve]\nmax_depth = -5\n", encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert "Invalid config structure" in result.error.message
        assert result.error.path == path

    def test_or_default_missing_file(self, tmp_path: Path) -> None:
        result = load_config_or_default(tmp_path / "config.toml")
        assert result == Ok(Config())

    def test_or_default_reports_broken_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("not = [valid", encoding="utf-8")
        assert isinstance(load_config_or_default(path), Err)
