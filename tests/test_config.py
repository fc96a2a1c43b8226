"""Tests for configuration loading and validation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import yaml

from colorvars.config import (
	AppConfigSchema,
	ConfigFileNotFoundError,
	ConfigLoader,
	ConfigParsingError,
	ResolverConfigSchema,
)
from colorvars.errors import ErrorHandler, ErrorType, SettingsValidationError

if TYPE_CHECKING:
	from pathlib import Path


@pytest.fixture(autouse=True)
def isolated_user_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
	"""Point the user configuration directory at an empty temporary directory."""
	config_home = tmp_path / "xdg"
	config_home.mkdir()
	monkeypatch.setattr("colorvars.config.config_loader.xdg_config_home", str(config_home))
	return config_home


def write_config(path: Path, data: dict) -> Path:
	"""Dump ``data`` as YAML into ``path``."""
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(yaml.safe_dump(data), encoding="utf-8")
	return path


@pytest.mark.unit
@pytest.mark.config
class TestConfigSchema:
	"""Test cases for the configuration defaults."""

	def test_defaults(self) -> None:
		"""The default configuration matches the documented values."""
		config = AppConfigSchema()

		assert config.enabled is True
		assert config.enabled_file_types == ["css", "scss", "sass"]
		assert config.resolver.max_depth == 10
		assert config.resolver.scope == "workspace"
		assert config.resolver.max_file_size == 1024 * 1024
		assert config.analyzer.chunk_lines == 50
		assert config.analyzer.buffer_lines == 5
		assert config.watcher.debounce_delay == 0.3

	def test_exclude_glob(self) -> None:
		"""Exclude patterns fold into a brace glob."""
		assert ResolverConfigSchema(exclude_patterns=[]).exclude_glob is None
		assert ResolverConfigSchema(exclude_patterns=["a/**"]).exclude_glob == "a/**"
		assert ResolverConfigSchema(exclude_patterns=["a/**", "b/**"]).exclude_glob == "{a/**,b/**}"


@pytest.mark.config
class TestConfigLoader:
	"""Test cases for ConfigLoader."""

	def test_no_files_gives_defaults(self, tmp_path: Path) -> None:
		"""Without files or environment the defaults are used."""
		loader = ConfigLoader(repo_root=tmp_path, environ={})

		assert loader.get == AppConfigSchema()
		assert loader.config_files() == []

	def test_workspace_file(self, tmp_path: Path) -> None:
		"""The workspace file is read from the repository root."""
		write_config(tmp_path / ".colorvars.yml", {"resolver": {"max_depth": 4, "scope": "file"}})

		loader = ConfigLoader(repo_root=tmp_path, environ={})

		assert loader.get.resolver.max_depth == 4
		assert loader.get.resolver.scope == "file"
		assert loader.get.resolver.batch_size == 10

	def test_workspace_overrides_user(self, tmp_path: Path, isolated_user_config: Path) -> None:
		"""Workspace settings win over user settings, section by section."""
		write_config(isolated_user_config / "colorvars" / "config.yml", {"resolver": {"max_depth": 3, "batch_size": 7}})
		write_config(tmp_path / ".colorvars.yml", {"resolver": {"max_depth": 6}})

		config = ConfigLoader(repo_root=tmp_path, environ={}).get

		assert config.resolver.max_depth == 6
		assert config.resolver.batch_size == 7

	def test_environment_overrides_files(self, tmp_path: Path) -> None:
		"""Environment variables override file settings and are parsed as YAML scalars."""
		write_config(tmp_path / ".colorvars.yml", {"resolver": {"max_depth": 4}})
		environ = {
			"COLORVARS_RESOLVER_MAX_DEPTH": "12",
			"COLORVARS_DEBUG_LOGGING": "true",
			"UNRELATED": "1",
		}

		config = ConfigLoader(repo_root=tmp_path, environ=environ).get

		assert config.resolver.max_depth == 12
		assert config.debug_logging is True

	def test_explicit_file_replaces_workspace_file(self, tmp_path: Path) -> None:
		"""An explicit file is used instead of the workspace file."""
		write_config(tmp_path / ".colorvars.yml", {"resolver": {"max_depth": 4}})
		explicit = write_config(tmp_path / "custom.yml", {"analyzer": {"chunk_lines": 20}})

		config = ConfigLoader(explicit, repo_root=tmp_path, environ={}).get

		assert config.resolver.max_depth == 10
		assert config.analyzer.chunk_lines == 20

	def test_missing_explicit_file(self, tmp_path: Path) -> None:
		"""A missing explicit file is an error."""
		with pytest.raises(ConfigFileNotFoundError):
			ConfigLoader(tmp_path / "nope.yml", repo_root=tmp_path, environ={})

	def test_file_that_is_not_a_mapping(self, tmp_path: Path) -> None:
		"""A YAML list at the top level is rejected."""
		(tmp_path / ".colorvars.yml").write_text("- a\n- b\n", encoding="utf-8")

		with pytest.raises(ConfigParsingError):
			ConfigLoader(repo_root=tmp_path, environ={})

	def test_empty_file(self, tmp_path: Path) -> None:
		"""An empty file contributes nothing."""
		(tmp_path / ".colorvars.yml").write_text("", encoding="utf-8")

		assert ConfigLoader(repo_root=tmp_path, environ={}).get == AppConfigSchema()

	def test_invalid_value_falls_back_to_default(self, tmp_path: Path) -> None:
		"""An invalid value is reported and replaced by its default; valid siblings survive."""
		# Arrange
		handler = ErrorHandler()
		write_config(
			tmp_path / ".colorvars.yml",
			{"resolver": {"max_depth": 0, "batch_size": 25, "scope": "galaxy"}},
		)

		# Act
		config = ConfigLoader(repo_root=tmp_path, error_handler=handler, environ={}).get

		# Assert
		assert config.resolver.max_depth == 10
		assert config.resolver.scope == "workspace"
		assert config.resolver.batch_size == 25
		stats = handler.get_error_stats()
		assert stats.errors_by_type[ErrorType.SETTINGS_VALIDATION] == 2
		keys = {recent.error.setting_key for recent in stats.recent_errors}
		assert keys == {"resolver.max_depth", "resolver.scope"}
		assert all(isinstance(recent.error, SettingsValidationError) for recent in stats.recent_errors)

	def test_reload(self, tmp_path: Path) -> None:
		"""Reloading picks up a changed file."""
		config_path = write_config(tmp_path / ".colorvars.yml", {"resolver": {"max_depth": 4}})
		loader = ConfigLoader(repo_root=tmp_path, environ={})

		write_config(config_path, {"resolver": {"max_depth": 8}})
		loader.reload_config()

		assert loader.get.resolver.max_depth == 8

	def test_shared_instance(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
		"""The shared instance is created once until reset."""
		monkeypatch.setattr(ConfigLoader, "_instance", None)

		first = ConfigLoader.get_instance(repo_root=tmp_path)
		second = ConfigLoader.get_instance()

		assert first is second
		ConfigLoader.reset_instance()
		assert ConfigLoader.get_instance(repo_root=tmp_path) is not first
		ConfigLoader.reset_instance()
