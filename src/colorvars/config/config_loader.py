"""
Configuration loader for ColorVars.

Settings are read from ``.colorvars.yml`` in the workspace root and from
``$XDG_CONFIG_HOME/colorvars/config.yml``; workspace values override user
values, and ``COLORVARS_<SECTION>_<KEY>`` environment variables override both.

"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError
from xdg.BaseDirectory import xdg_config_home

from colorvars.config.config_schema import AppConfigSchema
from colorvars.errors import SettingsValidationError

if TYPE_CHECKING:
	from colorvars.errors import ErrorHandler

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".colorvars.yml"
ENV_PREFIX = "COLORVARS_"
SECTIONS = ("resolver", "analyzer", "watcher")


class ConfigError(Exception):
	"""Exception raised for configuration errors."""


class ConfigFileNotFoundError(ConfigError):
	"""Exception raised when configuration file is not found."""


class ConfigParsingError(ConfigError):
	"""Exception raised when configuration file cannot be parsed."""


class ConfigLoader:
	"""
	Loads the configuration into an :class:`AppConfigSchema`.

	Invalid values never abort loading: each one is reported as a
	:class:`SettingsValidationError` and replaced by its schema default.

	"""

	_instance: ConfigLoader | None = None

	@classmethod
	def get_instance(
		cls,
		config_file: Path | None = None,
		reload: bool = False,
		repo_root: Path | None = None,
		error_handler: ErrorHandler | None = None,
	) -> ConfigLoader:
		"""
		Get the shared instance of ConfigLoader.

		Args:
		    config_file: Path to configuration file (optional)
		    reload: Whether to reload config even if already loaded
		    repo_root: Workspace root path (optional)
		    error_handler: Receives settings validation errors (optional)

		Returns:
		    ConfigLoader: Shared instance

		"""
		if cls._instance is None:
			cls._instance = cls(config_file, repo_root=repo_root, error_handler=error_handler)
		elif reload:
			cls._instance.reload_config(config_file, repo_root)
		return cls._instance

	@classmethod
	def reset_instance(cls) -> None:
		"""Forget the shared instance."""
		cls._instance = None

	def __init__(
		self,
		config_file: Path | None = None,
		repo_root: Path | None = None,
		error_handler: ErrorHandler | None = None,
		environ: dict[str, str] | None = None,
	) -> None:
		"""
		Initialize the configuration loader.

		Args:
		    config_file: Explicit configuration file, replaces the workspace file
		    repo_root: Workspace root path, defaults to the current directory
		    error_handler: Receives settings validation errors
		    environ: Environment used for overrides, defaults to ``os.environ``

		"""
		self.repo_root = repo_root or Path.cwd()
		self.error_handler = error_handler
		self._config_file = config_file
		self._environ = environ
		self._app_config = self._load_config()

	def reload_config(self, config_file: Path | None = None, repo_root: Path | None = None) -> None:
		"""
		Reload configuration with new settings.

		Args:
		    config_file: New configuration file path
		    repo_root: New workspace root path

		"""
		if config_file is not None:
			self._config_file = config_file
		if repo_root is not None:
			self.repo_root = repo_root
		self._app_config = self._load_config()
		logger.debug("Configuration reloaded")

	@property
	def get(self) -> AppConfigSchema:
		"""
		Get the current application configuration.

		Returns:
		    AppConfigSchema: The current configuration

		"""
		return self._app_config

	def config_files(self) -> list[Path]:
		"""
		Return the configuration files to read, lowest precedence first.

		Raises:
		    ConfigFileNotFoundError: If an explicit configuration file does not exist

		"""
		files: list[Path] = []
		user_config = Path(xdg_config_home) / "colorvars" / "config.yml"
		if user_config.exists():
			files.append(user_config)

		if self._config_file is not None:
			path = self._config_file.expanduser().resolve()
			if not path.exists():
				msg = f"Configuration file not found: {path}"
				raise ConfigFileNotFoundError(msg)
			files.append(path)
		else:
			workspace_config = self.repo_root / CONFIG_FILE_NAME
			if workspace_config.exists():
				files.append(workspace_config)
		return files

	@staticmethod
	def _parse_yaml_file(file_path: Path) -> dict[str, Any]:
		"""
		Parse a YAML file.

		Args:
		    file_path: Path to the YAML file to parse

		Returns:
		    Parsed YAML content as a dictionary

		Raises:
		    ConfigParsingError: If the file cannot be read or is not a YAML mapping

		"""
		try:
			with file_path.open(encoding="utf-8") as f:
				content = yaml.safe_load(f)
		except (OSError, yaml.YAMLError) as e:
			msg = f"Error reading configuration file {file_path}: {e}"
			logger.exception(msg)
			raise ConfigParsingError(msg) from e
		if content is None:
			return {}
		if not isinstance(content, dict):
			msg = f"Configuration file {file_path} does not contain a valid YAML dictionary"
			raise ConfigParsingError(msg)
		return content

	def _load_config(self) -> AppConfigSchema:
		merged: dict[str, Any] = {}
		for path in self.config_files():
			self._merge_configs(merged, self._parse_yaml_file(path))
			logger.info("Loaded configuration from %s", path)
		self._merge_configs(merged, self._environment_overrides())
		return self.validate(merged)

	def validate(self, data: dict[str, Any]) -> AppConfigSchema:
		"""
		Validate raw settings, replacing invalid values with their defaults.

		Args:
		    data: Raw nested settings

		Returns:
		    AppConfigSchema: Validated configuration

		"""
		data = copy.deepcopy(data)
		# Every round removes at least one offending key
		while True:
			try:
				return AppConfigSchema.model_validate(data)
			except ValidationError as e:
				removed = False
				for error in e.errors():
					location = [str(part) for part in error["loc"]]
					self._report(".".join(location), error.get("input"), error["msg"])
					removed = self._drop_key(data, location) or removed
				if not removed:
					logger.warning("Falling back to the default configuration")
					return AppConfigSchema()

	def _report(self, key: str, value: Any, reason: str) -> None:  # noqa: ANN401
		error = SettingsValidationError(key, value, reason)
		if self.error_handler is not None:
			self.error_handler.handle_settings_validation_error(error)
		else:
			logger.warning("%s; using the default value", error.message)

	@staticmethod
	def _drop_key(data: dict[str, Any], location: list[str]) -> bool:
		# List items are dropped together with their list
		target: Any = data
		for index, part in enumerate(location):
			if not isinstance(target, dict) or part not in target:
				return False
			if index == len(location) - 1 or not isinstance(target[part], dict):
				del target[part]
				return True
			target = target[part]
		return False

	def _environment_overrides(self) -> dict[str, Any]:
		environ = self._environ if self._environ is not None else os.environ
		overrides: dict[str, Any] = {}
		for name, raw in environ.items():
			if not name.startswith(ENV_PREFIX):
				continue
			key = name[len(ENV_PREFIX) :].lower()
			try:
				value = yaml.safe_load(raw)
			except yaml.YAMLError:
				value = raw
			section = next((s for s in SECTIONS if key.startswith(f"{s}_")), None)
			if section is None:
				overrides[key] = value
			else:
				overrides.setdefault(section, {})[key[len(section) + 1 :]] = value
			logger.debug("Applying environment override %s", name)
		return overrides

	def _merge_configs(self, base: dict[str, Any], override: dict[str, Any]) -> None:
		"""
		Recursively merge two configuration dictionaries.

		Args:
		    base: Base configuration dictionary to merge into
		    override: Override configuration to apply

		"""
		for key, value in override.items():
			if isinstance(value, dict) and key in base and isinstance(base[key], dict):
				self._merge_configs(base[key], value)
			else:
				base[key] = value
