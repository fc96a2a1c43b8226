"""Configuration schema and loader."""

from colorvars.config.config_loader import ConfigError, ConfigFileNotFoundError, ConfigLoader, ConfigParsingError
from colorvars.config.config_schema import (
	AnalyzerConfigSchema,
	AppConfigSchema,
	ResolverConfigSchema,
	WatcherConfigSchema,
)

__all__ = [
	"AnalyzerConfigSchema",
	"AppConfigSchema",
	"ConfigError",
	"ConfigFileNotFoundError",
	"ConfigLoader",
	"ConfigParsingError",
	"ResolverConfigSchema",
	"WatcherConfigSchema",
]
