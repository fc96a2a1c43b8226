"""Pydantic schema of the ColorVars configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

VENDOR_EXCLUDE_PATTERNS = [
	"**/node_modules/**",
	"**/vendor/**",
	"**/bower_components/**",
	"**/.git/**",
]


class ResolverConfigSchema(BaseModel):
	"""Settings of the variable resolver and its workspace search."""

	max_depth: int = Field(default=10, ge=1, le=100)
	"""Longest reference chain followed before giving up."""

	resolution_timeout: float = Field(default=5.0, gt=0)
	"""Budget in seconds of a single asynchronous resolution."""

	file_list_timeout: float = Field(default=2.0, gt=0)
	"""Budget in seconds of a workspace file enumeration."""

	max_workspace_files: int = Field(default=1000, ge=1)
	batch_size: int = Field(default=10, ge=1)
	max_file_size: int = Field(default=1024 * 1024, ge=1)
	"""Workspace files larger than this many bytes are skipped."""

	file_list_ttl: float = Field(default=30.0, ge=0)
	cache_size: int = Field(default=100, ge=10, le=1000)
	cache_ttl: float = Field(default=30 * 60.0, gt=0)
	scope: Literal["file", "workspace"] = "workspace"
	"""``file`` disables the workspace search."""

	file_pattern: str = "**/*.{css,scss,sass}"
	exclude_patterns: list[str] = Field(default_factory=lambda: list(VENDOR_EXCLUDE_PATTERNS))

	@property
	def exclude_glob(self) -> str | None:
		"""All exclude patterns folded into one brace glob."""
		if not self.exclude_patterns:
			return None
		if len(self.exclude_patterns) == 1:
			return self.exclude_patterns[0]
		return "{" + ",".join(self.exclude_patterns) + "}"


class AnalyzerConfigSchema(BaseModel):
	"""Settings of the incremental analyzer."""

	chunk_lines: int = Field(default=50, ge=1)
	buffer_lines: int = Field(default=5, ge=0)
	background_delay: float = Field(default=0.1, ge=0)
	yield_delay: float = Field(default=0.01, ge=0)
	cache_size: int = Field(default=100, ge=10, le=1000)


class WatcherConfigSchema(BaseModel):
	"""Settings of the workspace file watcher."""

	debounce_delay: float = Field(default=0.3, ge=0.05, le=2.0)
	ignored_patterns: list[str] = Field(default_factory=lambda: list(VENDOR_EXCLUDE_PATTERNS))


class AppConfigSchema(BaseModel):
	"""Root configuration."""

	enabled: bool = True
	enabled_file_types: list[str] = Field(default_factory=lambda: ["css", "scss", "sass"])
	debug_logging: bool = False
	resolver: ResolverConfigSchema = Field(default_factory=ResolverConfigSchema)
	analyzer: AnalyzerConfigSchema = Field(default_factory=AnalyzerConfigSchema)
	watcher: WatcherConfigSchema = Field(default_factory=WatcherConfigSchema)
