"""Facade wiring configuration, caches, resolver, graph utilities and analyzer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from colorvars.analysis import IncrementalAnalyzer, VariableGraph
from colorvars.cache import CacheManager
from colorvars.color import CSSColorParser
from colorvars.config import ConfigLoader
from colorvars.documents import FileSystemDocumentOpener, FileSystemEnumerator, path_to_uri
from colorvars.errors import ErrorHandler
from colorvars.models import Position, Range
from colorvars.parsers import CSSParser, SCSSParser
from colorvars.resolver import VariableResolver
from colorvars.watcher import ChangeKind, FileWatcher

if TYPE_CHECKING:
	from colorvars.analysis import AnalysisResult, TextChange
	from colorvars.color import ColorValue
	from colorvars.config import AppConfigSchema
	from colorvars.documents import DocumentOpener, DocumentSource, FileEnumerator
	from colorvars.resolver.variable_resolver import Theme

logger = logging.getLogger(__name__)


class ColorVariableEngine:
	"""
	Entry point for editors and the CLI.

	Owns one instance of every component and its caches. Documents whose
	language is not enabled are ignored by the analysis and resolution calls.

	"""

	def __init__(
		self,
		workspace_root: str | Path | None = None,
		config: AppConfigSchema | None = None,
		config_loader: ConfigLoader | None = None,
		error_handler: ErrorHandler | None = None,
		file_enumerator: FileEnumerator | None = None,
		document_opener: DocumentOpener | None = None,
	) -> None:
		"""
		Initialize the engine.

		Args:
		    workspace_root: Root of the workspace, defaults to the current directory
		    config: Configuration to use instead of loading one
		    config_loader: Loader used when ``config`` is not given
		    error_handler: Shared error handler
		    file_enumerator: Workspace file lister, defaults to the file system
		    document_opener: Document reader, defaults to the file system

		"""
		self.workspace_root = Path(workspace_root or Path.cwd()).resolve()
		self.error_handler = error_handler or ErrorHandler()
		if config is None:
			loader = config_loader or ConfigLoader(repo_root=self.workspace_root, error_handler=self.error_handler)
			config = loader.get
		self.config = config
		self.file_enumerator = file_enumerator or FileSystemEnumerator(self.workspace_root)
		self.document_opener = document_opener or FileSystemDocumentOpener()
		self.documents: dict[str, DocumentSource] = {}
		self._build_components()

	def _build_components(self) -> None:
		resolver_config = self.config.resolver
		self.color_parser = CSSColorParser()
		self.css_parser = CSSParser(self.color_parser)
		self.scss_parser = SCSSParser(self.color_parser)
		self.resolver = VariableResolver(
			config=resolver_config,
			error_handler=self.error_handler,
			color_parser=self.color_parser,
			css_parser=self.css_parser,
			scss_parser=self.scss_parser,
			file_enumerator=self.file_enumerator,
			document_opener=self.document_opener,
			workspace_root=self.workspace_root,
		)
		self.graph = VariableGraph(self.resolver)
		self.analyzer = IncrementalAnalyzer(
			self.css_parser,
			self.scss_parser,
			self.config.analyzer,
			CacheManager("analysis-results", self.config.analyzer.cache_size, ttl=None),
			self.error_handler,
		)
		if self.config.debug_logging:
			logging.getLogger("colorvars").setLevel(logging.DEBUG)

	def is_enabled_for(self, document: DocumentSource) -> bool:
		"""Return True if the engine is enabled and handles the document's language."""
		return self.config.enabled and document.language_id in self.config.enabled_file_types

	async def open_document(self, path_or_uri: str | Path) -> DocumentSource:
		"""
		Open a document and keep track of it.

		Args:
		    path_or_uri: File path or ``file://`` URI

		Returns:
		    DocumentSource: The opened document

		Raises:
		    OSError: If the document cannot be read

		"""
		uri = path_or_uri if isinstance(path_or_uri, str) and path_or_uri.startswith("file://") else path_to_uri(path_or_uri)
		document = await self.document_opener.open_text_document(uri)
		previous = self.documents.get(document.uri)
		if previous is not None and previous.version != document.version:
			self.resolver.invalidate_document(document.uri)
		self.documents[document.uri] = document
		return document

	def analyze_document(
		self, document: DocumentSource, visible_ranges: list[Range] | None = None
	) -> AnalysisResult | None:
		"""
		Analyze the visible part of a document, or all of it.

		Args:
		    document: The document to analyze
		    visible_ranges: Ranges on screen; the whole document when omitted

		Returns:
		    The analysis, or ``None`` for documents the engine does not handle

		"""
		if not self.is_enabled_for(document):
			logger.debug("Skipping analysis of %s (%s)", document.uri, document.language_id)
			return None
		if visible_ranges is None:
			last_line = document.line_count - 1
			visible_ranges = [Range(Position(0, 0), Position(last_line, len(document.line_at(last_line).text)))]
		return self.analyzer.analyze_visible_regions(document, visible_ranges)

	def apply_changes(self, document: DocumentSource, changes: list[TextChange]) -> AnalysisResult | None:
		"""Update the analysis of an edited document and drop its stale resolution state."""
		if not self.is_enabled_for(document):
			return None
		self.documents[document.uri] = document
		self.resolver.invalidate_document(document.uri)
		return self.analyzer.process_incremental_change(document, changes)

	async def resolve(
		self,
		name: str,
		document: DocumentSource,
		fallback: str | None = None,
		theme: Theme | None = None,
	) -> ColorValue | None:
		"""
		Resolve a variable to a color.

		Args:
		    name: ``--name`` or ``$name``
		    document: The document the lookup originates from
		    fallback: Fallback text used when the variable does not resolve
		    theme: Look up the ``light``/``dark`` variant first

		Returns:
		    The color, or ``None``

		"""
		if not self.is_enabled_for(document):
			return None
		if theme is not None:
			color = await self.resolver.resolve_variable_with_theme(name, document, theme)
			if color is not None or not fallback:
				return color
		return await self.resolver.resolve_variable_with_fallback(name, fallback, document)

	def close_document(self, uri: str) -> None:
		"""Forget a document and everything cached for it."""
		self.documents.pop(uri, None)
		self.resolver.invalidate_document(uri)
		self.analyzer.invalidate_document(uri)

	def update_config(self, config: AppConfigSchema) -> None:
		"""
		Replace the configuration.

		Every cache is cleared since settings change resolution behavior.

		"""
		self.resolver.clear_cache()
		self.analyzer.clear_cache()
		self.config = config
		self._build_components()
		logger.info("Configuration updated; caches cleared")

	async def on_file_changed(self, path: Path, kind: ChangeKind) -> None:
		"""Invalidate the caches that may depend on a file changed on disk."""
		uri = path_to_uri(path)
		logger.debug("File %s: %s", kind.value, uri)
		self.resolver.invalidate_file(uri)
		self.analyzer.invalidate_document(uri)
		if kind is ChangeKind.DELETED:
			self.documents.pop(uri, None)

	def create_watcher(self) -> FileWatcher:
		"""Create a watcher over the workspace that feeds :meth:`on_file_changed`."""
		return FileWatcher(
			self.workspace_root,
			self.on_file_changed,
			debounce_delay=self.config.watcher.debounce_delay,
			ignored_patterns=self.config.watcher.ignored_patterns,
		)

	async def watch(self) -> None:
		"""Watch the workspace until cancelled."""
		watcher = self.create_watcher()
		try:
			await watcher.start()
		finally:
			watcher.stop()

	def get_stats(self) -> dict[str, Any]:
		"""Return cache, analyzer and error statistics."""
		return {
			"resolver": self.resolver.get_stats(),
			"analyzer": self.analyzer.get_stats(),
			"errors": self.error_handler.get_error_stats(),
			"open_documents": len(self.documents),
		}
