"""Workspace-wide variable search."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from colorvars.errors import VariableResolutionError, with_timeout
from colorvars.resolver.outcome import Resolved, ResolutionOutcome, Unresolved

if TYPE_CHECKING:
	from collections.abc import Callable

	from colorvars.cache import CacheManager
	from colorvars.color import ColorValue
	from colorvars.config import ResolverConfigSchema
	from colorvars.documents import DocumentOpener, DocumentSource, FileEnumerator

logger = logging.getLogger(__name__)

FILE_LIST_KEY = "workspace-files"


class WorkspaceSearch:
	"""
	Looks for a variable definition in every stylesheet of the workspace.

	Files are visited in batches with a cooperative pause between batches.
	The first file that resolves the variable wins. Outcomes are cached per
	``name:originating-uri``; the file list is cached with its own TTL.

	"""

	def __init__(
		self,
		config: ResolverConfigSchema,
		file_enumerator: FileEnumerator,
		document_opener: DocumentOpener,
		resolve_in_document: Callable[[str, DocumentSource], ColorValue],
		outcomes: CacheManager[ResolutionOutcome],
		file_lists: CacheManager[tuple[str, ...]],
	) -> None:
		"""
		Initialize the search.

		Args:
		    config: Resolver settings (batch size, limits, timeouts)
		    file_enumerator: Lists the workspace stylesheets
		    document_opener: Opens candidate files
		    resolve_in_document: Resolves a name inside one document, raising
		        :class:`VariableResolutionError` on failure
		    outcomes: Cache of search outcomes
		    file_lists: Cache of the workspace file list

		"""
		self.config = config
		self.file_enumerator = file_enumerator
		self.document_opener = document_opener
		self.resolve_in_document = resolve_in_document
		self.outcomes = outcomes
		self.file_lists = file_lists

	@staticmethod
	def cache_key(name: str, document_uri: str) -> str:
		"""Return the outcome cache key of a lookup."""
		return f"{name}:{document_uri}"

	async def search(self, name: str, document: DocumentSource) -> ResolutionOutcome:
		"""
		Search the workspace for ``name``, skipping ``document`` itself.

		Args:
		    name: Variable to look for
		    document: The document the lookup originates from

		Returns:
		    ResolutionOutcome: Cached or freshly computed outcome

		Raises:
		    PerformanceTimeoutError: If the search exceeds the resolution timeout

		"""
		key = self.cache_key(name, document.uri)
		cached = self.outcomes.get(key)
		if cached is not None:
			logger.debug("Workspace outcome for %s served from cache", key)
			return cached

		outcome = await with_timeout(
			self._scan(name, document),
			self.config.resolution_timeout,
			f"workspace search for {name}",
		)
		self.outcomes.set(key, outcome)
		return outcome

	async def get_workspace_files(self) -> tuple[str, ...]:
		"""
		Return the workspace stylesheet URIs, enumerating them when the cached list expired.

		Raises:
		    PerformanceTimeoutError: If enumeration exceeds the file list timeout

		"""
		cached = self.file_lists.get(FILE_LIST_KEY)
		if cached is not None:
			return cached
		files = await with_timeout(
			self.file_enumerator.find_files(
				self.config.file_pattern,
				self.config.exclude_glob,
				self.config.max_workspace_files,
			),
			self.config.file_list_timeout,
			"workspace file enumeration",
		)
		result = tuple(files[: self.config.max_workspace_files])
		self.file_lists.set(FILE_LIST_KEY, result)
		logger.debug("Enumerated %d workspace stylesheets", len(result))
		return result

	async def _scan(self, name: str, document: DocumentSource) -> ResolutionOutcome:
		files = await self.get_workspace_files()
		batch_size = self.config.batch_size
		for start in range(0, len(files), batch_size):
			for uri in files[start : start + batch_size]:
				if uri == document.uri:
					continue
				color = await self._resolve_in_file(name, uri)
				if color is not None:
					logger.debug("Resolved %s in workspace file %s", name, uri)
					return Resolved(color=color, source_uri=uri)
			await asyncio.sleep(0)
		return Unresolved(f"'{name}' was not found in {len(files)} workspace files")

	async def _resolve_in_file(self, name: str, uri: str) -> ColorValue | None:
		try:
			candidate = await self.document_opener.open_text_document(uri)
		except (OSError, UnicodeDecodeError) as e:
			logger.debug("Skipping unreadable workspace file %s: %s", uri, e)
			return None
		if len(candidate.get_text().encode("utf-8")) > self.config.max_file_size:
			logger.debug("Skipping large workspace file %s", uri)
			return None
		try:
			return self.resolve_in_document(name, candidate)
		except VariableResolutionError:
			return None
