"""Interfaces the engine consumes from its host."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
	from colorvars.models import Range


@dataclass(frozen=True)
class TextLine:
	"""A single line of a document, without its line terminator."""

	line_number: int
	text: str


@runtime_checkable
class DocumentSource(Protocol):
	"""
	A versioned text document.

	``version`` must increase every time the text changes so that caches keyed
	by ``(uri, version)`` can be trusted.

	"""

	@property
	def uri(self) -> str: ...

	@property
	def language_id(self) -> str: ...

	@property
	def version(self) -> int: ...

	@property
	def line_count(self) -> int: ...

	def get_text(self, range: Range | None = None) -> str: ...  # noqa: A002

	def line_at(self, line: int) -> TextLine: ...


class FileEnumerator(Protocol):
	"""Lists candidate stylesheet files of a workspace."""

	async def find_files(self, pattern: str, exclude_pattern: str | None, max_results: int) -> list[str]:
		"""
		Find files matching a glob pattern.

		Args:
		    pattern: Glob of files to include, e.g. ``**/*.{css,scss}``
		    exclude_pattern: Glob of files to leave out
		    max_results: Upper bound on the number of returned URIs

		Returns:
		    list[str]: Matching document URIs

		"""
		...


class DocumentOpener(Protocol):
	"""Opens documents that are not currently held by the caller."""

	async def open_text_document(self, uri: str) -> DocumentSource:
		"""
		Open a document by URI.

		Raises:
		    OSError: If the document does not exist or cannot be read

		"""
		...
