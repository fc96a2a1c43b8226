"""In-memory document implementation."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

from colorvars.documents.base import TextLine

if TYPE_CHECKING:
	from colorvars.models import Range

LANGUAGE_IDS = {
	".css": "css",
	".scss": "scss",
	".sass": "sass",
	".less": "less",
}


def language_for_path(path: str | Path) -> str:
	"""Return the language identifier for a file name, ``plaintext`` when unknown."""
	return LANGUAGE_IDS.get(Path(path).suffix.lower(), "plaintext")


def path_to_uri(path: str | Path) -> str:
	"""Convert a filesystem path into a ``file://`` URI."""
	return Path(path).resolve().as_uri()


def uri_to_path(uri: str) -> Path:
	"""
	Convert a ``file://`` URI back into a path.

	Plain paths are accepted as well and returned unchanged.

	"""
	parsed = urlparse(uri)
	if parsed.scheme == "file":
		return Path(unquote(parsed.path))
	return Path(uri)


class TextDocument:
	"""
	A document held in memory.

	Instances are treated as immutable snapshots: :meth:`update` returns a new
	document carrying the next version number.

	"""

	def __init__(self, uri: str, text: str, language_id: str | None = None, version: int = 1) -> None:
		"""
		Initialize the document.

		Args:
		    uri: Stable identifier of the document
		    text: Full document text
		    language_id: Language identifier, inferred from the URI when omitted
		    version: Version number of this snapshot

		"""
		self._uri = uri
		self._text = text
		self._language_id = language_id or language_for_path(uri_to_path(uri))
		self._version = version
		self._lines = text.split("\n")

	@classmethod
	def from_path(cls, path: str | Path, version: int = 1) -> TextDocument:
		"""Read a document from disk."""
		file_path = Path(path)
		text = file_path.read_text(encoding="utf-8")
		return cls(path_to_uri(file_path), text, language_for_path(file_path), version)

	@property
	def uri(self) -> str:
		"""The document URI."""
		return self._uri

	@property
	def language_id(self) -> str:
		"""The language identifier (``css``, ``scss``, ``sass``...)."""
		return self._language_id

	@property
	def version(self) -> int:
		"""The version of this snapshot."""
		return self._version

	@property
	def line_count(self) -> int:
		"""Number of lines, an empty document has one empty line."""
		return len(self._lines)

	def get_text(self, range: Range | None = None) -> str:  # noqa: A002
		"""
		Return the document text, or the text inside ``range``.

		Positions past the end of a line or of the document are clamped.

		"""
		if range is None:
			return self._text
		start = self._offset(range.start.line, range.start.character)
		end = self._offset(range.end.line, range.end.character)
		return self._text[start:end]

	def line_at(self, line: int) -> TextLine:
		"""
		Return a single line.

		Raises:
		    IndexError: If ``line`` is outside the document

		"""
		if line < 0 or line >= len(self._lines):
			msg = f"Line {line} is outside the document ({len(self._lines)} lines)"
			raise IndexError(msg)
		return TextLine(line, self._lines[line].rstrip("\r"))

	def update(self, text: str) -> TextDocument:
		"""Return the next version of this document with new text."""
		return TextDocument(self._uri, text, self._language_id, self._version + 1)

	def _offset(self, line: int, character: int) -> int:
		if line >= len(self._lines):
			return len(self._text)
		line = max(line, 0)
		offset = sum(len(text) + 1 for text in self._lines[:line])
		return offset + max(0, min(character, len(self._lines[line])))

	def __repr__(self) -> str:
		"""Return a short representation."""
		return f"TextDocument(uri={self._uri!r}, language_id={self._language_id!r}, version={self._version})"
