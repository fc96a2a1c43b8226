"""Filesystem-backed workspace enumeration and document opening."""

from __future__ import annotations

import asyncio
import logging
import os
import re
from pathlib import Path

import aiofiles
import aiofiles.os
import pathspec
from pathspec.patterns.gitwildmatch import GitWildMatchPattern

from colorvars.documents.text_document import TextDocument, language_for_path, path_to_uri, uri_to_path

logger = logging.getLogger(__name__)

_BRACES = re.compile(r"\{([^{}]*)\}")


def expand_braces(pattern: str) -> list[str]:
	"""
	Expand ``{a,b}`` alternatives of a glob into separate patterns.

	Args:
	    pattern: Glob pattern such as ``**/*.{css,scss}``

	Returns:
	    list[str]: Patterns without brace groups

	"""
	match = _BRACES.search(pattern)
	if not match:
		return [pattern]
	head, tail = pattern[: match.start()], pattern[match.end() :]
	expanded: list[str] = []
	for option in match.group(1).split(","):
		expanded.extend(expand_braces(f"{head}{option}{tail}"))
	return expanded


class FileSystemEnumerator:
	"""Finds workspace files by walking a root directory."""

	def __init__(self, root: str | Path) -> None:
		"""
		Initialize the enumerator.

		Args:
		    root: Workspace root directory

		"""
		self.root = Path(root).resolve()

	async def find_files(self, pattern: str, exclude_pattern: str | None, max_results: int) -> list[str]:
		"""
		Find files below the root matching ``pattern``.

		The walk runs in a worker thread so the event loop stays responsive.

		Args:
		    pattern: Glob of files to include, brace groups are supported
		    exclude_pattern: Glob of files to leave out
		    max_results: Upper bound on the number of returned URIs

		Returns:
		    list[str]: File URIs, in a stable (sorted walk) order

		"""
		return await asyncio.to_thread(self._walk, pattern, exclude_pattern, max_results)

	def _walk(self, pattern: str, exclude_pattern: str | None, max_results: int) -> list[str]:
		include = pathspec.PathSpec.from_lines(GitWildMatchPattern, expand_braces(pattern))
		exclude = (
			pathspec.PathSpec.from_lines(GitWildMatchPattern, expand_braces(exclude_pattern))
			if exclude_pattern
			else None
		)

		results: list[str] = []
		if not self.root.is_dir():
			logger.warning("Workspace root %s is not a directory", self.root)
			return results

		for dirpath, dirnames, filenames in os.walk(self.root):
			dirnames.sort()
			for filename in sorted(filenames):
				file_path = Path(dirpath) / filename
				rel_path = file_path.relative_to(self.root).as_posix()
				if not include.match_file(rel_path):
					continue
				if exclude is not None and exclude.match_file(rel_path):
					continue
				results.append(file_path.as_uri())
				if len(results) >= max_results:
					logger.debug("Reached the workspace file limit of %d", max_results)
					return results
		return results


class FileSystemDocumentOpener:
	"""Opens documents from disk using ``aiofiles``."""

	async def open_text_document(self, uri: str) -> TextDocument:
		"""
		Read a document from disk.

		The file's modification time is used as the document version so that a
		rewritten file never reuses a cached version.

		Args:
		    uri: ``file://`` URI or plain path

		Returns:
		    TextDocument: The document snapshot

		Raises:
		    OSError: If the file does not exist or cannot be read

		"""
		path = uri_to_path(uri)
		stat = await aiofiles.os.stat(path)
		async with aiofiles.open(path, encoding="utf-8") as f:
			text = await f.read()
		return TextDocument(path_to_uri(path), text, language_for_path(path), version=stat.st_mtime_ns)
