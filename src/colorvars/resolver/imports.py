"""Locating the stylesheets referenced by ``@import`` and ``@use``."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from colorvars.documents import path_to_uri, uri_to_path
from colorvars.errors import ImportResolutionError

if TYPE_CHECKING:
	from colorvars.documents import DocumentOpener, DocumentSource
	from colorvars.models import ImportDeclaration

logger = logging.getLogger(__name__)

IMPORT_EXTENSIONS = ("", ".scss", ".sass", ".css")
BUILTIN_MODULE_PREFIX = "sass:"


def default_namespace(import_path: str) -> str:
	"""Return the namespace Sass gives an un-aliased ``@use`` (file name without ``_`` or extension)."""
	name = PurePosixPath(import_path).name
	for extension in IMPORT_EXTENSIONS[1:]:
		name = name.removesuffix(extension)
	return name.removeprefix("_")


def namespaced_lookup(name: str, declaration: ImportDeclaration) -> str | None:
	"""
	Translate a requested variable name for one import statement.

	Args:
	    name: Requested name, possibly namespaced as ``$alias.member``
	    declaration: The import statement being searched

	Returns:
	    The name to look up in the imported document, or ``None`` if this
	    statement cannot provide the variable

	"""
	alias = declaration.alias if declaration.kind == "use" else None
	if alias and alias != "*":
		prefix = f"${alias}."
		if not name.startswith(prefix):
			return None
		return f"${name[len(prefix) :]}"
	if "." in name:
		namespace, _, member = name[1:].partition(".")
		if declaration.kind != "use" or namespace != default_namespace(declaration.path):
			return None
		return f"${member}"
	return name


class ImportResolver:
	"""Opens the document an import path refers to."""

	def __init__(self, document_opener: DocumentOpener, workspace_root: Path | None = None) -> None:
		"""
		Initialize the resolver.

		Args:
		    document_opener: Opens candidate files
		    workspace_root: Base directory of non-relative import paths

		"""
		self.document_opener = document_opener
		self.workspace_root = workspace_root

	def candidate_paths(self, import_path: str, document_uri: str) -> list[Path]:
		"""
		List the files an import path may refer to, in lookup order.

		Relative paths (``./``, ``../``) are taken from the importing document's
		directory; other paths from the workspace root first, then the importing
		document's directory. Each base is tried with no extension and with
		``.scss``, ``.sass`` and ``.css``, then as an ``_`` partial.

		"""
		current_dir = uri_to_path(document_uri).parent
		if import_path.startswith(("./", "../")) or self.workspace_root is None:
			bases = [current_dir / import_path]
		else:
			bases = [self.workspace_root / import_path]
			if self.workspace_root.resolve() != current_dir.resolve():
				bases.append(current_dir / import_path)

		candidates: list[Path] = []
		for base in bases:
			candidates.extend(base.with_name(f"{base.name}{extension}") for extension in IMPORT_EXTENSIONS)
			candidates.extend(base.with_name(f"_{base.name}{extension}") for extension in IMPORT_EXTENSIONS)
		return candidates

	async def open_import(self, import_path: str, document: DocumentSource) -> DocumentSource:
		"""
		Open the document referenced by an import.

		Args:
		    import_path: Path as written in the import statement
		    document: The importing document

		Returns:
		    DocumentSource: The first candidate that could be opened

		Raises:
		    ImportResolutionError: If no candidate exists

		"""
		candidates = self.candidate_paths(import_path, document.uri)
		for candidate in candidates:
			try:
				return await self.document_opener.open_text_document(path_to_uri(candidate))
			except (OSError, UnicodeDecodeError):
				continue
		raise ImportResolutionError(
			import_path,
			f"No stylesheet found for import '{import_path}'",
			context={"document_uri": document.uri, "candidates": [str(c) for c in candidates]},
		)
