"""Global test fixtures and configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from colorvars.config import ResolverConfigSchema
from colorvars.documents import FileSystemDocumentOpener, FileSystemEnumerator, TextDocument, path_to_uri
from colorvars.errors import ErrorHandler
from colorvars.resolver import VariableResolver

if TYPE_CHECKING:
	from collections.abc import Callable
	from pathlib import Path


@pytest.fixture
def make_document() -> Callable[..., TextDocument]:
	"""Factory creating in-memory documents; the language follows the file name."""

	def factory(text: str, name: str = "theme.css", version: int = 1) -> TextDocument:
		return TextDocument(f"file:///workspace/{name}", text, version=version)

	return factory


@pytest.fixture
def error_handler() -> ErrorHandler:
	"""A fresh error handler per test."""
	return ErrorHandler()


@pytest.fixture
def resolver(error_handler: ErrorHandler) -> VariableResolver:
	"""A resolver limited to the document itself."""
	return VariableResolver(config=ResolverConfigSchema(scope="file"), error_handler=error_handler)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
	"""An empty workspace directory."""
	root = tmp_path / "workspace"
	root.mkdir()
	return root


@pytest.fixture
def workspace_resolver(workspace: Path, error_handler: ErrorHandler) -> VariableResolver:
	"""A resolver reading imports and workspace files from ``workspace``."""
	return VariableResolver(
		config=ResolverConfigSchema(),
		error_handler=error_handler,
		file_enumerator=FileSystemEnumerator(workspace),
		document_opener=FileSystemDocumentOpener(),
		workspace_root=workspace,
	)


@pytest.fixture
def write_stylesheet(workspace: Path) -> Callable[[str, str], TextDocument]:
	"""Write a stylesheet into the workspace and return it as a document."""

	def factory(relative_path: str, text: str) -> TextDocument:
		path = workspace / relative_path
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text(text, encoding="utf-8")
		return TextDocument(path_to_uri(path), text)

	return factory
