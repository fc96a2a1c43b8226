"""Document sources, workspace enumeration and document opening."""

from colorvars.documents.base import DocumentOpener, DocumentSource, FileEnumerator, TextLine
from colorvars.documents.filesystem import FileSystemDocumentOpener, FileSystemEnumerator, expand_braces
from colorvars.documents.text_document import TextDocument, language_for_path, path_to_uri, uri_to_path

__all__ = [
	"DocumentOpener",
	"DocumentSource",
	"FileEnumerator",
	"FileSystemDocumentOpener",
	"FileSystemEnumerator",
	"TextDocument",
	"TextLine",
	"expand_braces",
	"language_for_path",
	"path_to_uri",
	"uri_to_path",
]
