"""
Variable to color resolution.

Resolution order for ``--name``: the local definition, its ``var()`` chain,
then the rest of the workspace. For ``$name``: the local definition and its
chain, then the documents reached through ``@import``/``@use``, then the rest
of the workspace. Every public coroutine runs under the resolution timeout and
returns ``None`` instead of raising.

"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from colorvars.cache import CacheManager
from colorvars.color import ColorValue, CSSColorParser
from colorvars.config import ResolverConfigSchema
from colorvars.errors import (
	ErrorHandler,
	ImportResolutionError,
	InvalidColorValueError,
	VariableNotFoundError,
	VariableResolutionError,
	safe_execute,
	safe_execute_sync,
	with_timeout,
)
from colorvars.models import ImportDeclaration, VariableContext, VariableDefinition, VariableUsage
from colorvars.parsers import CSSParser, SCSSParser, strip_flags
from colorvars.parsers.scss_parser import REFERENCE_PATTERN
from colorvars.resolver.chain import ChainResolver
from colorvars.resolver.imports import BUILTIN_MODULE_PREFIX, ImportResolver, namespaced_lookup
from colorvars.resolver.outcome import Resolved, ResolutionOutcome, Unresolved
from colorvars.resolver.workspace import WorkspaceSearch

if TYPE_CHECKING:
	from collections.abc import Awaitable, Callable

	from colorvars.cache import CacheStats
	from colorvars.color import ColorParser
	from colorvars.documents import DocumentOpener, DocumentSource, FileEnumerator

logger = logging.getLogger(__name__)

SCSS_LANGUAGES = frozenset({"scss", "sass"})
Theme = Literal["light", "dark", "auto"]


@dataclass(frozen=True)
class UsageValidation:
	"""Whether a usage refers to a variable defined in the same document."""

	usage: VariableUsage
	is_valid: bool
	error: str | None = None


def theme_variable_name(name: str, theme: str) -> str:
	"""Return ``--{theme}-name`` / ``${theme}-name`` for a variable name."""
	if name.startswith("--"):
		return f"--{theme}-{name[2:]}"
	if name.startswith("$"):
		return f"${theme}-{name[1:]}"
	return name


class VariableResolver:
	"""Resolves CSS custom properties and SCSS variables to colors."""

	def __init__(
		self,
		config: ResolverConfigSchema | None = None,
		error_handler: ErrorHandler | None = None,
		color_parser: ColorParser | None = None,
		css_parser: CSSParser | None = None,
		scss_parser: SCSSParser | None = None,
		file_enumerator: FileEnumerator | None = None,
		document_opener: DocumentOpener | None = None,
		workspace_root: Path | None = None,
		contexts: CacheManager[VariableContext] | None = None,
		outcomes: CacheManager[ResolutionOutcome] | None = None,
		file_lists: CacheManager[tuple[str, ...]] | None = None,
	) -> None:
		"""
		Initialize the resolver.

		Args:
		    config: Resolver settings
		    error_handler: Receives every failure of a public call
		    color_parser: Turns resolved text into colors
		    css_parser: CSS token extractor
		    scss_parser: SCSS token extractor
		    file_enumerator: Lists workspace files; workspace search is off without it
		    document_opener: Opens imported and workspace files
		    workspace_root: Base of non-relative import paths
		    contexts: Cache of per-document variable contexts
		    outcomes: Cache of workspace search outcomes
		    file_lists: Cache of the workspace file list

		"""
		self.config = config or ResolverConfigSchema()
		self.error_handler = error_handler or ErrorHandler()
		self.color_parser = color_parser or CSSColorParser()
		self.css_parser = css_parser or CSSParser(self.color_parser)
		self.scss_parser = scss_parser or SCSSParser(self.color_parser)
		self.workspace_root = Path(workspace_root) if workspace_root is not None else None

		if contexts is None:
			contexts = CacheManager("variable-contexts", self.config.cache_size, self.config.cache_ttl)
		if outcomes is None:
			outcomes = CacheManager("resolution-outcomes", self.config.cache_size, self.config.cache_ttl)
		if file_lists is None:
			file_lists = CacheManager("workspace-files", 4, self.config.file_list_ttl)
		self.contexts = contexts
		self.outcomes = outcomes
		self.file_lists = file_lists

		self.import_resolver = ImportResolver(document_opener, self.workspace_root) if document_opener else None
		self.workspace = (
			WorkspaceSearch(
				self.config,
				file_enumerator,
				document_opener,
				self._resolve_in_document,
				self.outcomes,
				self.file_lists,
			)
			if file_enumerator is not None and document_opener is not None
			else None
		)

	# Extraction

	def find_variable_definitions(self, document: DocumentSource) -> list[VariableDefinition]:
		"""
		Find the variable definitions of a document, in declaration order.

		CSS documents are scanned for custom properties only; SCSS documents and
		documents of any other language for both syntaxes.

		"""
		text = document.get_text()
		if document.language_id == "css":
			return self.css_parser.find_variable_definitions(text)
		definitions = self.scss_parser.find_variable_definitions(text) + self.css_parser.find_variable_definitions(text)
		definitions.sort(key=lambda d: (d.range.start.line, d.range.start.character))
		return definitions

	def find_variable_usages(self, document: DocumentSource) -> list[VariableUsage]:
		"""Find the variable usages of a document, in source order."""
		text = document.get_text()
		if document.language_id == "css":
			return self.css_parser.find_variable_usages(text)
		usages = self.scss_parser.find_variable_usages(text) + self.css_parser.find_variable_usages(text)
		usages.sort(key=lambda u: (u.range.start.line, u.range.start.character))
		return usages

	def build_variable_context(self, document: DocumentSource) -> VariableContext:
		"""
		Build the variable index of a document.

		Later definitions replace earlier ones, except that an SCSS definition
		flagged ``!default`` never replaces an existing one.

		"""
		definitions: dict[str, VariableDefinition] = {}
		for definition in self.find_variable_definitions(document):
			if definition.name in definitions and "!default" in definition.value:
				continue
			definitions[definition.name] = definition

		imports: list[ImportDeclaration] = []
		if document.language_id in SCSS_LANGUAGES:
			imports = self.scss_parser.find_all_imports(document.get_text())

		return VariableContext(
			definitions=definitions,
			usages=self.find_variable_usages(document),
			imports=imports,
			scope=self.config.scope,
		)

	def get_variable_context(self, document: DocumentSource) -> VariableContext:
		"""Return the cached context of this document version, building it on first use."""
		key = self._context_key(document)
		context = self.contexts.get(key)
		if context is None:
			prefix = f"{document.uri}@"
			self.contexts.invalidate_where(lambda k, _: k.startswith(prefix))
			context = self.build_variable_context(document)
			self.contexts.set(key, context)
		return context

	def find_variable_references(self, name: str, document: DocumentSource) -> list[VariableUsage]:
		"""Return every usage of ``name`` in the document."""
		return [usage for usage in self.get_variable_context(document).usages if usage.name == name]

	def is_variable_defined(self, name: str, document: DocumentSource) -> bool:
		"""Return True if the document defines ``name``."""
		return name in self.get_variable_context(document).definitions

	def get_variable_definition(self, name: str, document: DocumentSource) -> VariableDefinition | None:
		"""Return the effective definition of ``name``, or ``None``."""
		return self.get_variable_context(document).definitions.get(name)

	def validate_variable_usage(self, document: DocumentSource) -> list[UsageValidation]:
		"""Check that every usage refers to a variable defined in the document."""
		context = self.get_variable_context(document)
		results = []
		for usage in context.usages:
			if usage.name in context.definitions:
				results.append(UsageValidation(usage=usage, is_valid=True))
			else:
				results.append(
					UsageValidation(usage=usage, is_valid=False, error=f"Variable '{usage.name}' is not defined")
				)
		return results

	def extract_colors_from_variables(self, document: DocumentSource) -> list[tuple[VariableDefinition, ColorValue]]:
		"""Pair each definition with its locally resolved color, leaving out definitions that do not resolve."""
		results = []
		for definition in self.find_variable_definitions(document):
			color = self.resolve_locally(definition.name, document)
			if color is not None:
				results.append((definition, color))
		return results

	# Resolution

	def resolve_locally(self, name: str, document: DocumentSource) -> ColorValue | None:
		"""
		Resolve a variable from the document alone, without any I/O.

		Returns:
		    The color, or ``None`` when the variable is undefined or not a color

		"""
		return safe_execute_sync(
			lambda: self._resolve_in_context(name, self.get_variable_context(document)),
			None,
			self.error_handler,
			f"resolve_locally({name})",
		)

	async def resolve_css_variable(self, name: str, document: DocumentSource) -> ColorValue | None:
		"""Resolve a ``--name`` custom property."""
		return await self._public(self._resolve_css(name, document), f"resolve_css_variable({name})")

	async def resolve_scss_variable(self, name: str, document: DocumentSource) -> ColorValue | None:
		"""Resolve a ``$name`` SCSS variable."""
		return await self._public(self._resolve_scss(name, document), f"resolve_scss_variable({name})")

	async def resolve_variable(self, name: str, document: DocumentSource) -> ColorValue | None:
		"""Resolve a variable of either syntax, dispatching on its prefix."""
		if name.startswith("--"):
			return await self.resolve_css_variable(name, document)
		if name.startswith("$"):
			return await self.resolve_scss_variable(name, document)
		logger.debug("'%s' is not a variable name", name)
		return None

	async def resolve_variable_with_fallback(
		self, name: str, fallback: str | None, document: DocumentSource
	) -> ColorValue | None:
		"""
		Resolve a variable, falling back to ``fallback`` when it does not resolve.

		The fallback is used as a literal color when possible; otherwise every
		``var()`` call and ``$name`` token inside it is resolved and substituted
		before the text is parsed.

		"""
		color = await self.resolve_variable(name, document)
		if color is not None:
			return color
		if not fallback:
			return None
		literal = self.color_parser.from_string(fallback)
		if literal.is_valid:
			return literal
		if "var(" not in fallback and "$" not in fallback:
			return None
		return await self._public(self._resolve_fallback_text(fallback, document), f"resolve_fallback({fallback})")

	async def resolve_variable_with_imports(self, name: str, document: DocumentSource) -> ColorValue | None:
		"""Resolve a variable from the document and, for SCSS documents, its imports; never searches the workspace."""

		async def resolve() -> ColorValue | None:
			context = self.get_variable_context(document)
			if name in context.definitions:
				return self._resolve_in_context(name, context)
			if document.language_id in SCSS_LANGUAGES and name.startswith("$"):
				return await self._resolve_from_imports(name, document, {document.uri}, 0)
			return None

		return await self._public(resolve(), f"resolve_variable_with_imports({name})")

	async def resolve_variable_with_theme(
		self, name: str, document: DocumentSource, theme: Theme | None = None
	) -> ColorValue | None:
		"""
		Resolve the theme-specific variant of a variable first, then the variable itself.

		For ``light`` and ``dark``, ``--name`` is first looked up as
		``--{theme}-name`` and ``$name`` as ``${theme}-name``.

		"""
		if theme in ("light", "dark"):
			color = await self.resolve_variable(theme_variable_name(name, theme), document)
			if color is not None:
				return color
		return await self.resolve_variable(name, document)

	# Cache management

	def invalidate_document(self, uri: str) -> None:
		"""Drop the cached context of a document and the lookups that originated from it."""
		prefix = f"{uri}@"
		suffix = f":{uri}"
		self.contexts.invalidate_where(lambda key, _: key.startswith(prefix))
		self.outcomes.invalidate_where(lambda key, _: key.endswith(suffix))

	def invalidate_file(self, uri: str) -> None:
		"""
		Forget everything a changed file on disk may have affected.

		Besides the document's own entries this drops lookups resolved from the
		file, every negative lookup (the file may now define the variable) and
		the workspace file list.

		"""
		self.invalidate_document(uri)
		self.outcomes.invalidate_where(
			lambda _, outcome: isinstance(outcome, Unresolved)
			or (isinstance(outcome, Resolved) and outcome.source_uri == uri)
		)
		self.file_lists.clear()

	def clear_cache(self) -> None:
		"""Drop every cached context, outcome and file list."""
		self.contexts.clear()
		self.outcomes.clear()
		self.file_lists.clear()

	def get_stats(self) -> dict[str, CacheStats]:
		"""Return the statistics of the resolver caches."""
		return {
			"contexts": self.contexts.get_stats(),
			"outcomes": self.outcomes.get_stats(),
			"file_lists": self.file_lists.get_stats(),
		}

	# Internals

	async def _public(self, awaitable: Awaitable[ColorValue | None], operation: str) -> ColorValue | None:
		return await safe_execute(
			lambda: with_timeout(awaitable, self.config.resolution_timeout, operation),
			None,
			self.error_handler,
			operation,
		)

	@staticmethod
	def _context_key(document: DocumentSource) -> str:
		return f"{document.uri}@{document.version}"

	def _resolve_in_document(self, name: str, document: DocumentSource) -> ColorValue:
		return self._resolve_in_context(name, self.build_variable_context(document))

	def _resolve_in_context(self, name: str, context: VariableContext) -> ColorValue:
		definition = context.definitions.get(name)
		if definition is None:
			raise VariableNotFoundError(name)

		value = strip_flags(definition.value) if name.startswith("$") else definition.value
		color = self.color_parser.from_string(value)
		if color.is_valid:
			return color

		chain = ChainResolver(
			{n: d.value for n, d in context.definitions.items()},
			self.css_parser,
			self.config.max_depth,
		)
		if not chain.references_in(name, value):
			raise InvalidColorValueError(name, context={"value": value})
		substituted = chain.resolve(name)
		color = self.color_parser.from_string(substituted)
		if not color.is_valid:
			raise InvalidColorValueError(name, context={"value": value, "resolved_value": substituted})
		return color

	async def _resolve_css(self, name: str, document: DocumentSource) -> ColorValue | None:
		context = self.get_variable_context(document)
		if name in context.definitions:
			return self._resolve_in_context(name, context)
		return await self._resolve_from_workspace(name, document)

	async def _resolve_scss(self, name: str, document: DocumentSource) -> ColorValue | None:
		context = self.get_variable_context(document)
		if name in context.definitions:
			return self._resolve_in_context(name, context)
		if context.imports:
			color = await self._resolve_from_imports(name, document, {document.uri}, 0)
			if color is not None:
				return color
		return await self._resolve_from_workspace(name, document)

	async def _resolve_from_workspace(self, name: str, document: DocumentSource) -> ColorValue | None:
		if self.config.scope == "file" or self.workspace is None:
			logger.debug("Workspace search disabled; '%s' is unresolved", name)
			return None
		outcome = await self.workspace.search(name, document)
		if isinstance(outcome, Resolved):
			return outcome.color
		logger.debug("Unresolved %s: %s", name, outcome.reason)
		return None

	async def _resolve_from_imports(
		self, name: str, document: DocumentSource, visited: set[str], depth: int
	) -> ColorValue | None:
		if self.import_resolver is None or depth >= self.config.max_depth:
			return None
		for declaration in self.get_variable_context(document).imports:
			if declaration.path.startswith(BUILTIN_MODULE_PREFIX):
				continue
			lookup = namespaced_lookup(name, declaration)
			if lookup is None:
				continue
			try:
				imported = await self.import_resolver.open_import(declaration.path, document)
			except ImportResolutionError as e:
				self.error_handler.handle_variable_resolution_error(e)
				continue
			if imported.uri in visited:
				continue
			visited.add(imported.uri)

			context = self.get_variable_context(imported)
			if lookup in context.definitions:
				try:
					return self._resolve_in_context(lookup, context)
				except VariableResolutionError as e:
					self.error_handler.handle_variable_resolution_error(e)
					continue
			color = await self._resolve_from_imports(lookup, imported, visited, depth + 1)
			if color is not None:
				return color
		return None

	async def _resolve_fallback_text(self, fallback: str, document: DocumentSource) -> ColorValue | None:
		text = fallback
		for call in reversed(self.css_parser.find_var_calls(text)):
			color = await self._resolve_optional(self._resolve_css, call.name, document)
			replacement = color.original if color is not None else call.fallback
			if replacement is not None:
				text = text[: call.start] + replacement + text[call.end :]
		for match in reversed(list(REFERENCE_PATTERN.finditer(text))):
			color = await self._resolve_optional(self._resolve_scss, match.group(0), document)
			if color is not None:
				text = text[: match.start()] + color.original + text[match.end() :]
		color = self.color_parser.from_string(text)
		return color if color.is_valid else None

	async def _resolve_optional(
		self,
		resolve: Callable[[str, DocumentSource], Awaitable[ColorValue | None]],
		name: str,
		document: DocumentSource,
	) -> ColorValue | None:
		try:
			return await resolve(name, document)
		except VariableResolutionError as e:
			self.error_handler.handle_variable_resolution_error(e)
			return None
