"""Token extractor for SCSS variables, imports and interpolation."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from colorvars.models import ImportDeclaration, Range, UsageKind, VariableDefinition, VariableKind, VariableUsage
from colorvars.parsers.base import BaseParser, iter_lines

logger = logging.getLogger(__name__)

USAGE_PATTERN = re.compile(r"\$([a-zA-Z0-9_-]+)\b")
REFERENCE_PATTERN = re.compile(r"\$([a-zA-Z0-9_-]+)")
DEFINITION_AT = re.compile(r"\$[a-zA-Z0-9_-]+\s*:")
IMPORT_PATTERN = re.compile(r"""@import\s+['"]([^'"]+)['"];?""")
USE_PATTERN = re.compile(r"""@use\s+['"]([^'"]+)['"](?:\s+as\s+([a-zA-Z0-9_*-]+))?;?""")
INTERPOLATION_PATTERN = re.compile(r"#\{\s*(\$[a-zA-Z0-9_-]+)\s*\}")
FLAG_PATTERN = re.compile(r"\s*!(default|global)\b")


@dataclass(frozen=True)
class DefaultedDefinition:
	"""A definition together with whether it carries the ``!default`` flag."""

	definition: VariableDefinition
	has_default: bool


def strip_flags(value: str) -> str:
	"""Remove ``!default`` and ``!global`` flags from a definition value."""
	return FLAG_PATTERN.sub("", value).strip()


class SCSSParser(BaseParser):
	"""Finds ``$name: value;`` definitions, ``$name`` usages, imports and color literals."""

	definition_pattern = re.compile(r"\$([a-zA-Z0-9_-]+)\s*:\s*([^;]+);")
	name_prefix = "$"
	definition_kind = VariableKind.SCSS_VARIABLE
	parser_type = "scss"

	def is_comment_line(self, line: str) -> bool:
		"""Return True for ``//`` and ``/*`` lines and lines opening an unclosed block comment."""
		trimmed = line.strip()
		return trimmed.startswith(("//", "/*")) or ("/*" in trimmed and "*/" not in trimmed)

	def find_variable_usages(self, text: str) -> list[VariableUsage]:
		"""
		Find ``$name`` tokens that are not the left-hand side of a definition.

		Tokens inside ``#{...}`` interpolation are reported as well.

		Args:
		    text: Text to scan

		Returns:
		    list[VariableUsage]: Usages in source order

		"""
		usages: list[VariableUsage] = []
		for line_number, line in iter_lines(text):
			if self.is_comment_line(line):
				continue
			for match in USAGE_PATTERN.finditer(line):
				if DEFINITION_AT.match(line, match.start()):
					continue
				usages.append(
					VariableUsage(
						name=match.group(0),
						range=Range.on_line(line_number, match.start(), match.end()),
						kind=UsageKind.SCSS_VARIABLE,
					)
				)
		return usages

	def extract_references(self, value: str) -> list[str]:
		"""Return the ``$`` variables referenced by ``value``."""
		names: list[str] = []
		for match in REFERENCE_PATTERN.finditer(value):
			if match.group(0) not in names:
				names.append(match.group(0))
		return names

	def find_interpolated_variables(self, text: str) -> list[VariableUsage]:
		"""Find variables used inside ``#{...}`` interpolation."""
		usages: list[VariableUsage] = []
		for line_number, line in iter_lines(text):
			if self.is_comment_line(line):
				continue
			for match in INTERPOLATION_PATTERN.finditer(line):
				usages.append(
					VariableUsage(
						name=match.group(1),
						range=Range.on_line(line_number, match.start(1), match.end(1)),
						kind=UsageKind.SCSS_VARIABLE,
					)
				)
		return usages

	def find_imports(self, text: str) -> list[ImportDeclaration]:
		"""Find ``@import 'path';`` statements."""
		imports: list[ImportDeclaration] = []
		for line_number, line in iter_lines(text):
			if self.is_comment_line(line):
				continue
			imports.extend(
				ImportDeclaration(
					path=match.group(1),
					range=Range.on_line(line_number, match.start(), match.end()),
					kind="import",
				)
				for match in IMPORT_PATTERN.finditer(line)
			)
		return imports

	def find_use_statements(self, text: str) -> list[ImportDeclaration]:
		"""Find ``@use 'path' [as alias];`` statements."""
		statements: list[ImportDeclaration] = []
		for line_number, line in iter_lines(text):
			if self.is_comment_line(line):
				continue
			statements.extend(
				ImportDeclaration(
					path=match.group(1),
					range=Range.on_line(line_number, match.start(), match.end()),
					alias=match.group(2),
					kind="use",
				)
				for match in USE_PATTERN.finditer(line)
			)
		return statements

	def find_all_imports(self, text: str) -> list[ImportDeclaration]:
		"""Return ``@import`` and ``@use`` statements together, in source order."""
		declarations = self.find_imports(text) + self.find_use_statements(text)
		declarations.sort(key=lambda d: (d.range.start.line, d.range.start.character))
		return declarations

	def find_undefined_variables(self, text: str) -> list[str]:
		"""Return variables that are used but never defined in ``text``."""
		return self.find_undefined(text)

	def find_variable_definitions_with_defaults(self, text: str) -> list[DefaultedDefinition]:
		"""Return every definition flagged with whether it uses ``!default``."""
		return [
			DefaultedDefinition(definition=definition, has_default="!default" in definition.value)
			for definition in self.find_variable_definitions(text)
		]

	def analyze_variable_references(self, text: str) -> dict[str, list[str]]:
		"""
		Map each defined variable to the variables its value references.

		Self references are left out. When a variable is defined more than
		once, the last definition wins.

		"""
		references: dict[str, list[str]] = {}
		for definition in self.find_variable_definitions(text):
			references[definition.name] = [
				name for name in self.extract_references(definition.value) if name != definition.name
			]
		return references
