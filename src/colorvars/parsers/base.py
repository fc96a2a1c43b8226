"""
Shared scanning logic for the CSS and SCSS token extractors.

Extraction is pattern based and works one physical line at a time. Lines
that look like comments are skipped entirely, which only approximates
block comments: the lines between ``/*`` and ``*/`` are still scanned.

"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, ClassVar

from colorvars.color import CSSColorParser
from colorvars.models import ColorMatch, ParseResult, Range, VariableDefinition, VariableKind, VariableUsage

if TYPE_CHECKING:
	from collections.abc import Iterator

	from colorvars.color import ColorParser
	from colorvars.documents import DocumentSource

logger = logging.getLogger(__name__)

NAMED_COLORS = (
	"black",
	"white",
	"red",
	"green",
	"blue",
	"yellow",
	"cyan",
	"magenta",
	"silver",
	"gray",
	"grey",
	"maroon",
	"olive",
	"lime",
	"aqua",
	"teal",
	"navy",
	"fuchsia",
	"purple",
	"orange",
	"transparent",
)

COLOR_PATTERNS: tuple[re.Pattern[str], ...] = (
	re.compile(r"#([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{4}|[0-9a-fA-F]{8})\b"),
	re.compile(r"rgba?\(\s*([^)]+)\s*\)"),
	re.compile(r"hsla?\(\s*([^)]+)\s*\)"),
	# Not part of an identifier such as --red-500 or $blue
	re.compile(rf"(?<![\w$.-])({'|'.join(NAMED_COLORS)})(?![\w-])"),
)


def has_balanced_parens(value: str) -> bool:
	"""Return True if every ``(`` in ``value`` is closed, in order."""
	depth = 0
	for char in value:
		if char == "(":
			depth += 1
		elif char == ")":
			depth -= 1
			if depth < 0:
				return False
	return depth == 0


def iter_lines(text: str) -> Iterator[tuple[int, str]]:
	"""Yield ``(line_number, line)`` pairs of ``text``."""
	yield from enumerate(text.split("\n"))


class BaseParser:
	"""
	Token extractor skeleton.

	Subclasses provide the definition pattern, the variable prefix and the
	usage scanner; color literal detection and definition matching are
	shared.

	"""

	definition_pattern: ClassVar[re.Pattern[str]]
	name_prefix: ClassVar[str]
	definition_kind: ClassVar[VariableKind]
	parser_type: ClassVar[str] = "base"

	def __init__(self, color_parser: ColorParser | None = None) -> None:
		"""
		Initialize the parser.

		Args:
		    color_parser: Parser used to validate color literals

		"""
		self.color_parser = color_parser or CSSColorParser()

	def is_comment_line(self, line: str) -> bool:
		"""Return True if ``line`` should be skipped as a comment."""
		trimmed = line.strip()
		return trimmed.startswith(("//", "/*"))

	def parse_document(self, document: DocumentSource) -> ParseResult:
		"""
		Extract colors, definitions and usages from a document.

		Args:
		    document: The document to scan

		Returns:
		    ParseResult: Everything found in the document

		"""
		return self.parse_text(document.get_text())

	def parse_text(self, text: str) -> ParseResult:
		"""Extract colors, definitions and usages from raw text."""
		return ParseResult(
			color_values=self.find_color_values(text),
			variable_definitions=self.find_variable_definitions(text),
			variable_usages=self.find_variable_usages(text),
		)

	def find_color_values(self, text: str) -> list[ColorMatch]:
		"""
		Find every valid color literal.

		Args:
		    text: Text to scan

		Returns:
		    list[ColorMatch]: Matches ordered by line, then column

		"""
		matches: list[ColorMatch] = []
		for line_number, line in iter_lines(text):
			if not line.strip() or self.is_comment_line(line):
				continue
			for pattern in COLOR_PATTERNS:
				for match in pattern.finditer(line):
					literal = match.group(0)
					color = self.color_parser.from_string(literal)
					if not color.is_valid:
						continue
					matches.append(
						ColorMatch(
							value=literal,
							range=Range.on_line(line_number, match.start(), match.end()),
							color=color,
						)
					)
		matches.sort(key=lambda m: (m.range.start.line, m.range.start.character))
		return matches

	def find_variable_definitions(self, text: str) -> list[VariableDefinition]:
		"""
		Find ``name: value;`` definitions, one regex pass per line.

		Definitions without a terminating ``;`` or whose value has unbalanced
		parentheses are skipped.

		Args:
		    text: Text to scan

		Returns:
		    list[VariableDefinition]: Definitions in source order

		"""
		definitions: list[VariableDefinition] = []
		for line_number, line in iter_lines(text):
			if self.is_comment_line(line):
				continue
			for match in self.definition_pattern.finditer(line):
				value = match.group(2).strip()
				if not value or not has_balanced_parens(value):
					continue
				definitions.append(
					VariableDefinition(
						name=f"{self.name_prefix}{match.group(1)}",
						value=value,
						range=Range.on_line(line_number, match.start(), match.end()),
						kind=self.definition_kind,
					)
				)
		return definitions

	def find_variable_usages(self, text: str) -> list[VariableUsage]:
		"""Find variable references; implemented by subclasses."""
		raise NotImplementedError

	def extract_references(self, value: str) -> list[str]:
		"""Return the names referenced by a definition value, in order, without duplicates."""
		raise NotImplementedError

	def find_undefined(self, text: str) -> list[str]:
		"""Return names that are used but never defined, in order of first use."""
		defined = {definition.name for definition in self.find_variable_definitions(text)}
		undefined: list[str] = []
		for usage in self.find_variable_usages(text):
			if usage.name not in defined and usage.name not in undefined:
				undefined.append(usage.name)
		return undefined

	def extract_colors_from_variables(self, text: str) -> list[tuple[VariableDefinition, list[ColorMatch]]]:
		"""
		Pair every definition with the color literals found in its value.

		Definitions without any color literal are left out.

		"""
		results = []
		for definition in self.find_variable_definitions(text):
			colors = self.find_color_values(definition.value)
			if colors:
				results.append((definition, colors))
		return results
