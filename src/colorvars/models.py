"""Data model shared by the extractors, the resolver and the analyzer."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
	from colorvars.color import ColorValue


@dataclass(frozen=True, order=True)
class Position:
	"""A zero-based line/character position in a document."""

	line: int
	character: int


@dataclass(frozen=True)
class Range:
	"""A (start, end) pair of positions."""

	start: Position
	end: Position

	@classmethod
	def on_line(cls, line: int, start_character: int, end_character: int) -> Range:
		"""
		Create a range contained in a single line.

		Args:
		    line: Zero-based line number
		    start_character: Column where the range starts
		    end_character: Column where the range ends (exclusive)

		Returns:
		    Range: The single-line range

		"""
		return cls(Position(line, start_character), Position(line, end_character))

	def shift_lines(self, offset: int) -> Range:
		"""Return the same range moved ``offset`` lines down."""
		if offset == 0:
			return self
		return Range(
			Position(self.start.line + offset, self.start.character),
			Position(self.end.line + offset, self.end.character),
		)


class VariableKind(str, Enum):
	"""Kind of a variable definition."""

	CSS_CUSTOM_PROPERTY = "css-custom-property"
	SCSS_VARIABLE = "scss-variable"


class UsageKind(str, Enum):
	"""Kind of a variable usage."""

	CSS_VAR = "css-var"
	SCSS_VARIABLE = "scss-variable"


@dataclass(frozen=True)
class VariableDefinition:
	"""A ``--name: value;`` or ``$name: value;`` definition."""

	name: str
	value: str
	range: Range
	kind: VariableKind


@dataclass(frozen=True)
class VariableUsage:
	"""A ``var(--name[, fallback])`` call or a ``$name`` reference."""

	name: str
	range: Range
	kind: UsageKind
	fallback_value: str | None = None


@dataclass(frozen=True)
class ColorMatch:
	"""A color literal found in source text."""

	value: str
	range: Range
	color: ColorValue


@dataclass(frozen=True)
class ImportDeclaration:
	"""An SCSS ``@import`` or ``@use`` statement."""

	path: str
	range: Range
	alias: str | None = None
	kind: Literal["import", "use"] = "import"


@dataclass
class ParseResult:
	"""Everything a single extractor pass finds in a piece of text."""

	color_values: list[ColorMatch] = field(default_factory=list)
	variable_definitions: list[VariableDefinition] = field(default_factory=list)
	variable_usages: list[VariableUsage] = field(default_factory=list)

	def extend(self, other: ParseResult) -> None:
		"""Append every item of ``other`` to this result."""
		self.color_values.extend(other.color_values)
		self.variable_definitions.extend(other.variable_definitions)
		self.variable_usages.extend(other.variable_usages)

	def shift_lines(self, offset: int) -> ParseResult:
		"""
		Return a copy with every range moved ``offset`` lines down.

		Region-scoped parsing reports lines relative to the region, so the
		analyzer applies the region start line through this method.

		"""
		if offset == 0:
			return self
		return ParseResult(
			color_values=[replace(m, range=m.range.shift_lines(offset)) for m in self.color_values],
			variable_definitions=[replace(d, range=d.range.shift_lines(offset)) for d in self.variable_definitions],
			variable_usages=[replace(u, range=u.range.shift_lines(offset)) for u in self.variable_usages],
		)


@dataclass
class VariableContext:
	"""Per-document variable index, built once per document version."""

	definitions: dict[str, VariableDefinition]
	usages: list[VariableUsage]
	imports: list[ImportDeclaration]
	scope: Literal["file", "workspace"] = "file"
