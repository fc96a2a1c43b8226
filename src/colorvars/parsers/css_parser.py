"""Token extractor for CSS custom properties."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from colorvars.models import Range, UsageKind, VariableDefinition, VariableKind, VariableUsage
from colorvars.parsers.base import BaseParser, iter_lines

logger = logging.getLogger(__name__)

_VAR_NAME = re.compile(r"\s*(--[a-zA-Z0-9_-]+)")
_FALLBACK_COMMA = re.compile(r"\s*,\s*")


@dataclass(frozen=True)
class VarCall:
	"""A complete ``var(...)`` call found on a single line."""

	name: str
	"""The referenced custom property, including the ``--`` prefix."""

	fallback: str | None
	"""Trimmed fallback text, ``None`` when absent or empty."""

	line: int
	start: int
	"""Column of the ``v`` of ``var(``."""

	end: int
	"""Column just past the closing parenthesis."""

	fallback_start: int | None
	"""Column where the fallback text starts."""

	source: str
	"""The exact call text, ``line[start:end]``."""


class CSSParser(BaseParser):
	"""Finds ``--name: value;`` definitions, ``var()`` calls and color literals."""

	definition_pattern = re.compile(r"--([a-zA-Z0-9_-]+)\s*:\s*([^;]+);")
	name_prefix = "--"
	definition_kind = VariableKind.CSS_CUSTOM_PROPERTY
	parser_type = "css"

	def find_var_calls(self, text: str) -> list[VarCall]:
		"""
		Find the outermost ``var()`` calls of ``text``.

		Calls nested inside another call's fallback are not returned; the
		resolver substitutes outer calls by their exact source span and
		handles the nesting itself.

		Args:
		    text: Text to scan, usually a single definition value

		Returns:
		    list[VarCall]: Calls in source order

		"""
		calls: list[VarCall] = []
		for line_number, line in iter_lines(text):
			calls.extend(self._scan_line(line, line_number))
		return calls

	def find_variable_usages(self, text: str) -> list[VariableUsage]:
		"""
		Find every ``var()`` usage, including usages nested in fallbacks.

		Args:
		    text: Text to scan

		Returns:
		    list[VariableUsage]: Usages in source order, outer calls before the
		    calls nested in their fallback

		"""
		usages: list[VariableUsage] = []
		for line_number, line in iter_lines(text):
			if self.is_comment_line(line):
				continue
			self._collect_usages(line, line_number, 0, usages)
		return usages

	def extract_references(self, value: str) -> list[str]:
		"""Return the custom properties referenced by ``value``."""
		names: list[str] = []
		for usage in self.find_variable_usages(value):
			if usage.name not in names:
				names.append(usage.name)
		return names

	def find_undefined_custom_properties(self, text: str) -> list[str]:
		"""Return custom properties that are used through ``var()`` but never defined."""
		return self.find_undefined(text)

	def analyze_custom_property_cascade(self, text: str) -> dict[str, list[VariableDefinition]]:
		"""
		Group every definition of each custom property, in source order.

		Args:
		    text: Text to scan

		Returns:
		    dict[str, list[VariableDefinition]]: Definitions per property name

		"""
		cascade: dict[str, list[VariableDefinition]] = {}
		for definition in self.find_variable_definitions(text):
			cascade.setdefault(definition.name, []).append(definition)
		return cascade

	def _collect_usages(self, segment: str, line_number: int, column_offset: int, usages: list[VariableUsage]) -> None:
		for call in self._scan_line(segment, line_number):
			usages.append(
				VariableUsage(
					name=call.name,
					range=Range.on_line(line_number, call.start + column_offset, call.end + column_offset),
					kind=UsageKind.CSS_VAR,
					fallback_value=call.fallback,
				)
			)
			if call.fallback and call.fallback_start is not None and "var(" in call.fallback:
				self._collect_usages(call.fallback, line_number, column_offset + call.fallback_start, usages)

	def _scan_line(self, line: str, line_number: int) -> list[VarCall]:
		calls: list[VarCall] = []
		index = 0
		while True:
			start = line.find("var(", index)
			if start == -1:
				break
			call = self._parse_call(line, start, line_number)
			if call is None:
				index = start + 1
				continue
			calls.append(call)
			index = call.end
		return calls

	def _parse_call(self, line: str, start: int, line_number: int) -> VarCall | None:
		position = start + len("var(")
		name_match = _VAR_NAME.match(line, position)
		if not name_match:
			return None
		position = name_match.end()

		fallback_start = None
		comma = _FALLBACK_COMMA.match(line, position)
		if comma:
			position = comma.end()
			fallback_start = position

		depth = 1
		while position < len(line) and depth > 0:
			if line[position] == "(":
				depth += 1
			elif line[position] == ")":
				depth -= 1
			position += 1
		if depth != 0:
			return None

		fallback = None
		if fallback_start is not None:
			fallback = line[fallback_start : position - 1].strip() or None

		return VarCall(
			name=name_match.group(1),
			fallback=fallback,
			line=line_number,
			start=start,
			end=position,
			fallback_start=fallback_start,
			source=line[start:position],
		)
