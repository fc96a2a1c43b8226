"""Tests for reference chain resolution."""

from __future__ import annotations

import pytest

from colorvars.errors import CircularReferenceError, MaxDepthExceededError, VariableNotFoundError
from colorvars.resolver import ChainResolver, Reference


@pytest.mark.unit
@pytest.mark.resolver
class TestChainResolver:
	"""Test cases for ChainResolver."""

	def test_literal_value(self) -> None:
		"""A definition without references resolves to its own value."""
		assert ChainResolver({"--a": " #fff "}).resolve("--a") == "#fff"

	def test_css_chain(self) -> None:
		"""``var()`` calls are substituted along the whole chain."""
		# Arrange
		definitions = {"--base": "#ff0000", "--mid": "var(--base)", "--top": "var(--mid)"}

		# Act
		value = ChainResolver(definitions).resolve("--top")

		# Assert
		assert value == "#ff0000"

	def test_scss_chain_strips_flags(self) -> None:
		"""SCSS values lose their flags before substitution."""
		definitions = {"$base": "#333 !default", "$text": "$base !global"}

		assert ChainResolver(definitions).resolve("$text") == "#333"

	def test_substitution_inside_functions(self) -> None:
		"""References are replaced by their exact span, leaving the rest of the value intact."""
		definitions = {"$alpha": "0.5", "$overlay": "rgba(#000, $alpha)"}

		assert ChainResolver(definitions).resolve("$overlay") == "rgba(#000, 0.5)"

	def test_fallback_replaces_missing_reference(self) -> None:
		"""A failing ``var()`` with a fallback is replaced by the fallback text."""
		definitions = {"--a": "var(--missing, #00ff00)"}

		assert ChainResolver(definitions).resolve("--a") == "#00ff00"

	def test_fallback_applies_at_the_failing_depth(self) -> None:
		"""A deep failure unwinds until a reference with a fallback is found."""
		definitions = {"--top": "var(--mid, blue)", "--mid": "var(--missing)"}

		assert ChainResolver(definitions).resolve("--top") == "blue"

	def test_missing_variable(self) -> None:
		"""A reference without definition or fallback aborts the chain."""
		with pytest.raises(VariableNotFoundError) as exc_info:
			ChainResolver({"--a": "var(--b)"}).resolve("--a")

		assert exc_info.value.variable_name == "--b"
		assert exc_info.value.depth == 1
		assert exc_info.value.visited == frozenset({"--a"})

	def test_cycle(self) -> None:
		"""Revisiting a variable is a circular reference."""
		definitions = {"$a": "$b", "$b": "$a"}

		with pytest.raises(CircularReferenceError) as exc_info:
			ChainResolver(definitions).resolve("$a")

		assert exc_info.value.variable_name == "$a"
		assert exc_info.value.visited == frozenset({"$a", "$b"})

	def test_self_reference(self) -> None:
		"""A variable referencing itself is a cycle of length one."""
		with pytest.raises(CircularReferenceError):
			ChainResolver({"--a": "var(--a)"}).resolve("--a")

	def test_max_depth(self) -> None:
		"""Chains reaching the maximum depth are rejected."""
		definitions = {f"--v{index}": f"var(--v{index + 1})" for index in range(5)}
		definitions["--v5"] = "red"

		with pytest.raises(MaxDepthExceededError):
			ChainResolver(definitions, max_depth=3).resolve("--v0")
		assert ChainResolver(definitions, max_depth=10).resolve("--v0") == "red"

	def test_css_values_only_expand_var_calls(self) -> None:
		"""SCSS tokens inside a custom property value are left untouched."""
		definitions = {"--brand": "$primary", "$primary": "navy"}

		assert ChainResolver(definitions).resolve("--brand") == "$primary"

	def test_references_in(self) -> None:
		"""References are located with their spans and fallbacks."""
		resolver = ChainResolver({})

		assert resolver.references_in("--a", "var(--b, red) var(--c)") == [
			Reference("--b", 0, 13, "red"),
			Reference("--c", 14, 22, None),
		]
		assert resolver.references_in("$a", "$b + $c") == [Reference("$b", 0, 2), Reference("$c", 5, 7)]
