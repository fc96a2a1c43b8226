"""Tests for variable dependency analysis."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from colorvars.analysis import VariableGraph

if TYPE_CHECKING:
	from collections.abc import Callable

	from colorvars.documents import TextDocument
	from colorvars.resolver import VariableResolver

CHAIN_CSS = ":root {\n  --base: red;\n  --mid: var(--base);\n  --top: var(--mid);\n  --other: var(--base);\n}"


@pytest.fixture
def graph(resolver: VariableResolver) -> VariableGraph:
	"""Graph utilities over the file-scoped resolver."""
	return VariableGraph(resolver)


@pytest.mark.unit
@pytest.mark.analysis
class TestDependencies:
	"""Test cases for dependency lookups and the graph."""

	def test_direct_dependencies(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""Only the references of the definition itself are returned."""
		document = make_document(CHAIN_CSS)

		assert graph.find_variable_dependencies("--top", document) == ["--mid"]
		assert graph.find_variable_dependencies("--base", document) == []
		assert graph.find_variable_dependencies("--undefined", document) == []

	def test_scss_dependencies(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""SCSS dependencies are the ``$`` tokens of the value."""
		document = make_document("$a: red;\n$b: mix($a, $c, 50%);", name="theme.scss")

		assert graph.find_variable_dependencies("$b", document) == ["$a", "$c"]

	def test_dependency_graph(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""Defined and undefined variables become nodes; references become edges."""
		# Arrange
		document = make_document(":root { --a: var(--b); --b: var(--ghost); }")

		# Act
		dependency_graph = graph.build_dependency_graph(document)

		# Assert
		assert list(dependency_graph.nodes) == ["--a", "--b", "--ghost"]
		assert set(dependency_graph.edges) == {("--a", "--b"), ("--b", "--ghost")}
		assert dependency_graph.nodes["--a"]["defined"] is True
		assert dependency_graph.nodes["--a"]["definition"].value == "var(--b)"
		assert dependency_graph.nodes["--ghost"]["defined"] is False


@pytest.mark.unit
@pytest.mark.analysis
class TestCycles:
	"""Test cases for circular reference detection."""

	def test_two_variable_cycle(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""A mutual reference is reported exactly once."""
		# Arrange
		document = make_document("$a: $b;\n$b: $a;", name="theme.scss")

		# Act
		cycles = graph.detect_circular_references(document)

		# Assert
		assert len(cycles) == 1
		assert set(cycles[0].cycle) == {"$a", "$b"}
		assert [v.name for v in cycles[0].variables] == cycles[0].cycle

	def test_self_reference(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""A variable referencing itself is a cycle of one."""
		cycles = graph.detect_circular_references(make_document("--loop: var(--loop);"))

		assert [c.cycle for c in cycles] == [["--loop"]]

	def test_cycle_behind_a_chain(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""The reported cycle excludes the path leading into it."""
		document = make_document("--entry: var(--x);\n--x: var(--y);\n--y: var(--x);")

		cycles = graph.detect_circular_references(document)

		assert [c.cycle for c in cycles] == [["--x", "--y"]]

	def test_cycle_reached_from_later_definition(
		self, graph: VariableGraph, make_document: Callable[..., TextDocument]
	) -> None:
		"""A definition leading into an already reported cycle does not hide it."""
		# Arrange
		document = make_document("$a: $b;\n$b: $a;\n$c: $a;", name="theme.scss")

		# Act
		cycles = graph.detect_circular_references(document)

		# Assert
		assert [c.cycle for c in cycles] == [["$a", "$b"]]
		assert graph.resolver.error_handler.get_error_stats().total_errors == 0

	def test_acyclic(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""A plain chain has no cycles."""
		assert graph.detect_circular_references(make_document(CHAIN_CSS)) == []


@pytest.mark.unit
@pytest.mark.analysis
class TestAffectedVariables:
	"""Test cases for change impact analysis."""

	def test_transitive_dependents(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""Every dependent is found with the chain leading to it."""
		# Arrange
		document = make_document(CHAIN_CSS)

		# Act
		affected = graph.find_affected_variables("--base", document)

		# Assert
		assert [(a.variable.name, a.dependency_chain) for a in affected] == [
			("--mid", ["--base", "--mid"]),
			("--top", ["--base", "--mid", "--top"]),
			("--other", ["--base", "--other"]),
		]
		assert graph.find_dependent_variables("--base", document) == ["--mid", "--top", "--other"]

	def test_leaf_has_no_dependents(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""Nothing depends on the end of a chain."""
		assert graph.find_affected_variables("--top", make_document(CHAIN_CSS)) == []

	def test_cycle_terminates(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""Impact analysis on a cycle stops once every variable was expanded."""
		document = make_document("$a: $b;\n$b: $a;", name="theme.scss")

		affected = graph.find_affected_variables("$a", document)

		assert [(a.variable.name, a.dependency_chain) for a in affected] == [("$b", ["$a", "$b"])]


@pytest.mark.unit
@pytest.mark.analysis
class TestValidation:
	"""Test cases for definition validation."""

	def test_issues(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""Naming, color and undefined dependency issues are reported per definition."""
		# Arrange
		document = make_document(
			":root {\n  --good: red;\n  --Bad_Name: blue;\n  --broken: rgb(999, x);\n  --alias: var(--missing);\n}"
		)

		# Act
		validations = graph.validate_variable_definitions(document)

		# Assert
		summary = [(v.variable.name, [(i.type, i.severity, i.message) for i in v.issues]) for v in validations]
		assert summary == [
			(
				"--Bad_Name",
				[("naming-convention", "info", "CSS custom property '--Bad_Name' should use kebab-case naming")],
			),
			(
				"--broken",
				[
					(
						"invalid-color",
						"warning",
						"Variable '--broken' appears to contain a color value but cannot be parsed",
					)
				],
			),
			(
				"--alias",
				[
					(
						"undefined-dependency",
						"error",
						"Variable '--alias' depends on undefined variable '--missing'",
					)
				],
			),
		]

	def test_cycle_members_are_errors(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""Every member of a cycle gets a circular reference error."""
		document = make_document("$a: $b;\n$b: $a;", name="theme.scss")

		validations = graph.validate_variable_definitions(document)

		assert [(v.variable.name, [i.message for i in v.issues]) for v in validations] == [
			("$a", ["Variable '$a' is part of a circular reference"]),
			("$b", ["Variable '$b' is part of a circular reference"]),
		]

	def test_cycle_with_dependent_definition(
		self, graph: VariableGraph, make_document: Callable[..., TextDocument]
	) -> None:
		"""Validation still reports the cycle when another variable depends on it."""
		document = make_document("$a: $b;\n$b: $a;\n$c: $a;\n$Bad: red;", name="theme.scss")

		validations = graph.validate_variable_definitions(document)

		assert [(v.variable.name, [i.type for i in v.issues]) for v in validations] == [
			("$a", ["circular-reference"]),
			("$b", ["circular-reference"]),
			("$Bad", ["naming-convention"]),
		]

	def test_scss_naming(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""SCSS names must start with a lowercase letter."""
		validations = graph.validate_variable_definitions(make_document("$Primary: red;", name="theme.scss"))

		assert [i.message for i in validations[0].issues] == [
			"SCSS variable '$Primary' should use camelCase or kebab-case naming"
		]


@pytest.mark.unit
@pytest.mark.analysis
class TestUsageReport:
	"""Test cases for usage statistics and optimization suggestions."""

	SOURCE = "$a: red;\n$b: blue;\n$c: $a;\n.x { color: $a; border-color: $c; background: $a; }"

	def test_usage_report(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""Usages inside definition values count as well."""
		document = make_document(self.SOURCE, name="theme.scss")

		report = graph.generate_usage_report(document)

		assert report.total_variables == 3
		assert report.used_variables == 2
		assert [v.name for v in report.unused_variables] == ["$b"]
		assert [(m.variable.name, m.usage_count) for m in report.most_used_variables] == [("$a", 3), ("$c", 1)]
		assert [(d.name, c.hex) for d, c in report.color_variables] == [
			("$a", "#ff0000"),
			("$b", "#0000ff"),
			("$c", "#ff0000"),
		]

	def test_optimize(self, graph: VariableGraph, make_document: Callable[..., TextDocument]) -> None:
		"""Unused variables are removal candidates; variables used once are inline candidates."""
		document = make_document(self.SOURCE, name="theme.scss")

		optimizations = graph.optimize_variables(document)

		assert [(o.action, o.variable.name) for o in optimizations] == [("remove", "$b"), ("inline", "$c")]
		assert optimizations[0].reason == "Variable is defined but never used"
