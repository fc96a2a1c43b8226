"""Dependency analysis between the variables of a document."""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

import networkx as nx

from colorvars.errors import safe_execute_sync

if TYPE_CHECKING:
	from colorvars.color import ColorValue
	from colorvars.documents import DocumentSource
	from colorvars.models import VariableDefinition
	from colorvars.resolver import VariableResolver

logger = logging.getLogger(__name__)

MOST_USED_LIMIT = 10
COLOR_LIKE_PATTERN = re.compile(r"#[0-9a-fA-F]{3,8}|rgb|hsl|color")
CSS_NAME_PATTERN = re.compile(r"^--[a-z][a-z0-9-]*$")
SCSS_NAME_PATTERN = re.compile(r"^\$[a-z][a-zA-Z0-9_-]*$")

IssueType = Literal["circular-reference", "undefined-dependency", "invalid-color", "naming-convention"]
IssueSeverity = Literal["error", "warning", "info"]


@dataclass(frozen=True)
class CircularReference:
	"""A cycle, as the path of names from its entry point back to itself."""

	cycle: list[str]
	variables: list[VariableDefinition]


@dataclass(frozen=True)
class AffectedVariable:
	"""A variable whose value depends, directly or transitively, on a changed one."""

	variable: VariableDefinition
	dependency_chain: list[str]


@dataclass(frozen=True)
class ValidationIssue:
	type: IssueType
	message: str
	severity: IssueSeverity


@dataclass
class DefinitionValidation:
	"""Every issue found for one definition."""

	variable: VariableDefinition
	issues: list[ValidationIssue] = field(default_factory=list)


@dataclass(frozen=True)
class VariableUsageCount:
	variable: VariableDefinition
	usage_count: int


@dataclass
class UsageReport:
	"""How the variables of a document are used."""

	total_variables: int = 0
	used_variables: int = 0
	unused_variables: list[VariableDefinition] = field(default_factory=list)
	most_used_variables: list[VariableUsageCount] = field(default_factory=list)
	color_variables: list[tuple[VariableDefinition, ColorValue]] = field(default_factory=list)


@dataclass(frozen=True)
class Optimization:
	"""A suggested clean-up of one definition."""

	action: Literal["remove", "inline"]
	variable: VariableDefinition
	reason: str


class VariableGraph:
	"""
	Builds and queries the reference graph of a document's variables.

	The graph is derived from the definition values on every call and never
	cached, since it is only valid for one version of the text.

	"""

	def __init__(self, resolver: VariableResolver) -> None:
		"""
		Initialize the graph utilities.

		Args:
		    resolver: Provides definitions, usages and local resolution

		"""
		self.resolver = resolver

	def find_variable_dependencies(self, name: str, document: DocumentSource) -> list[str]:
		"""
		Return the variables referenced directly by the definition of ``name``.

		This is a one-hop lookup: ``var()`` calls for ``--`` names and ``$``
		tokens for ``$`` names. Undefined variables yield an empty list.

		"""
		return safe_execute_sync(
			lambda: self._dependencies(name, document),
			[],
			self.resolver.error_handler,
			f"find_variable_dependencies({name})",
		)

	def build_dependency_graph(self, document: DocumentSource) -> nx.DiGraph:
		"""
		Build the reference graph of a document.

		Nodes are the defined variables in declaration order plus any referenced
		but undefined names (flagged ``defined=False``). An edge ``a -> b`` means
		the value of ``a`` references ``b``.

		Args:
		    document: The document to analyze

		Returns:
		    nx.DiGraph: The reference graph

		"""
		graph = nx.DiGraph()
		definitions = self.resolver.find_variable_definitions(document)
		for definition in definitions:
			graph.add_node(definition.name, defined=True, definition=definition)
		for definition in definitions:
			for dependency in self.find_variable_dependencies(definition.name, document):
				if dependency not in graph:
					graph.add_node(dependency, defined=False)
				graph.add_edge(definition.name, dependency)
		return graph

	def detect_circular_references(self, document: DocumentSource) -> list[CircularReference]:
		"""
		Find reference cycles with a depth-first search.

		Traversals start from each definition in declaration order, skipping
		names already visited, and each start reports at most one cycle. Two
		cycles reachable only from the same start are therefore reported once.

		Args:
		    document: The document to analyze

		Returns:
		    list[CircularReference]: One entry per detected cycle

		"""
		return safe_execute_sync(
			lambda: self._detect_cycles(document),
			[],
			self.resolver.error_handler,
			"detect_circular_references",
		)

	def find_affected_variables(self, target: str, document: DocumentSource) -> list[AffectedVariable]:
		"""
		Return the variables whose value would change if ``target`` changed.

		Each entry carries the chain of names from ``target`` to the affected
		variable. Every variable is expanded at most once, so cycles terminate.

		Args:
		    target: The changed variable
		    document: The document to analyze

		Returns:
		    list[AffectedVariable]: Affected variables in discovery order

		"""
		return safe_execute_sync(
			lambda: self._affected(target, document),
			[],
			self.resolver.error_handler,
			f"find_affected_variables({target})",
		)

	def find_dependent_variables(self, name: str, document: DocumentSource) -> list[str]:
		"""Return the names of the variables affected by ``name``."""
		names: list[str] = []
		for affected in self.find_affected_variables(name, document):
			if affected.variable.name not in names:
				names.append(affected.variable.name)
		return names

	def validate_variable_definitions(self, document: DocumentSource) -> list[DefinitionValidation]:
		"""
		Report problems with each definition.

		Returns:
		    list[DefinitionValidation]: Only definitions with at least one issue

		"""
		return safe_execute_sync(
			lambda: self._validate(document),
			[],
			self.resolver.error_handler,
			"validate_variable_definitions",
		)

	def generate_usage_report(self, document: DocumentSource) -> UsageReport:
		"""Count how often each defined variable is used in the document."""
		return safe_execute_sync(
			lambda: self._usage_report(document),
			UsageReport(),
			self.resolver.error_handler,
			"generate_usage_report",
		)

	def optimize_variables(self, document: DocumentSource) -> list[Optimization]:
		"""
		Suggest removing unused variables and inlining variables used once.

		Returns:
		    list[Optimization]: Removals first, then inlining suggestions

		"""
		report = self.generate_usage_report(document)
		optimizations = [
			Optimization("remove", variable, "Variable is defined but never used")
			for variable in report.unused_variables
		]
		usage_counts = Counter(usage.name for usage in self.resolver.find_variable_usages(document))
		optimizations.extend(
			Optimization("inline", variable, "Variable is used only once, consider inlining the value")
			for variable in self.resolver.find_variable_definitions(document)
			if usage_counts[variable.name] == 1
		)
		return optimizations

	def _dependencies(self, name: str, document: DocumentSource) -> list[str]:
		definition = self.resolver.get_variable_definition(name, document)
		if definition is None:
			return []
		if name.startswith("--"):
			return self.resolver.css_parser.extract_references(definition.value)
		if name.startswith("$"):
			return self.resolver.scss_parser.extract_references(definition.value)
		return []

	def _dependency_map(self, document: DocumentSource) -> dict[str, list[str]]:
		return {
			definition.name: self._dependencies(definition.name, document)
			for definition in self.resolver.find_variable_definitions(document)
		}

	def _detect_cycles(self, document: DocumentSource) -> list[CircularReference]:
		definitions = self.resolver.find_variable_definitions(document)
		by_name: dict[str, VariableDefinition] = {}
		for definition in definitions:
			by_name.setdefault(definition.name, definition)
		graph = self._dependency_map(document)

		visited: set[str] = set()
		on_stack: set[str] = set()

		def find_cycle(name: str, path: list[str]) -> list[str] | None:
			if name in on_stack:
				return path[path.index(name) :]
			if name in visited:
				return None
			visited.add(name)
			on_stack.add(name)
			path.append(name)
			try:
				for dependency in graph.get(name, []):
					cycle = find_cycle(dependency, list(path))
					if cycle:
						return cycle
			finally:
				on_stack.discard(name)
			return None

		cycles: list[CircularReference] = []
		for definition in definitions:
			if definition.name in visited:
				continue
			cycle = find_cycle(definition.name, [])
			if cycle:
				logger.debug("Circular reference: %s", " -> ".join([*cycle, cycle[0]]))
				cycles.append(
					CircularReference(cycle=cycle, variables=[by_name[n] for n in cycle if n in by_name])
				)
		return cycles

	def _affected(self, target: str, document: DocumentSource) -> list[AffectedVariable]:
		definitions = self.resolver.find_variable_definitions(document)
		graph = self._dependency_map(document)
		affected: list[AffectedVariable] = []
		visited: set[str] = set()

		def expand(name: str, chain: list[str]) -> None:
			if name in visited:
				return
			visited.add(name)
			for definition in definitions:
				if name in graph.get(definition.name, []) and definition.name not in chain:
					dependency_chain = [*chain, definition.name]
					affected.append(AffectedVariable(definition, dependency_chain))
					expand(definition.name, dependency_chain)

		expand(target, [target])
		return affected

	def _validate(self, document: DocumentSource) -> list[DefinitionValidation]:
		definitions = self.resolver.find_variable_definitions(document)
		defined = {definition.name for definition in definitions}
		in_cycle = {name for cycle in self._detect_cycles(document) for name in cycle.cycle}

		results: list[DefinitionValidation] = []
		for definition in definitions:
			validation = DefinitionValidation(definition)
			if definition.name in in_cycle:
				validation.issues.append(
					ValidationIssue(
						"circular-reference",
						f"Variable '{definition.name}' is part of a circular reference",
						"error",
					)
				)
			validation.issues.extend(
				ValidationIssue(
					"undefined-dependency",
					f"Variable '{definition.name}' depends on undefined variable '{dependency}'",
					"error",
				)
				for dependency in self._dependencies(definition.name, document)
				if dependency not in defined
			)
			looks_like_color = COLOR_LIKE_PATTERN.search(definition.value) is not None
			if looks_like_color and self.resolver.resolve_locally(definition.name, document) is None:
				validation.issues.append(
					ValidationIssue(
						"invalid-color",
						f"Variable '{definition.name}' appears to contain a color value but cannot be parsed",
						"warning",
					)
				)
			naming = self._naming_issue(definition.name)
			if naming is not None:
				validation.issues.append(naming)
			if validation.issues:
				results.append(validation)
		return results

	@staticmethod
	def _naming_issue(name: str) -> ValidationIssue | None:
		if name.startswith("--") and not CSS_NAME_PATTERN.match(name):
			return ValidationIssue(
				"naming-convention", f"CSS custom property '{name}' should use kebab-case naming", "info"
			)
		if name.startswith("$") and not SCSS_NAME_PATTERN.match(name):
			return ValidationIssue(
				"naming-convention", f"SCSS variable '{name}' should use camelCase or kebab-case naming", "info"
			)
		return None

	def _usage_report(self, document: DocumentSource) -> UsageReport:
		definitions = self.resolver.find_variable_definitions(document)
		usage_counts = Counter(usage.name for usage in self.resolver.find_variable_usages(document))
		unused = [definition for definition in definitions if usage_counts[definition.name] == 0]
		counted = [
			VariableUsageCount(definition, usage_counts[definition.name])
			for definition in definitions
			if usage_counts[definition.name] > 0
		]
		counted.sort(key=lambda item: item.usage_count, reverse=True)
		return UsageReport(
			total_variables=len(definitions),
			used_variables=len(definitions) - len(unused),
			unused_variables=unused,
			most_used_variables=counted[:MOST_USED_LIMIT],
			color_variables=self.resolver.extract_colors_from_variables(document),
		)
