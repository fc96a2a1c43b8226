"""
Reference chain resolution.

A definition value such as ``var(--mid)`` or ``darken($base, 10%)`` is
rewritten by substituting every reference with the fully resolved value of
the referenced variable. The traversal uses an explicit stack of frames
instead of recursion, so the depth and cycle guards do not depend on the
interpreter's call stack.

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from colorvars.errors import (
	CircularReferenceError,
	MaxDepthExceededError,
	VariableNotFoundError,
	VariableResolutionError,
)
from colorvars.parsers import CSSParser, strip_flags
from colorvars.parsers.scss_parser import REFERENCE_PATTERN

if TYPE_CHECKING:
	from collections.abc import Mapping

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10


@dataclass(frozen=True)
class Frame:
	"""One step of a chain: the variable, how deep it is and the names above it."""

	name: str
	depth: int
	visited: frozenset[str]


@dataclass(frozen=True)
class Reference:
	"""A reference inside a value, located by its exact span."""

	name: str
	start: int
	end: int
	fallback: str | None = None


@dataclass
class _Task:
	frame: Frame
	value: str
	references: list[Reference]
	replacements: list[str] = field(default_factory=list)

	@property
	def pending(self) -> Reference | None:
		index = len(self.replacements)
		return self.references[index] if index < len(self.references) else None

	def substitute(self) -> str:
		value = self.value
		for reference, replacement in reversed(list(zip(self.references, self.replacements, strict=True))):
			value = value[: reference.start] + replacement + value[reference.end :]
		return value


class ChainResolver:
	"""
	Resolves a variable through a map of raw definition values.

	``--`` names are expanded through their ``var()`` calls and ``$`` names
	through their ``$name`` tokens.

	"""

	def __init__(
		self,
		definitions: Mapping[str, str],
		css_parser: CSSParser | None = None,
		max_depth: int = DEFAULT_MAX_DEPTH,
	) -> None:
		"""
		Initialize the resolver.

		Args:
		    definitions: Raw definition value per variable name
		    css_parser: Parser used to locate ``var()`` calls
		    max_depth: Frames at this depth or deeper are rejected

		"""
		self.definitions = definitions
		self.css_parser = css_parser or CSSParser()
		self.max_depth = max_depth

	def resolve(self, name: str) -> str:
		"""
		Return the value of ``name`` with every reference substituted.

		A failing reference that carries a ``var()`` fallback is replaced by the
		fallback text verbatim; any other failure aborts the whole chain.

		Args:
		    name: Variable to resolve

		Returns:
		    str: The substituted value, not necessarily a valid color

		Raises:
		    VariableNotFoundError: If a variable on the chain has no definition
		    CircularReferenceError: If the chain revisits a variable
		    MaxDepthExceededError: If the chain is deeper than ``max_depth``

		"""
		stack = [self._start(Frame(name, 0, frozenset()))]
		result: str | None = None
		error: VariableResolutionError | None = None

		while stack:
			task = stack[-1]
			if error is not None:
				reference = task.pending
				if reference is None or reference.fallback is None:
					stack.pop()
					continue
				logger.debug("Using fallback '%s' for %s in %s", reference.fallback, reference.name, task.frame.name)
				task.replacements.append(reference.fallback)
				error = None
			elif result is not None:
				task.replacements.append(result)
				result = None

			reference = task.pending
			if reference is not None:
				child = Frame(reference.name, task.frame.depth + 1, task.frame.visited | {task.frame.name})
				try:
					stack.append(self._start(child))
				except VariableResolutionError as e:
					error = e
				continue

			stack.pop()
			result = task.substitute()

		if error is not None:
			raise error
		if result is None:
			msg = f"Chain resolution of {name} produced no value"
			raise RuntimeError(msg)
		return result

	def references_in(self, name: str, value: str) -> list[Reference]:
		"""Locate the references of a value, using the syntax implied by ``name``."""
		if name.startswith("--"):
			return [
				Reference(call.name, call.start, call.end, call.fallback) for call in self.css_parser.find_var_calls(value)
			]
		return [Reference(match.group(0), match.start(), match.end()) for match in REFERENCE_PATTERN.finditer(value)]

	def _start(self, frame: Frame) -> _Task:
		if frame.depth >= self.max_depth:
			raise MaxDepthExceededError(
				frame.name,
				f"Maximum resolution depth ({self.max_depth}) exceeded",
				depth=frame.depth,
				visited=frame.visited,
			)
		if frame.name in frame.visited:
			raise CircularReferenceError(frame.name, depth=frame.depth, visited=frame.visited)
		raw = self.definitions.get(frame.name)
		if raw is None:
			raise VariableNotFoundError(frame.name, depth=frame.depth, visited=frame.visited)
		value = raw.strip() if frame.name.startswith("--") else strip_flags(raw)
		return _Task(frame=frame, value=value, references=self.references_in(frame.name, value))
