"""Cacheable results of a workspace resolution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from colorvars.color import ColorValue


@dataclass(frozen=True)
class Resolved:
	"""The variable resolved to ``color`` in the document ``source_uri``."""

	color: ColorValue
	source_uri: str


@dataclass(frozen=True)
class Unresolved:
	"""The variable could not be resolved; negative results are cached too."""

	reason: str


ResolutionOutcome = Resolved | Unresolved
