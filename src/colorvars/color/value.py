"""Immutable color value produced by a color parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RGB:
	"""Red, green and blue channels (0-255) with optional alpha (0-1)."""

	r: int = 0
	g: int = 0
	b: int = 0
	a: float | None = None


@dataclass(frozen=True)
class HSL:
	"""Hue (degrees), saturation and lightness (percent) with optional alpha."""

	h: int = 0
	s: int = 0
	l: int = 0  # noqa: E741
	a: float | None = None


@dataclass(frozen=True)
class ColorValue:
	"""
	A parsed color literal.

	Invalid input still produces a ``ColorValue``; it has ``is_valid`` set to
	False, an empty ``hex`` and zeroed channels.

	"""

	original: str
	is_valid: bool = False
	hex: str = ""
	rgb: RGB = field(default_factory=RGB)
	hsl: HSL = field(default_factory=HSL)

	@classmethod
	def invalid(cls, original: str) -> ColorValue:
		"""Create the invalid value for ``original``."""
		return cls(original=original.strip())

	def to_dict(self) -> dict[str, Any]:
		"""
		Convert the color into a plain dictionary.

		Returns:
		    dict: JSON-serializable representation

		"""
		rgb: dict[str, Any] = {"r": self.rgb.r, "g": self.rgb.g, "b": self.rgb.b}
		if self.rgb.a is not None:
			rgb["a"] = self.rgb.a
		hsl: dict[str, Any] = {"h": self.hsl.h, "s": self.hsl.s, "l": self.hsl.l}
		if self.hsl.a is not None:
			hsl["a"] = self.hsl.a
		return {"hex": self.hex, "rgb": rgb, "hsl": hsl, "original": self.original, "isValid": self.is_valid}
