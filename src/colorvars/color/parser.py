"""
Color string parsing.

The engine only depends on the :class:`ColorParser` protocol. The default
implementation, :class:`CSSColorParser`, understands hex literals, the
``rgb()``/``rgba()`` and ``hsl()``/``hsla()`` functional notations and CSS
named colors, and rejects common CSS values that merely look color-like.

"""

from __future__ import annotations

import colorsys
import logging
import re
from typing import Protocol, runtime_checkable

import webcolors

from colorvars.color.value import HSL, RGB, ColorValue

logger = logging.getLogger(__name__)

_PURE_NUMBER = re.compile(r"^-?\d*\.?\d+$")
_NUMBER_WITH_UNIT = re.compile(
	r"^-?\d*\.?\d+(px|em|rem|vh|vw|vmin|vmax|%|pt|pc|in|cm|mm|ex|ch|fr|s|ms|deg|rad|grad|turn)$"
)
_HEX = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_FUNCTION = re.compile(r"^(rgba?|hsla?)\(\s*(.*?)\s*\)$", re.IGNORECASE | re.DOTALL)
_TIME_UNIT = re.compile(r"\d+(s|ms)\b")

NON_COLOR_KEYWORDS = frozenset(
	{
		"!default",
		"!important",
		"!global",
		"!optional",
		"inherit",
		"initial",
		"unset",
		"revert",
		"auto",
		"none",
		"normal",
		"bold",
		"italic",
		"underline",
		"left",
		"right",
		"center",
		"top",
		"bottom",
		"block",
		"inline",
		"flex",
		"grid",
		"absolute",
		"relative",
		"fixed",
		"static",
		"sticky",
		"hidden",
		"visible",
		"solid",
		"dashed",
		"dotted",
		"double",
		"groove",
		"ridge",
		"inset",
		"outset",
		"border-box",
		"content-box",
		"ease",
		"ease-in",
		"ease-out",
		"ease-in-out",
		"linear",
	}
)

TIMING_FUNCTIONS = ("ease", "linear", "cubic-bezier", "steps(")
TRANSFORM_FUNCTIONS = (
	"translate",
	"scale",
	"rotate",
	"skew",
	"matrix",
	"perspective",
)
NON_COLOR_FUNCTIONS = ("calc(", "var(", "attr(", "url(", "counter(", "counters(")

# CSS Color 4 names missing from the CSS3 table of some webcolors releases
CSS4_NAMED_COLORS = {"rebeccapurple": "#663399"}


@runtime_checkable
class ColorParser(Protocol):
	"""Turns literal strings into :class:`ColorValue` instances."""

	def from_string(self, value: str) -> ColorValue:
		"""Parse ``value``; never raises, returns an invalid value instead."""
		...

	def is_valid_color(self, value: str) -> bool:
		"""Return True if ``value`` parses as a color."""
		...


class CSSColorParser:
	"""Default :class:`ColorParser` for CSS color syntax."""

	def from_string(self, value: str) -> ColorValue:
		"""
		Parse a color literal.

		Args:
		    value: Raw text, surrounding whitespace is ignored

		Returns:
		    ColorValue: A valid color, or the invalid value for ``value``

		"""
		original = value.strip()
		lowered = original.lower()
		if not original or self._is_excluded(lowered):
			return ColorValue.invalid(original)

		channels = self._parse_channels(original, lowered)
		if channels is None:
			return ColorValue.invalid(original)
		return self._build(original, *channels)

	def is_valid_color(self, value: str) -> bool:
		"""Return True if ``value`` parses as a color."""
		return self.from_string(value).is_valid

	def _is_excluded(self, lowered: str) -> bool:
		if _PURE_NUMBER.match(lowered) or _NUMBER_WITH_UNIT.match(lowered):
			return True
		if lowered in NON_COLOR_KEYWORDS:
			return True
		if any(func in lowered for func in NON_COLOR_FUNCTIONS):
			return True
		if any(f"{func}" in lowered for func in TIMING_FUNCTIONS):
			return True
		if _TIME_UNIT.search(lowered) and len(lowered.split()) > 1:
			return True
		return any(f"{func}" in lowered and "(" in lowered for func in TRANSFORM_FUNCTIONS)

	def _parse_channels(self, original: str, lowered: str) -> tuple[int, int, int, float] | None:
		if lowered == "transparent":
			return 0, 0, 0, 0.0
		if lowered.startswith("#"):
			return self._parse_hex(original)
		match = _FUNCTION.match(original)
		if match:
			name = match.group(1).lower()
			args = match.group(2)
			if name.startswith("rgb"):
				return self._parse_rgb(args)
			return self._parse_hsl(args)
		if lowered in CSS4_NAMED_COLORS:
			return self._parse_hex(CSS4_NAMED_COLORS[lowered])
		try:
			hex_value = webcolors.name_to_hex(lowered)
		except ValueError:
			return None
		return self._parse_hex(hex_value)

	def _parse_hex(self, value: str) -> tuple[int, int, int, float] | None:
		if not _HEX.match(value):
			return None
		digits = value[1:]
		alpha = 1.0
		if len(digits) in (4, 8):
			split = len(digits) * 3 // 4
			alpha_digits = digits[split:]
			digits = digits[:split]
			if len(alpha_digits) == 1:
				alpha_digits *= 2
			alpha = round(int(alpha_digits, 16) / 255, 2)
		rgb = webcolors.hex_to_rgb(webcolors.normalize_hex(f"#{digits}"))
		return rgb.red, rgb.green, rgb.blue, alpha

	def _split_args(self, args: str) -> tuple[list[str], str | None]:
		alpha = None
		if "/" in args:
			args, alpha = (part.strip() for part in args.split("/", 1))
		parts = [part for part in re.split(r"\s*,\s*|\s+", args.strip()) if part]
		return parts, alpha

	def _parse_alpha(self, value: str | None) -> float | None:
		if value is None:
			return 1.0
		try:
			if value.endswith("%"):
				return max(0.0, min(1.0, float(value[:-1]) / 100))
			return max(0.0, min(1.0, float(value)))
		except ValueError:
			return None

	def _parse_rgb(self, args: str) -> tuple[int, int, int, float] | None:
		parts, alpha_text = self._split_args(args)

		# Sass-style rgba(<color>, <alpha>)
		if len(parts) == 2 and alpha_text is None:
			base = self._parse_channels(parts[0], parts[0].lower())
			alpha = self._parse_alpha(parts[1])
			if base is None or alpha is None:
				return None
			return base[0], base[1], base[2], alpha

		if len(parts) == 4 and alpha_text is None:
			alpha_text = parts.pop()
		if len(parts) != 3:
			return None
		channels = []
		for part in parts:
			try:
				if part.endswith("%"):
					channel = round(float(part[:-1]) * 2.55)
				else:
					channel = round(float(part))
			except ValueError:
				return None
			channels.append(max(0, min(255, channel)))
		alpha = self._parse_alpha(alpha_text)
		if alpha is None:
			return None
		return channels[0], channels[1], channels[2], alpha

	def _parse_hsl(self, args: str) -> tuple[int, int, int, float] | None:
		parts, alpha_text = self._split_args(args)
		if len(parts) == 4 and alpha_text is None:
			alpha_text = parts.pop()
		if len(parts) != 3 or not parts[1].endswith("%") or not parts[2].endswith("%"):
			return None
		try:
			hue = float(parts[0].removesuffix("deg"))
			saturation = max(0.0, min(100.0, float(parts[1][:-1]))) / 100
			lightness = max(0.0, min(100.0, float(parts[2][:-1]))) / 100
		except ValueError:
			return None
		alpha = self._parse_alpha(alpha_text)
		if alpha is None:
			return None
		r, g, b = colorsys.hls_to_rgb((hue % 360) / 360, lightness, saturation)
		return round(r * 255), round(g * 255), round(b * 255), alpha

	def _build(self, original: str, r: int, g: int, b: int, alpha: float) -> ColorValue:
		hue, lightness, saturation = colorsys.rgb_to_hls(r / 255, g / 255, b / 255)
		has_alpha = alpha < 1
		return ColorValue(
			original=original,
			is_valid=True,
			hex=webcolors.rgb_to_hex((r, g, b)),
			rgb=RGB(r=r, g=g, b=b, a=alpha if has_alpha else None),
			hsl=HSL(
				h=round(hue * 360),
				s=round(saturation * 100),
				l=round(lightness * 100),
				a=alpha if has_alpha else None,
			),
		)
