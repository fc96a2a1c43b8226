"""Color values and the default color-string parser."""

from colorvars.color.parser import ColorParser, CSSColorParser
from colorvars.color.value import HSL, RGB, ColorValue

__all__ = ["HSL", "RGB", "CSSColorParser", "ColorParser", "ColorValue"]
