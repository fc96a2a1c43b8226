"""Pattern-based token extractors for CSS and SCSS."""

from colorvars.parsers.base import BaseParser, has_balanced_parens
from colorvars.parsers.css_parser import CSSParser, VarCall
from colorvars.parsers.scss_parser import DefaultedDefinition, SCSSParser, strip_flags

__all__ = [
	"BaseParser",
	"CSSParser",
	"DefaultedDefinition",
	"SCSSParser",
	"VarCall",
	"has_balanced_parens",
	"strip_flags",
]
