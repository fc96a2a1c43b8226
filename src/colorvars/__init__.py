"""ColorVars - CSS/SCSS color variable resolution and incremental analysis."""

__version__ = "0.3.0"
__author__ = "ColorVars Contributors"

from colorvars.engine import ColorVariableEngine

__all__ = ["ColorVariableEngine", "__version__"]
