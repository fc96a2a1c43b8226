"""Utility functions for CLI operations in ColorVars."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.text import Text

from colorvars.utils.log_setup import display_error_summary, display_warning_summary

if TYPE_CHECKING:
	from colorvars.color import ColorValue
	from colorvars.documents import DocumentSource
	from colorvars.engine import ColorVariableEngine

console = Console()
logger = logging.getLogger(__name__)


def color_swatch(color: ColorValue | None) -> Text:
	"""
	Render a color as a small swatch followed by its hex code.

	Args:
	    color: The resolved color, or ``None``

	Returns:
	    Text: Rich text usable in tables

	"""
	if color is None or not color.is_valid:
		return Text("unresolved", style="dim")
	swatch = Text("  ", style=f"on {color.hex}")
	swatch.append(f" {color.hex}")
	if color.rgb.a is not None:
		swatch.append(f" (alpha {color.rgb.a})", style="dim")
	return swatch


async def load_stylesheet(
	file: Path,
	workspace: Path | None = None,
	config_file: Path | None = None,
) -> tuple[ColorVariableEngine, DocumentSource]:
	"""
	Create an engine for the workspace and open a stylesheet with it.

	Args:
	    file: Stylesheet to open
	    workspace: Workspace root, defaults to the current directory
	    config_file: Explicit configuration file

	Returns:
	    The engine and the opened document

	"""
	from colorvars.config import ConfigError, ConfigLoader
	from colorvars.engine import ColorVariableEngine
	from colorvars.errors import ErrorHandler

	workspace_root = workspace or Path.cwd()
	error_handler = ErrorHandler()
	try:
		loader = ConfigLoader(config_file, repo_root=workspace_root, error_handler=error_handler)
	except ConfigError as e:
		exit_with_error(f"Could not load configuration: {e}", exception=e)

	engine = ColorVariableEngine(workspace_root, config=loader.get, error_handler=error_handler)
	try:
		document = await engine.open_document(file)
	except (OSError, UnicodeDecodeError) as e:
		exit_with_error(f"Could not read {file}", exception=e)
	if not engine.is_enabled_for(document):
		show_warning(
			f"'{document.language_id}' documents are not enabled; enabled types: "
			f"{', '.join(engine.config.enabled_file_types)}"
		)
	return engine, document


def show_error(message: str, exception: Exception | None = None) -> None:
	"""
	Display an error summary with standardized formatting.

	Args:
	        message: The error message to display
	        exception: Optional exception that caused the error

	"""
	error_text = message
	if exception:
		error_text += f"\n\nDetails: {exception!s}"
		logger.debug("Error occurred", exc_info=exception)

	display_error_summary(error_text)


def show_warning(message: str) -> None:
	"""
	Display a warning summary with standardized formatting.

	Args:
	        message: The warning message to display

	"""
	display_warning_summary(message)


def exit_with_error(message: str, exit_code: int = 1, exception: Exception | None = None) -> None:
	"""
	Display an error message and exit.

	Args:
	        message: Error message to display
	        exit_code: Exit code to use
	        exception: Optional exception that caused the error

	"""
	show_error(message, exception)
	raise typer.Exit(exit_code) from exception
