"""
Logging setup for ColorVars.

Records go to stderr through rich so command output on stdout stays
machine-readable; a plain-text file log is added on request.

"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.rule import Rule
from rich.text import Text

console = Console()
log_console = Console(stderr=True)

FILE_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s"

# Emit a debug record per file system event
NOISY_LOGGERS = ("watchdog",)


def setup_logging(
	is_verbose: bool = False,
	log_to_console: bool = True,
	log_file_path: Path | str | None = None,
) -> None:
	"""
	Configure the root logger.

	Handlers carry no level of their own, so a package logger set to DEBUG
	(the ``debug_logging`` setting) is shown even when the root level is WARNING.

	Args:
	    is_verbose: Lower the root level to DEBUG
	    log_to_console: Attach a rich handler writing to stderr
	    log_file_path: Also append every record to this file

	"""
	root_logger = logging.getLogger()
	root_logger.setLevel(logging.DEBUG if is_verbose else logging.WARNING)
	for handler in root_logger.handlers[:]:
		root_logger.removeHandler(handler)

	for name in NOISY_LOGGERS:
		logging.getLogger(name).setLevel(logging.INFO if is_verbose else logging.WARNING)

	if log_to_console:
		root_logger.addHandler(
			RichHandler(
				console=log_console,
				rich_tracebacks=True,
				show_time=is_verbose,
				show_path=is_verbose,
			)
		)

	if log_file_path is None:
		return
	path = Path(log_file_path)
	try:
		path.parent.mkdir(parents=True, exist_ok=True)
		file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
	except OSError as e:
		log_console.print(f"[red]Could not open log file {path}: {e}[/red]")
		return
	file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
	root_logger.addHandler(file_handler)
	root_logger.debug("Logging to file: %s", path)


def _display_summary(message: str, title: str, style: str) -> None:
	console.print()
	console.print(Rule(Text(title, style=f"bold {style}"), style=style))
	console.print(f"\n{message}\n")
	console.print(Rule(style=style))
	console.print()


def display_error_summary(error_message: str) -> None:
	"""Print an error between two red rules."""
	_display_summary(error_message, "Error Summary", "red")


def display_warning_summary(warning_message: str) -> None:
	"""Print a warning between two yellow rules."""
	_display_summary(warning_message, "Warning Summary", "yellow")
