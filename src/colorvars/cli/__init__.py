"""Command-line interface package for ColorVars."""

from __future__ import annotations

import datetime
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from colorvars import __version__
from colorvars.utils.log_setup import setup_logging

from .analyze_cmd import register_command as register_analyze_command
from .graph_cmd import register_command as register_graph_command
from .resolve_cmd import register_command as register_resolve_command
from .watch_cmd import register_command as register_watch_command

logger = logging.getLogger(__name__)

app = typer.Typer(
	help=f"ColorVars - resolve and analyze CSS/SCSS color variables\n\nVersion: {__version__}",
	no_args_is_help=True,
	context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
	"""Callback for --version option."""
	if value:
		typer.echo(f"ColorVars version: {__version__}")
		raise typer.Exit


@app.callback(invoke_without_command=True)
def global_options(
	is_verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")] = False,
	is_output_log: Annotated[
		bool,
		typer.Option(
			"--save-log",
			help="Enable logging to a file. Logs to logs/colorvars_{datetime}.log.",
		),
	] = False,
	_version: Annotated[
		bool | None,
		typer.Option("--version", help="Show version and exit.", callback=_version_callback, is_eager=True),
	] = None,
) -> None:
	"""Global CLI options and logging setup."""
	log_file_path_to_use: Path | None = None
	if is_output_log:
		log_dir = Path("logs")
		log_dir.mkdir(parents=True, exist_ok=True)
		current_time = datetime.datetime.now(tz=datetime.UTC).strftime("%Y-%m-%d_%H-%M-%S")
		log_file_path_to_use = log_dir / f"colorvars_{current_time}.log"

	setup_logging(is_verbose=is_verbose or is_output_log, log_file_path=log_file_path_to_use)


register_analyze_command(app)
register_resolve_command(app)
register_graph_command(app)
register_watch_command(app)


def main() -> int:
	"""Run the CLI application."""
	return app()


if __name__ == "__main__":
	sys.exit(main())
