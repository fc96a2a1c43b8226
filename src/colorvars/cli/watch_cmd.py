"""CLI command watching a workspace and reporting stylesheet changes."""

import logging
from pathlib import Path

import asyncer
import typer

from colorvars.cli.cli_types import ConfigOpt, WorkspaceOpt

logger = logging.getLogger(__name__)


def register_command(app: typer.Typer) -> None:
	"""Register the watch command with the CLI app."""

	@app.command(name="watch")
	@asyncer.runnify
	async def watch_command(
		workspace: WorkspaceOpt = None,
		config: ConfigOpt = None,
	) -> None:
		"""Watch the workspace and invalidate resolution caches as stylesheets change."""
		await _watch_command_impl(workspace, config)


async def _watch_command_impl(workspace: Path | None, config: Path | None) -> None:
	from colorvars.config import ConfigError, ConfigLoader
	from colorvars.engine import ColorVariableEngine
	from colorvars.errors import ErrorHandler
	from colorvars.utils.cli_utils import console, exit_with_error

	workspace_root = workspace or Path.cwd()
	error_handler = ErrorHandler()
	try:
		loader = ConfigLoader(config, repo_root=workspace_root, error_handler=error_handler)
	except ConfigError as e:
		exit_with_error(f"Could not load configuration: {e}", exception=e)

	engine = ColorVariableEngine(workspace_root, config=loader.get, error_handler=error_handler)
	console.print(f"Watching [bold]{engine.workspace_root}[/bold] for stylesheet changes (Ctrl+C to stop)")
	try:
		await engine.watch()
	except KeyboardInterrupt:
		console.print("\n[yellow]Operation cancelled by user.[/yellow]")
		raise typer.Exit(130) from None
