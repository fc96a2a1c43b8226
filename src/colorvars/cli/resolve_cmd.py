"""CLI command resolving one variable to a color."""

import json
import logging
from pathlib import Path
from typing import Annotated

import asyncer
import typer

from colorvars.cli.cli_types import ConfigOpt, StylesheetArg, WorkspaceOpt

logger = logging.getLogger(__name__)

NameArg = Annotated[
	str,
	typer.Argument(help="Variable to resolve, e.g. '$brand', or '--primary' after a '--' separator"),
]

FallbackOpt = Annotated[
	str | None,
	typer.Option("--fallback", "-f", help="Fallback value used when the variable does not resolve"),
]

ThemeOpt = Annotated[
	str | None,
	typer.Option("--theme", "-t", help="Prefer the 'light' or 'dark' variant of the variable"),
]

JsonFlag = Annotated[bool, typer.Option("--json", help="Print the color as JSON")]


def register_command(app: typer.Typer) -> None:
	"""Register the resolve command with the CLI app."""

	@app.command(name="resolve")
	@asyncer.runnify
	async def resolve_command(
		file: StylesheetArg,
		name: NameArg,
		fallback: FallbackOpt = None,
		theme: ThemeOpt = None,
		as_json: JsonFlag = False,
		workspace: WorkspaceOpt = None,
		config: ConfigOpt = None,
	) -> None:
		"""Resolve a CSS custom property or SCSS variable to its color."""
		await _resolve_command_impl(file, name, fallback, theme, as_json, workspace, config)


async def _resolve_command_impl(
	file: Path,
	name: str,
	fallback: str | None,
	theme: str | None,
	as_json: bool,
	workspace: Path | None,
	config: Path | None,
) -> None:
	from colorvars.utils.cli_utils import color_swatch, console, exit_with_error, load_stylesheet

	if theme is not None and theme not in ("light", "dark", "auto"):
		exit_with_error(f"Unknown theme '{theme}'; use light, dark or auto.")
	if not name.startswith(("--", "$")):
		exit_with_error(f"'{name}' is not a variable name; use '--name' or '$name'.")

	engine, document = await load_stylesheet(file, workspace, config)
	color = await engine.resolve(name, document, fallback=fallback, theme=theme)  # type: ignore[arg-type]
	if color is None:
		console.print(f"[yellow]{name}[/yellow] could not be resolved to a color")
		raise typer.Exit(1)

	if as_json:
		typer.echo(json.dumps(color.to_dict()))
		return
	line = color_swatch(color)
	line.append(f"  rgb({color.rgb.r}, {color.rgb.g}, {color.rgb.b})  hsl({color.hsl.h}, {color.hsl.s}%, {color.hsl.l}%)")
	console.print(f"[bold]{name}[/bold]")
	console.print(line)
