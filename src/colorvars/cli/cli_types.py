"""Type definitions for CLI parameters."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

StylesheetArg = Annotated[
	Path,
	typer.Argument(
		exists=True,
		file_okay=True,
		dir_okay=False,
		resolve_path=True,
		help="Stylesheet to analyze (.css, .scss or .sass)",
	),
]

WorkspaceOpt = Annotated[
	Path | None,
	typer.Option(
		"--workspace",
		"-w",
		exists=True,
		file_okay=False,
		dir_okay=True,
		resolve_path=True,
		help="Workspace root used for imports and workspace search (defaults to the current directory)",
	),
]

ConfigOpt = Annotated[
	Path | None,
	typer.Option(
		"--config",
		"-c",
		help="Path to config file",
	),
]
