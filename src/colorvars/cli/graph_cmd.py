"""CLI command printing the reference graph of a stylesheet's variables."""

import logging
from pathlib import Path
from typing import Annotated

import asyncer
import typer

from colorvars.cli.cli_types import ConfigOpt, StylesheetArg, WorkspaceOpt

logger = logging.getLogger(__name__)

AffectedOpt = Annotated[
	str | None,
	typer.Option("--affected", "-a", help="Also list the variables affected by changing this variable"),
]


def register_command(app: typer.Typer) -> None:
	"""Register the graph command with the CLI app."""

	@app.command(name="graph")
	@asyncer.runnify
	async def graph_command(
		file: StylesheetArg,
		affected: AffectedOpt = None,
		workspace: WorkspaceOpt = None,
		config: ConfigOpt = None,
	) -> None:
		"""Show which variables reference which, and any reference cycles."""
		await _graph_command_impl(file, affected, workspace, config)


async def _graph_command_impl(file: Path, affected: str | None, workspace: Path | None, config: Path | None) -> None:
	from rich.tree import Tree

	from colorvars.utils.cli_utils import console, load_stylesheet

	engine, document = await load_stylesheet(file, workspace, config)
	graph = engine.graph.build_dependency_graph(document)

	tree = Tree(f"[bold]{document.uri}[/bold]")
	for name, data in graph.nodes(data=True):
		if not data.get("defined"):
			continue
		node = tree.add(name)
		for dependency in graph.successors(name):
			label = dependency if graph.nodes[dependency].get("defined") else f"{dependency} [red](undefined)[/red]"
			node.add(label)
	console.print(tree)

	cycles = engine.graph.detect_circular_references(document)
	if cycles:
		for cycle in cycles:
			console.print(f"[red]Circular reference:[/red] {' -> '.join([*cycle.cycle, cycle.cycle[0]])}")
	else:
		console.print("[green]No circular references[/green]")

	if affected is not None:
		results = engine.graph.find_affected_variables(affected, document)
		if not results:
			console.print(f"Changing [bold]{affected}[/bold] affects no other variable")
			return
		console.print(f"Changing [bold]{affected}[/bold] affects:")
		for result in results:
			console.print(f"  {result.variable.name}  [dim]{' -> '.join(result.dependency_chain)}[/dim]")
