"""CLI command printing the variables, colors and issues of a stylesheet."""

import logging
from pathlib import Path

import asyncer
import typer

from colorvars.cli.cli_types import ConfigOpt, StylesheetArg, WorkspaceOpt

logger = logging.getLogger(__name__)

_SEVERITY_STYLES = {"error": "red", "warning": "yellow", "info": "cyan"}


def register_command(app: typer.Typer) -> None:
	"""Register the analyze command with the CLI app."""

	@app.command(name="analyze")
	@asyncer.runnify
	async def analyze_command(
		file: StylesheetArg,
		workspace: WorkspaceOpt = None,
		config: ConfigOpt = None,
	) -> None:
		"""Show definitions, usages, color literals, cycles, validation issues and a usage report."""
		await _analyze_command_impl(file, workspace, config)


async def _analyze_command_impl(file: Path, workspace: Path | None, config: Path | None) -> None:
	from rich.table import Table

	from colorvars.utils.cli_utils import color_swatch, console, load_stylesheet

	engine, document = await load_stylesheet(file, workspace, config)
	result = engine.analyze_document(document)
	if result is None:
		raise typer.Exit(0)

	definitions = Table(title=f"Variable definitions ({len(result.variable_definitions)})")
	definitions.add_column("Line", justify="right")
	definitions.add_column("Name", style="bold")
	definitions.add_column("Value")
	definitions.add_column("Color")
	for definition in result.variable_definitions:
		color = await engine.resolve(definition.name, document)
		definitions.add_row(
			str(definition.range.start.line + 1),
			definition.name,
			definition.value,
			color_swatch(color),
		)
	console.print(definitions)

	usages = Table(title=f"Variable usages ({len(result.variable_usages)})")
	usages.add_column("Line", justify="right")
	usages.add_column("Name", style="bold")
	usages.add_column("Fallback")
	for usage in result.variable_usages:
		usages.add_row(str(usage.range.start.line + 1), usage.name, usage.fallback_value or "")
	console.print(usages)

	colors = Table(title=f"Color literals ({len(result.color_matches)})")
	colors.add_column("Line", justify="right")
	colors.add_column("Literal")
	colors.add_column("Color")
	for match in result.color_matches:
		colors.add_row(str(match.range.start.line + 1), match.value, color_swatch(match.color))
	console.print(colors)

	for cycle in engine.graph.detect_circular_references(document):
		console.print(f"[red]Circular reference:[/red] {' -> '.join([*cycle.cycle, cycle.cycle[0]])}")

	validations = engine.graph.validate_variable_definitions(document)
	if validations:
		issues = Table(title="Validation issues")
		issues.add_column("Variable", style="bold")
		issues.add_column("Severity")
		issues.add_column("Message")
		for validation in validations:
			for issue in validation.issues:
				style = _SEVERITY_STYLES[issue.severity]
				issues.add_row(validation.variable.name, f"[{style}]{issue.severity}[/{style}]", issue.message)
		console.print(issues)

	report = engine.graph.generate_usage_report(document)
	console.print(
		f"\n[bold]{report.total_variables}[/bold] variables, [bold]{report.used_variables}[/bold] used, "
		f"[bold]{len(report.unused_variables)}[/bold] unused, "
		f"[bold]{len(report.color_variables)}[/bold] resolve to colors"
	)
	if report.most_used_variables:
		most_used = ", ".join(f"{item.variable.name} ({item.usage_count})" for item in report.most_used_variables)
		console.print(f"Most used: {most_used}")
	for optimization in engine.graph.optimize_variables(document):
		console.print(f"[dim]{optimization.action}[/dim] {optimization.variable.name}: {optimization.reason}")
