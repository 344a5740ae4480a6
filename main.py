#!/usr/bin/env python3
"""Site Foundry CLI - Entry point for website generation.

Usage:
    # Generate a site from an intake file
    python main.py --intake ./intake.json

    # Ignore the cached Content Pack and use a different model
    python main.py --intake ./intake.json --force --provider anthropic --model claude-sonnet

    # Let the model write the code instead of the built-in templates
    python main.py --intake ./intake.json --render-mode model --max-concurrency 2
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from config import settings
from contracts import PipelineResult, ProjectIntake
from logging_config import configure_logging
from orchestrator import ExecutionStrategy, generate_sync
from providers import get_provider
from storage import FileContentPackStore


console = Console()


def load_intake(intake_path: str) -> ProjectIntake:
    """Read and validate the intake JSON file."""
    data = json.loads(Path(intake_path).read_text(encoding="utf-8"))
    return ProjectIntake.model_validate(data)


def write_site(result: PipelineResult, project_dir: Path) -> int:
    """Write generated files below ``project_dir``.

    Returns:
        Number of files written
    """
    root = project_dir.resolve()
    for generated in result.generated_files:
        target = (root / generated.path).resolve()
        if root not in target.parents:
            raise click.ClickException(f"Refusing to write outside the output directory: {generated.path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(generated.content, encoding="utf-8")
    return len(result.generated_files)


def result_summary(result: PipelineResult) -> Dict[str, Any]:
    """Everything except the files themselves, for pipeline_result.json."""
    return {
        "runId": result.run_id,
        "success": result.success,
        "projectId": result.project_id,
        "status": result.status.value,
        "completedAgents": result.completed_agents,
        "pendingAgents": result.pending_agents,
        "contentPackHash": result.content_pack.hash if result.content_pack else None,
        "metrics": result.metrics.to_json_dict(),
        "errors": [e.to_json_dict() for e in result.errors],
        "todoMarkers": [m.to_json_dict() for m in result.todo_markers],
        "dependencies": [d.to_json_dict() for d in result.dependencies],
        "envVariables": [e.to_json_dict() for e in result.env_variables],
        "files": [f.path for f in result.generated_files],
    }


def print_summary(result: PipelineResult, output_path: Optional[Path]) -> None:
    metrics = result.metrics
    status = "[green]success[/green]" if result.success else "[red]failed[/red]"
    lines = [
        f"[bold]Status:[/bold] {status}",
        f"[bold]Run ID:[/bold] {result.run_id}",
        f"[bold]Cache hit:[/bold] {metrics.cache_hit}",
        f"[bold]Revisions:[/bold] {metrics.revision_count}",
        f"[bold]Quality score:[/bold] {metrics.quality_score if metrics.quality_score is not None else 'n/a'}",
        f"[bold]Duration:[/bold] {metrics.total_duration_ms / 1000:.1f}s",
        f"[bold]Tokens:[/bold] {metrics.token_usage.total_tokens:,} (~${metrics.estimated_cost_usd:.4f})",
        f"[bold]Files:[/bold] {len(result.generated_files)}",
    ]
    if output_path:
        lines.append(f"[bold]Output:[/bold] {output_path}")
    console.print(Panel("\n".join(lines), title="Site Foundry", border_style="green" if result.success else "red"))

    if metrics.phases:
        table = Table(title="Phases", show_lines=False)
        table.add_column("Phase")
        table.add_column("Duration", justify="right")
        table.add_column("Tokens", justify="right")
        for phase in metrics.phases:
            table.add_row(phase.name, f"{phase.duration_ms:.0f} ms", f"{phase.token_usage.total_tokens:,}")
        console.print(table)

    if result.errors:
        console.print(f"\n[yellow]Errors and warnings ({len(result.errors)}):[/yellow]")
        for error in result.errors:
            colour = "yellow" if error.recoverable else "red"
            console.print(f"  [{colour}]{error.code.value}[/{colour}] {error.phase}/{error.agent}: {error.message}")

    required_todos = [m for m in result.todo_markers if m.required]
    if result.todo_markers:
        console.print(
            f"\n[bold]TODO markers:[/bold] {len(result.todo_markers)} "
            f"({len(required_todos)} required before going live)"
        )
        for marker in required_todos:
            console.print(f"  - {marker.path}: {marker.description}")


@click.command()
@click.option(
    "--intake", "-i", "intake_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the project intake JSON"
)
@click.option(
    "--force", "-f",
    is_flag=True,
    help="Regenerate even when a fresh Content Pack is cached"
)
@click.option(
    "--output", "-o", "output_dir",
    default=None,
    help=f"Output directory (default: {settings.output_dir})"
)
@click.option(
    "--store-dir",
    default=None,
    help=f"Content Pack store directory (default: {settings.content_pack_dir})"
)
@click.option(
    "--provider", "-p",
    type=click.Choice(["anthropic", "openai", "gemini", "deepseek"]),
    default=None,
    help=f"LLM provider (default: {settings.provider})"
)
@click.option(
    "--model",
    default=None,
    help="Model name for every agent (e.g. gpt-4o, claude-sonnet, gemini/gemini-2.5-pro)"
)
@click.option(
    "--render-mode",
    type=click.Choice(["template", "model"]),
    default=None,
    help=f"Code rendering mode (default: {settings.render_mode})"
)
@click.option(
    "--max-concurrency",
    type=click.IntRange(min=1),
    default=None,
    help=f"Concurrent render tasks (default: {settings.max_concurrency})"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Verbose output"
)
@click.option(
    "--json-logs",
    is_flag=True,
    help="Emit logs as JSON lines"
)
def main(
    intake_path: str,
    force: bool,
    output_dir: Optional[str],
    store_dir: Optional[str],
    provider: Optional[str],
    model: Optional[str],
    render_mode: Optional[str],
    max_concurrency: Optional[int],
    verbose: bool,
    json_logs: bool,
):
    """Site Foundry: multi-agent website generation.

    Turns a project intake into a Content Pack and a ready-to-build Next.js
    site, reusing the cached pack when the intake has not changed.
    """
    configure_logging("DEBUG" if verbose else settings.log_level, json_output=json_logs or settings.log_json)

    try:
        intake = load_intake(intake_path)
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Error: invalid intake {intake_path}[/red]\n{e}")
        sys.exit(1)

    overrides: Dict[str, Any] = {}
    if provider:
        overrides["provider"] = provider
    if model:
        overrides["default_model"] = model
        overrides["codex_model"] = model
    if render_mode:
        overrides["render_mode"] = render_mode
    if max_concurrency:
        overrides["max_concurrency"] = max_concurrency
    if output_dir:
        overrides["output_dir"] = output_dir
    if store_dir:
        overrides["content_pack_dir"] = store_dir
    run_settings = settings.model_copy(update=overrides)

    console.print(Panel.fit(
        "[bold blue]Site Foundry[/bold blue]\n"
        "[dim]Multi-agent website generation[/dim]",
        border_style="blue"
    ))
    console.print(f"\n[dim]Project:[/dim] {intake.name} ({intake.id})")
    console.print(f"[dim]Provider:[/dim] {run_settings.provider}  [dim]Model:[/dim] {run_settings.default_model}")
    console.print(f"[dim]Render mode:[/dim] {run_settings.render_mode}")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Generating website...", total=None)
        result = generate_sync(
            intake,
            force_regenerate=force,
            provider=get_provider(run_settings.provider, run_settings.default_model),
            store=FileContentPackStore(run_settings.get_content_pack_path()),
            strategy=ExecutionStrategy.from_settings(run_settings),
            settings=run_settings,
        )
        progress.update(task, completed=True)

    project_dir = run_settings.get_output_path() / intake.id
    project_dir.mkdir(parents=True, exist_ok=True)
    if result.success:
        write_site(result, project_dir)
    (project_dir / "pipeline_result.json").write_text(
        json.dumps(result_summary(result), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )

    print_summary(result, project_dir if result.success else None)
    if not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
