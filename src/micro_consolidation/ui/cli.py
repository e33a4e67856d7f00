"""CLI for running micro-consolidation and inspecting the knowledge log."""

import asyncio
import pathlib
from typing import Optional

import orjson
import typer
from rich.console import Console
from rich.table import Table

from micro_consolidation.config import AgentConfig
from micro_consolidation.llm_client.types import Content
from micro_consolidation.memory import (
    MemoryConsolidationService,
    get_background_task_count,
    wait_for_background_tasks,
)

app = typer.Typer(help="Micro-consolidation - background fact extraction for agent turns")
console = Console()


def _load_turn(turn_file: pathlib.Path) -> list[Content]:
    """Load a turn (JSON list of content blocks) from disk."""
    try:
        data = orjson.loads(turn_file.read_bytes())
    except orjson.JSONDecodeError as e:
        raise typer.BadParameter(f"turn file is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise typer.BadParameter("turn file must contain a JSON list of content blocks")
    return data


async def _consolidate(config: AgentConfig, turn: list[Content]) -> int:
    service = MemoryConsolidationService(config)
    before = len(config.storage.read_entries())
    service.trigger_micro_consolidation(turn)
    if get_background_task_count():
        await wait_for_background_tasks()
    return len(config.storage.read_entries()) - before


@app.command(name="consolidate")
def consolidate_command(
    turn_file: pathlib.Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="JSON file with the turn's content blocks"
    ),
    forever: Optional[bool] = typer.Option(
        None, "--forever/--no-forever", help="Override the forever-mode setting"
    ),
) -> None:
    """Consolidate one turn into the knowledge log and wait for the result.

    Examples:
        micro-consolidation consolidate turn.json --forever
    """
    config = AgentConfig()
    if forever is not None:
        config.set_forever_mode(forever)

    if not config.is_forever_mode():
        console.print("[yellow]Forever mode is disabled; nothing to do.[/yellow]")
        raise typer.Exit(code=0)

    added = asyncio.run(_consolidate(config, _load_turn(turn_file)))

    if added:
        latest = config.storage.read_entries(limit=1)[0]
        console.print(f"[bold green]Recorded:[/bold green] {latest.fact}")
    else:
        console.print("[dim]No fact recorded.[/dim]")


@app.command(name="facts")
def facts_command(
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Number of recent facts to show"),
) -> None:
    """Show the most recent facts from the knowledge log."""
    config = AgentConfig()
    entries = config.storage.read_entries(limit=limit)

    if not entries:
        console.print(
            f"[dim]No facts in {config.storage.get_knowledge_log_path()}[/dim]"
        )
        return

    table = Table(title="Knowledge log")
    table.add_column("Time", style="cyan", no_wrap=True)
    table.add_column("Fact")
    for entry in entries:
        table.add_row(entry.timestamp or "-", entry.fact)
    console.print(table)


if __name__ == "__main__":
    app()
