"""AgentDB CLI main entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from agentdb.cli._helpers import configure_logging, fail, open_db, output_json
from agentdb.core.action_pattern import ActionContext
from agentdb.core.errors import AgentDBError
from agentdb.engine.query import SearchFilter

app = typer.Typer(
    name="agentdb",
    help="AgentDB - action-pattern memory for browser automation",
    no_args_is_help=True,
)

console = Console()

PathOption = Annotated[
    Optional[Path],
    typer.Option("--path", "-p", help="Database directory (default: $AGENTDB_DIR or ~/.agentdb)"),
]
JsonOption = Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")]


@app.callback()
def _main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    configure_logging(verbose)


def _parse_metadata(items: list[str]) -> dict[str, str | int | float | bool]:
    metadata: dict[str, str | int | float | bool] = {}
    for item in items:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            fail(f"Metadata must be key=value, got {item!r}")
        value: str | int | float | bool = raw
        if raw.lower() in ("true", "false"):
            value = raw.lower() == "true"
        else:
            for cast in (int, float):
                try:
                    value = cast(raw)
                    break
                except ValueError:
                    continue
        metadata[key] = value
    return metadata


# =============================================================================
# Recording
# =============================================================================


@app.command()
def record(
    action: Annotated[str, typer.Argument(help="Action type, e.g. fill or click")],
    selector: Annotated[Optional[str], typer.Option("--selector", "-s")] = None,
    url: Annotated[Optional[str], typer.Option("--url", "-u")] = None,
    value: Annotated[Optional[str], typer.Option("--value")] = None,
    success: Annotated[bool, typer.Option("--success/--failure")] = True,
    meta: Annotated[
        Optional[list[str]], typer.Option("--meta", "-m", help="Metadata as key=value")
    ] = None,
    path: PathOption = None,
    json_output: JsonOption = False,
) -> None:
    """Record one action and save the database.

    Examples:
        agentdb record fill -s "#email" -u site.com/signup
        agentdb record click -s "button[type=submit]" --failure -m fieldType=submit
    """
    db = open_db(path)
    try:
        pattern_id = db.record(
            action,
            selector=selector,
            url=url,
            value=value,
            success=success,
            metadata=_parse_metadata(meta or []),
        )
        db.save()
    except (AgentDBError, ValueError) as e:
        fail(str(e))

    if json_output:
        output_json({"id": pattern_id, "totalActions": len(db)})
    else:
        typer.secho(f"Recorded pattern {pattern_id}", fg=typer.colors.GREEN)


# =============================================================================
# Querying
# =============================================================================


@app.command()
def query(
    action: Annotated[str, typer.Argument(help="Action type to match")],
    selector: Annotated[Optional[str], typer.Option("--selector", "-s")] = None,
    url: Annotated[Optional[str], typer.Option("--url", "-u")] = None,
    k: Annotated[int, typer.Option("--limit", "-k", help="Maximum results")] = 5,
    success_only: Annotated[bool, typer.Option("--success-only")] = False,
    min_similarity: Annotated[Optional[float], typer.Option("--min-similarity")] = None,
    path: PathOption = None,
    json_output: JsonOption = False,
) -> None:
    """Find the most similar recorded actions.

    Examples:
        agentdb query fill -s "#email" -u site.com --success-only
    """
    db = open_db(path)
    results = db.find_similar(
        ActionContext(action=action, selector=selector, url=url),
        k,
        SearchFilter(success_only=success_only, min_similarity=min_similarity),
    )

    if json_output:
        output_json([r.to_dict() for r in results])
        return

    if not results:
        typer.echo("No similar patterns found.")
        return

    table = Table(title=f"Similar to {action} {selector or ''} {url or ''}".strip())
    table.add_column("ID", justify="right")
    table.add_column("Similarity", justify="right")
    table.add_column("Action")
    table.add_column("Selector")
    table.add_column("URL")
    table.add_column("OK")
    for r in results:
        table.add_row(
            str(r.id),
            f"{r.similarity:.3f}",
            r.pattern.action,
            r.pattern.selector or "",
            r.pattern.url or "",
            "yes" if r.pattern.success else "no",
        )
    console.print(table)


@app.command()
def stats(
    top: Annotated[int, typer.Option("--top", "-t", help="Number of top patterns")] = 10,
    path: PathOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show database statistics.

    Examples:
        agentdb stats
        agentdb stats --json
    """
    db = open_db(path)
    statistics = db.get_statistics(top_n=top)

    if json_output:
        output_json(statistics.to_dict())
        return

    typer.echo(f"Total actions: {statistics.total_actions}")
    typer.echo(f"Success rate: {statistics.success_rate:.1%}")
    typer.echo(f"Capacity: {len(db)}/{db.capacity}")
    if statistics.action_type_histogram:
        typer.echo("Action types:")
        for action, count in sorted(
            statistics.action_type_histogram.items(), key=lambda item: item[1], reverse=True
        ):
            typer.echo(f"  {action}: {count}")

    if statistics.top_patterns:
        table = Table(title="Top patterns")
        table.add_column("Pattern")
        table.add_column("Count", justify="right")
        table.add_column("Success", justify="right")
        table.add_column("Last seen")
        for summary in statistics.top_patterns:
            table.add_row(
                summary.pattern,
                str(summary.count),
                f"{summary.success_rate:.0%}",
                summary.last_seen,
            )
        console.print(table)


# =============================================================================
# Maintenance
# =============================================================================


@app.command("export")
def export_cmd(
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="File to write (default: stdout)")
    ] = None,
    path: PathOption = None,
) -> None:
    """Export all patterns as JSON for another instance."""
    db = open_db(path)
    data = db.export_training_data()
    if output is None:
        typer.echo(data)
        return
    output.write_text(data + "\n", encoding="utf-8")
    typer.secho(f"Exported {len(db)} patterns to {output}", fg=typer.colors.GREEN)


@app.command("import")
def import_cmd(
    source: Annotated[Path, typer.Argument(help="JSON file produced by export")],
    path: PathOption = None,
) -> None:
    """Append patterns from an export file (fresh ids) and save."""
    if not source.exists():
        fail(f"File not found: {source}")
    db = open_db(path)
    try:
        ids = db.import_from(source.read_text(encoding="utf-8"))
        db.save()
    except (AgentDBError, ValueError) as e:
        fail(str(e))
    typer.secho(f"Imported {len(ids)} patterns (total {len(db)})", fg=typer.colors.GREEN)


@app.command()
def reindex(
    max_elements: Annotated[
        Optional[int], typer.Option("--max-elements", help="New capacity (default: double)")
    ] = None,
    path: PathOption = None,
) -> None:
    """Rebuild the vector index with a larger capacity and save."""
    db = open_db(path)
    try:
        capacity = db.reindex(max_elements)
        db.save()
    except ValueError as e:
        fail(str(e))
    typer.secho(f"Reindexed {len(db)} patterns, capacity {capacity}", fg=typer.colors.GREEN)


@app.command()
def version() -> None:
    """Show version information."""
    from agentdb import __version__

    typer.echo(f"agentdb v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
