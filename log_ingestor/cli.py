"""Log Ingestor CLI - run the service, send logs and query them."""

import json
import time
from datetime import datetime
from pathlib import Path

import httpx
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from log_ingestor.models import LogQuery, LogRecord
from log_ingestor.models.log import QUERY_TIME_FORMAT
from log_ingestor.services import ApiClientService, LogGenerator

# Load .env file from project root (parent of log_ingestor/ directory)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

app = typer.Typer(help="Log Ingestor CLI")

console = Console()


def parse_metadata(pairs: list[str]) -> dict[str, str]:
    """Parse KEY=VALUE options into a metadata mapping."""
    metadata = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            console.print(f"[red]✗[/red] Invalid metadata entry: {pair}")
            raise typer.Exit(1)
        metadata[key] = value
    return metadata


@app.command("serve")
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (defaults to HOST)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (defaults to PORT)"),
):
    """Run the log ingestor HTTP service."""
    import uvicorn

    from log_ingestor.core.config import settings
    from log_ingestor.core.logging import configure_logging

    configure_logging(settings.log_level)
    uvicorn.run(
        "log_ingestor.main:app",
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


@app.command("send")
def send_log(
    message: str = typer.Argument(..., help="Log message"),
    level: str = typer.Option("info", "--level", "-l", help="Log level"),
    resource_id: str = typer.Option("", "--resource-id", help="Resource ID"),
    trace_id: str = typer.Option("", "--trace-id", help="Trace ID"),
    span_id: str = typer.Option("", "--span-id", help="Span ID"),
    commit: str = typer.Option("", "--commit", help="Commit hash"),
    metadata: list[str] = typer.Option(
        [], "--meta", "-m", help="Metadata entry KEY=VALUE (repeatable)"
    ),
):
    """Send a single log record. The server assigns the timestamp."""
    record = LogRecord(
        level=level,
        message=message,
        resource_id=resource_id,
        trace_id=trace_id,
        span_id=span_id,
        commit=commit,
        metadata=parse_metadata(metadata),
    )

    try:
        result = ApiClientService.ingest_log(record)
    except httpx.HTTPStatusError as e:
        console.print(f"[red]✗[/red] {e.response.status_code}: {e.response.text}")
        raise typer.Exit(1) from e

    console.print(f"[green]✓[/green] {result['status']}")


@app.command("query")
def query_logs(
    level: str = typer.Option("", "--level", "-l", help="Exact level"),
    message: str = typer.Option("", "--message", help="Message filter"),
    resource_id: str = typer.Option("", "--resource-id", help="Exact resource ID"),
    trace_id: str = typer.Option("", "--trace-id", help="Exact trace ID"),
    span_id: str = typer.Option("", "--span-id", help="Exact span ID"),
    commit: str = typer.Option("", "--commit", help="Exact commit"),
    parent_resource_id: str = typer.Option(
        "", "--parent-resource-id", help="Exact metadata.parentResourceId"
    ),
    start_time: str = typer.Option(
        "", "--start", help="Inclusive lower bound, e.g. 2023-09-15T08:00:00Z"
    ),
    end_time: str = typer.Option(
        "", "--end", help="Inclusive upper bound, e.g. 2023-09-15T09:00:00Z"
    ),
    regex: str = typer.Option("", "--regex", help="Message regex (SQL backend)"),
    search: str = typer.Option("", "--search", help="Full-text search (SQL backend)"),
    page: int = typer.Option(1, "--page", help="Page number (1-based)"),
    limit: int = typer.Option(10, "--limit", "-n", help="Page size"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
):
    """Query stored logs."""
    try:
        query = LogQuery(
            level=level,
            message=message,
            resource_id=resource_id,
            trace_id=trace_id,
            span_id=span_id,
            commit=commit,
            parent_resource_id=parent_resource_id,
            start_time=start_time,
            end_time=end_time,
            regex_pattern=regex,
            full_text_search=search,
            page=page,
            limit=limit,
        )
    except ValueError as e:
        console.print(f"[red]✗[/red] Invalid query: {e}")
        raise typer.Exit(1) from e

    try:
        records, count = ApiClientService.query_logs(query)
    except httpx.HTTPStatusError as e:
        console.print(f"[red]✗[/red] {e.response.status_code}: {e.response.text}")
        raise typer.Exit(1) from e

    if as_json:
        payload = [record.model_dump(mode="json", by_alias=True) for record in records]
        console.print(json.dumps({"logs": payload, "count": count}, indent=2))
        return

    if not records:
        console.print("[yellow]No logs found[/yellow]")
        return

    table = Table(title=f"Logs (page {page}, {count} shown)")
    table.add_column("Timestamp", style="dim", no_wrap=True)
    table.add_column("Level", style="magenta")
    table.add_column("Resource", style="cyan")
    table.add_column("Message", style="white")
    table.add_column("Trace", style="dim")

    for record in records:
        timestamp = (
            record.timestamp.strftime(QUERY_TIME_FORMAT) if record.timestamp else "-"
        )
        table.add_row(
            timestamp,
            record.level,
            record.resource_id,
            record.message,
            record.trace_id,
        )

    console.print(table)


@app.command("generate")
def generate_logs(
    count: int = typer.Option(100, "--count", "-c", help="Number of logs to send"),
    delay: float = typer.Option(
        0.05, "--delay", help="Seconds to wait between requests"
    ),
    seed: int = typer.Option(None, "--seed", help="Random seed"),
):
    """Generate random logs and send them to the ingestor."""
    generator = LogGenerator(seed=seed)
    started = datetime.now()

    console.print(f"Generating and sending {count} logs...")

    with ApiClientService.get_client() as client:
        for i in range(count):
            try:
                ApiClientService.ingest_log(generator.generate(), client=client)
            except httpx.HTTPError as e:
                console.print(f"[red]✗[/red] Error sending log {i + 1}: {e}")
                raise typer.Exit(1) from e

            if (i + 1) % 10 == 0:
                console.print(f"Sent {i + 1} logs...")

            if delay > 0:
                time.sleep(delay)

    elapsed = (datetime.now() - started).total_seconds()
    console.print(f"[green]✓[/green] Sent {count} logs in {elapsed:.1f}s")


if __name__ == "__main__":
    app()
