"""
Memento CLI - Command line interface for search and graph operations.

Talks to a running Memento API server over HTTP.
"""

from pathlib import Path
from typing import List, Optional

import httpx
import orjson
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from memento.config import settings

# CLI app
app = typer.Typer(
    name="memento",
    help="Memento - Hybrid semantic search over a knowledge graph",
    add_completion=False
)

console = Console()

_state = {"url": f"http://localhost:{settings.port}"}


@app.callback()
def main(
    url: Optional[str] = typer.Option(
        None,
        "--url",
        "-u",
        envvar="MEMENTO_API_URL",
        help="Base URL of the Memento API"
    )
):
    if url:
        _state["url"] = url.rstrip("/")


def get_client() -> httpx.Client:
    """Get HTTP client for API calls."""
    return httpx.Client(base_url=_state["url"], timeout=settings.request_timeout)


def _fail(e: Exception):
    if isinstance(e, httpx.HTTPStatusError):
        try:
            detail = e.response.json().get("detail", e.response.text)
        except ValueError:
            detail = e.response.text
        console.print(f"[red]Error ({e.response.status_code}): {detail}[/red]")
    else:
        console.print(f"[red]Error: {e}[/red]")
    raise typer.Exit(1)


def _print_entities(entities: List[dict], relations: List[dict]):
    if not entities:
        console.print("[yellow]No results found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=3)
    table.add_column("Name", width=24)
    table.add_column("Type", width=14)
    table.add_column("Observations", width=50)
    table.add_column("Updated", width=10)

    for i, entity in enumerate(entities, 1):
        observations = "; ".join(entity.get("observations", []))
        if len(observations) > 80:
            observations = observations[:80] + "..."
        table.add_row(
            str(i),
            entity["name"],
            entity["entityType"],
            observations,
            entity.get("updated") or ""
        )

    console.print(table)

    if relations:
        console.print(f"\n[bold]Relations ({len(relations)}):[/bold]")
        for rel in relations:
            console.print(f"  {rel['from']} --[{rel['relationType']}]--> {rel['to']}")


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query text"),
    mode: str = typer.Option("hybrid", "--mode", "-m", help="Search mode: hybrid or vector"),
    limit: int = typer.Option(settings.default_limit, "--limit", "-l", help="Maximum number of entities"),
    min_similarity: float = typer.Option(settings.default_min_similarity, "--min-similarity", "-s", help="Vector similarity floor"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON")
):
    """
    Search entities with hybrid RRF (default) or vector-only search.
    """
    if mode not in ("hybrid", "vector"):
        console.print(f"[red]Unknown mode: {mode}[/red]")
        raise typer.Exit(1)

    try:
        with get_client() as client:
            response = client.post("/search/semantic", json={
                "query": query,
                "limit": limit,
                "minSimilarity": min_similarity,
                "hybridSearch": mode == "hybrid"
            })
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        _fail(e)

    if json_output:
        console.print_json(data=data)
        return

    console.print(Panel(f"[bold]Query:[/bold] {query}", title=f"{mode.upper()} Search"))
    console.print(f"[dim]Time taken: {data['timeTaken']}ms | Results: {data['total']}[/dim]\n")
    _print_entities(data["entities"], data["relations"])


@app.command("open")
def open_nodes(
    names: List[str] = typer.Argument(..., help="Entity names"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON")
):
    """
    Show entities by exact name, with the relations among them.
    """
    try:
        with get_client() as client:
            response = client.post("/entities/open", json={"names": names})
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        _fail(e)

    if json_output:
        console.print_json(data=data)
        return
    _print_entities(data["entities"], data["relations"])


@app.command()
def ingest(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with entities and relations"),
    batch_size: int = typer.Option(50, "--batch-size", "-b", min=1, max=50, help="Entities per request")
):
    """
    Load entities and relations from a JSON file.

    The file holds ``{"entities": [...], "relations": [...]}`` using the
    API's field names (``name``, ``entityType``, ``observations``,
    ``from``, ``to``, ``relationType``).
    """
    try:
        payload = orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {path}: {e}[/red]")
        raise typer.Exit(1)

    entities = payload.get("entities", [])
    relations = payload.get("relations", [])

    created = updated = failed = 0
    try:
        with get_client() as client:
            for start in range(0, len(entities), batch_size):
                response = client.post("/entities", json={"entities": entities[start:start + batch_size]})
                response.raise_for_status()
                for result in response.json():
                    if result.get("error"):
                        failed += 1
                        console.print(f"[yellow]  {result['name']}: {result['error']}[/yellow]")
                    elif result.get("wasCreated"):
                        created += 1
                    else:
                        updated += 1

            relation_results = []
            for start in range(0, len(relations), 100):
                response = client.post("/relations", json={"relations": relations[start:start + 100]})
                response.raise_for_status()
                relation_results.extend(response.json())
    except httpx.HTTPError as e:
        _fail(e)

    linked = sum(1 for r in relation_results if not r.get("error"))
    console.print(
        f"[green]✓ Entities: {created} created, {updated} updated, {failed} failed[/green]"
    )
    console.print(f"[green]✓ Relations: {linked} of {len(relations)} written[/green]")


@app.command()
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload")
):
    """
    Start the Memento API server.
    """
    import uvicorn

    console.print(f"[green]Starting Memento server on {host}:{port}[/green]")
    console.print(f"[dim]API docs: http://{host if host != '0.0.0.0' else 'localhost'}:{port}/docs[/dim]")
    uvicorn.run(
        "memento.main:app",
        host=host,
        port=port,
        reload=reload
    )


if __name__ == "__main__":
    app()
