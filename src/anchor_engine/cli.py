"""Typer CLI for Anchor-Engine."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

app = typer.Typer(name="anchor", help="Anchor-Engine: document fingerprint anchoring")
console = Console()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the Anchor-Engine API server."""
    import uvicorn
    from anchor_engine.app import create_app

    console.print(f"[bold green]Starting Anchor-Engine on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command()
def fingerprint(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to fingerprint"),
):
    """Compute a file's fingerprint locally (nothing is uploaded)."""
    from anchor_engine.fingerprint.hasher import fingerprint_file, format_bytes

    fp = fingerprint_file(path)
    console.print(f"[bold]{fp.fingerprint}[/bold]")
    console.print(f"  Name: {fp.display_name}")
    console.print(f"  Size: {format_bytes(fp.size_bytes)} ({fp.size_bytes} bytes)")
    console.print(f"  Type: {fp.media_type}")


@app.command()
def verify(
    public_id: str = typer.Argument(..., help="Public verification id"),
    file: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Local file to compare"),
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Look up an anchored record and optionally compare a local file."""
    from anchor_engine.client import VerificationClient

    with VerificationClient(server_url=url) as client:
        result = client.verify_file(public_id, file) if file else client.verify(public_id)

    if not result.found:
        console.print(f"[bold red]{result.code or 'NOT_FOUND'}[/bold red] {result.error}")
        raise typer.Exit(1)

    console.print(f"[bold]{result.headline.upper()}[/bold]: {result.display_name}")
    console.print(f"  Fingerprint: {result.fingerprint}")
    if result.attestation:
        console.print(f"  Attested: {result.attestation.network} {result.attestation.receipt_id}")
    if file:
        if result.matches:
            console.print("[bold green]MATCH[/bold green] file is identical to the anchored record")
        else:
            console.print("[bold red]MISMATCH[/bold red] file differs from the anchored record")
            raise typer.Exit(2)


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check Anchor-Engine server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] — v{data['version']}")
    except (httpx.HTTPError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
