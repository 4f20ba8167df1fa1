"""
CLI for the edge image proxy.

Commands:
- serve: Start the HTTP server
- info: Show configuration
- check: Validate a request URL without fetching anything
"""

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from .config import settings
from .logging import setup_logging

app = typer.Typer(
    name="edge-image-proxy",
    help="Caching HTTP proxy for resized and re-encoded images",
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Edge Image Proxy - validate, fetch, transform and cache images."""
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=log_level, json_output=settings.log_json)
    logger.debug("CLI initialized with log level: {}", log_level)


@app.command()
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to bind to"),
):
    """Start the proxy server."""
    import uvicorn

    from .server import create_app

    logger.info("Starting image proxy on {}:{}", host, port)
    console.print("[bold blue]Starting Edge Image Proxy[/]")
    console.print(f"Listening on: http://{host}:{port}/")
    console.print(f"Transform engine: {settings.transform_engine}")
    console.print()

    if settings.processing_error_status != 200:
        logger.info("Processing failures will be answered with {}", settings.processing_error_status)

    uvicorn.run(create_app(), host=host, port=port, log_config=None)


@app.command()
def info():
    """Show configuration."""
    logger.debug("Displaying configuration")
    console.print("[bold blue]Edge Image Proxy Configuration[/]")

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Server Host", settings.host)
    table.add_row("Server Port", str(settings.port))
    table.add_row("Transform Engine", settings.transform_engine)
    table.add_row("Origin Fetch Timeout", f"{settings.origin_fetch_timeout:g}s")
    table.add_row("Origin Max Bytes", str(settings.origin_max_bytes))
    table.add_row(
        "Response Cache",
        f"{settings.response_cache_type} ({settings.response_cache_max_entries} entries)",
    )
    table.add_row(
        "Origin Cache",
        f"{settings.origin_cache_type} ({settings.origin_cache_max_entries} entries)",
    )
    table.add_row("Processing Error Status", str(settings.processing_error_status))
    table.add_row("Log Level", settings.log_level)

    console.print(table)


@app.command()
def check(
    url: str = typer.Argument(..., help="Full request URL, e.g. http://host/img.png?origin=...&width=100&mode=fit"),
):
    """Validate a request URL and show the resolved transform."""
    from .validation import validate_transform_request

    logger.info("Checking request: {}", url[:80])
    spec = validate_transform_request(url)

    if spec.errors:
        console.print(f"[red]Invalid request ({len(spec.errors)} errors):[/]")
        for error in spec.errors:
            console.print(f"  - {error}")
        raise typer.Exit(1)

    table = Table(title="Transform")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for field, value in spec.model_dump(exclude={"errors"}).items():
        table.add_row(field, "" if value is None else str(value))
    console.print(table)


if __name__ == "__main__":
    app()
