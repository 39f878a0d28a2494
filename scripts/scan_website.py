"""Scan a lender or vendor website and print the fields found.

Usage:
    python scripts/scan_website.py lender acmefunding.com
    python scripts/scan_website.py vendor https://leads.example.com --strategy agent
    python scripts/scan_website.py recommend customer.json --model quality --json
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from fundscan.errors import ScanError
from fundscan.extraction.models import (
    CustomerProfile,
    CustomerRecommendation,
    ExtractionRequest,
    NormalizedResult,
)
from fundscan.pipeline.scan_pipeline import ScanPipeline
from fundscan.utils.config import load_config
from fundscan.utils.logging_setup import setup_logging

app = typer.Typer(help="Scan lender and lead-vendor websites.")
console = Console()


def _pipeline(config_path: str, verbose: bool) -> ScanPipeline:
    config = load_config(config_path)
    setup_logging(config.logging, verbose=verbose)
    return ScanPipeline(config)


def _render_result(result: NormalizedResult) -> None:
    table = Table(title=f"Scan: {result.source_url}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in result.model_dump(exclude={"notes", "source_url", "scanned_at"}).items():
        if value in (None, "", []):
            continue
        if isinstance(value, list):
            value = "\n".join(
                ", ".join(f"{k}: {v}" for k, v in item.items() if v) if isinstance(item, dict) else str(item)
                for item in value
            )
        table.add_row(name, str(value))
    console.print(table)
    if result.notes:
        console.print(Panel(result.notes, title="Notes", border_style="dim"))


def _render_recommendation(rec: CustomerRecommendation) -> None:
    console.print(Panel(rec.summary or "-", title="Summary", border_style="blue"))

    if rec.recommended_products:
        table = Table(title="Recommended Products")
        table.add_column("Product")
        table.add_column("Fit", justify="right")
        table.add_column("Reasoning")
        for product in rec.recommended_products:
            table.add_row(product.product_name or product.product_type, str(product.fit_score), product.reasoning)
        console.print(table)

    if rec.opening_script:
        console.print(Panel(rec.opening_script, title="Opening Script", border_style="green"))
    for title, items in (
        ("Discovery Questions", rec.discovery_questions),
        ("Red Flags", rec.red_flags),
        ("Next Steps", rec.next_steps),
    ):
        if items:
            console.print(f"\n[bold]{title}[/bold]")
            for item in items:
                console.print(f"  - {item}")
    for handler in rec.objection_handlers:
        console.print(f"\n[yellow]{handler.objection}[/yellow]\n  {handler.response}")
    if rec.closing_approach:
        console.print(Panel(rec.closing_approach, title="Closing Approach", border_style="magenta"))


def _scan(profile: str, url: str, config_path: str, strategy: Optional[str], model: Optional[str],
          as_json: bool, verbose: bool) -> None:
    try:
        pipeline = _pipeline(config_path, verbose)
        request = ExtractionRequest(url=url, model_hint=model)
        if not as_json:
            console.print(f"[bold blue]Scanning {url} ({profile})...[/bold blue]")
        result = asyncio.run(pipeline.scan(request, profile, strategy))
    except (ScanError, ValueError, FileNotFoundError) as exc:
        logger.debug("Scan failed", error=str(exc))
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
    else:
        _render_result(result)


@app.command()
def lender(
    url: str,
    config_path: str = typer.Option("config/config.yaml", "--config", "-c"),
    strategy: Optional[str] = typer.Option(None, "--strategy", "-s", help="llm, heuristic or agent"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="fast or quality"),
    as_json: bool = typer.Option(False, "--json"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Scan a lender (funding partner) website."""
    _scan("lender", url, config_path, strategy, model, as_json, verbose)


@app.command()
def vendor(
    url: str,
    config_path: str = typer.Option("config/config.yaml", "--config", "-c"),
    strategy: Optional[str] = typer.Option(None, "--strategy", "-s", help="llm, heuristic or agent"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="fast or quality"),
    as_json: bool = typer.Option(False, "--json"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Scan a lead-generation vendor website."""
    _scan("vendor", url, config_path, strategy, model, as_json, verbose)


@app.command()
def recommend(
    customer_json: Path,
    config_path: str = typer.Option("config/config.yaml", "--config", "-c"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="fast or quality"),
    as_json: bool = typer.Option(False, "--json"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Generate sales recommendations for the customer in CUSTOMER_JSON."""
    try:
        pipeline = _pipeline(config_path, verbose)
        customer = CustomerProfile.model_validate(json.loads(customer_json.read_text(encoding="utf-8")))
        rec = asyncio.run(pipeline.recommend(customer, model))
    except (ScanError, ValueError, FileNotFoundError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(rec.model_dump_json(indent=2))
    else:
        _render_recommendation(rec)


if __name__ == "__main__":
    app()
