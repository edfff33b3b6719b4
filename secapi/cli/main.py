"""Filings search CLI.

Usage:
    secapi search --ticker AAPL --form 10-K --limit 20
    secapi backfill --ticker AAPL --from 2020-01-01 --to 2023-12-31 -o data/aapl.csv
    secapi mapping ticker AAPL

Exit codes: 0=success, 1=error, 2=rate_limit
"""

# Load .env file before any other imports
from dotenv import load_dotenv

load_dotenv()

import json
import logging
from itertools import islice
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from secapi import __version__
from secapi.client import Client
from secapi.core.errors import RateLimitError, SecApiError
from secapi.models.filing import Filing
from secapi.observability import logger as secapi_logging
from secapi.query import Query
from secapi.storage import FilingCSVStorage, FilingStorage, SaveResult

# Create CLI app
app = typer.Typer(
    name="secapi",
    help="Filings Search API CLI",
    add_completion=False,
)

console = Console()

EXIT_ERROR = 1
EXIT_RATE_LIMIT = 2

MAPPING_KINDS = ("ticker", "cik", "cusip", "name")


def setup_logging(quiet: bool = False, verbose: bool = False, json_logs: bool = False) -> None:
    """Configure logging with rich handler, or JSON lines with --json-logs."""
    level = logging.WARNING if quiet else (logging.DEBUG if verbose else logging.INFO)

    if json_logs:
        secapi_logging.setup_logging(level=level, json_format=True, force=True)
        return

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _build_client() -> Client:
    return Client()


def _build_query(
    client: Client,
    tickers: list[str] | None,
    forms: list[str] | None,
    cik: str | None,
    from_date: str | None,
    to_date: str | None,
) -> Query:
    query = client.query()
    if tickers:
        query.ticker(*tickers)
    if cik:
        query.cik(cik)
    if forms:
        query.form_type(*forms)
    if from_date or to_date:
        if not (from_date and to_date):
            raise ValueError("--from and --to must be given together")
        query.date_range(from_date, to_date)
    if not query.to_lucene():
        raise ValueError("Provide at least one of --ticker, --cik, --form or --from/--to")
    return query


def _fail(error: Exception) -> typer.Exit:
    """Print an error and map it to the CLI exit code."""
    if isinstance(error, RateLimitError):
        console.print(f"[yellow]Rate limit hit: {error.message}[/yellow]")
        if error.reset_at:
            console.print(f"[yellow]Quota resets at {error.reset_at:%Y-%m-%d %H:%M:%S} UTC.[/yellow]")
        return typer.Exit(code=EXIT_RATE_LIMIT)
    message = error.message if isinstance(error, SecApiError) else str(error)
    console.print(f"[red]{message}[/red]")
    return typer.Exit(code=EXIT_ERROR)


def _filings_table(filings: list[Filing], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Accession No.", style="cyan", no_wrap=True)
    table.add_column("Form")
    table.add_column("Company")
    table.add_column("Ticker")
    table.add_column("Filed At")
    for filing in filings:
        table.add_row(
            filing.accession_number or "-",
            filing.form_type or "-",
            filing.company_name or "-",
            filing.ticker or "-",
            filing.filed_at or "-",
        )
    return table


@app.command()
def search(
    ticker: Annotated[list[str] | None, typer.Option("--ticker", "-t", help="Ticker symbol (repeatable)")] = None,
    form: Annotated[list[str] | None, typer.Option("--form", "-f", help="Form type (repeatable)")] = None,
    cik: Annotated[str | None, typer.Option("--cik", help="Company CIK")] = None,
    from_date: Annotated[str | None, typer.Option("--from", help="Filed on or after (YYYY-MM-DD)")] = None,
    to_date: Annotated[str | None, typer.Option("--to", help="Filed on or before (YYYY-MM-DD)")] = None,
    raw: Annotated[str | None, typer.Option("--query", "-q", help="Raw Lucene query")] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum filings to show")] = 10,
    as_json: Annotated[bool, typer.Option("--json", help="Print filings as JSON")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output")] = False,
) -> None:
    """Search filings and print the first matches.

    Examples:
        secapi search --ticker AAPL --form 10-K
        secapi search -t AAPL -t MSFT --from 2023-01-01 --to 2023-12-31 --limit 50
        secapi search --query 'formType:"8-K" AND ticker:TSLA' --json
    """
    setup_logging(quiet=as_json, verbose=verbose)

    try:
        with _build_client() as client:
            if raw:
                page = client.search(raw)
            else:
                page = _build_query(client, ticker, form, cik, from_date, to_date).search()
            filings = list(islice(page.iterate(), limit))
            total = page.count()
    except (SecApiError, ValueError) as e:
        raise _fail(e)

    if as_json:
        typer.echo(json.dumps([f.model_dump(mode="json") for f in filings], indent=2))
        return

    console.print(_filings_table(filings, f"{len(filings)} of {total} filings"))


@app.command()
def backfill(
    output: Annotated[Path, typer.Option("--output", "-o", help="CSV file to write")],
    ticker: Annotated[list[str] | None, typer.Option("--ticker", "-t", help="Ticker symbol (repeatable)")] = None,
    form: Annotated[list[str] | None, typer.Option("--form", "-f", help="Form type (repeatable)")] = None,
    cik: Annotated[str | None, typer.Option("--cik", help="Company CIK")] = None,
    from_date: Annotated[str | None, typer.Option("--from", help="Filed on or after (YYYY-MM-DD)")] = None,
    to_date: Annotated[str | None, typer.Option("--to", help="Filed on or before (YYYY-MM-DD)")] = None,
    batch_size: Annotated[int, typer.Option("--batch-size", help="Filings per CSV write")] = 200,
    max_filings: Annotated[int | None, typer.Option("--max", help="Stop after this many filings")] = None,
    quiet: Annotated[bool, typer.Option("--quiet", help="Minimal output")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output")] = False,
    json_logs: Annotated[bool, typer.Option("--json-logs", help="Structured JSON logs")] = False,
) -> None:
    """Walk every page of a query and export the filings to CSV.

    Progress is written in batches, so a run stopped by the rate limit
    keeps what it has fetched. Running again merges into the same file.

    Examples:
        secapi backfill -t AAPL -f 10-K -f 10-Q -o data/aapl.csv
        secapi backfill --form 8-K --from 2024-01-01 --to 2024-01-31 -o data/8k.csv --max 1000
    """
    setup_logging(quiet=quiet, verbose=verbose, json_logs=json_logs)
    logger = logging.getLogger(__name__)

    storage: FilingStorage = FilingCSVStorage(output)
    result = SaveResult()
    batch: list[Filing] = []
    error: Exception | None = None

    try:
        with _build_client() as client:
            page = _build_query(client, ticker, form, cik, from_date, to_date).search()
            if not quiet:
                console.print(f"[bold blue]Backfilling {page.count()} filings to {output}...[/bold blue]")

            filings = page.iterate()
            if max_filings is not None:
                filings = islice(filings, max_filings)

            for filing in filings:
                batch.append(filing)
                if len(batch) >= batch_size:
                    result = result.merge(storage.save_filings(batch))
                    batch = []
            if not quiet:
                console.print(client.metrics.current.to_summary())
    except (SecApiError, ValueError) as e:
        logger.error(f"Backfill stopped: {e}")
        error = e
    finally:
        if batch:
            result = result.merge(storage.save_filings(batch))

    if not quiet:
        console.print(f"  {result.summary()}")
    for message in result.errors:
        console.print(f"[red]  {message}[/red]")

    if error is not None:
        if isinstance(error, RateLimitError) and not quiet:
            console.print("[yellow]Progress saved. Run the same command again to continue.[/yellow]")
        raise _fail(error)
    if result.has_errors:
        raise typer.Exit(code=EXIT_ERROR)
    if not quiet:
        console.print("[green]Backfill completed![/green]")


@app.command()
def mapping(
    kind: Annotated[str, typer.Argument(help="Identifier type: ticker, cik, cusip or name")],
    value: Annotated[str, typer.Argument(help="Identifier value")],
) -> None:
    """Resolve a company identifier.

    Examples:
        secapi mapping ticker AAPL
        secapi mapping cik 320193
    """
    setup_logging(quiet=True)

    kind = kind.lower()
    if kind not in MAPPING_KINDS:
        console.print(f"[red]Invalid kind: {kind}. Use {', '.join(MAPPING_KINDS)}.[/red]")
        raise typer.Exit(code=EXIT_ERROR)

    try:
        with _build_client() as client:
            data = getattr(client.mapping, kind)(value)
    except SecApiError as e:
        raise _fail(e)

    typer.echo(json.dumps(data, indent=2))


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"[bold]secapi v{__version__}[/bold]")


if __name__ == "__main__":
    app()
