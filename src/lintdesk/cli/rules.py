"""Rules command — list the rules known to the lint tool."""

import asyncio
import json

import typer
from rich.markup import escape
from rich.table import Table

from ..exceptions import LintdeskError
from . import app
from ._common import build_catalog, console, fail, get_config


@app.command()
def rules(
    ctx: typer.Context,
    no_enrich: bool = typer.Option(
        False,
        "--no-enrich",
        help="Skip per-rule detail lookups (much faster)",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    List the lint tool's rules.

    Rule details are fetched in parallel; a rule whose details time out is
    listed without them.
    """
    config = get_config(ctx)
    catalog = build_catalog(config)
    try:
        if json_output:
            found = asyncio.run(catalog.load(enrich=not no_enrich))
        else:
            with console.status("Loading rules..."):
                found = asyncio.run(catalog.load(enrich=not no_enrich))
    except LintdeskError as e:
        raise fail(e)

    if json_output:
        payload = [
            {
                "id": r.id,
                "name": r.name,
                "category": r.category.value,
                "opt_in": r.is_opt_in,
                "correctable": r.supports_autocorrection,
                "description": r.description,
                "enriched": r.enriched,
            }
            for r in found
        ]
        print(json.dumps(payload, indent=2))
        return

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("Rule", style="cyan", no_wrap=True)
    table.add_column("Category")
    table.add_column("Opt-in")
    table.add_column("Fix")
    table.add_column("Description")
    for r in found:
        table.add_row(
            escape(r.id),
            r.category.value,
            "yes" if r.is_opt_in else "",
            "yes" if r.supports_autocorrection else "",
            escape(r.description),
        )
    console.print(table)
    console.print(f"[dim]{len(found)} rules[/dim]")
