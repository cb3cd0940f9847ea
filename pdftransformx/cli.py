"""
Command-line interface for pdftransformx.
"""

import json
import os
import sys
from dataclasses import replace
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from pdftransformx.artifacts import detect_artifact_kind
from pdftransformx.config import PipelineSettings
from pdftransformx.core.utils import configure_logging, sizeof_fmt
from pdftransformx.exceptions import DecryptionError, PdfTransformError
from pdftransformx.pipeline import TransformationPipeline

console = Console()


def _load_rules(rules_file):
    try:
        payload = json.loads(Path(rules_file).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="RULES_JSON")
    if isinstance(payload, dict):
        payload = payload.get("transformations", [])
    if not isinstance(payload, list):
        raise click.BadParameter("expected a list of rules or an object with 'transformations'", param_hint="RULES_JSON")
    return payload


@click.group()
@click.version_option(version="0.1.0")
@click.option("--log-level", default=None, help="Logging level (defaults to PDFTRANSFORMX_LOG_LEVEL or INFO)")
@click.pass_context
def cli(ctx, log_level):
    """
    pdftransformx - apply ordered transformation rules to PDF files.
    """
    settings = PipelineSettings.from_env()
    if log_level:
        settings = replace(settings, log_level=log_level)
    configure_logging(settings.log_level)
    ctx.obj = settings


@cli.command(name="apply")
@click.argument("input_pdf", type=click.Path(exists=True, dir_okay=False))
@click.argument("rules_json", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output", "-o",
    default=None,
    help="Output file (defaults to INPUT_transformed with the detected extension)",
    type=click.Path(dir_okay=False),
)
@click.option("--seed", default=None, type=int, help="Seed for reproducible redaction boxes")
@click.pass_obj
def apply_command(settings, input_pdf, rules_json, output, seed):
    """
    Apply the rules in RULES_JSON to INPUT_PDF.

    Examples:

        pdftransformx apply input.pdf rules.json

        pdftransformx apply input.pdf rules.json -o result.pdf --seed 7
    """
    rules = _load_rules(rules_json)
    if seed is not None:
        settings = replace(settings, redaction_seed=seed)

    try:
        source = Path(input_pdf).read_bytes()
        with console.status(f"[bold cyan]Applying {len(rules)} rule(s)...[/bold cyan]"):
            result = TransformationPipeline(settings).apply(source, rules)
    except DecryptionError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e} ({e.reason})")
        sys.exit(1)
    except PdfTransformError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)

    destination = Path(output) if output else Path(input_pdf).with_name(
        f"{Path(input_pdf).stem}_transformed{result.kind.extension}"
    )
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(result.data)

    table = Table(title="Transformation Result", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Rules", str(len(rules)))
    table.add_row("Kind", result.kind.value)
    table.add_row("Input size", sizeof_fmt(len(source)))
    table.add_row("Output size", sizeof_fmt(len(result.data)))
    redactions = result.resources.get("redactions")
    if redactions:
        table.add_row("Redaction boxes", str(sum(len(boxes) for boxes in redactions)))
    console.print(table)
    console.print(f"[bold green]✓ Wrote {os.path.abspath(destination)}[/bold green]")


@cli.command(name="kind")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def kind_command(path):
    """
    Print the artifact kind (pdf, zip or docx) detected from PATH's bytes.
    """
    console.print(detect_artifact_kind(Path(path).read_bytes()).value)


@cli.command(name="serve")
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.option("--port", default=8000, type=int, help="Port to listen on")
@click.pass_obj
def serve_command(settings, host, port):
    """
    Run the HTTP service with uvicorn.
    """
    import uvicorn

    from pdftransformx.service import create_app

    console.print(f"[bold cyan]Serving pdftransformx on http://{host}:{port}[/bold cyan]")
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    cli()
