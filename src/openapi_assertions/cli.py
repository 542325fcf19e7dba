"""CLI entry point for openapi-assertions."""

import json
import sys
from pathlib import Path

import click

from openapi_assertions.assertions import OpenApiAssertions
from openapi_assertions.config import Settings, configure_logging
from openapi_assertions.coverage import format_uncovered, load_export
from openapi_assertions.errors import ContractMismatchError, OpenApiAssertionsError, format_issue
from openapi_assertions.validator.compiler import build_registry

SPEC_PATH = click.Path(exists=True, dir_okay=False, path_type=Path)


@click.group()
@click.option("--log-level", default=None, help="Log level (default: OPENAPI_ASSERTIONS_LOG_LEVEL or WARNING).")
@click.option("--log-format", default=None, type=click.Choice(["console", "json"]), help="Log output format.")
def main(log_level: str | None, log_format: str | None):
    """Check HTTP responses against OpenAPI 3.1 contracts."""
    settings = Settings()
    configure_logging(log_level or settings.log_level, log_format or settings.log_format)


@main.command()
@click.argument("specs", nargs=-1, required=True, type=SPEC_PATH)
def endpoints(specs: tuple[Path, ...]):
    """List every (method, route, statuses) endpoint declared by the specs."""
    try:
        registry = build_registry(specs)
    except OpenApiAssertionsError as e:
        raise click.ClickException(str(e)) from e

    for entry in registry.coverage_entries:
        click.echo(f"{entry.method:<7} {entry.route} {','.join(entry.statuses)}")
    click.echo(f"{len(registry.coverage_entries)} endpoints in {len(registry.paths)} paths.")


@main.command()
@click.argument("specs", nargs=-1, required=True, type=SPEC_PATH)
@click.option("-r", "--response", "response_path", required=True, type=SPEC_PATH, help="Captured response as a JSON object.")
@click.option("--base-path", default=None, help="Server base path stripped before matching.")
def validate(specs: tuple[Path, ...], response_path: Path, base_path: str | None):
    """Validate a captured response against the specs."""
    assertions = OpenApiAssertions()
    try:
        assertions.register_specs(specs, base_path=base_path or Settings().base_path)
        response = json.loads(response_path.read_text(encoding="utf-8"))
        assertions.is_valid_response(response)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid response file {response_path}: {e.msg}") from e
    except ContractMismatchError as e:
        click.echo(click.style("Response does not match API schema:", fg="red"), err=True)
        for issue in e.errors:
            click.echo(f"  {format_issue(issue)}", err=True)
        sys.exit(1)
    except OpenApiAssertionsError as e:
        raise click.ClickException(str(e)) from e

    click.echo(click.style("OK", fg="green"))


@main.command()
@click.argument("coverage_file", type=SPEC_PATH)
def report(coverage_file: Path):
    """Print the uncovered endpoints stored in a coverage export."""
    try:
        entries = load_export(coverage_file)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        raise click.ClickException(f"Invalid coverage file {coverage_file}: {e}") from e

    if not entries:
        click.echo(click.style("✓ All endpoints covered!", fg="green"))
        return

    count = sum(len(e.statuses) for e in entries)
    click.echo(click.style(f"Uncovered endpoints ({count}):", fg="yellow"))
    for line in format_uncovered(entries):
        click.echo(line)
