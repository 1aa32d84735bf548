import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict

import click
import yaml
from rich.console import Console
from rich.table import Table

from hcl2json import __version__
from hcl2json.documents import DocumentFormat, parse_document, parse_terraform_plan
from hcl2json.errors import HCL2JSONError
from hcl2json.main import HCL2JSONParser, new_parser, to_json
from hcl2json.variables import extract_variables, merge_variables

from .utils.config import init_config_dir, load_config, setup_logging
from .utils.file_loading import find_document, find_variable_files, read_document

logger = logging.getLogger(__name__)


def version_callback(ctx, param, value):
    """Print version information"""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"hcl2json v{__version__}")
    ctx.exit()


def locate(path: str) -> Path:
    document = find_document(path)
    if not document:
        click.echo(click.style(f"\nError: No supported configuration file found in {path}.", fg="red"), err=True)
        sys.exit(1)
    return document


def locate_hcl(path: str) -> Path:
    """Like ``locate`` but only for HCL documents; line lookup has no JSON / YAML support."""
    document = locate(path)
    if DocumentFormat.from_path(document) != DocumentFormat.HCL:
        click.echo(click.style(f"\nError: {document} is not an HCL document. "
                               "Query paths only resolve in .tf, .tfvars and .hcl files.", fg="red"),
                   err=True)
        sys.exit(1)
    return document


def fail(error: HCL2JSONError, document: Path):
    logger.error("%s failed: %s", document, error)
    details = error.debug_details()
    if details:
        logger.debug("Underlying errors:%s", details)
    click.echo(click.style(f"\n✗ {error.describe(str(document))}", fg="red"), err=True)
    sys.exit(1)


def render(value: Any, output_format: str, indent: int) -> str:
    if output_format == 'yaml':
        return yaml.safe_dump(value, sort_keys=False, indent=indent, default_flow_style=False).rstrip()
    return to_json(value, indent=indent or None)


async def run_operations(parser: HCL2JSONParser):
    """Await both operations side by side, keeping failures as results."""
    return await asyncio.gather(parser.parse(), parser.line_number(), return_exceptions=True)


@click.group()
@click.option('--debug/--no-debug', default=False, help='Enable debug mode')
@click.option('--version', is_flag=True, callback=version_callback,
              expose_value=False, is_eager=True, help='Show version information')
@click.pass_context
def cli(ctx, debug):
    """HCL to JSON converter

    Converts Terraform / HCL configuration into JSON and finds the line a
    query path such as resource.aws_s3_bucket[logs].versioning points at.
    """
    try:
        init_config_dir()
        config = load_config()
        setup_logging(config['log_level'])
    except (OSError, ValueError, yaml.YAMLError) as e:
        click.echo(click.style(f"\nError during initialization: {str(e)}", fg="red"), err=True)
        sys.exit(1)

    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
        click.echo(click.style("Debug mode enabled", fg="yellow"), err=True)
    ctx.obj = config


@cli.command()
@click.argument('path', type=click.Path(exists=True))
@click.option('--indent', type=int, default=None, help='Indentation width (default from config)')
@click.option('--format', 'output_format', type=click.Choice(['json', 'yaml']), default=None,
              help='Output format (default from config)')
@click.pass_obj
def parse(config: Dict[str, Any], path, indent, output_format):
    """Convert a configuration file to JSON"""
    document = locate(path)
    try:
        fmt = DocumentFormat.from_path(document)
    except ValueError as e:
        click.echo(click.style(f"\nError: {e}", fg="red"), err=True)
        sys.exit(1)

    logger.info("Parsing %s as %s", document, fmt.value)
    try:
        result = parse_document(read_document(document), fmt)
    except HCL2JSONError as e:
        fail(e, document)

    click.echo(render(result,
                      output_format or config['output_format'],
                      config['indent'] if indent is None else indent))


@cli.command('line-number')
@click.argument('path', type=click.Path(exists=True))
@click.argument('query')
def line_number(path, query):
    """Print the line a query path resolves to"""
    document = locate_hcl(path)
    parser = new_parser(read_document(document), query)
    try:
        line = asyncio.run(parser.line_number())
    except HCL2JSONError as e:
        fail(e, document)

    logger.info("%s resolved to line %d in %s", query, line, document)
    click.echo(str(line))


@cli.command()
@click.argument('path', type=click.Path(exists=True))
@click.argument('query')
@click.pass_obj
def run(config: Dict[str, Any], path, query):
    """Run parse and line lookup together and report both outcomes"""
    document = locate_hcl(path)
    parser = new_parser(read_document(document), query)
    results = asyncio.run(run_operations(parser))

    console = Console(no_color=not config['colors'])
    table = Table(title=f"{document} :: {query}")
    table.add_column("Operation", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Result", overflow="fold")

    failed = False
    for operation, outcome in zip(("parse", "lineNumber"), results):
        if isinstance(outcome, HCL2JSONError):
            failed = True
            logger.warning("%s failed for %s: %s", operation, document, outcome)
            table.add_row(operation, "[red]failure[/red]", outcome.describe(str(document)))
        elif isinstance(outcome, BaseException):
            raise outcome
        elif operation == "parse":
            table.add_row(operation, "[green]success[/green]", to_json(outcome, indent=None))
        else:
            table.add_row(operation, "[green]success[/green]", str(outcome))

    console.print(table)
    if failed:
        sys.exit(1)


@cli.command()
@click.argument('path', type=click.Path(exists=True))
@click.option('--indent', type=int, default=None, help='Indentation width (default from config)')
@click.pass_obj
def variables(config: Dict[str, Any], path, indent):
    """Collect Terraform input variables from a file or module directory"""
    files = find_variable_files(path)
    if not files:
        click.echo(click.style(f"\nError: No .tf or .tfvars files found in {path}.", fg="red"), err=True)
        sys.exit(1)

    extracted = {}
    for document in files:
        try:
            extracted[str(document)] = extract_variables(read_document(document), str(document))
        except HCL2JSONError as e:
            fail(e, document)
    logger.info("Extracted variables from %d files", len(files))

    click.echo(render(merge_variables(extracted), 'json', config['indent'] if indent is None else indent))


@cli.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--delta', is_flag=True, help='Only created, updated and replaced resources')
@click.option('--indent', type=int, default=None, help='Indentation width (default from config)')
@click.pass_obj
def plan(config: Dict[str, Any], path, delta, indent):
    """Convert `terraform show -json` plan output to scan input"""
    document = Path(path)
    try:
        result = parse_terraform_plan(read_document(document), full_scan=not delta)
    except HCL2JSONError as e:
        fail(e, document)

    logger.info("Converted %s plan %s", "delta" if delta else "full", document)
    click.echo(render(result, 'json', config['indent'] if indent is None else indent))


@cli.command()
def init():
    """Write the default configuration file"""
    path = init_config_dir()
    click.echo(click.style(f"\n✓ Configuration ready at {path}", fg="green"))


if __name__ == '__main__':
    cli()
