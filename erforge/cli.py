"""Command-line interface for erforge."""

import logging
import sys
from pathlib import Path

import click

from .codegen.generator import TARGETS, generate
from .codegen.json_export import emit_json
from .config import load_config
from .ddl.parser import parse_ddl
from .graph.builder import merge_fragment
from .graph.diagram import Diagram
from .output.formatter import format_diagnostics, format_validation_result
from .schema.errors import ConfigLoadError, ParseError
from .schema.loader import load_diagram
from .validators.runner import validate_diagram_file

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _fail_parse(e: ParseError):
    click.echo(f"Invalid diagram: {e}", err=True)
    for err in e.errors:
        click.echo(f"  - {err['loc']}: {err['msg']}", err=True)
    sys.exit(2)


@click.group()
@click.version_option()
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging")
def main(verbose: bool):
    """erforge: ER diagrams to ORM classes and SQL, and back."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


@main.command("generate")
@click.argument("diagram_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--target",
    type=click.Choice(sorted(TARGETS)),
    required=True,
    help="What to generate",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "files"]),
    default="text",
    help="Output format: 'text' prints to stdout, 'files' writes to output-dir",
)
@click.option(
    "--output-dir",
    default="./generated/",
    help="Output directory for generated files",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Generator configuration file (defaults to ./erforge.yaml)",
)
def generate_cmd(
    diagram_file: str,
    target: str,
    output_format: str,
    output_dir: str,
    config_file: str | None,
):
    """Generate code from a diagram file.

    DIAGRAM_FILE is the path to a diagram JSON file.

    Exit codes:
      0 - Success
      2 - File, diagram or configuration error
    """
    try:
        config = load_config(config_file)
        text = Path(diagram_file).read_text(encoding="utf-8")
        diagram = load_diagram(text)
    except ConfigLoadError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(2)
    except ParseError as e:
        _fail_parse(e)
    except (OSError, UnicodeDecodeError) as e:
        click.echo(f"Error reading file: {e}", err=True)
        sys.exit(2)

    files = generate(diagram.snapshot(), target, config)

    if output_format == "text":
        if len(files) == 1:
            click.echo(next(iter(files.values())), nl=False)
        else:
            for filename, content in files.items():
                click.echo(f"// {'=' * 70}")
                click.echo(f"// {filename}")
                click.echo(f"// {'=' * 70}")
                click.echo()
                click.echo(content)
    else:
        out_path = Path(output_dir)
        out_path.mkdir(parents=True, exist_ok=True)

        for filename, content in files.items():
            file_path = out_path / filename
            file_path.write_text(content, encoding="utf-8")
            click.echo(f"Generated: {file_path}")

        click.echo(f"\nGenerated {len(files)} file(s) in {out_path}")
    sys.exit(0)


@main.command("import-ddl")
@click.argument("sql_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--dialect",
    type=click.Choice(["auto", "postgres", "mysql"]),
    default="auto",
    help="SQL dialect of the script",
)
@click.option("--name", default=None, help="Diagram name (defaults to the file name)")
@click.option(
    "--output",
    "output_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the diagram here instead of stdout",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Fail when any statement produced a diagnostic",
)
def import_ddl(
    sql_file: str,
    dialect: str,
    name: str | None,
    output_file: str | None,
    strict: bool,
):
    """Import a SQL DDL script as a diagram.

    SQL_FILE is the path to a script of CREATE TABLE statements.

    Exit codes:
      0 - Imported
      1 - Diagnostics reported and --strict given
      2 - File error
    """
    try:
        text = Path(sql_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        click.echo(f"Error reading file: {e}", err=True)
        sys.exit(2)

    result = parse_ddl(text, dialect)
    diagram = Diagram(name=name or Path(sql_file).stem)
    merge_fragment(diagram, result.fragment)
    logger.debug("Imported %d node(s) from %s", len(diagram.nodes()), sql_file)

    document = emit_json(diagram.snapshot())["diagram.json"]
    if output_file:
        Path(output_file).write_text(document, encoding="utf-8")
        click.echo(f"Wrote: {output_file}")
    else:
        click.echo(document, nl=False)

    if result.diagnostics:
        click.echo(format_diagnostics(result.diagnostics), err=True)

    if strict and result.diagnostics:
        sys.exit(1)
    sys.exit(0)


@main.command()
@click.argument("diagram_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat warnings as errors",
)
def validate(diagram_file: str, output_format: str, strict: bool):
    """Lint a diagram file.

    DIAGRAM_FILE is the path to a diagram JSON file.

    Exit codes:
      0 - No errors
      1 - Errors found (or warnings, with --strict)
      2 - File or diagram error
    """
    try:
        result = validate_diagram_file(diagram_file)
    except ParseError as e:
        _fail_parse(e)
    except (OSError, UnicodeDecodeError) as e:
        click.echo(f"Error reading file: {e}", err=True)
        sys.exit(2)

    output = format_validation_result(result, output_format)  # type: ignore
    click.echo(output)

    if result.has_errors:
        sys.exit(1)
    elif strict and result.has_warnings:
        sys.exit(1)
    else:
        sys.exit(0)


if __name__ == "__main__":
    main()
