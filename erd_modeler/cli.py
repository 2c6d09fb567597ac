"""Command-line interface for erd-modeler."""

import logging
from pathlib import Path
from typing import Literal

import click

from erd_modeler.generators import DATABASE_NAMES, DDLOptions, generate_ddl
from erd_modeler.layout import LayoutOptions, layout_model
from erd_modeler.models import DATABASE_TYPES
from erd_modeler.parsers import parse_sql
from erd_modeler.serialization import dump_model, load_model
from erd_modeler.validation import has_errors, validate_model

model_argument = click.argument("model_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))


def _emit(content: str, output: Path | None, what: str) -> None:
    """Write ``content`` to ``output``, or to stdout when no path is given."""
    if output is None:
        click.echo(content)
        return
    output.write_text(content)
    click.echo(f"{what} saved to: {output}", err=True)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug details to stderr")
@click.version_option(version="0.1.0")
def main(verbose: bool) -> None:
    """Generate SQL DDL and diagram layouts from entity-relationship models.

    \b
    Examples:
      # PostgreSQL DDL from a model document
      erd-modeler ddl model.json -o schema.sql

      # Re-arrange entities around the best connected one
      erd-modeler layout model.json -m smart -o model.json

      # Build a model from an existing schema
      erd-modeler import-sql schema.sql -o model.json
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@model_argument
@click.option(
    "-d", "--dialect",
    type=click.Choice(DATABASE_TYPES),
    envvar="ERD_MODELER_DIALECT",
    help="Target database (default: the model's target database)",
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output .sql file (default: stdout)",
)
@click.option("--schema-name", envvar="ERD_MODELER_SCHEMA", help="Schema or database to create tables in")
@click.option("--drop/--no-drop", default=False, help="Emit DROP TABLE statements")
@click.option("--comments/--no-comments", default=True, help="Emit table and column comments")
@click.option("--foreign-keys/--no-foreign-keys", default=True, help="Emit foreign key constraints")
@click.option("--indexes/--no-indexes", default=True, help="Emit CREATE INDEX statements")
def ddl(
    model_file: Path,
    dialect: str | None,
    output: Path | None,
    schema_name: str | None,
    drop: bool,
    comments: bool,
    foreign_keys: bool,
    indexes: bool,
) -> None:
    """Generate SQL DDL for MODEL_FILE."""
    try:
        model = load_model(model_file)
        target_db = dialect or model.target_database
        options = DDLOptions(
            include_drop_statements=drop,
            include_comments=comments,
            include_foreign_keys=foreign_keys,
            include_indexes=indexes,
            schema_name=schema_name or None,
        )
        click.echo(
            f"Generating {DATABASE_NAMES[target_db]} DDL for {len(model.entities)} entities...",
            err=True,
        )
        _emit(generate_ddl(model, target_db, options), output, "DDL")

    except click.ClickException:
        raise
    except Exception as e:
        raise click.ClickException(str(e))


@main.command()
@model_argument
@click.option(
    "-m", "--mode",
    type=click.Choice(["grid", "smart", "crossings"]),
    default="smart",
    help="Layout algorithm (default: smart)",
)
@click.option("--per-row", type=click.IntRange(min=1), default=3, help="Entities per row in grid mode")
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output model file (default: stdout)",
)
def layout(
    model_file: Path,
    mode: Literal["grid", "smart", "crossings"],
    per_row: int,
    output: Path | None,
) -> None:
    """Reposition the entities of MODEL_FILE."""
    try:
        model = load_model(model_file)
        positioned = layout_model(model, mode, LayoutOptions(entities_per_row=per_row))
        _emit(dump_model(positioned), output, "Model")

    except click.ClickException:
        raise
    except Exception as e:
        raise click.ClickException(str(e))


@main.command("import-sql")
@click.argument("sql_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-d", "--dialect",
    type=click.Choice(DATABASE_TYPES),
    default="postgresql",
    envvar="ERD_MODELER_DIALECT",
    help="SQL dialect of the input (default: postgresql)",
)
@click.option("-n", "--name", help="Model name (default: file name)")
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output model file (default: stdout)",
)
def import_sql(sql_file: Path, dialect: str, name: str | None, output: Path | None) -> None:
    """Build a model from the CREATE TABLE statements in SQL_FILE."""
    try:
        click.echo(f"Parsing {DATABASE_NAMES[dialect]} SQL...", err=True)
        model = parse_sql(sql_file.read_text(), dialect, name or sql_file.stem)
        click.echo(
            f"Found {len(model.entities)} entities and {len(model.relationships)} relationships",
            err=True,
        )
        _emit(dump_model(model), output, "Model")

    except click.ClickException:
        raise
    except Exception as e:
        raise click.ClickException(str(e))


@main.command()
@model_argument
def validate(model_file: Path) -> None:
    """Check MODEL_FILE for modelling problems."""
    try:
        model = load_model(model_file)
    except Exception as e:
        raise click.ClickException(str(e))

    issues = validate_model(model)
    if not issues:
        click.echo("No issues found")
        return

    for issue in issues:
        click.echo(f"[{issue.severity.upper()}] {issue.category}: {issue.message}")
        if issue.suggestion:
            click.echo(f"    {issue.suggestion}")

    counts = {s: sum(1 for i in issues if i.severity == s) for s in ("error", "warning", "info")}
    click.echo(f"\n{counts['error']} errors, {counts['warning']} warnings, {counts['info']} info")
    if has_errors(issues):
        click.get_current_context().exit(1)


if __name__ == "__main__":
    main()
