"""Pipeline stage commands."""

import click
from stmtrecon.cli.error_handling import handle_stage_failure
from stmtrecon.domain.pipeline import StageResult, StatementPipeline


def _pipeline(ctx) -> StatementPipeline:
    return StatementPipeline(ctx.obj["db"], settings=ctx.obj["settings"])


def _echo_details(details: dict, indent: str = "  ") -> None:
    for key, value in details.items():
        if isinstance(value, dict):
            click.echo(f"{indent}{key}:")
            _echo_details(value, indent + "  ")
        else:
            click.echo(f"{indent}{key.replace('_', ' ').capitalize()}: {value}")


def _report(ctx, result: StageResult) -> None:
    if not result.succeeded:
        handle_stage_failure(ctx, result)
        return
    click.echo(f"\n{result.stage.capitalize()} complete (status: {result.status.value}):")
    _echo_details(result.details)


@click.command("import")
@click.argument("statement_id")
@click.pass_context
def import_statement(ctx, statement_id: str):
    """Parse and store the raw rows of a statement, skipping duplicates."""
    _report(ctx, _pipeline(ctx).import_statement(statement_id))


@click.command("consolidate")
@click.argument("statement_id")
@click.pass_context
def consolidate_statement(ctx, statement_id: str):
    """Consolidate a statement's raw rows."""
    _report(ctx, _pipeline(ctx).consolidate_statement(statement_id))


@click.command("recognize")
@click.argument("statement_id")
@click.pass_context
def recognize_statement(ctx, statement_id: str):
    """Match and post a consolidated statement's rows."""
    _report(ctx, _pipeline(ctx).recognize_statement(statement_id))


@click.command("process")
@click.argument("statement_id")
@click.pass_context
def process_statement(ctx, statement_id: str):
    """Run import, consolidation and recognition in order."""
    _report(ctx, _pipeline(ctx).process(statement_id))


def register_commands(cli):
    """Register pipeline commands with main CLI."""
    cli.add_command(import_statement)
    cli.add_command(consolidate_statement)
    cli.add_command(recognize_statement)
    cli.add_command(process_statement)
