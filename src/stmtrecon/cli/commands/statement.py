"""Statement management commands."""

import click
from stmtrecon.cli.error_handling import handle_domain_error
from stmtrecon.domain.entities import AccountType
from stmtrecon.domain.errors import DomainError
from stmtrecon.domain.statement import StatementService
from stmtrecon.utils.date_parser import parse_date

ACCOUNT_TYPES = [t.value for t in AccountType]


def _parse_optional_date(ctx, value: str | None):
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        handle_domain_error(ctx, e)


@click.group()
def statement_group():
    """Manage statements."""
    pass


@statement_group.command("create")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--type", "account_type", required=True, type=click.Choice(ACCOUNT_TYPES),
    help="Account type of the statement",
)
@click.option("--bank", "bank_code", required=True, help="BIC of the issuing bank")
@click.option("--from", "from_date", help="First day covered (e.g. 2024-01-01 or 01.01.2024)")
@click.option("--to", "to_date", help="Last day covered")
@click.pass_context
def create_statement(
    ctx,
    statement_file: str,
    account_type: str,
    bank_code: str,
    from_date: str | None,
    to_date: str | None,
):
    """Register a statement file for processing.

    Examples:
        stmtrecon statement create lhv.csv --type bank --bank LHVBEE22 --from 2024-01-01 --to 2024-01-31
        stmtrecon statement create secu.csv --type secu --bank LHVBEE22
    """
    service = StatementService(ctx.obj["db"])
    start = _parse_optional_date(ctx, from_date)
    end = _parse_optional_date(ctx, to_date)

    try:
        statement_id = service.create_statement(
            account_type=account_type,
            bank_code=bank_code,
            from_date=start,
            to_date=end,
            file_path=click.format_filename(statement_file),
        )
        click.echo(f"Created {account_type} statement (ID: {statement_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@statement_group.command("list")
@click.option("--type", "account_type", type=click.Choice(ACCOUNT_TYPES), help="Filter by account type")
@click.pass_context
def list_statements(ctx, account_type: str | None):
    """List statements."""
    service = StatementService(ctx.obj["db"])

    statements = service.list_statements(account_type=account_type)
    if not statements:
        click.echo("No statements found.")
        return

    click.echo("\nStatements:")
    click.echo("-" * 100)
    for stmt in statements:
        period = f"{stmt.from_date or '?'} .. {stmt.to_date or '?'}"
        click.echo(
            f"{stmt.id} | {stmt.account_type.value:4s} | {stmt.bank_code:10s} | "
            f"{period:24s} | {stmt.status.value}"
        )


@statement_group.command("show")
@click.argument("statement_id")
@click.pass_context
def show_statement(ctx, statement_id: str):
    """Show a statement and its processing counters."""
    service = StatementService(ctx.obj["db"])

    stmt = service.get_statement(statement_id)
    if stmt is None:
        click.echo(f"Error: Statement {statement_id} not found", err=True)
        ctx.exit(1)

    click.echo(f"Statement:     {stmt.id}")
    click.echo(f"Account type:  {stmt.account_type.value}")
    click.echo(f"Bank:          {stmt.bank_code}")
    click.echo(f"Period:        {stmt.from_date or '?'} .. {stmt.to_date or '?'}")
    click.echo(f"File:          {stmt.file_path or '-'}")
    click.echo(f"Status:        {stmt.status.value}")
    if stmt.row_count is not None:
        click.echo(f"Imported rows: {stmt.row_count}")
    if stmt.duplicate_count is not None:
        click.echo(f"Duplicates:    {stmt.duplicate_count}")
    if stmt.total_count is not None:
        click.echo(f"Consolidated:  {stmt.total_count}")
    if stmt.error_message:
        click.echo(f"Error:         {stmt.error_message}")


@statement_group.command("history")
@click.argument("statement_id")
@click.pass_context
def statement_history(ctx, statement_id: str):
    """Show the status audit trail of a statement."""
    service = StatementService(ctx.obj["db"])

    try:
        changes = service.get_status_history(statement_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not changes:
        click.echo("No status changes recorded.")
        return

    for change in changes:
        note = f"  ({change.note})" if change.note else ""
        click.echo(
            f"{change.created_at:%Y-%m-%d %H:%M:%S} | {change.from_status or '-':13s} -> "
            f"{change.to_status:13s} | {change.actor}{note}"
        )


def register_commands(cli):
    """Register statement commands with main CLI."""
    cli.add_command(statement_group, name="statement")
