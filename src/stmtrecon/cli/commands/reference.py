"""Reference data commands: transaction types, ledger operations and customers."""

import click
from stmtrecon.cli.error_handling import handle_domain_error
from stmtrecon.domain.entities import AccountType
from stmtrecon.domain.errors import DomainError
from stmtrecon.domain.reference_data import CUSTOMER_FLAGS, FLOW_TYPES, ReferenceDataService


@click.group()
def trx_type_group():
    """Manage internal transaction types."""
    pass


@trx_type_group.command("add")
@click.argument("code")
@click.option(
    "--statement-type", required=True, type=click.Choice([t.value for t in AccountType]),
    help="Statement type the rule applies to",
)
@click.option("--flow", "flow_type", required=True, type=click.Choice(FLOW_TYPES), help="Cash flow direction")
@click.option("--asset-type", help="Asset type code (e.g. SCR01, CSH01)")
@click.option("--customer", "is_customer", type=click.Choice(CUSTOMER_FLAGS), help="Customer flag")
@click.option("--name", help="Display name")
@click.pass_context
def add_trx_type(
    ctx,
    code: str,
    statement_type: str,
    flow_type: str,
    asset_type: str | None,
    is_customer: str | None,
    name: str | None,
):
    """Add an internal transaction type.

    Examples:
        stmtrecon trx-type add SECBUY --statement-type secu --flow out --asset-type SCR01
        stmtrecon trx-type add CUSTIN --statement-type bank --flow in --asset-type CSH01 --customer yes
    """
    service = ReferenceDataService(ctx.obj["db"])
    try:
        type_id = service.add_transaction_type(
            code=code,
            statement_type=statement_type,
            flow_type=flow_type,
            asset_type=asset_type,
            is_customer=is_customer,
            name=name,
        )
        click.echo(f"Added transaction type '{code}' (ID: {type_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@trx_type_group.command("list")
@click.pass_context
def list_trx_types(ctx):
    """List internal transaction types."""
    types = ReferenceDataService(ctx.obj["db"]).list_transaction_types()
    if not types:
        click.echo("No transaction types found.")
        return
    for t in types:
        click.echo(
            f"{t.code:12s} | {t.statement_type:4s} | {t.flow_type:3s} | "
            f"{t.asset_type or '-':6s} | {t.is_customer or '-':3s} | {t.name or ''}"
        )


@click.group()
def ledger_op_group():
    """Manage ledger operation classification rules."""
    pass


@ledger_op_group.command("add")
@click.argument("code")
@click.option("--basis", "basis_trx_type", required=True, help="Transaction type code the rule refines")
@click.option("--include", "included_words", help="Comma-separated words that must all appear")
@click.option("--exclude", "excluded_words", help="Comma-separated words that must not appear")
@click.option("--name", help="Display name")
@click.pass_context
def add_ledger_op(
    ctx,
    code: str,
    basis_trx_type: str,
    included_words: str | None,
    excluded_words: str | None,
    name: str | None,
):
    """Add a ledger operation rule.

    Rules are evaluated in the order they were added; the first match wins.

    Examples:
        stmtrecon ledger-op add DIV --basis CUSTIN --include dividend
    """
    service = ReferenceDataService(ctx.obj["db"])
    try:
        op_id = service.add_ledger_operation_type(
            code=code,
            basis_trx_type=basis_trx_type,
            included_words=included_words,
            excluded_words=excluded_words,
            name=name,
        )
        click.echo(f"Added ledger operation '{code}' (ID: {op_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@ledger_op_group.command("list")
@click.pass_context
def list_ledger_ops(ctx):
    """List ledger operation rules in evaluation order."""
    ops = ReferenceDataService(ctx.obj["db"]).list_ledger_operation_types()
    if not ops:
        click.echo("No ledger operation types found.")
        return
    for op in ops:
        click.echo(
            f"{op.code:12s} | basis: {op.basis_trx_type:12s} | "
            f"+[{op.included_words or ''}] -[{op.excluded_words or ''}]"
        )


@click.group()
def customer_group():
    """Manage customers."""
    pass


@customer_group.command("add")
@click.argument("customer_ref")
@click.option("--registration-number", help="8-digit company registration number")
@click.option("--national-id", help="11-digit personal identification code")
@click.option("--org-name", help="Organisation name")
@click.option("--business-name", "ind_business_name", help="Individual business name")
@click.option("--account", "account_number", help="Bank account number")
@click.pass_context
def add_customer(
    ctx,
    customer_ref: str,
    registration_number: str | None,
    national_id: str | None,
    org_name: str | None,
    ind_business_name: str | None,
    account_number: str | None,
):
    """Add a customer."""
    service = ReferenceDataService(ctx.obj["db"])
    try:
        customer_id = service.add_customer(
            customer_ref=customer_ref,
            registration_number=registration_number,
            national_id=national_id,
            org_name=org_name,
            ind_business_name=ind_business_name,
            account_number=account_number,
        )
        click.echo(f"Added customer '{customer_ref}' (ID: {customer_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@customer_group.command("list")
@click.pass_context
def list_customers(ctx):
    """List customers."""
    customers = ReferenceDataService(ctx.obj["db"]).list_customers()
    if not customers:
        click.echo("No customers found.")
        return
    for c in customers:
        name = c.org_name or c.ind_business_name or ""
        identity = c.registration_number or c.national_id or "-"
        click.echo(f"{c.id:4d} | {c.customer_ref:12s} | {identity:11s} | {name} | {c.account_number or '-'}")


def register_commands(cli):
    """Register reference data commands with main CLI."""
    cli.add_command(trx_type_group, name="trx-type")
    cli.add_command(ledger_op_group, name="ledger-op")
    cli.add_command(customer_group, name="customer")
