"""CLI error handling helpers."""

import click

from stmtrecon.domain.errors import DomainError
from stmtrecon.domain.pipeline import StageResult


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def handle_stage_failure(ctx: click.Context, result: StageResult) -> None:
    """Render a failed pipeline stage and exit with failure."""
    status = result.status.value if result.status is not None else "unknown"
    click.echo(
        f"Error: {result.stage} failed for statement {result.statement_id} "
        f"(status: {status}): {result.error_message}",
        err=True,
    )
    ctx.exit(1)
