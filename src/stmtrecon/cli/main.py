"""Main CLI entry point."""

import logging

import click
from stmtrecon.config import load_settings
from stmtrecon.database.factories import create_sqlite_database

from stmtrecon.cli.commands import pipeline, reference, statement

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides STMTRECON_DB_PATH environment variable)",
    envvar="STMTRECON_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="STMTRECON_LOG_LEVEL",
    help="Logging verbosity",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str):
    """Stmtrecon - Bank and securities statement reconciliation.

    Import bank and securities statement files, consolidate their lines and
    post recognised transactions to the ledger.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Connect only when a command runs, not for --help
    if ctx.invoked_subcommand is not None:
        try:
            settings = load_settings()
        except ValueError as e:
            raise click.UsageError(str(e))
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["settings"] = settings
        ctx.call_on_close(db.disconnect)


statement.register_commands(cli)
pipeline.register_commands(cli)
reference.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
