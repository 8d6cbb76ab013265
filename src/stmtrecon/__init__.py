"""Bank and securities statement reconciliation."""

__version__ = "0.1.0"


def __getattr__(name):
    # stmtrecon.main resolves to the CLI entry point on first access
    if name == "main":
        from stmtrecon.cli.main import main

        return main
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
