"""Database layer for stmtrecon."""

from stmtrecon.database.base import Database
from stmtrecon.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
