"""CLI package for stmtrecon."""
