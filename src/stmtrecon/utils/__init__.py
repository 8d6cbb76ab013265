"""Utility modules for stmtrecon."""
