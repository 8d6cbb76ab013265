"""Domain layer for stmtrecon.

Entities and errors have no dependencies on the database layer; services
are imported from their own modules (e.g. stmtrecon.domain.pipeline).
"""
