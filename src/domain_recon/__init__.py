"""
Domain reconciliation between a SQL Server CRM and its PostgreSQL snapshot.

For every organization in the target's denormalized domain table, finds the
email domains the source's contacts use that are missing from the stored,
comma-joined domain list, and writes them to per-range result files.
"""

__version__ = "1.0.0"
