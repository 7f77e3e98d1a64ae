"""
SQL statements issued by the reconciliation engine.

Table and column names are configurable, so each identifier is validated
against a strict pattern and quoted with the dialect's native quoting
before being interpolated. Values always travel as bound parameters.
"""

import re
from dataclasses import dataclass

# ASCII-only identifiers, optionally schema-qualified
VALID_IDENTIFIER_PATTERN = re.compile(
    r'^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)?$'
)


def _validate_identifier(identifier: str) -> str:
    clean_identifier = identifier.replace('[', '').replace(']', '').replace('"', '')
    if not VALID_IDENTIFIER_PATTERN.match(clean_identifier):
        raise ValueError(f"Invalid identifier format: {identifier}")
    return clean_identifier


def quote_postgres_identifier(identifier: str) -> str:
    """
    Quote a PostgreSQL identifier, e.g. ``public.org`` -> ``"public"."org"``.

    Raises:
        ValueError: If identifier format is invalid
    """
    parts = _validate_identifier(identifier).split('.')
    return '.'.join(f'"{part}"' for part in parts)


def quote_sqlserver_identifier(identifier: str) -> str:
    """
    Quote a SQL Server identifier, e.g. ``dbo.org`` -> ``[dbo].[org]``.

    Raises:
        ValueError: If identifier format is invalid
    """
    parts = _validate_identifier(identifier).split('.')
    return '.'.join(f"[{part}]" for part in parts)


@dataclass(frozen=True)
class TargetSchema:
    """Names of the denormalized table holding each organization's domains."""

    table: str = "organization_domains"
    key_column: str = "key"
    domains_column: str = "domains"


@dataclass(frozen=True)
class SourceSchema:
    """Names of the contact/organization tables the expected domains come from."""

    contact_table: str = "CONTACT_TABLE"
    contact_org_table: str = "CONTACT_ORGANIZATION"
    organization_table: str = "ORGANIZATION"
    contact_id_column: str = "CONTACT_ID"
    organization_id_column: str = "ORGANIZATION_ID"
    email_column: str = "EMAIL_ADDR"
    key_column: str = "KEY"


class ReconciliationQueries:
    """Builds the count, paged-actual and expected-domain statements."""

    def __init__(
        self,
        target: TargetSchema | None = None,
        source: SourceSchema | None = None,
    ):
        self.target = target or TargetSchema()
        self.source = source or SourceSchema()

        # Fail on bad identifiers at construction, not inside a worker
        self.count_query = self._build_count_query()
        self.actual_values_query = self._build_actual_values_query()
        self.expected_values_query = self._build_expected_values_query()

    def _build_count_query(self) -> str:
        table = quote_postgres_identifier(self.target.table)
        return f"SELECT COUNT(*) FROM {table}"

    def _build_actual_values_query(self) -> str:
        table = quote_postgres_identifier(self.target.table)
        key = quote_postgres_identifier(self.target.key_column)
        domains = quote_postgres_identifier(self.target.domains_column)
        return (
            f"SELECT q.{key}, q.{domains}"
            f" FROM (SELECT {key}, {domains},"
            f" ROW_NUMBER() OVER (ORDER BY {key}) AS rownum"
            f" FROM {table}) q"
            f" WHERE q.rownum BETWEEN %s AND %s"
            f" ORDER BY q.rownum"
        )

    def _build_expected_values_query(self) -> str:
        s = self.source
        contact = quote_sqlserver_identifier(s.contact_table)
        contact_org = quote_sqlserver_identifier(s.contact_org_table)
        org = quote_sqlserver_identifier(s.organization_table)
        contact_id = quote_sqlserver_identifier(s.contact_id_column)
        org_id = quote_sqlserver_identifier(s.organization_id_column)
        email = quote_sqlserver_identifier(s.email_column)
        key = quote_sqlserver_identifier(s.key_column)
        return (
            f"SELECT DISTINCT"
            f" SUBSTRING(c.{email}, CHARINDEX('@', c.{email}) + 1, LEN(c.{email})) AS domain_name"
            f" FROM {contact} c"
            f" INNER JOIN {contact_org} co ON c.{contact_id} = co.{contact_id}"
            f" INNER JOIN {org} o ON o.{org_id} = co.{org_id}"
            f" WHERE o.{key} = ?"
            f" ORDER BY domain_name"
        )
