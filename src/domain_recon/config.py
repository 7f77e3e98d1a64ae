"""
Run configuration.

Settings resolve in order: command-line arguments, then environment
variables, then defaults. Store credentials may instead come from Vault.
"""

import argparse
import logging
import os
from dataclasses import dataclass, field
from typing import Any

from domain_recon.engine.coordinator import default_worker_count
from domain_recon.engine.queries import ReconciliationQueries, SourceSchema, TargetSchema
from domain_recon.errors import ConfigurationError
from domain_recon.store import (
    PostgresConnectionFactory,
    SQLServerConnectionFactory,
    StoreConnections,
)
from domain_recon.utils.vault_client import VaultClient

logger = logging.getLogger(__name__)


@dataclass
class SourceSettings:
    """SQL Server store holding contacts and organizations."""

    host: str = "localhost"
    port: int = 1433
    database: str = "crm"
    username: str = "sa"
    password: str | None = None
    driver: str = "ODBC Driver 18 for SQL Server"
    connection_string: str | None = None

    def create_factory(self) -> SQLServerConnectionFactory:
        return SQLServerConnectionFactory(
            host=self.host,
            port=self.port,
            database=self.database,
            user=self.username,
            password=self.password,
            driver=self.driver,
            connection_string=self.connection_string,
        )


@dataclass
class TargetSettings:
    """PostgreSQL store holding the denormalized domain snapshot."""

    host: str = "localhost"
    port: int = 5432
    database: str = "warehouse"
    username: str = "postgres"
    password: str | None = None

    def create_factory(self) -> PostgresConnectionFactory:
        return PostgresConnectionFactory(
            host=self.host,
            port=self.port,
            database=self.database,
            user=self.username,
            password=self.password,
        )


@dataclass
class RunSettings:
    """Everything one reconciliation run needs."""

    source: SourceSettings = field(default_factory=SourceSettings)
    target: TargetSettings = field(default_factory=TargetSettings)
    workers: int = field(default_factory=default_worker_count)
    output_dir: str = "."
    target_schema: TargetSchema = field(default_factory=TargetSchema)
    source_schema: SourceSchema = field(default_factory=SourceSchema)

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ConfigurationError(f"Worker count must be at least 1, got {self.workers}")

    def create_connections(self) -> StoreConnections:
        return StoreConnections(
            source=self.source.create_factory(),
            target=self.target.create_factory(),
        )

    def create_queries(self) -> ReconciliationQueries:
        try:
            return ReconciliationQueries(target=self.target_schema, source=self.source_schema)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e


def _arg(args: argparse.Namespace, name: str) -> Any:
    return getattr(args, name, None)


def _int_setting(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def credentials_from_vault(vault_client: VaultClient | None = None) -> tuple[SourceSettings, TargetSettings]:
    """
    Build store settings from Vault secrets.

    Raises:
        ConfigurationError: If Vault is unreachable or a secret is incomplete
    """
    try:
        client = vault_client or VaultClient()
        source_creds = client.get_store_credentials("source")
        target_creds = client.get_store_credentials("target")
    except Exception as e:
        raise ConfigurationError(f"Failed to fetch credentials from Vault: {e}") from e

    source = SourceSettings(
        host=source_creds["host"],
        port=_int_setting(source_creds["port"], "source port"),
        database=source_creds["database"],
        username=source_creds["username"],
        password=source_creds["password"],
        driver=source_creds.get("driver", SourceSettings.driver),
    )
    target = TargetSettings(
        host=target_creds["host"],
        port=_int_setting(target_creds["port"], "target port"),
        database=target_creds["database"],
        username=target_creds["username"],
        password=target_creds["password"],
    )

    logger.info("Loaded store credentials from Vault")
    return source, target


def credentials_from_env(args: argparse.Namespace) -> tuple[SourceSettings, TargetSettings]:
    """
    Build store settings from command-line overrides and environment variables.

    Raises:
        ConfigurationError: If a password is missing or a port is not numeric
    """
    source = SourceSettings(
        host=_arg(args, "source_host") or os.getenv("SOURCE_HOST", SourceSettings.host),
        port=_int_setting(
            _arg(args, "source_port") or os.getenv("SOURCE_PORT", SourceSettings.port),
            "source port",
        ),
        database=_arg(args, "source_database") or os.getenv("SOURCE_DB", SourceSettings.database),
        username=_arg(args, "source_user") or os.getenv("SOURCE_USER", SourceSettings.username),
        password=_arg(args, "source_password") or os.getenv("SOURCE_PASSWORD"),
        driver=os.getenv("SOURCE_ODBC_DRIVER", SourceSettings.driver),
        connection_string=os.getenv("SOURCE_CONNECTION_STRING"),
    )
    target = TargetSettings(
        host=_arg(args, "target_host") or os.getenv("TARGET_HOST", TargetSettings.host),
        port=_int_setting(
            _arg(args, "target_port") or os.getenv("TARGET_PORT", TargetSettings.port),
            "target port",
        ),
        database=_arg(args, "target_database") or os.getenv("TARGET_DB", TargetSettings.database),
        username=_arg(args, "target_user") or os.getenv("TARGET_USER", TargetSettings.username),
        password=_arg(args, "target_password") or os.getenv("TARGET_PASSWORD"),
    )

    if not source.password and not source.connection_string:
        raise ConfigurationError("Source database password not provided")
    if not target.password:
        raise ConfigurationError("Target database password not provided")

    return source, target


def load_settings(args: argparse.Namespace) -> RunSettings:
    """
    Resolve the settings for a run.

    Args:
        args: Parsed command-line arguments of the ``run`` command

    Returns:
        Fully populated RunSettings

    Raises:
        ConfigurationError: If any setting is missing or invalid
    """
    if _arg(args, "use_vault"):
        source, target = credentials_from_vault()
    else:
        source, target = credentials_from_env(args)

    workers = _arg(args, "workers") or os.getenv("RECON_WORKERS")
    output_dir = _arg(args, "output_dir") or os.getenv("RECON_OUTPUT_DIR", ".")

    target_schema = TargetSchema(
        table=os.getenv("TARGET_TABLE", TargetSchema.table),
        key_column=os.getenv("TARGET_KEY_COLUMN", TargetSchema.key_column),
        domains_column=os.getenv("TARGET_DOMAINS_COLUMN", TargetSchema.domains_column),
    )

    return RunSettings(
        source=source,
        target=target,
        workers=_int_setting(workers, "worker count") if workers else default_worker_count(),
        output_dir=output_dir,
        target_schema=target_schema,
    )
