"""
HashiCorp Vault client for fetching store credentials

Reads the source and target database credentials from the KV v2 secrets
engine, under ``<mount>/data/<base_path>/<store>``.
"""

import logging
import os
import re
from typing import Any

import requests

logger = logging.getLogger(__name__)

SAFE_PATH_PATTERN = re.compile(r'^[a-zA-Z0-9/_-]+$')

REQUIRED_FIELDS = {
    "source": ("host", "database", "username", "password"),
    "target": ("host", "database", "username", "password"),
}

DEFAULT_PORTS = {
    "source": 1433,
    "target": 5432,
}


class VaultClient:
    """
    HashiCorp Vault client for secrets management

    This client uses the KV v2 secrets engine to fetch store credentials.
    """

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_token: str | None = None,
        namespace: str | None = None,
        mount_point: str = "secret",
        base_path: str = "domain-recon",
        timeout: float = 10.0,
    ):
        """
        Initialize Vault client

        Args:
            vault_addr: Vault server address (default: from VAULT_ADDR env var)
            vault_token: Vault authentication token (default: from VAULT_TOKEN env var)
            namespace: Vault namespace (optional, for Vault Enterprise)
            mount_point: KV v2 mount point
            base_path: Path under the mount holding one secret per store
            timeout: HTTP timeout in seconds

        Raises:
            ValueError: If vault_addr or vault_token are not provided
        """
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.namespace = namespace
        self.mount_point = mount_point.strip("/")
        self.base_path = base_path.strip("/")
        self.timeout = timeout

        if not self.vault_addr:
            raise ValueError(
                "Vault address not provided. Set VAULT_ADDR environment variable "
                "or pass vault_addr parameter."
            )

        if not self.vault_token:
            raise ValueError(
                "Vault token not provided. Set VAULT_TOKEN environment variable "
                "or pass vault_token parameter."
            )

        self.vault_addr = self.vault_addr.rstrip("/")

        self.headers = {
            "X-Vault-Token": self.vault_token,
            "Content-Type": "application/json"
        }
        if self.namespace:
            self.headers["X-Vault-Namespace"] = self.namespace

        logger.info(f"Initialized Vault client for {self.vault_addr}")

    def get_secret(self, path: str) -> dict[str, Any]:
        """
        Fetch a secret from the KV v2 mount

        Args:
            path: Secret path relative to the mount (e.g. "domain-recon/source")

        Returns:
            Dictionary containing secret data

        Raises:
            ValueError: If the path is invalid or the secret is missing/empty
            requests.RequestException: If the Vault request fails
        """
        if not path or '..' in path or path.startswith('/') or not SAFE_PATH_PATTERN.match(path):
            raise ValueError(
                f"Invalid secret path: {path!r}. "
                "Only alphanumeric characters, slashes, underscores, and hyphens are allowed."
            )

        url = f"{self.vault_addr}/v1/{self.mount_point}/data/{path}"
        logger.debug(f"Fetching secret from: {url}")

        response = requests.get(url, headers=self.headers, timeout=self.timeout)

        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {path}")

        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})
        if not secret_data:
            raise ValueError(f"No data found in secret at path: {path}")

        return secret_data

    def get_store_credentials(self, store: str) -> dict[str, Any]:
        """
        Fetch credentials for one store

        Args:
            store: "source" or "target"

        Returns:
            Dictionary with host, port, database, username, password
            (plus any extra keys stored in the secret, e.g. driver)

        Raises:
            ValueError: If store is unknown or required fields are missing
        """
        if store not in REQUIRED_FIELDS:
            raise ValueError(
                f"Unsupported store: {store}. Must be one of {', '.join(REQUIRED_FIELDS)}."
            )

        secret_data = dict(self.get_secret(f"{self.base_path}/{store}"))

        missing_fields = [
            field for field in REQUIRED_FIELDS[store] if field not in secret_data
        ]
        if missing_fields:
            raise ValueError(
                f"Missing required fields in {store} secret: {', '.join(missing_fields)}"
            )

        secret_data.setdefault("port", DEFAULT_PORTS[store])

        logger.info(f"Fetched {store} credentials from Vault")
        return secret_data

    def health_check(self) -> bool:
        """
        Check if Vault is accessible and unsealed

        Returns:
            True if Vault is healthy, False otherwise
        """
        url = f"{self.vault_addr}/v1/sys/health"

        try:
            response = requests.get(url, timeout=5)
            # 200 active, 429 standby, 472 DR secondary, 473 performance standby
            return response.status_code in (200, 429, 472, 473)
        except requests.RequestException as e:
            logger.error(f"Vault health check failed: {e}")
            return False
