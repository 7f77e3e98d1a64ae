"""
Utility modules for domain reconciliation

Provides:
- logging: structured logging setup and ContextLogger
- tracing: OpenTelemetry spans
- vault_client: HashiCorp Vault integration for store credentials
"""

__all__ = ["logging", "tracing", "vault_client"]
