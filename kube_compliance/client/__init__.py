"""Compliance client module."""

from kube_compliance.client.client import ComplianceClient, RetrievedResults
from kube_compliance.client.config import (
    DEFAULT_NAMESPACE,
    ComplianceClientConfig,
    RetrieveConfig,
    load_client_config,
)

__all__ = [
    "DEFAULT_NAMESPACE",
    "ComplianceClient",
    "ComplianceClientConfig",
    "RetrieveConfig",
    "RetrievedResults",
    "load_client_config",
]
