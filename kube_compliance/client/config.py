"""Configuration for the compliance client."""

import json

from pydantic import BaseModel, SecretStr

DEFAULT_NAMESPACE = "jx-compliance"


class ComplianceClientConfig(BaseModel):
    """Configuration for reaching the compliance aggregator.

    The aggregator is the pod that collects plugin results and publishes the
    run status as a pod annotation.
    """

    api_base_url: str = "https://kubernetes.default.svc"
    token: SecretStr | None = None
    verify_ssl: bool = True
    aggregator_selector: str = "component=sonobuoy,run=sonobuoy-master"
    aggregator_container: str = "kube-sonobuoy"
    results_dir: str = "/tmp/sonobuoy"


class RetrieveConfig(BaseModel):
    """Where to retrieve compliance results from."""

    namespace: str = DEFAULT_NAMESPACE


def load_client_config(raw: str | None) -> ComplianceClientConfig:
    """Build a client configuration from a JSON document.

    Raises:
        ValueError: If the JSON is malformed or does not match the model

    """
    if not raw:
        return ComplianceClientConfig()
    return ComplianceClientConfig(**json.loads(raw))
