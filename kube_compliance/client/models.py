"""Pydantic models for Kubernetes API responses."""

from collections.abc import Mapping, Sequence

from pydantic import Field

from kube_compliance.models.base import Model


class ObjectMeta(Model):
    """Subset of Kubernetes object metadata."""

    name: str
    namespace: str = ""
    annotations: Mapping[str, str] = Field(default_factory=dict)


class PodStatus(Model):
    """Subset of a pod status."""

    phase: str = "Unknown"


class Pod(Model):
    """A pod from the Kubernetes API."""

    metadata: ObjectMeta
    status: PodStatus = Field(default_factory=PodStatus)


class PodList(Model):
    """Response from the list pods API."""

    items: Sequence[Pod] = Field(default_factory=list)


class ExecStatus(Model):
    """Final status sent on the error channel of an exec stream."""

    status: str = "Success"
    message: str = ""
    reason: str = ""
