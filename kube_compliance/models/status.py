"""Models for the compliance run status document."""

from collections.abc import Sequence
from typing import Final

from pydantic import Field

from kube_compliance.models.base import Model

COMPLETE_STATUS: Final = "complete"
FAILED_STATUS: Final = "failed"

# Any other state (running, post-processing, ...) is still in progress.
FINAL_STATUSES: frozenset[str] = frozenset([COMPLETE_STATUS, FAILED_STATUS])


class PluginStatus(Model):
    """Progress of a single plugin on a single node."""

    plugin: str = Field(..., description="Plugin name (e.g. 'e2e')")
    node: str = Field(..., description="Node name, 'global' for cluster plugins")
    status: str = Field(..., description="Plugin run state")


class RunStatus(Model):
    """Status document published by the aggregator pod."""

    status: str = Field(..., description="Overall run state")
    plugins: Sequence[PluginStatus] = Field(
        default_factory=list, description="Per plugin run states"
    )

    @property
    def is_complete(self) -> bool:
        """Whether results are ready for retrieval."""
        return self.status == COMPLETE_STATUS
