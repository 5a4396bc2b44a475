"""Compliance client backed by the Kubernetes API."""

import asyncio
import logging
from collections.abc import AsyncGenerator, AsyncIterable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import BinaryIO, Final

import aiohttp

from kube_compliance.archive import open_pipe
from kube_compliance.client.config import ComplianceClientConfig, RetrieveConfig
from kube_compliance.client.models import ExecStatus, Pod, PodList
from kube_compliance.errors import (
    AggregatorError,
    KubernetesAPIError,
    ResultsStreamError,
)
from kube_compliance.models.status import FINAL_STATUSES, RunStatus

log = logging.getLogger(__name__)

STATUS_ANNOTATION: Final = "sonobuoy.hept.io/status"

EXEC_PROTOCOL: Final = "v4.channel.k8s.io"
STDOUT_CHANNEL: Final = 1
STDERR_CHANNEL: Final = 2
ERROR_CHANNEL: Final = 3


@dataclass(frozen=True, kw_only=True)
class RetrievedResults:
    """A results archive being streamed from the aggregator.

    ``reader`` yields the raw tar stream. ``errors`` completes once the
    stream has ended and raises if the retrieval failed.
    """

    reader: BinaryIO
    errors: asyncio.Task[None]


@dataclass(frozen=True, kw_only=True)
class ComplianceClient:
    """Client for the compliance aggregator running in a cluster."""

    config: ComplianceClientConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: ComplianceClientConfig
    ) -> AsyncGenerator["ComplianceClient", None]:
        """Create client with managed session lifecycle."""
        headers = {"Accept": "application/json"}
        if config.token is not None:
            headers["Authorization"] = f"Bearer {config.token.get_secret_value()}"
        async with aiohttp.ClientSession(
            base_url=config.api_base_url,
            headers=headers,
            connector=aiohttp.TCPConnector(ssl=config.verify_ssl),
        ) as session:
            yield cls(config=config, session=session)

    async def find_aggregator_pod(self, namespace: str) -> Pod:
        """Find the aggregator pod by its label selector."""
        url = f"/api/v1/namespaces/{namespace}/pods"
        params = {"labelSelector": self.config.aggregator_selector}

        async with self.session.get(url, params=params) as response:
            if response.status != 200:
                text = await response.text()
                raise KubernetesAPIError(
                    f"Failed to list pods: {response.status} {text}"
                )
            data = await response.json()

        pods = PodList.model_validate(data)
        if not pods.items:
            raise AggregatorError(
                f"No aggregator pod found in namespace {namespace} "
                f"(selector={self.config.aggregator_selector})"
            )
        return pods.items[0]

    async def get_status(self, namespace: str) -> RunStatus:
        """Get the run status published by the aggregator pod."""
        pod = await self.find_aggregator_pod(namespace)

        raw_status = pod.metadata.annotations.get(STATUS_ANNOTATION)
        if raw_status is None:
            raise AggregatorError(
                f"Aggregator pod {pod.metadata.name} has no status annotation"
            )
        return RunStatus.model_validate_json(raw_status)

    async def wait_for_completion(
        self,
        namespace: str,
        timeout: float = 1800,
        poll_interval: float = 30,
    ) -> RunStatus:
        """Wait for the compliance run to complete or fail.

        Args:
            namespace: Namespace of the compliance run
            timeout: Maximum wait time in seconds (default: 30 minutes)
            poll_interval: Seconds between polls (default: 30)

        Returns:
            The final run status

        Raises:
            TimeoutError: If the run does not finish within timeout

        """
        deadline = asyncio.get_event_loop().time() + timeout

        while True:
            status = await self.get_status(namespace)
            if status.status in FINAL_STATUSES:
                return status

            log.info(
                "Compliance run in namespace %s still in status=%s",
                namespace,
                status.status,
            )
            if asyncio.get_event_loop().time() >= deadline:
                raise TimeoutError(
                    f"Compliance run did not complete within {timeout} seconds"
                )

            await asyncio.sleep(poll_interval)

    def retrieve_results(self, config: RetrieveConfig) -> RetrievedResults:
        """Start streaming the results archive out of the aggregator pod.

        Must be called from a running event loop. The returned reader is the
        read end of a pipe fed by a background task, which closes the write
        end once the remote stream ends, whether or not it succeeded.
        """
        reader, writer = open_pipe()
        errors = asyncio.create_task(
            self._stream_results(config.namespace, writer),
            name=f"retrieve-results-{config.namespace}",
        )
        return RetrievedResults(reader=reader, errors=errors)

    def tar_command(self) -> Sequence[str]:
        """Command archiving the results tarballs to stdout."""
        return [
            "/usr/bin/env",
            "bash",
            "-c",
            f"tar cf - {self.config.results_dir}/*.tar.gz",
        ]

    async def _stream_results(self, namespace: str, writer: BinaryIO) -> None:
        try:
            pod = await self.find_aggregator_pod(namespace)
            url = f"/api/v1/namespaces/{namespace}/pods/{pod.metadata.name}/exec"
            params = [
                ("container", self.config.aggregator_container),
                ("stdout", "true"),
                ("stderr", "true"),
                *(("command", part) for part in self.tar_command()),
            ]

            log.info("Retrieving compliance results from pod %s", pod.metadata.name)
            async with self.session.ws_connect(
                url, params=params, protocols=(EXEC_PROTOCOL,)
            ) as ws:
                await pump_exec_stream(ws, writer)
        finally:
            await asyncio.to_thread(writer.close)


async def pump_exec_stream(
    messages: AsyncIterable[aiohttp.WSMessage], writer: BinaryIO
) -> int:
    """Copy the stdout channel of an exec stream into a writer.

    Each binary frame starts with its channel number. stderr is logged, and
    the error channel carries the final status of the remote command.

    Returns:
        Number of stdout bytes written

    Raises:
        ResultsStreamError: If the connection fails or the command fails

    """
    written = 0
    async for message in messages:
        if message.type is aiohttp.WSMsgType.ERROR:
            raise ResultsStreamError("Results stream failed") from message.data
        if message.type is not aiohttp.WSMsgType.BINARY or len(message.data) < 2:
            continue

        channel, payload = message.data[0], message.data[1:]
        if channel == STDOUT_CHANNEL:
            await asyncio.to_thread(writer.write, payload)
            written += len(payload)
        elif channel == STDERR_CHANNEL:
            log.debug("Results command stderr: %s", payload.decode(errors="replace"))
        elif channel == ERROR_CHANNEL:
            status = ExecStatus.model_validate_json(payload)
            if status.status != "Success":
                raise ResultsStreamError(
                    f"Results command failed: {status.message or status.reason}"
                )

    log.debug("Results stream ended after %d bytes", written)
    return written
