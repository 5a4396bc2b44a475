"""Retrieve, filter, sort and display compliance test results."""

import asyncio
import gzip
import logging
import tarfile
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable, Sequence
from typing import BinaryIO

import aiohttp
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from rich.text import Text

from kube_compliance.archive import drain, untar_results
from kube_compliance.client import ComplianceClient, RetrieveConfig
from kube_compliance.errgroup import ErrorGroup
from kube_compliance.errors import (
    ArchiveExtractionError,
    ComplianceError,
    DecompressionError,
    ResultsParseError,
    RetrievalError,
    StatusError,
)
from kube_compliance.junit import get_tests
from kube_compliance.models.junit import (
    STATUS_PRIORITY,
    JUnitTestCase,
    is_skipped,
    status_of,
)
from kube_compliance.models.status import RunStatus

log = logging.getLogger(__name__)

NOT_READY_MESSAGE = (
    "Compliance results not ready. Run `kube-compliance status` for status."
)

STATUS_LABEL_WIDTH = max(len(label) for label in STATUS_PRIORITY)

STATUS_ERRORS = (ComplianceError, aiohttp.ClientError, ValidationError, TimeoutError)
PARSE_ERRORS = (ComplianceError, tarfile.TarError, ET.ParseError, OSError, EOFError)


async def show_results(
    client: ComplianceClient, namespace: str, console: Console
) -> None:
    """Print the results of a completed compliance run.

    Nothing is retrieved while the run is still in progress: an informational
    message is printed instead and the function returns normally.
    """
    try:
        status = await client.get_status(namespace)
    except STATUS_ERRORS as err:
        raise StatusError("failed to retrieve the compliance status") from err

    if not status.is_complete:
        log.debug("Compliance run is in status=%s", status.status)
        console.print(NOT_READY_MESSAGE, markup=False, highlight=False)
        return

    test_cases = await retrieve_test_cases(client, namespace)
    print_results(test_cases, console)


async def show_status(
    client: ComplianceClient,
    namespace: str,
    console: Console,
    *,
    wait: bool = False,
    timeout: float = 1800,
    poll_interval: float = 30,
) -> None:
    """Print the overall and per plugin status of a compliance run.

    With ``wait`` the status is polled until the run completes or fails.
    """
    try:
        if wait:
            status = await client.wait_for_completion(
                namespace, timeout=timeout, poll_interval=poll_interval
            )
        else:
            status = await client.get_status(namespace)
    except STATUS_ERRORS as err:
        raise StatusError("failed to retrieve the compliance status") from err

    print_status(status, console)


async def retrieve_test_cases(
    client: ComplianceClient, namespace: str
) -> Sequence[JUnitTestCase]:
    """Stream the results archive and return the non-skipped test cases.

    The remote stream and the extraction run concurrently. Both are awaited
    before returning; when both fail, the first failure is raised.
    """
    retrieved = client.retrieve_results(RetrieveConfig(namespace=namespace))

    group = ErrorGroup()
    group.go(retrieved.errors)
    extraction = group.go(asyncio.to_thread(read_test_cases, retrieved.reader))

    try:
        await group.wait()
    except Exception as err:
        raise RetrievalError("failed to retrieve the results") from err

    return extraction.result()


def read_test_cases(stream: BinaryIO) -> Sequence[JUnitTestCase]:
    """Extract, parse, filter and sort the test cases of a results stream.

    Blocking: meant to run in a worker thread. The stream is consumed to its
    end and closed so that its producer is never left blocked.
    """
    with stream:
        nested, copied = untar_results(stream)
        with nested:
            test_cases = parse_results(nested)
            drain(nested)

        try:
            copied.result()
        except Exception as err:
            raise ArchiveExtractionError(
                "could not extract the compliance results from archive"
            ) from err

        drain(stream)

    return sort_by_status(filter_tests(lambda tc: not is_skipped(tc), test_cases))


def parse_results(stream: BinaryIO) -> Sequence[JUnitTestCase]:
    """Decompress a results tarball and read all of its test cases."""
    decompressed = gzip.GzipFile(fileobj=stream, mode="rb")
    try:
        if not decompressed.peek(1):
            raise EOFError("compressed results archive is empty")
    except (OSError, EOFError) as err:
        raise DecompressionError(
            "could not create a gzip reader for compliance results"
        ) from err

    try:
        test_cases = get_tests(decompressed, "all")
        # Read up to the gzip trailer so it is checked.
        drain(decompressed)
    except PARSE_ERRORS as err:
        raise ResultsParseError(
            "could not get the results of the compliance tests from the archive"
        ) from err

    return test_cases


def filter_tests(
    predicate: Callable[[JUnitTestCase], bool], test_cases: Iterable[JUnitTestCase]
) -> list[JUnitTestCase]:
    """Return the test cases matching the predicate, in their original order."""
    return [test_case for test_case in test_cases if predicate(test_case)]


def sort_by_status(test_cases: Iterable[JUnitTestCase]) -> list[JUnitTestCase]:
    """Sort test cases by status priority.

    The sort is stable: test cases with the same status keep their order.
    """
    return sorted(test_cases, key=_status_priority)


def _status_priority(test_case: JUnitTestCase) -> int:
    return STATUS_PRIORITY[status_of(test_case)]


def print_results(test_cases: Iterable[JUnitTestCase], console: Console) -> None:
    """Render one (status, name) row per test case.

    Names are printed verbatim: e2e names such as ``[sig-apps] ...`` are not
    console markup, and long names wrap instead of being cut.
    """
    table = _plain_table()
    table.add_column(
        "STATUS", justify="left", no_wrap=True, min_width=STATUS_LABEL_WIDTH
    )
    table.add_column("TEST", justify="left", overflow="fold")
    for test_case in test_cases:
        table.add_row(status_of(test_case), Text(test_case.name))
    console.print(table)


def print_status(status: RunStatus, console: Console) -> None:
    """Render the overall status followed by one row per plugin."""
    console.print(Text(f"Compliance run status: {status.status}"))
    table = _plain_table()
    for header in ("PLUGIN", "NODE", "STATUS"):
        table.add_column(header, justify="left", overflow="fold")
    for plugin in status.plugins:
        table.add_row(Text(plugin.plugin), Text(plugin.node), Text(plugin.status))
    console.print(table)


def _plain_table() -> Table:
    return Table(box=None, show_edge=False, pad_edge=False, highlight=False)
