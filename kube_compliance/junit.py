"""Read JUnit test cases from a compliance results tarball."""

import logging
import tarfile
import xml.etree.ElementTree as ET
from collections.abc import Callable, Mapping, Sequence
from typing import BinaryIO, Literal

from kube_compliance.errors import ReportNotFoundError
from kube_compliance.models.junit import (
    JUnitTestCase,
    is_failed,
    is_passed,
    is_skipped,
)

log = logging.getLogger(__name__)

E2E_JUNIT_PATH = "plugins/e2e/results/junit_01.xml"

type TestFilter = Literal["all", "passed", "failed", "skipped"]

FILTERS: Mapping[TestFilter, Callable[[JUnitTestCase], bool]] = {
    "all": lambda _: True,
    "passed": is_passed,
    "failed": is_failed,
    "skipped": is_skipped,
}


def get_tests(
    stream: BinaryIO,
    show: TestFilter = "all",
    report_path: str = E2E_JUNIT_PATH,
) -> Sequence[JUnitTestCase]:
    """Read the test cases of the e2e JUnit report from a results tarball.

    Args:
        stream: Decompressed results tarball
        show: Which test cases to keep
        report_path: Path of the JUnit report inside the tarball

    Returns:
        Test cases in report order

    Raises:
        ReportNotFoundError: If the tarball holds no report at report_path
        tarfile.TarError: If the tarball cannot be read
        xml.etree.ElementTree.ParseError: If the report is not valid XML

    """
    keep = FILTERS[show]
    archive = tarfile.open(fileobj=stream, mode="r|")
    for member in archive:
        if not member.isfile() or member.name.removeprefix("./") != report_path:
            continue

        report = archive.extractfile(member)
        if report is None:  # pragma: no cover
            continue

        test_cases = parse_junit(report)
        log.debug("Parsed %d test case(s) from %s", len(test_cases), member.name)
        return [test_case for test_case in test_cases if keep(test_case)]

    raise ReportNotFoundError(f"no JUnit report found at {report_path}")


def parse_junit(source: BinaryIO) -> Sequence[JUnitTestCase]:
    """Parse every ``<testcase>`` of a JUnit XML document.

    Both ``<testsuites>`` and bare ``<testsuite>`` roots are accepted. An
    ``<error>`` element counts as a failure.
    """
    root = ET.parse(source).getroot()
    return [_to_test_case(element) for element in root.iter("testcase")]


def _to_test_case(element: ET.Element) -> JUnitTestCase:
    failure = element.find("failure")
    if failure is None:
        failure = element.find("error")

    failure_message = None
    failure_type = None
    if failure is not None:
        failure_message = failure.get("message") or (failure.text or "").strip()
        failure_type = failure.get("type")

    system_out = element.find("system-out")

    return JUnitTestCase(
        name=element.get("name", ""),
        classname=element.get("classname", ""),
        time=_parse_time(element.get("time")),
        failure_message=failure_message,
        failure_type=failure_type,
        skipped=element.find("skipped") is not None,
        system_out=system_out.text if system_out is not None else None,
    )


def _parse_time(value: str | None) -> float:
    if not value:
        return 0.0
    try:
        return float(value)
    except ValueError:
        log.debug("Ignoring invalid test case time %r", value)
        return 0.0
