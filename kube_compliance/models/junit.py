"""Models for JUnit test cases found in compliance results."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

type TestStatus = Literal["FAILED", "PASSED", "SKIPPED", "UNKNOWN"]

STATUS_PRIORITY: Mapping[TestStatus, int] = {
    "FAILED": 0,
    "PASSED": 1,
    "SKIPPED": 2,
    "UNKNOWN": 3,
}


@dataclass(frozen=True, kw_only=True)
class JUnitTestCase:
    """A single ``<testcase>`` entry of a JUnit report."""

    name: str
    classname: str = ""
    time: float = 0.0
    failure_message: str | None = None
    failure_type: str | None = None
    skipped: bool = False
    system_out: str | None = None


def is_skipped(test_case: JUnitTestCase) -> bool:
    """Whether the test case was skipped."""
    return test_case.skipped


def is_failed(test_case: JUnitTestCase) -> bool:
    """Whether the test case reported a failure or an error."""
    return test_case.failure_message is not None


def is_passed(test_case: JUnitTestCase) -> bool:
    """Whether the test case ran without failing."""
    return not is_skipped(test_case) and not is_failed(test_case)


def status_of(test_case: JUnitTestCase) -> TestStatus:
    """Return the display status of a test case.

    Skipped takes precedence over failed, which takes precedence over passed.
    """
    if is_skipped(test_case):
        return "SKIPPED"
    if is_failed(test_case):
        return "FAILED"
    if is_passed(test_case):
        return "PASSED"
    return "UNKNOWN"
