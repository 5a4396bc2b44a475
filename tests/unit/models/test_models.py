"""Tests for status and JUnit models."""

from kube_compliance.models.junit import is_failed, is_passed, is_skipped, status_of
from kube_compliance.models.status import RunStatus
from kube_compliance.testing.factories import JUnitTestCaseFactory
from kube_compliance.testing.kubernetes.payloads import run_status


class TestStatusOf:
    """Tests for status_of and the outcome predicates."""

    def test_passed(self) -> None:
        """Test cases without failure or skip pass."""
        test_case = JUnitTestCaseFactory.build()

        assert is_passed(test_case)
        assert status_of(test_case) == "PASSED"

    def test_failed(self) -> None:
        """Test cases with a failure message fail."""
        test_case = JUnitTestCaseFactory.build(failure_message="boom")

        assert is_failed(test_case)
        assert not is_passed(test_case)
        assert status_of(test_case) == "FAILED"

    def test_skip_takes_precedence(self) -> None:
        """Skipped wins over failed."""
        test_case = JUnitTestCaseFactory.build(skipped=True, failure_message="boom")

        assert is_skipped(test_case)
        assert status_of(test_case) == "SKIPPED"


class TestRunStatus:
    """Tests for RunStatus model."""

    def test_parses_aggregator_document(self) -> None:
        """Parses the annotation document and ignores unknown fields."""
        status = RunStatus.model_validate(run_status(status="running"))

        assert status.status == "running"
        assert not status.is_complete
        assert [plugin.plugin for plugin in status.plugins] == ["e2e", "systemd_logs"]

    def test_is_complete(self) -> None:
        """Complete runs are ready for retrieval."""
        assert RunStatus(status="complete").is_complete

    def test_accepts_unknown_status(self) -> None:
        """Keeps run states it does not know and treats them as incomplete."""
        status = RunStatus.model_validate_json('{"status": "pending"}')

        assert status.status == "pending"
        assert not status.is_complete
