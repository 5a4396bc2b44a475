"""Errors raised while retrieving compliance results.

Context is attached by raising a subclass ``from`` the underlying exception,
so the full chain can be rendered with :func:`describe_error`.
"""


class ComplianceError(Exception):
    """Base class for every error that aborts a compliance command."""


class ClientConfigError(ComplianceError):
    """Raised when the compliance client cannot be created."""


class KubernetesAPIError(ComplianceError):
    """Raised when the Kubernetes API answers with an unexpected status."""


class AggregatorError(ComplianceError):
    """Raised when the aggregator pod or its status cannot be found."""


class StatusError(ComplianceError):
    """Raised when the compliance run status cannot be retrieved."""


class ResultsStreamError(ComplianceError):
    """Raised when the remote results stream reports a failure."""


class RetrievalError(ComplianceError):
    """Raised when the compliance results cannot be retrieved."""


class ArchiveExtractionError(ComplianceError):
    """Raised when the nested results archive cannot be extracted."""


class ResultsArchiveNotFoundError(ArchiveExtractionError):
    """Raised when the outer archive holds no nested results archive."""


class DecompressionError(ComplianceError):
    """Raised when the nested results archive is not valid gzip."""


class ReportNotFoundError(ComplianceError):
    """Raised when the results archive holds no JUnit report."""


class ResultsParseError(ComplianceError):
    """Raised when the test cases cannot be read from the results archive."""


def describe_error(error: BaseException) -> str:
    """Join an exception and its causes into a single message."""
    messages: list[str] = []
    current: BaseException | None = error
    while current is not None:
        messages.append(str(current) or type(current).__name__)
        current = current.__cause__
    return ": ".join(messages)
