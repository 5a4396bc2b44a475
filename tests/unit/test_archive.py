"""Tests for archive module."""

import io
import tarfile

import pytest

from kube_compliance.archive import drain, open_pipe, untar_results
from kube_compliance.errors import ResultsArchiveNotFoundError
from kube_compliance.testing.archives import tar_archive


class TestUntarResults:
    """Tests for untar_results function."""

    def test_raises_when_no_results_archive(self) -> None:
        """Raises not found error when no entry has the archive suffix."""
        src = io.BytesIO(
            tar_archive({"meta/run.log": b"log", "results.tar": b"not gzipped"})
        )

        with pytest.raises(ResultsArchiveNotFoundError, match="no compliance"):
            untar_results(src)

    def test_raises_for_empty_archive(self) -> None:
        """Raises not found error for an archive without entries."""
        with pytest.raises(ResultsArchiveNotFoundError):
            untar_results(io.BytesIO(tar_archive({})))

    def test_streams_entry_content(self) -> None:
        """Returned reader yields exactly the bytes of the matching entry."""
        content = bytes(range(256)) * 1024
        src = io.BytesIO(tar_archive({"tmp/sonobuoy/results.tar.gz": content}))

        reader, copied = untar_results(src)
        with reader:
            data = reader.read()

        assert data == content
        assert copied.result(timeout=5) is None

    def test_skips_entries_before_match(self) -> None:
        """Entries without the suffix are skipped."""
        src = io.BytesIO(
            tar_archive({"meta/config.json": b"{}", "results.tar.gz": b"results"})
        )

        reader, copied = untar_results(src)
        with reader:
            assert reader.read() == b"results"
        copied.result(timeout=5)

    def test_uses_first_matching_entry(self) -> None:
        """Only the first matching entry is streamed."""
        src = io.BytesIO(
            tar_archive({"first.tar.gz": b"first", "second.tar.gz": b"second"})
        )

        reader, copied = untar_results(src)
        with reader:
            assert reader.read() == b"first"
        copied.result(timeout=5)

    def test_accepts_custom_suffix(self) -> None:
        """Matches entries on the given suffix."""
        src = io.BytesIO(tar_archive({"a.tar.gz": b"gz", "b.tgz": b"tgz"}))

        reader, copied = untar_results(src, suffix=".tgz")
        with reader:
            assert reader.read() == b"tgz"
        copied.result(timeout=5)

    def test_propagates_tar_read_errors(self) -> None:
        """Raises tar errors for streams that are not tar archives."""
        with pytest.raises(tarfile.ReadError):
            untar_results(io.BytesIO(b"x" * 1024))

    @pytest.mark.parametrize(
        "trailer",
        [
            pytest.param(b"\x01" * 512, id="invalid-header"),
            pytest.param(b"\x01" * 100, id="truncated-header"),
        ],
    )
    def test_raises_for_damaged_header_after_first_entry(self, trailer: bytes) -> None:
        """A damaged later header is a read error, not the end of the archive."""
        # Header and one data block of the first entry, without end marker.
        first_entry = tar_archive({"meta/run.log": b"log"})[:1024]

        with pytest.raises(tarfile.ReadError, match="damaged tar header"):
            untar_results(io.BytesIO(first_entry + trailer))

    def test_treats_end_of_stream_at_block_boundary_as_end(self) -> None:
        """A stream ending cleanly between entries has no results archive."""
        first_entry = tar_archive({"meta/run.log": b"log"})[:1024]

        with pytest.raises(ResultsArchiveNotFoundError):
            untar_results(io.BytesIO(first_entry))

    def test_reports_copy_failure_and_closes_pipe(self) -> None:
        """Copy errors are set on the future and the pipe is still closed."""
        archive = tar_archive({"results.tar.gz": b"a" * 5000})
        truncated = io.BytesIO(archive[: 512 + 1024])

        reader, copied = untar_results(truncated)
        with reader:
            drain(reader)

        assert isinstance(copied.exception(timeout=5), tarfile.ReadError)


class TestPipeHelpers:
    """Tests for open_pipe and drain functions."""

    def test_drain_discards_remaining_bytes(self) -> None:
        """Returns the number of discarded bytes and leaves stream at end."""
        stream = io.BytesIO(b"a" * 100_000)
        stream.read(10)

        assert drain(stream) == 99_990
        assert stream.read() == b""

    def test_pipe_closes_reader_at_writer_close(self) -> None:
        """Reader sees end of stream once the writer is closed."""
        reader, writer = open_pipe()
        with writer:
            writer.write(b"data")

        with reader:
            assert reader.read() == b"data"
