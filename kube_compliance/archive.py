"""Streaming extraction of the nested results archive.

The outer archive is read in tar stream mode, so entries can only be visited
once and in order. The nested archive is handed to the caller through an OS
pipe filled by a background thread.
"""

import logging
import os
import shutil
import tarfile
import threading
from concurrent.futures import Future
from typing import BinaryIO

from kube_compliance.errors import ResultsArchiveNotFoundError

log = logging.getLogger(__name__)

RESULTS_ARCHIVE_SUFFIX = ".tar.gz"
COPY_BUFFER_SIZE = 64 * 1024


def open_pipe() -> tuple[BinaryIO, BinaryIO]:
    """Open an OS pipe and return its (reader, writer) file objects."""
    read_fd, write_fd = os.pipe()
    return os.fdopen(read_fd, "rb"), os.fdopen(write_fd, "wb")


def drain(stream: BinaryIO) -> int:
    """Read a stream to its end, discarding the data.

    Returns the number of bytes discarded.
    """
    discarded = 0
    while chunk := stream.read(COPY_BUFFER_SIZE):
        discarded += len(chunk)
    return discarded


class _StreamTarInfo(tarfile.TarInfo):
    """Tar header that reports damaged headers instead of ending the stream.

    In stream mode :mod:`tarfile` treats an invalid or truncated header after
    the first member as the end of the archive. A clean end of stream at a
    block boundary still ends the archive.
    """

    @classmethod
    def fromtarfile(cls, tarfile_: tarfile.TarFile) -> tarfile.TarInfo:
        try:
            return super().fromtarfile(tarfile_)
        except (tarfile.InvalidHeaderError, tarfile.TruncatedHeaderError) as err:
            raise tarfile.ReadError(f"damaged tar header: {err}") from err


def untar_results(
    src: BinaryIO, suffix: str = RESULTS_ARCHIVE_SUFFIX
) -> tuple[BinaryIO, Future[None]]:
    """Locate the nested results archive in a tar stream.

    Entries are consumed until one whose name ends with ``suffix`` is found.
    A background thread then copies that entry into a pipe, and the read end
    of the pipe is returned right away together with a future resolved once
    the copy has finished. Entries after the first match are never visited.

    Args:
        src: Readable tar stream
        suffix: Name suffix identifying the nested archive

    Returns:
        Reader of the nested archive and the future of the copy

    Raises:
        ResultsArchiveNotFoundError: If no entry matches the suffix
        tarfile.TarError: If the tar stream cannot be read, including a
            damaged header anywhere before the match

    """
    archive = tarfile.open(fileobj=src, mode="r|", tarinfo=_StreamTarInfo)
    for member in archive:
        if not member.isfile() or not member.name.endswith(suffix):
            continue

        entry = archive.extractfile(member)
        if entry is None:  # pragma: no cover
            continue

        log.debug("Found results archive %s (%d bytes)", member.name, member.size)
        reader, writer = open_pipe()
        copied: Future[None] = Future()
        thread = threading.Thread(
            target=_copy_entry,
            args=(entry, writer, copied),
            name=f"untar-{member.name}",
            daemon=True,
        )
        thread.start()
        return reader, copied

    raise ResultsArchiveNotFoundError("no compliance results archive found")


def _copy_entry(entry: BinaryIO, writer: BinaryIO, copied: Future[None]) -> None:
    """Copy a tar entry into a pipe, always closing the pipe and the future."""
    try:
        with writer:
            shutil.copyfileobj(entry, writer, COPY_BUFFER_SIZE)
    except Exception as exc:
        copied.set_exception(exc)
    else:
        copied.set_result(None)
