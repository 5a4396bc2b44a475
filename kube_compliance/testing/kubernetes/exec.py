"""Fake exec websocket for tests of the results stream."""

import json
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from types import TracebackType
from typing import Self

import aiohttp

from kube_compliance.client.client import (
    ERROR_CHANNEL,
    STDERR_CHANNEL,
    STDOUT_CHANNEL,
)


def frame(channel: int, payload: bytes) -> aiohttp.WSMessage:
    """Create a binary websocket message for an exec channel."""
    return aiohttp.WSMessage(aiohttp.WSMsgType.BINARY, bytes([channel]) + payload, None)


def exec_frames(
    stdout: bytes,
    *,
    chunk_size: int = 4096,
    stderr: bytes = b"",
    status: str = "Success",
    message: str = "",
) -> Sequence[aiohttp.WSMessage]:
    """Split a command output into the frames of an exec stream.

    Like the API server, one empty frame per channel opens the stream.
    """
    frames = [
        frame(STDOUT_CHANNEL, b""),
        frame(STDERR_CHANNEL, b""),
        frame(ERROR_CHANNEL, b""),
    ]
    frames.extend(
        frame(STDOUT_CHANNEL, stdout[offset : offset + chunk_size])
        for offset in range(0, len(stdout), chunk_size)
    )
    if stderr:
        frames.append(frame(STDERR_CHANNEL, stderr))
    exec_status = {"metadata": {}, "status": status}
    if message:
        exec_status.update(message=message, reason="NonZeroExitCode")
    frames.append(frame(ERROR_CHANNEL, json.dumps(exec_status).encode()))
    return frames


@dataclass
class FakeExecWebSocket:
    """Stand-in for the response of ``ClientSession.ws_connect``."""

    messages: Sequence[aiohttp.WSMessage]
    closed: bool = field(default=False, init=False)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.closed = True

    async def __aiter__(self) -> AsyncIterator[aiohttp.WSMessage]:
        for message in self.messages:
            yield message
