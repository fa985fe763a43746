"""Newline-delimited JSON transport between a line stream and the dispatcher."""

import asyncio
import json
import sys
from collections.abc import AsyncIterator
from typing import TextIO

import structlog

from trackbridge.dispatcher import Dispatcher
from trackbridge.errors import TransportDecodeError
from trackbridge.models import Request, Response

logger = structlog.get_logger()

# Upper bound for one buffered request line; longer lines are dropped, not fatal
MAX_LINE_BYTES = 16 * 1024 * 1024


def decode_request(line: str | bytes) -> Request:
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TransportDecodeError(f"Line is not valid UTF-8: {exc}") from exc
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise TransportDecodeError(str(exc)) from exc
    if not isinstance(data, dict):
        raise TransportDecodeError(f"Request must be a JSON object, got {type(data).__name__}")
    return Request.model_validate(data)


def encode_response(response: Response) -> str:
    return json.dumps(response.model_dump(mode="json"))


async def serve(dispatcher: Dispatcher, lines: AsyncIterator[str | bytes], out: TextIO) -> None:
    """Dispatch every decodable line; return once input ends and all answers are written.

    Requests run concurrently, so answers come back in completion order, not
    input order. Callers correlate by id.
    """
    in_flight: set[asyncio.Task] = set()

    async def respond(request: Request) -> None:
        response = await dispatcher.handle(request)
        out.write(encode_response(response) + "\n")
        out.flush()

    async for line in lines:
        if not line.strip():
            continue
        try:
            request = decode_request(line)
        except TransportDecodeError as exc:
            # No id to answer to: the diagnostic channel is the only report
            logger.error(f"Failed to parse request: {exc}")
            continue
        task = asyncio.create_task(respond(request))
        in_flight.add(task)
        task.add_done_callback(in_flight.discard)

    if in_flight:
        await asyncio.gather(*in_flight)


async def stdin_lines(limit: int = MAX_LINE_BYTES) -> AsyncIterator[bytes]:
    """Raw request lines from stdin; decoding happens per line in ``serve()``."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    try:
        await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    except ValueError:
        # stdin redirected from a regular file: reads never block for long
        while line := await asyncio.to_thread(sys.stdin.buffer.readline):
            yield line
        return
    while True:
        try:
            raw = await reader.readline()
        except ValueError:
            # the reader has already discarded the oversized chunk
            logger.error(f"Failed to parse request: line exceeds {limit} bytes")
            continue
        if not raw:
            return
        yield raw
