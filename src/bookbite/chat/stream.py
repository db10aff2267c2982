"""Server-sent-event client for incremental chat replies.

A streamed reply is a ``text/event-stream`` body whose ``data:`` lines each
carry one JSON envelope::

    data: {"type": "chunk", "content": "Stoicism is"}
    data: {"type": "chunk", "content": " a school of"}
    data: {"type": "complete", "content": ""}

``chunk`` frames deliver text, ``complete`` ends the reply successfully
and ``error`` ends it with a failure. Lines without the ``data: `` prefix
(comments, blank keep-alives, ``event:`` fields) are ignored.

:class:`ChatStreamClient` drives one stream at a time through the states
``connecting -> streaming -> completed | failed`` and exposes the final
state as :attr:`ChatStreamClient.state`.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable, Optional, Union
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from bookbite.client import AsyncClient
from bookbite.client.classifier import classify_decode_failure, classify_status
from bookbite.exceptions import InvalidResponseError, TransportError, UnexpectedStatusError
from bookbite.models import (
    HTTPMethod,
    MalformedFramePolicy,
    RequestDescriptor,
    SendMessageRequest,
    StreamConfig,
    StreamEvent,
    StreamEventType,
)
from bookbite.output import get_output

_DATA_PREFIX = "data: "
_DEFAULT_STREAM_ERROR = "Unknown streaming error"
_CLOSED_EARLY = "Stream closed before a terminal frame"

ChunkSink = Callable[[str], Union[None, Awaitable[None]]]
"""Receives each piece of reply text. May be a plain function or a coroutine function."""


class StreamState(str, enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


class ChatStreamClient:
    """Sends a chat message and consumes the streamed reply.

    Args:
        client: An open :class:`~bookbite.client.AsyncClient`; the stream
            shares its connection pool, base URL and auth header.
        config: Stream settings. Defaults to ``client.config.stream``.

    Attributes:
        state: The :class:`StreamState` of the most recent stream.
        skipped_frames: Malformed ``data:`` frames skipped in the most
            recent stream.
    """

    def __init__(self, client: AsyncClient, config: Optional[StreamConfig] = None) -> None:
        self._client = client
        self._config = config or client.config.stream
        self.state = StreamState.IDLE
        self.skipped_frames = 0

    async def send(
        self,
        book_id: str,
        conversation_id: str,
        message: str,
        sink: ChunkSink,
    ) -> None:
        """Send *message* and feed the reply text to *sink* until it completes.

        ``chunk`` content is always delivered; ``complete`` content only
        when non-empty.

        Raises:
            TransportError: On connect failure or an ``error`` frame.
            ClientError, ServerError, UnexpectedStatusError: If the initial
                response is not ``200``.
            InvalidResponseError: If the stream ends or drops without a terminal
                frame.
            DecodingError: On a malformed frame when the policy is ``fail``.
        """
        try:
            async with aclosing(self.iter_events(book_id, conversation_id, message)) as events:
                async for event in events:
                    if event.type is StreamEventType.CHUNK or event.content:
                        result = sink(event.content)
                        if inspect.isawaitable(result):
                            await result
        except BaseException:
            # a sink failure on the final frame lands after COMPLETED was set
            self.state = StreamState.FAILED
            raise

    async def iter_events(
        self, book_id: str, conversation_id: str, message: str
    ) -> AsyncIterator[StreamEvent]:
        """Yield ``chunk`` events and the final ``complete`` event.

        ``error`` frames are raised as :class:`~bookbite.exceptions.TransportError`
        rather than yielded. Same failure modes as :meth:`send`.
        """
        self.state = StreamState.CONNECTING
        self.skipped_frames = 0
        descriptor = self._descriptor(book_id, conversation_id, message)
        try:
            async with self._client.stream(descriptor) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    raise classify_status(response.status_code, body) or UnexpectedStatusError(
                        response.status_code
                    )

                self.state = StreamState.STREAMING
                try:
                    async for line in response.aiter_lines():
                        event = self._decode_line(line)
                        if event is None:
                            continue
                        await asyncio.sleep(0)
                        if event.type is StreamEventType.ERROR:
                            raise TransportError(event.error or _DEFAULT_STREAM_ERROR)
                        if event.type is StreamEventType.COMPLETE:
                            self.state = StreamState.COMPLETED
                            yield event
                            return
                        yield event
                except httpx.TransportError as exc:
                    # the connection dropped mid-stream
                    raise InvalidResponseError(_CLOSED_EARLY) from exc

                raise InvalidResponseError(_CLOSED_EARLY)
        except BaseException:
            if self.state is not StreamState.COMPLETED:
                self.state = StreamState.FAILED
            raise

    def _descriptor(self, book_id: str, conversation_id: str, message: str) -> RequestDescriptor:
        path = (
            f"books/{quote(book_id, safe='')}/chat/conversations/"
            f"{quote(conversation_id, safe='')}/messages/stream"
        )
        return RequestDescriptor.build(
            path,
            method=HTTPMethod.POST,
            json_body=SendMessageRequest(message=message),
            headers={"Accept": "text/event-stream"},
            timeout=self._config.timeout,
        )

    def _decode_line(self, line: str) -> Optional[StreamEvent]:
        if not line.startswith(_DATA_PREFIX):
            return None
        payload = line[len(_DATA_PREFIX):]
        try:
            return StreamEvent.model_validate_json(payload)
        except ValidationError as exc:
            if self._config.malformed_frames is MalformedFramePolicy.FAIL:
                raise classify_decode_failure(exc) from exc
            self.skipped_frames += 1
            get_output().debug(f"Skipping malformed stream frame: {payload[:80]}")
            return None
