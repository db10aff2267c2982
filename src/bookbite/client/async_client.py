"""Asynchronous HTTP transport for the BookBite content API.

This module provides :class:`AsyncClient`, a thin layer over
:class:`httpx.AsyncClient` that every repository sends its requests
through. One call runs this pipeline:

1. Header assembly (JSON content negotiation, optional bearer token,
   per-descriptor overrides).
2. Pre-request hooks (once per attempt).
3. Send, retrying *transport* failures only -- anything that happens
   before an HTTP response arrives -- with linear backoff.
4. Post-response hooks.
5. Status classification via :mod:`bookbite.client.classifier`.
6. Typed decoding via :func:`~bookbite.client.response.decode_body`.

Once a response has arrived it is never retried, whatever its status.
The client performs no caching of its own.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, NoReturn, Optional

import httpx

from bookbite.client.classifier import classify_status, classify_transport_failure
from bookbite.client.response import decode_body
from bookbite.exceptions import BookBiteError
from bookbite.hooks import HookContext, HookRunner
from bookbite.models import ClientConfig, HTTPMethod, RequestDescriptor
from bookbite.output import get_output

_DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class AsyncClient:
    """Asynchronous HTTP client for the content API.

    Must be used as an async context manager (or opened with :meth:`open`)
    so the underlying connection pool is created and released exactly once.

    Args:
        config: Resolved client configuration; ``base_url``, ``auth_token``
            and the ``request`` section are read from it.
        hook_runner: Optional runner for pre-request, post-response and
            error hooks.
        transport: Optional :mod:`httpx` transport, e.g.
            :class:`httpx.MockTransport` in tests.
        sleep: Coroutine used for backoff waits. Defaults to
            :func:`asyncio.sleep`.

    Example::

        async with AsyncClient(config) as client:
            books = await client.get("books", BooksPage)
    """

    def __init__(
        self,
        config: ClientConfig,
        hook_runner: Optional[HookRunner] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._hook_runner = hook_runner
        self._transport = transport
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def config(self) -> ClientConfig:
        return self._config

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def open(self) -> None:
        if self._client is not None:
            return
        request_config = self._config.request
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=request_config.timeout,
            verify=request_config.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> AsyncClient:
        await self.open()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def execute(
        self, descriptor: RequestDescriptor, response_type: Any = None
    ) -> Any:
        """Send *descriptor* and decode the 2xx body into *response_type*.

        Args:
            descriptor: The request to send.
            response_type: Target type for the body. ``None`` means the body
                is not needed and the call returns ``None``.

        Returns:
            The decoded body.

        Raises:
            TransportError: After ``max_retries`` retries all failed before
                a response arrived.
            ClientError: On 4xx (carries the raw body).
            ServerError: On 5xx.
            UnexpectedStatusError: On any other non-2xx status.
            DecodingError: If a 2xx body does not match *response_type*.
        """
        ctx = self._build_context(descriptor)
        response = await self._send_with_retry(descriptor, ctx)
        self._run_post_response_hooks(ctx, response)

        error = classify_status(response.status_code, response.content)
        if error is not None:
            self._fail(error)
        if response_type is None:
            return None
        try:
            return decode_body(response.content, response_type)
        except BookBiteError as exc:
            self._fail(exc)

    async def get(
        self,
        path: str,
        response_type: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send a GET request and decode the result."""
        return await self.execute(RequestDescriptor.build(path, params=params), response_type)

    async def post(
        self,
        path: str,
        body: Any = None,
        response_type: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send a POST request with *body* JSON-encoded (model or mapping)."""
        descriptor = RequestDescriptor.build(
            path, method=HTTPMethod.POST, json_body=body, params=params
        )
        return await self.execute(descriptor, response_type)

    async def put(self, path: str, body: Any = None, response_type: Any = None) -> Any:
        descriptor = RequestDescriptor.build(path, method=HTTPMethod.PUT, json_body=body)
        return await self.execute(descriptor, response_type)

    async def delete(self, path: str, response_type: Any = None) -> Any:
        """Send a DELETE request. No body is required in the response."""
        descriptor = RequestDescriptor.build(path, method=HTTPMethod.DELETE)
        return await self.execute(descriptor, response_type)

    @asynccontextmanager
    async def stream(self, descriptor: RequestDescriptor) -> AsyncIterator[httpx.Response]:
        """Open a streamed response for *descriptor* on the shared HTTP client.

        The response is yielded as soon as its headers arrive; the status is
        *not* classified here, callers decide what a usable stream is.
        Connect and read failures surface as
        :class:`~bookbite.exceptions.TransportError` without retry.
        """
        client = self._require_client()
        ctx = self._build_context(descriptor)
        if self._hook_runner:
            ctx = self._hook_runner.run_pre_request(ctx)
        get_output().debug(f"{ctx.method} {ctx.url} (stream)")
        try:
            async with client.stream(
                ctx.method,
                descriptor.path,
                content=descriptor.body,
                headers=ctx.headers,
                params=ctx.params,
                timeout=self._timeout_for(descriptor),
            ) as response:
                self._run_post_response_hooks(ctx, response)
                yield response
        except httpx.TransportError as exc:
            self._fail(classify_transport_failure(exc))

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("AsyncClient is not open; use it as an async context manager")
        return self._client

    def _timeout_for(self, descriptor: RequestDescriptor) -> float:
        if descriptor.timeout is not None:
            return descriptor.timeout
        return self._config.request.timeout

    def _build_headers(self, descriptor: RequestDescriptor) -> dict[str, str]:
        headers = dict(_DEFAULT_HEADERS)
        if self._config.auth_token:
            headers["Authorization"] = f"Bearer {self._config.auth_token}"
        headers.update(descriptor.headers)
        return headers

    def _build_context(self, descriptor: RequestDescriptor) -> HookContext:
        return HookContext(
            method=descriptor.method.value,
            url=descriptor.path,
            headers=self._build_headers(descriptor),
            params=dict(descriptor.params),
        )

    async def _send_with_retry(
        self, descriptor: RequestDescriptor, ctx: HookContext
    ) -> httpx.Response:
        """Send the request, retrying transport failures with linear backoff.

        Attempt ``n`` (zero-based) waits ``n * backoff_seconds`` before it is
        sent, so the default settings give delays of 1 s, 2 s and 3 s.
        """
        client = self._require_client()
        request_config = self._config.request
        max_retries = request_config.max_retries
        output = get_output()
        attempt = 0

        while True:
            ctx.attempt = attempt
            if self._hook_runner:
                ctx = self._hook_runner.run_pre_request(ctx)
            output.debug(f"{ctx.method} {ctx.url} attempt {attempt + 1}")

            try:
                return await client.request(
                    ctx.method,
                    descriptor.path,
                    content=descriptor.body,
                    headers=ctx.headers,
                    params=ctx.params,
                    timeout=self._timeout_for(descriptor),
                )
            except httpx.TransportError as exc:
                if attempt >= max_retries:
                    self._fail(classify_transport_failure(exc))
                attempt += 1
                delay = attempt * request_config.backoff_seconds
                output.warning(
                    f"{ctx.method} {ctx.url} failed ({exc}), retrying in {delay:g}s "
                    f"(attempt {attempt}/{max_retries})"
                )
            await self._sleep(delay)

    def _run_post_response_hooks(self, ctx: HookContext, response: httpx.Response) -> None:
        get_output().debug(f"{ctx.method} {ctx.url} -> HTTP {response.status_code}")
        if self._hook_runner is None:
            return
        ctx.status_code = response.status_code
        ctx.response_headers = dict(response.headers)
        try:
            ctx.response_body = response.content
        except httpx.ResponseNotRead:
            ctx.response_body = b""
        self._hook_runner.run_post_response(ctx)

    def _fail(self, error: BookBiteError) -> NoReturn:
        """Report *error* to the error hooks, then raise it."""
        if self._hook_runner:
            self._hook_runner.run_error(error)
        cause = getattr(error, "cause", None)
        if cause is not None:
            raise error from cause
        raise error
