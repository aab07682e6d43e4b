"""HTTP client for the agentic-loop backend."""
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from loguru import logger

from wilson.client.models import ChatRequest
from wilson.core.exceptions import BackendRequestError, BackendUnreachableError, StreamTransportError
from wilson.stream.frames import split_lines


AGENTIC_LOOP_PATH = "/functions/v1/agentic-loop"


class BackendClient:
    """Streaming client for the conversational backend.

    Example:
        >>> client = BackendClient("https://api.example.com", access_token=token)
        >>> async with client.stream_chat(request) as lines:
        ...     async for line in lines:
        ...         print(line)
    """

    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        anon_key: str | None = None,
        timeout_seconds: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Backend base URL.
            access_token: Bearer token for the Authorization header.
            anon_key: Project key sent as the ``apikey`` header.
            timeout_seconds: Read timeout for the streamed response.
            transport: Custom httpx transport (tests use MockTransport).
        """
        self.base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._anon_key = anon_key
        self._timeout = httpx.Timeout(timeout_seconds, connect=10.0)
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "text/event-stream"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        if self._anon_key:
            headers["apikey"] = self._anon_key
        return headers

    @asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Context manager for HTTP client with connection error handling.

        Yields:
            Configured httpx.AsyncClient instance.

        Raises:
            BackendUnreachableError: If the backend cannot be reached.
            StreamTransportError: If the connection fails once established.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                yield client
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise BackendUnreachableError(
                f"Cannot connect to backend at {self.base_url}. "
                "Check WILSON_API_URL and your network connection."
            ) from e
        except httpx.TransportError as e:
            raise StreamTransportError(
                f"Connection to backend failed: {str(e) or type(e).__name__}"
            ) from e

    @asynccontextmanager
    async def stream_chat(self, request: ChatRequest) -> AsyncIterator[AsyncIterator[str]]:
        """POST a chat request and stream the response body as lines.

        The response is released when the context exits.

        Args:
            request: Request body.

        Yields:
            Async iterator over response lines.

        Raises:
            BackendUnreachableError: If the backend cannot be reached.
            BackendRequestError: If the backend answers with status >= 400.
            StreamTransportError: If the connection fails before the body arrives.
        """
        url = f"{self.base_url}{AGENTIC_LOOP_PATH}"
        logger.debug(
            "Sending chat request",
            url=url,
            history=len(request.history),
            loop_depth=request.loop_depth,
        )
        async with self._http_client() as client:
            async with client.stream(
                "POST",
                url,
                json=request.model_dump(exclude_none=True),
                headers=self._headers(),
            ) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode(errors="replace").strip()
                    raise BackendRequestError(response.status_code, body)
                yield split_lines(response.aiter_bytes())
