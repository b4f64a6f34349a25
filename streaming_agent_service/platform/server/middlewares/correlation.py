"""Middleware for request correlation ID propagation."""

import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from streaming_agent_service.platform.observability.logging import correlation_id_ctx

REQUEST_ID_HEADER = "X-Request-ID"


class CorrelationIdMiddleware:
    """Middleware that extracts or generates correlation IDs for request tracing.

    Extracts X-Request-ID from incoming request headers or generates a new UUID
    if not present. The correlation ID is stored in a context variable for use
    by the structured logging system and echoed back in the response headers.

    Written as pure ASGI middleware so streamed responses pass through
    unbuffered and the context variable is visible to the whole request.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # Extract from header or generate new
        headers = {key.decode("latin-1").lower(): value for key, value in scope["headers"]}
        raw_id = headers.get(REQUEST_ID_HEADER.lower())
        correlation_id = raw_id.decode("latin-1") if raw_id else str(uuid.uuid4())

        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                # Echo correlation ID in response
                message["headers"] = [
                    *message.get("headers", []),
                    (REQUEST_ID_HEADER.encode("latin-1"), correlation_id.encode("latin-1")),
                ]
            await send(message)

        token = correlation_id_ctx.set(correlation_id)
        try:
            await self.app(scope, receive, send_with_header)
        finally:
            correlation_id_ctx.reset(token)
