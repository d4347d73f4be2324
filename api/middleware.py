"""
api/middleware.py -- Request body size limit.

BodySizeLimitMiddleware is a plain ASGI middleware rather than an
@app.middleware("http") function: it has to see every http.request message
as the route consumes it, not just the headers. A declared Content-Length
over the limit is rejected on the first read; a chunked body is rejected as
soon as the running total of received bytes passes the limit. Either way
nothing past the limit is buffered.

The rejection is raised as HTTPException(413) from inside receive(). FastAPI
re-raises HTTPException from body parsing unchanged, so ExceptionMiddleware
renders it through the app's handlers in the usual error envelope.

It must be registered inside any BaseHTTPMiddleware (added before them):
BaseHTTPMiddleware reads the body in a task group, which would wrap the
exception in an ExceptionGroup and turn it into a 400.
"""

from __future__ import annotations

from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

TOO_LARGE_MESSAGE = "Request body is too large."


class BodySizeLimitMiddleware:
    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = self.max_body_bytes
        declared = _declared_length(scope)
        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            if declared is not None and declared > limit:
                raise HTTPException(status_code=413, detail=TOO_LARGE_MESSAGE)
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    raise HTTPException(status_code=413, detail=TOO_LARGE_MESSAGE)
            return message

        await self.app(scope, limited_receive, send)


def _declared_length(scope: Scope) -> int | None:
    for name, value in scope.get("headers", []):
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None
